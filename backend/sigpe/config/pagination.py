DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _as_int(raw, default: int) -> int:
    if raw is None or raw == '':
        return default
    return int(raw)


def normalize_pagination(limit_raw, offset_raw):
    """Clamp limit into [1, MAX_LIMIT] and offset to >= 0; raises ValueError on non-integers."""
    try:
        limit = _as_int(limit_raw, DEFAULT_LIMIT)
        offset = _as_int(offset_raw, 0)
    except (TypeError, ValueError):
        raise ValueError('limit/offset must be int')
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)
