from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
from flask import request, abort, make_response, jsonify
from sqlalchemy.orm import Query
from sigpe.config.pagination import normalize_pagination
import hashlib
import json
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime

TIMESTAMP_TOLERANCE = timedelta(seconds=1)


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def iso_z(dt: Optional[datetime]) -> str:
    if not isinstance(dt, datetime):
        return ''
    return canonicalize_timestamp(dt).isoformat().replace('+00:00', 'Z')


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.order_by(None).count()
    return q.offset(offset).limit(limit), total, limit, offset


def compute_etag(ids: Iterable[Any], total: int, limit: int, offset: int, latest_ts: Optional[str] = '', content: str = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}|{content}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def content_digest(body: Any) -> str:
    return hashlib.sha256(json.dumps(body, sort_keys=True, default=str).encode()).hexdigest()[:16]


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def _http_date(dt: datetime) -> str:
    """Return RFC1123 HTTP-date string in GMT."""
    return format_datetime(dt, usegmt=True)


def _set_validators(resp, etag: str, latest_ts: Optional[datetime]):
    resp.headers['ETag'] = etag
    if isinstance(latest_ts, datetime):
        latest_c = canonicalize_timestamp(latest_ts)
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = iso_z(latest_c)
    return resp


def latest_timestamp(rows: Iterable[Any], attr: str = 'updated_at') -> Optional[datetime]:
    stamps = [getattr(r, attr, None) for r in rows]
    stamps = [canonicalize_timestamp(s) for s in stamps if isinstance(s, datetime)]
    return max(stamps) if stamps else None


def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    ids = [r.get('id') for r in rows]
    # Content digest keeps the tag moving when rows change within the same second
    etag = compute_etag(ids, total, limit, offset, iso_z(latest_ts), content_digest(rows))
    resp = make_response(build_list_payload(rows, total, limit, offset))
    return _set_validators(resp, etag, latest_ts), etag


def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    # Try ISO 8601 first
    try:
        dt = datetime.fromisoformat(header_val.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        pass
    # Try HTTP-date (RFC 1123)
    try:
        dt = parsedate_to_datetime(header_val)
        if dt and dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except (TypeError, ValueError):
        return None


def handle_conditional(etag_value: str, latest_ts: Optional[datetime]):
    """Evaluate conditional request headers.

    Precedence: If-None-Match over If-Modified-Since (per RFC 9110 semantics).
    Returns a 304 response object if conditions satisfied, else None.
    """
    inm = request.headers.get('If-None-Match')
    if inm:
        if inm.strip('"') == etag_value:
            return _set_validators(make_response('', 304), etag_value, latest_ts)
        return None
    ims_raw = request.headers.get('If-Modified-Since')
    if ims_raw and isinstance(latest_ts, datetime):
        ims_dt = _parse_if_modified_since(ims_raw)
        if ims_dt and canonicalize_timestamp(latest_ts) <= canonicalize_timestamp(ims_dt) + TIMESTAMP_TOLERANCE:
            return _set_validators(make_response('', 304), etag_value, latest_ts)
    return None


def _strip_for_head(resp):
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp


def respond_with_list(q: Query, to_json: Callable[[Any], Dict[str, Any]], ts_attr: str = 'updated_at'):
    """Paginate q, serialize rows and answer GET/HEAD with ETag + conditional handling."""
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = latest_timestamp(rows, ts_attr)
    resp, etag = make_cached_list_response([to_json(r) for r in rows], total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return _strip_for_head(resp)


def respond_with_rows(rows_json: list, latest_ts: Optional[datetime] = None):
    """Unpaginated sub-collection answered in the list shape; latest_ts usually the parent's updated_at."""
    total = len(rows_json)
    resp, etag = make_cached_list_response(rows_json, total, total, 0, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return _strip_for_head(resp)


def respond_with_item(body: Dict[str, Any], latest_ts: Optional[datetime] = None):
    """Single resource GET/HEAD with a content-derived ETag."""
    etag = compute_etag([body.get('id')], 1, 1, 0, iso_z(latest_ts), content_digest(body))
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    resp = _set_validators(make_response(jsonify(body)), etag, latest_ts)
    return _strip_for_head(resp)
