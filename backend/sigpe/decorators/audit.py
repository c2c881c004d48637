from __future__ import annotations
"""History decorator reducing repetitive add_audit() calls in route handlers.

Usage examples:

@audit_log('PERMIT.CREATE', entity='Permit', entity_id_key='id', meta_keys=['permit_number'])
def create_permit(principal):
    ... return {'id': permit.id, 'permit_number': ...}, 201

@audit_log('PERMIT.SUSPEND', entity='Permit', entity_id_arg='permit_id', diff_keys=['stored_status'],
           pre_fetch=lambda a, kw: _prefetch_permit(kw.get('permit_id')))
def suspend_permit(permit_id, principal): ...

Parameters:
  operation: required history operation code (e.g. HUNTER.SUSPEND)
  entity: optional entity label (Hunter, Permit, Guardian...)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: view argument used for entity_id when entity_id_key is absent.
  meta_keys: keys projected from the returned JSON into meta.
  meta_builder: callable (data, rv, args, kwargs) -> dict; overrides meta_keys.
  details_builder: callable (data) -> str for the human readable line.
  diff_keys / pre_fetch: record before/after values of the listed keys.

Only successful responses (status < 400) are recorded.
"""

from functools import wraps
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from sigpe.services.audit import add_audit
from sigpe import get_db

log = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, status) for dict / (dict, status) / (dict, status, headers) returns."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, getattr(rv, 'status_code', 200)


def audit_log(
    operation: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    details_builder: Optional[Callable[[dict], str]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if status >= 400:
                return rv
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            if meta_builder:
                meta = meta_builder(data, rv, args, kwargs) or {}
            else:
                meta = {k: data.get(k) for k in (meta_keys or []) if k in data}
            if diff_keys and isinstance(before, dict):
                changes = {
                    k: {'before': before.get(k), 'after': data.get(k)}
                    for k in diff_keys
                    if k in before and k in data and before.get(k) != data.get(k)
                }
                if changes:
                    meta['changes'] = changes
            details = details_builder(data) if details_builder else f'{operation} {entity or ""} {entity_id or ""}'.strip()
            principal = kwargs.get('principal')
            session = get_db()
            add_audit(operation, entity, entity_id, details, meta, user_id=getattr(principal, 'user_id', None))
            try:
                session.commit()
            except Exception:
                # History must not turn a completed operation into an error response
                session.rollback()
                log.exception('Failed to persist history entry for %s', operation)
            return rv
        return wrapper
    return outer
