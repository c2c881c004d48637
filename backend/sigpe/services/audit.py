from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity
from sigpe import get_db
from sigpe.models.audit import AuditLog


def _actor_id() -> Optional[int]:
    try:
        ident = get_jwt_identity()
        return int(ident) if ident is not None else None
    except Exception:
        return None  # no JWT context (scripts, registration)


def add_audit(operation: str, entity_type: Optional[str] = None, entity_id: Optional[Any] = None, details: str = '', meta: Optional[Dict[str, Any]] = None, user_id: Optional[int] = None):
    """Persist a history entry within the current DB session.

    Parameters:
      operation: short action code e.g. PERMIT.CREATE, HUNTER.SUSPEND, GUARDIAN.ASSOCIATE
      entity_type: optional entity name (Permit, Hunter, ...)
      entity_id: optional primary key
      details: human readable summary shown in the history screens
      meta: additional JSON-safe dictionary (shallow copied)
      user_id: actor override; defaults to the JWT identity when present
    """
    session = get_db()
    entry = AuditLog(
        operation=operation,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        user_id=user_id if user_id is not None else _actor_id(),
        details=details or operation,
        meta=dict(meta or {}),
    )
    session.add(entry)
    # No commit here; caller's transaction boundary controls durability.
    return entry
