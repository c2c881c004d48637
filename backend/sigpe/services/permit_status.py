"""Derived permit status.

The stored `status` column is only a flag: a permit stored as active whose
expiry date has passed reads as expired without any write-back.
Precedence: suspended > expired (flag or date) > active.
"""
from __future__ import annotations
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union
from sqlalchemy import and_, or_
from sigpe.models.permit import Permit


class PermitStatus(str, Enum):
    ACTIVE = 'active'
    EXPIRED = 'expired'
    SUSPENDED = 'suspended'

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    PermitStatus.ACTIVE: 'Actif',
    PermitStatus.EXPIRED: 'Expiré',
    PermitStatus.SUSPENDED: 'Suspendu',
}

When = Union[date, datetime, None]


def _as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f'Unsupported date value {value!r}')


def _field(permit: Any, name: str):
    if isinstance(permit, dict):
        return permit.get(name)
    return getattr(permit, name, None)


def _today(now: When) -> date:
    return _as_date(now) or date.today()


def is_permit_suspended(permit: Any) -> bool:
    return _field(permit, 'status') == Permit.STATUS_SUSPENDED


def is_permit_expired(permit: Any, now: When = None) -> bool:
    if is_permit_suspended(permit):
        return False
    stored = _field(permit, 'status')
    if stored == Permit.STATUS_EXPIRED:
        return True
    expiry = _as_date(_field(permit, 'expiry_date'))
    return stored == Permit.STATUS_ACTIVE and expiry is not None and expiry < _today(now)


def is_permit_active(permit: Any, now: When = None) -> bool:
    return not is_permit_suspended(permit) and not is_permit_expired(permit, now)


def effective_status(permit: Any, now: When = None) -> PermitStatus:
    if is_permit_suspended(permit):
        return PermitStatus.SUSPENDED
    if is_permit_expired(permit, now):
        return PermitStatus.EXPIRED
    return PermitStatus.ACTIVE


def effective_status_clause(status: Union[str, PermitStatus], today: Optional[date] = None):
    """SQL filter selecting permits whose effective status equals `status`."""
    today = today or date.today()
    target = PermitStatus(status)
    if target is PermitStatus.SUSPENDED:
        return Permit.status == Permit.STATUS_SUSPENDED
    if target is PermitStatus.EXPIRED:
        return or_(
            Permit.status == Permit.STATUS_EXPIRED,
            and_(Permit.status == Permit.STATUS_ACTIVE, Permit.expiry_date < today),
        )
    # Unknown stored flags fall through to active, mirroring effective_status()
    return and_(
        Permit.status.notin_([Permit.STATUS_SUSPENDED, Permit.STATUS_EXPIRED]),
        or_(Permit.status != Permit.STATUS_ACTIVE, Permit.expiry_date >= today),
    )
