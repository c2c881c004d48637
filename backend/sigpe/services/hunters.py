"""Hunter registration rules and lifecycle side effects."""
from __future__ import annotations
from datetime import date
import logging
from typing import Any, Dict, Mapping, Optional
from sqlalchemy import select, update, delete
from sigpe.constants.permissions import HUNTER_CATEGORIES, WEAPON_TYPES
from sigpe.models.authz import User
from sigpe.models.hunter import Hunter, is_minor_on
from sigpe.models.permit import Permit
from sigpe.models.tax import Tax
from sigpe.models.permit_request import PermitRequest
from sigpe.models.guide import GuideHunterAssociation
from sigpe.services.permit_status import is_permit_active
from sigpe.utils.validation import validate_fields, min_length, min_digits, one_of, iso_date, non_negative_int, parse_date

log = logging.getLogger(__name__)

HUNTER_REQUIRED = {
    'last_name': min_length(2, 'Last name must contain at least 2 characters'),
    'first_name': min_length(2, 'First name must contain at least 2 characters'),
    'date_of_birth': iso_date('Date of birth must be an ISO date (YYYY-MM-DD)'),
    'id_number': min_length(4, 'ID number must contain at least 4 characters'),
    'address': min_length(5, 'Address must contain at least 5 characters'),
    'profession': min_length(2, 'Profession is required'),
    'category': one_of(HUNTER_CATEGORIES, f'Category must be one of {", ".join(HUNTER_CATEGORIES)}'),
}

HUNTER_OPTIONAL = {
    'phone': min_digits(9, 'Phone number must contain at least 9 digits'),
    'experience': non_negative_int('Experience must be a non-negative integer'),
    'pays': min_length(2, 'Country is invalid'),
    'nationality': min_length(2, 'Nationality is invalid'),
    'region': min_length(2, 'Region is invalid'),
    'zone': min_length(2, 'Zone is invalid'),
    'weapon_type': one_of(WEAPON_TYPES, f'Weapon type must be one of {", ".join(WEAPON_TYPES)}'),
    'weapon_brand': min_length(1, 'Weapon brand is invalid'),
    'weapon_reference': min_length(1, 'Weapon reference is invalid'),
    'weapon_caliber': min_length(1, 'Weapon caliber is invalid'),
    'weapon_other_details': min_length(1, 'Weapon details are invalid'),
}


def validate_hunter(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    cleaned = validate_fields(data, HUNTER_REQUIRED, HUNTER_OPTIONAL, partial=partial)
    if 'date_of_birth' in cleaned:
        cleaned['date_of_birth'] = parse_date(cleaned['date_of_birth'])
    if cleaned.get('experience') is not None:
        cleaned['experience'] = int(cleaned['experience'])
    return cleaned


def apply_hunter_fields(hunter: Hunter, fields: Mapping[str, Any], today: Optional[date] = None):
    for key, value in fields.items():
        setattr(hunter, key, value)
    if hunter.experience is None:
        hunter.experience = 0
    hunter.is_minor = is_minor_on(hunter.date_of_birth, today)
    return hunter


def hunter_json(h: Hunter) -> Dict[str, Any]:
    return {
        'id': h.id,
        'last_name': h.last_name,
        'first_name': h.first_name,
        'date_of_birth': h.date_of_birth.isoformat() if h.date_of_birth else None,
        'id_number': h.id_number,
        'phone': h.phone,
        'address': h.address,
        'experience': h.experience,
        'profession': h.profession,
        'category': h.category,
        'pays': h.pays,
        'nationality': h.nationality,
        'region': h.region,
        'zone': h.zone,
        'weapon_type': h.weapon_type,
        'weapon_brand': h.weapon_brand,
        'weapon_reference': h.weapon_reference,
        'weapon_caliber': h.weapon_caliber,
        'weapon_other_details': h.weapon_other_details,
        'is_minor': h.minor_on(),
        'is_active': h.is_active,
        'guardian_id': h.guardian_id,
    }


def suspend_hunter(session, hunter: Hunter) -> int:
    """Deactivate hunter, suspend its active permits and the linked account. Returns permits suspended."""
    permits = session.execute(select(Permit).where(Permit.hunter_id == hunter.id)).scalars().all()
    suspended = 0
    for permit in permits:
        if is_permit_active(permit):
            permit.status = Permit.STATUS_SUSPENDED
            suspended += 1
    hunter.is_active = False
    session.execute(update(User).where(User.hunter_id == hunter.id).values(is_suspended=True))
    log.info('Hunter %s suspended (%s permits suspended)', hunter.id, suspended)
    return suspended


def reactivate_hunter(session, hunter: Hunter):
    """Reactivate hunter and linked account; permits stay suspended until reactivated one by one."""
    hunter.is_active = True
    session.execute(update(User).where(User.hunter_id == hunter.id).values(is_suspended=False))


def count_active_permits(session, hunter_id: int) -> int:
    permits = session.execute(select(Permit).where(Permit.hunter_id == hunter_id)).scalars().all()
    return sum(1 for p in permits if is_permit_active(p))


def delete_hunter(session, hunter: Hunter):
    """Remove hunter with dependent taxes, requests, permits and guide links; detach accounts."""
    session.execute(update(User).where(User.hunter_id == hunter.id).values(hunter_id=None))
    session.execute(delete(Tax).where(Tax.hunter_id == hunter.id))
    session.execute(delete(PermitRequest).where(PermitRequest.hunter_id == hunter.id))
    session.execute(delete(Permit).where(Permit.hunter_id == hunter.id))
    session.execute(delete(GuideHunterAssociation).where(GuideHunterAssociation.hunter_id == hunter.id))
    session.delete(hunter)
    log.info('Hunter %s deleted', hunter.id)
