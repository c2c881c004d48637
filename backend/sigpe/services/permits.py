"""Permit issuance and serialization."""
from __future__ import annotations
from datetime import date
import logging
from typing import Any, Dict, Mapping, Optional
from flask import abort, current_app
from sigpe.models.hunter import Hunter
from sigpe.models.permit import Permit
from sigpe.services.numbering import issue_with_number, PERMIT_COUNTER, NumberingError
from sigpe.services.permit_status import effective_status
from sigpe.utils.validation import validate_fields, iso_date, non_negative_int, one_of, min_length, parse_date

log = logging.getLogger(__name__)

PERMIT_REQUIRED = {
    'expiry_date': iso_date('Expiry date must be an ISO date (YYYY-MM-DD)'),
}

PERMIT_OPTIONAL = {
    'issue_date': iso_date('Issue date must be an ISO date (YYYY-MM-DD)'),
    'price': non_negative_int('Price must be a non-negative integer amount'),
    'status': one_of(Permit.ALL_STATUSES, f'Status must be one of {", ".join(Permit.ALL_STATUSES)}'),
    'type': min_length(1, 'Type is invalid'),
    'category_id': min_length(1, 'Category is invalid'),
    'receipt_number': min_length(1, 'Receipt number is invalid'),
    'area': min_length(1, 'Area is invalid'),
    'weapons': min_length(1, 'Weapons description is invalid'),
}


def validate_permit(data: Mapping[str, Any], partial: bool = False, current: Optional[Permit] = None) -> Dict[str, Any]:
    cleaned = validate_fields(data, PERMIT_REQUIRED, PERMIT_OPTIONAL, partial=partial)
    for key in ('issue_date', 'expiry_date'):
        if cleaned.get(key) is not None:
            cleaned[key] = parse_date(cleaned[key])
    if cleaned.get('price') is not None:
        cleaned['price'] = int(cleaned['price'])
    if not partial and cleaned.get('issue_date') is None:
        cleaned['issue_date'] = date.today()
    issue = cleaned.get('issue_date') or (current.issue_date if current else None)
    expiry = cleaned.get('expiry_date') or (current.expiry_date if current else None)
    if issue and expiry and expiry < issue:
        abort(400, description='expiry_date must not precede issue_date')
    return cleaned


def permit_json(p: Permit, today: Optional[date] = None) -> Dict[str, Any]:
    status = effective_status(p, today)
    return {
        'id': p.id,
        'permit_number': p.permit_number,
        'hunter_id': p.hunter_id,
        'issue_date': p.issue_date.isoformat() if p.issue_date else None,
        'expiry_date': p.expiry_date.isoformat() if p.expiry_date else None,
        'status': status.value,
        'status_label': status.label,
        'stored_status': p.status,
        'price': p.price,
        'type': p.type,
        'category_id': p.category_id,
        'receipt_number': p.receipt_number,
        'area': p.area,
        'weapons': p.weapons,
    }


def assert_can_receive_permit(hunter: Hunter):
    if not hunter.is_active:
        abort(400, description='Hunter is suspended')
    minor = hunter.minor_on()
    if hunter.is_minor != minor:
        hunter.is_minor = minor
    if minor and hunter.guardian_id is None:
        abort(400, description='A minor hunter needs a guardian before a permit can be issued')


def issue_permit(session, hunter: Hunter, fields: Mapping[str, Any]) -> Permit:
    """Allocate a number and persist a permit for hunter; 409 when no number could be allocated."""
    assert_can_receive_permit(hunter)
    values = dict(fields)
    if values.get('issue_date') is None:
        values['issue_date'] = date.today()
    if values.get('price') is None:
        values['price'] = 0
    if values.get('status') is None:
        values['status'] = Permit.STATUS_ACTIVE
    year = values['issue_date'].year

    def build(number: str) -> Permit:
        return Permit(permit_number=number, hunter_id=hunter.id, **values)

    try:
        permit = issue_with_number(
            session, PERMIT_COUNTER, build,
            max_retries=current_app.config.get('PERMIT_NUMBER_MAX_RETRIES', 5),
            year=year,
        )
    except NumberingError as e:
        log.error('Permit issuance failed for hunter %s: %s', hunter.id, e)
        abort(409, description=str(e))
    log.info('Permit %s issued to hunter %s', permit.permit_number, hunter.id)
    return permit
