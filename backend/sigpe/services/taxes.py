"""Hunting levies: validation, numbering and serialization."""
from __future__ import annotations
from datetime import date
import logging
from typing import Any, Dict, Mapping
from flask import abort, current_app
from sqlalchemy import select
from sigpe.models.hunter import Hunter
from sigpe.models.permit import Permit
from sigpe.models.tax import Tax
from sigpe.services.numbering import issue_with_number, TAX_COUNTER, NumberingError
from sigpe.services.permit_status import is_permit_active
from sigpe.utils.validation import validate_fields, min_length, non_negative_int, iso_date, parse_date

log = logging.getLogger(__name__)


def _positive_int(message: str):
    def check(value):
        try:
            return None if int(value) > 0 else message
        except (TypeError, ValueError):
            return message
    return check


TAX_REQUIRED = {
    'amount': non_negative_int('Amount must be a non-negative integer'),
    'animal_type': min_length(2, 'Animal type is required'),
    'quantity': _positive_int('Quantity must be a positive integer'),
    'location': min_length(2, 'Location is required'),
}

TAX_OPTIONAL = {
    'tax_number': min_length(1, 'Tax number is invalid'),
    'issue_date': iso_date('Issue date must be an ISO date (YYYY-MM-DD)'),
    'external_hunter_name': min_length(2, 'External hunter name is invalid'),
    'external_hunter_region': min_length(2, 'External hunter region is invalid'),
}


def validate_tax(data: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned = validate_fields(data, TAX_REQUIRED, TAX_OPTIONAL)
    cleaned['amount'] = int(cleaned['amount'])
    cleaned['quantity'] = int(cleaned['quantity'])
    cleaned['issue_date'] = parse_date(cleaned['issue_date']) if cleaned.get('issue_date') else date.today()
    return cleaned


def check_permit_for_tax(session, hunter: Hunter, permit_id) -> Permit:
    permit = session.get(Permit, permit_id)
    if not permit or permit.hunter_id != hunter.id:
        abort(400, description='permit_id does not belong to this hunter')
    if not is_permit_active(permit):
        abort(400, description='Permit is not active')
    return permit


def record_tax(session, hunter: Hunter, fields: Mapping[str, Any], permit_id=None) -> Tax:
    values = dict(fields)
    supplied = values.pop('tax_number', None)
    if supplied:
        if session.execute(select(Tax.id).where(Tax.tax_number == supplied)).first():
            abort(409, description='Tax number already exists')
        tax = Tax(tax_number=supplied, hunter_id=hunter.id, permit_id=permit_id, **values)
        session.add(tax)
        session.commit()
        return tax

    def build(number: str) -> Tax:
        return Tax(tax_number=number, hunter_id=hunter.id, permit_id=permit_id, **values)

    try:
        tax = issue_with_number(
            session, TAX_COUNTER, build,
            max_retries=current_app.config.get('PERMIT_NUMBER_MAX_RETRIES', 5),
            year=values['issue_date'].year,
        )
    except NumberingError as e:
        abort(409, description=str(e))
    log.info('Tax %s recorded for hunter %s', tax.tax_number, hunter.id)
    return tax


def tax_json(t: Tax) -> Dict[str, Any]:
    return {
        'id': t.id,
        'tax_number': t.tax_number,
        'hunter_id': t.hunter_id,
        'permit_id': t.permit_id,
        'amount': t.amount,
        'issue_date': t.issue_date.isoformat() if t.issue_date else None,
        'animal_type': t.animal_type,
        'quantity': t.quantity,
        'location': t.location,
        'external_hunter_name': t.external_hunter_name,
        'external_hunter_region': t.external_hunter_region,
    }
