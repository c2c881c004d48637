"""Hunting guide records and their hunter associations."""
from __future__ import annotations
from typing import Any, Dict, Mapping
from sigpe.utils.validation import validate_fields, min_length, min_digits

GUIDE_REQUIRED = {
    'last_name': min_length(2, 'Last name must contain at least 2 characters'),
    'first_name': min_length(2, 'First name must contain at least 2 characters'),
    'phone': min_digits(9, 'Phone number must contain at least 9 digits'),
    'zone': min_length(2, 'Zone is required'),
    'region': min_length(2, 'Region is required'),
    'id_number': min_length(4, 'ID number must contain at least 4 characters'),
}


def validate_guide(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    return validate_fields(data, GUIDE_REQUIRED, partial=partial)


def guide_json(g) -> Dict[str, Any]:
    return {
        'id': g.id,
        'last_name': g.last_name,
        'first_name': g.first_name,
        'phone': g.phone,
        'zone': g.zone,
        'region': g.region,
        'id_number': g.id_number,
        'user_id': g.user_id,
        'is_active': g.is_active,
    }
