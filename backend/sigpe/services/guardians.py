"""Guardian (tuteur) records for minor hunters."""
from __future__ import annotations
from typing import Any, Dict, Mapping
from sigpe.utils.validation import validate_fields, min_length, min_digits

GUARDIAN_REQUIRED = {
    'last_name': min_length(2, 'Last name must contain at least 2 characters'),
    'first_name': min_length(2, 'First name must contain at least 2 characters'),
    'id_number': min_length(4, 'ID number must contain at least 4 characters'),
    'relationship': min_length(3, 'Relationship to the minor must be specified'),
}

GUARDIAN_OPTIONAL = {
    'phone': min_digits(9, 'Phone number must contain at least 9 digits'),
    'address': min_length(5, 'Address must contain at least 5 characters'),
}


def validate_guardian(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    return validate_fields(data, GUARDIAN_REQUIRED, GUARDIAN_OPTIONAL, partial=partial)


def guardian_json(g) -> Dict[str, Any]:
    return {
        'id': g.id,
        'last_name': g.last_name,
        'first_name': g.first_name,
        'id_number': g.id_number,
        'relationship': g.relationship,
        'phone': g.phone,
        'address': g.address,
    }
