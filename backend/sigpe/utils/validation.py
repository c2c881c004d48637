from __future__ import annotations
"""Reusable validation helpers for request payloads.

Field rules produce a {field: message} map; any violation aborts with a 400
whose JSON body carries the map under "fields".
"""
from datetime import date
from typing import Any, Callable, Dict, Iterable, Mapping, Optional
from flask import abort
from werkzeug.exceptions import BadRequest

Rule = Callable[[Any], Optional[str]]


class FieldValidationError(BadRequest):
    def __init__(self, fields: Dict[str, str], description: str = 'Validation failed'):
        super().__init__(description=description)
        self.fields = fields


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or aborts with 400.
    """
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


def min_length(n: int, message: str) -> Rule:
    def check(value):
        if not isinstance(value, str) or len(value.strip()) < n:
            return message
        return None
    return check


def min_digits(n: int, message: str) -> Rule:
    def check(value):
        digits = [c for c in str(value or '') if c.isdigit()]
        if len(digits) < n:
            return message
        return None
    return check


def one_of(allowed: Iterable[str], message: str) -> Rule:
    allowed = tuple(allowed)

    def check(value):
        return None if value in allowed else message
    return check


def iso_date(message: str) -> Rule:
    def check(value):
        try:
            parse_date(value)
        except (TypeError, ValueError):
            return message
        return None
    return check


def non_negative_int(message: str) -> Rule:
    def check(value):
        try:
            return None if int(value) >= 0 else message
        except (TypeError, ValueError):
            return message
    return check


def validate_fields(data: Mapping[str, Any], required: Mapping[str, Rule], optional: Optional[Mapping[str, Rule]] = None, partial: bool = False) -> Dict[str, Any]:
    """Check payload against rules; returns the subset of known fields present.

    required: rules for fields that must be present (unless partial)
    optional: rules applied only when the field is present and not empty
    """
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}
    for name, rule in required.items():
        if name not in data or data.get(name) in (None, ''):
            if not partial:
                errors[name] = f'{name} is required'
            continue
        msg = rule(data[name])
        if msg:
            errors[name] = msg
        else:
            cleaned[name] = data[name]
    for name, rule in (optional or {}).items():
        if name not in data:
            continue
        value = data.get(name)
        if value in (None, ''):
            cleaned[name] = None
            continue
        msg = rule(value)
        if msg:
            errors[name] = msg
        else:
            cleaned[name] = value
    if errors:
        raise FieldValidationError(errors)
    return cleaned


def parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise TypeError('date must be an ISO string')
    return date.fromisoformat(value[:10])


__all__ = [
    'FieldValidationError', 'validate_status', 'validate_fields', 'min_length', 'min_digits',
    'one_of', 'iso_date', 'non_negative_int', 'parse_date',
]
