"""Account payload rules and serialization."""
from __future__ import annotations
from typing import Any, Dict, Mapping
from flask import abort
from sqlalchemy import select, or_
from sigpe.constants.permissions import ALL_ROLES, AGENT_TYPES, Role, ROLE_ALIASES
from sigpe.models.authz import User
from sigpe.services.policy import resolve_permissions, landing_route
from sigpe.utils.validation import validate_fields, min_length, min_digits, one_of

_ROLE_CHOICES = ALL_ROLES + list(ROLE_ALIASES)

USER_REQUIRED = {
    'username': min_length(3, 'Username must contain at least 3 characters'),
    'email': lambda v: None if isinstance(v, str) and '@' in v else 'Email is invalid',
    'password': min_length(6, 'Password must contain at least 6 characters'),
    'role': one_of(_ROLE_CHOICES, f'Role must be one of {", ".join(ALL_ROLES)}'),
}

USER_OPTIONAL = {
    'first_name': min_length(1, 'First name is invalid'),
    'last_name': min_length(1, 'Last name is invalid'),
    'phone': min_digits(9, 'Phone number must contain at least 9 digits'),
    'matricule': min_length(1, 'Matricule is invalid'),
    'service_location': min_length(1, 'Service location is invalid'),
    'region': min_length(2, 'Region is invalid'),
    'zone': min_length(2, 'Zone is invalid'),
    'type': one_of(AGENT_TYPES, f'Type must be one of {", ".join(AGENT_TYPES)}'),
    'hunter_id': lambda v: None if isinstance(v, int) else 'hunter_id must be an integer',
    'guide_id': lambda v: None if isinstance(v, int) else 'guide_id must be an integer',
}


def validate_user(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    cleaned = validate_fields(data, USER_REQUIRED, USER_OPTIONAL, partial=partial)
    if 'role' in cleaned:
        cleaned['role'] = Role.parse(cleaned['role']).value
    return cleaned


def assert_unique_account(session, username=None, email=None, exclude_id=None):
    # Login accepts either identifier, so usernames and emails share one namespace
    clauses = []
    for value in (username, email):
        if value:
            clauses.extend([User.username == value, User.email == value])
    if not clauses:
        return
    q = select(User.id).where(or_(*clauses))
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    if session.execute(q).first():
        abort(409, description='Username or email already in use')


def apply_user_fields(user: User, fields: Mapping[str, Any]):
    for key, value in fields.items():
        if key == 'password':
            user.set_password(value)
        else:
            setattr(user, key, value)
    return user


def user_json(u: User) -> Dict[str, Any]:
    return {
        'id': u.id,
        'username': u.username,
        'email': u.email,
        'first_name': u.first_name,
        'last_name': u.last_name,
        'phone': u.phone,
        'matricule': u.matricule,
        'service_location': u.service_location,
        'region': u.region,
        'zone': u.zone,
        'role': u.role,
        'type': u.type,
        'hunter_id': u.hunter_id,
        'guide_id': u.guide_id,
        'is_active': u.is_active,
        'is_suspended': u.is_suspended,
    }


def profile_json(u: User) -> Dict[str, Any]:
    """User shape extended with the resolved permission record and landing route."""
    body = user_json(u)
    body['permissions'] = resolve_permissions(u.role, u.type).as_dict()
    body['landing_route'] = landing_route(u.role, u.type)
    return body
