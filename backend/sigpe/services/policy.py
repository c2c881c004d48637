"""Role/permission resolution and request-scoped principal.

The permission record is a pure function of (role, type); nothing about a
caller's capabilities is read from the token besides its identity.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict, field
from typing import Dict, FrozenSet, Optional
from flask import abort, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select, false
from sigpe.constants.permissions import (
    Role, AgentType, ROLE_PRESETS, ALL_PERMISSION_CODES, LANDING_ROUTES, SECTOR_LANDING_ROUTE, LOGIN_ROUTE,
)
from sigpe.config.settings import FLAG_TERRITORY_SCOPE
from sigpe.models.authz import User
from sigpe.models.hunter import Hunter
from sigpe.models.guide import GuideHunterAssociation
from sigpe import get_db

# code -> Permissions attribute
CODE_FLAGS: Dict[str, str] = {
    'HUNTER.VIEW': 'can_view_hunters',
    'HUNTER.CREATE': 'can_create_hunter',
    'HUNTER.EDIT': 'can_edit_hunter',
    'HUNTER.SUSPEND': 'can_suspend_hunter',
    'HUNTER.REACTIVATE': 'can_reactivate_hunter',
    'HUNTER.DELETE': 'can_delete_hunter',
    'HUNTER.REQUEST_DELETION': 'can_request_hunter_deletion',
    'PERMIT.VIEW': 'can_view_permits',
    'PERMIT.CREATE': 'can_create_permit',
    'PERMIT.EDIT': 'can_edit_permit',
    'PERMIT.SUSPEND': 'can_suspend_permit',
    'PERMIT.REACTIVATE': 'can_reactivate_permit',
    'PERMIT.DELETE': 'can_delete_permit',
    'USER.VIEW': 'can_view_users',
    'USER.CREATE': 'can_create_user',
    'USER.EDIT': 'can_edit_user',
    'USER.SUSPEND': 'can_suspend_user',
    'USER.REACTIVATE': 'can_reactivate_user',
    'USER.DELETE': 'can_delete_user',
}


@dataclass(frozen=True)
class Permissions:
    can_view_hunters: bool = False
    can_create_hunter: bool = False
    can_edit_hunter: bool = False
    can_suspend_hunter: bool = False
    can_reactivate_hunter: bool = False
    can_delete_hunter: bool = False
    can_request_hunter_deletion: bool = False

    can_view_permits: bool = False
    can_create_permit: bool = False
    can_edit_permit: bool = False
    can_suspend_permit: bool = False
    can_reactivate_permit: bool = False
    can_delete_permit: bool = False

    can_view_users: bool = False
    can_create_user: bool = False
    can_edit_user: bool = False
    can_suspend_user: bool = False
    can_reactivate_user: bool = False
    can_delete_user: bool = False

    codes: FrozenSet[str] = field(default=frozenset(), compare=False, repr=False)

    @classmethod
    def from_codes(cls, codes) -> 'Permissions':
        granted = frozenset(c for c in codes if c in CODE_FLAGS)
        return cls(codes=granted, **{CODE_FLAGS[c]: True for c in granted})

    def allows(self, *codes: str) -> bool:
        return all(c in self.codes for c in codes)

    def as_dict(self) -> Dict[str, bool]:
        out = asdict(self)
        out.pop('codes', None)
        return out


NO_PERMISSIONS = Permissions()


def role_codes(role: Optional[str]):
    parsed = Role.parse(role)
    if parsed is None:
        return []
    codes = ROLE_PRESETS.get(parsed.value, [])
    if '*' in codes:
        return list(ALL_PERMISSION_CODES)
    return list(codes)


def resolve_permissions(role: Optional[str], type: Optional[str] = None) -> Permissions:
    """Fixed permission record for a role; unknown roles get nothing.

    `type` is accepted for symmetry with landing_route(); agent sub-types share one preset.
    """
    codes = role_codes(role)
    if not codes:
        return NO_PERMISSIONS
    return Permissions.from_codes(codes)


def landing_route(role: Optional[str], type: Optional[str] = None) -> str:
    parsed = Role.parse(role)
    if parsed is None:
        return LOGIN_ROUTE
    if parsed is Role.AGENT and type == AgentType.SECTEUR.value:
        return SECTOR_LANDING_ROUTE
    return LANDING_ROUTES[parsed.value]


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Optional[str]
    type: Optional[str]
    hunter_id: Optional[int]
    guide_id: Optional[int]
    region: Optional[str]
    zone: Optional[str]
    permissions: Permissions

    @classmethod
    def from_user(cls, user: User) -> 'Principal':
        parsed = Role.parse(user.role)
        return cls(
            user_id=user.id,
            role=parsed.value if parsed else None,
            type=user.type,
            hunter_id=user.hunter_id,
            guide_id=user.guide_id,
            region=user.region,
            zone=user.zone,
            permissions=resolve_permissions(user.role, user.type),
        )

    def allows(self, *codes: str) -> bool:
        return self.permissions.allows(*codes)

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def landing_route(self) -> str:
        return landing_route(self.role, self.type)


def load_principal() -> Principal:
    """Resolve the caller from the verified JWT identity and a fresh user lookup."""
    ident = get_jwt_identity()
    try:
        user_id = int(ident)
    except (TypeError, ValueError):
        abort(401, description='Invalid token identity')
    user = get_db().get(User, user_id)
    if not user:
        abort(401, description='Unknown user')
    if user.is_suspended or not user.is_active:
        abort(403, description='Account suspended')
    return Principal.from_user(user)


def territory_scope_enabled(app_config=None) -> bool:
    cfg = app_config if app_config is not None else current_app.config
    return bool(cfg.get(FLAG_TERRITORY_SCOPE, True))


def scoped_hunter_ids(principal: Principal):
    """Select of hunter ids visible to principal, or None when unrestricted."""
    role = principal.role
    if role == Role.ADMIN.value:
        return None
    if role == Role.HUNTER.value:
        if principal.hunter_id is None:
            return select(Hunter.id).where(false())
        return select(Hunter.id).where(Hunter.id == principal.hunter_id)
    if role == Role.GUIDE.value:
        if principal.guide_id is None:
            return select(Hunter.id).where(false())
        return select(GuideHunterAssociation.hunter_id).where(GuideHunterAssociation.guide_id == principal.guide_id)
    if role in (Role.AGENT.value, Role.SUB_AGENT.value):
        if not territory_scope_enabled():
            return None
        sector_level = role == Role.SUB_AGENT.value or principal.type == AgentType.SECTEUR.value
        if sector_level and principal.zone:
            return select(Hunter.id).where(Hunter.zone == principal.zone)
        if principal.region:
            return select(Hunter.id).where(Hunter.region == principal.region)
        return None
    return select(Hunter.id).where(false())


def filter_by_scope(query, hunter_id_column, principal: Principal):
    """Restrict query rows to hunters in the principal's scope."""
    allowed = scoped_hunter_ids(principal)
    if allowed is None:
        return query
    return query.filter(hunter_id_column.in_(allowed))


def hunter_in_scope(principal: Principal, hunter_id: int) -> bool:
    allowed = scoped_hunter_ids(principal)
    if allowed is None:
        return True
    found = get_db().execute(select(Hunter.id).where(Hunter.id == hunter_id, Hunter.id.in_(allowed))).first()
    return found is not None


def assert_hunter_access(principal: Principal, hunter_id: int):
    if not hunter_in_scope(principal, hunter_id):
        abort(403, description='Hunter outside your scope')
