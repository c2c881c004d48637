"""Central enum-like definitions for roles and permission codes.
Codes follow SERVICE.ACTION; role presets are the only place roles gain capabilities.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, List, Optional


class Role(str, Enum):
    ADMIN = 'admin'
    AGENT = 'agent'
    SUB_AGENT = 'sub-agent'
    HUNTER = 'hunter'
    GUIDE = 'guide'

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional['Role']:
        """Return the Role for raw (legacy aliases accepted) or None when unknown."""
        if raw is None:
            return None
        value = ROLE_ALIASES.get(raw, raw)
        try:
            return cls(value)
        except ValueError:
            return None


class AgentType(str, Enum):
    REGIONAL = 'regional'
    SECTEUR = 'secteur'


ROLE_ALIASES = {'hunting-guide': Role.GUIDE.value}

ALL_ROLES = [r.value for r in Role]
AGENT_TYPES = [t.value for t in AgentType]

SERVICES = ['HUNTER', 'PERMIT', 'USER']

SERVICE_ACTIONS = {
    'HUNTER': ['VIEW', 'CREATE', 'EDIT', 'SUSPEND', 'REACTIVATE', 'DELETE', 'REQUEST_DELETION'],
    'PERMIT': ['VIEW', 'CREATE', 'EDIT', 'SUSPEND', 'REACTIVATE', 'DELETE'],
    'USER': ['VIEW', 'CREATE', 'EDIT', 'SUSPEND', 'REACTIVATE', 'DELETE'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

_HARD_DELETE = {'HUNTER.DELETE', 'PERMIT.DELETE', 'USER.DELETE'}

ROLE_PRESETS: Dict[str, List[str]] = {
    'admin': ['*'],
    # Agent: everything except hard deletes
    'agent': [c for c in ALL_PERMISSION_CODES if c not in _HARD_DELETE],
    # Sub-agent: hunters and permits without deletes, no user management
    'sub-agent': [
        c for c in ALL_PERMISSION_CODES
        if c not in _HARD_DELETE and not c.startswith('USER.')
    ],
    'hunter': ['PERMIT.VIEW'],
    'guide': ['PERMIT.VIEW'],
}

# Landing page per role; agents branch on their sub-type
LANDING_ROUTES: Dict[str, str] = {
    'admin': '/dashboard',
    'agent': '/agent-dashboard',
    'sub-agent': '/sector-dashboard',
    'hunter': '/hunter-dashboard',
    'guide': '/guide-dashboard',
}
SECTOR_LANDING_ROUTE = '/sector-dashboard'
LOGIN_ROUTE = '/login'

HUNTER_CATEGORIES = ['resident', 'coutumier', 'touriste']
WEAPON_TYPES = ['fusil', 'carabine', 'arbalete', 'arc', 'lance-pierre', 'autre']
