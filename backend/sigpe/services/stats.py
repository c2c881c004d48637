"""Scoped aggregate figures and per-role dashboard views."""
from __future__ import annotations
from datetime import date
from typing import Any, Dict, Optional
from sqlalchemy import func
from sigpe import get_db
from sigpe.constants.permissions import Role
from sigpe.models.guide import GuideHunterAssociation
from sigpe.models.hunter import Hunter
from sigpe.models.permit import Permit
from sigpe.models.permit_request import PermitRequest
from sigpe.models.tax import Tax
from sigpe.services.hunters import hunter_json
from sigpe.services.permit_status import PermitStatus, effective_status_clause
from sigpe.services.permits import permit_json
from sigpe.services.policy import Principal, filter_by_scope
from sigpe.services.taxes import tax_json

RECENT_PERMITS = 10


def compute_stats(principal: Principal, today: Optional[date] = None) -> Dict[str, Any]:
    """Counts and revenue restricted to the principal's data scope.

    Permit counts use the effective status so each permit lands in exactly one bucket.
    """
    session = get_db()
    today = today or date.today()
    hunters = filter_by_scope(session.query(func.count(Hunter.id)), Hunter.id, principal).scalar() or 0
    permits: Dict[str, int] = {}
    for status in PermitStatus:
        q = session.query(func.count(Permit.id)).filter(effective_status_clause(status, today))
        permits[status.value] = filter_by_scope(q, Permit.hunter_id, principal).scalar() or 0
    taxes = filter_by_scope(session.query(func.count(Tax.id)), Tax.hunter_id, principal).scalar() or 0
    permit_revenue = filter_by_scope(
        session.query(func.coalesce(func.sum(Permit.price), 0)), Permit.hunter_id, principal
    ).scalar() or 0
    tax_revenue = filter_by_scope(
        session.query(func.coalesce(func.sum(Tax.amount), 0)), Tax.hunter_id, principal
    ).scalar() or 0
    return {
        'hunters': int(hunters),
        'permits': {
            'total': sum(permits.values()),
            'active': permits[PermitStatus.ACTIVE.value],
            'expired': permits[PermitStatus.EXPIRED.value],
            'suspended': permits[PermitStatus.SUSPENDED.value],
        },
        'taxes': int(taxes),
        'revenue': {
            'permits': int(permit_revenue),
            'taxes': int(tax_revenue),
            'total': int(permit_revenue) + int(tax_revenue),
        },
    }


def _hunter_view(principal: Principal) -> Dict[str, Any]:
    session = get_db()
    if principal.hunter_id is None:
        return {'hunter': None, 'permits': [], 'taxes': [], 'requests': []}
    hunter = session.get(Hunter, principal.hunter_id)
    permits = session.query(Permit).filter(Permit.hunter_id == principal.hunter_id).order_by(Permit.issue_date.desc(), Permit.id.desc()).all()
    taxes = session.query(Tax).filter(Tax.hunter_id == principal.hunter_id).order_by(Tax.issue_date.desc(), Tax.id.desc()).all()
    requests = session.query(PermitRequest).filter(PermitRequest.hunter_id == principal.hunter_id).order_by(PermitRequest.id.desc()).all()
    return {
        'hunter': hunter_json(hunter) if hunter else None,
        'permits': [permit_json(p) for p in permits],
        'taxes': [tax_json(t) for t in taxes],
        'requests': [{'id': r.id, 'permit_type': r.permit_type, 'statut': r.statut} for r in requests],
    }


def _guide_view(principal: Principal) -> Dict[str, Any]:
    session = get_db()
    if principal.guide_id is None:
        return {'hunters': []}
    hunters = (
        session.query(Hunter)
        .join(GuideHunterAssociation, GuideHunterAssociation.hunter_id == Hunter.id)
        .filter(GuideHunterAssociation.guide_id == principal.guide_id)
        .order_by(Hunter.last_name.asc(), Hunter.id.asc())
        .all()
    )
    out = []
    for h in hunters:
        body = hunter_json(h)
        permits = session.query(Permit).filter(Permit.hunter_id == h.id).order_by(Permit.id.desc()).all()
        body['permits'] = [permit_json(p) for p in permits]
        out.append(body)
    return {'hunters': out}


def _staff_view(principal: Principal) -> Dict[str, Any]:
    session = get_db()
    recent = filter_by_scope(session.query(Permit), Permit.hunter_id, principal)
    recent = recent.order_by(Permit.created_at.desc(), Permit.id.desc()).limit(RECENT_PERMITS).all()
    return {'stats': compute_stats(principal), 'recent_permits': [permit_json(p) for p in recent]}


def build_dashboard(principal: Principal) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        'role': principal.role,
        'type': principal.type,
        'landing_route': principal.landing_route,
        'permissions': principal.permissions.as_dict(),
    }
    if principal.role in (Role.ADMIN.value, Role.AGENT.value, Role.SUB_AGENT.value):
        body.update(_staff_view(principal))
    elif principal.role == Role.HUNTER.value:
        body.update(_hunter_view(principal))
    elif principal.role == Role.GUIDE.value:
        body.update(_guide_view(principal))
    return body
