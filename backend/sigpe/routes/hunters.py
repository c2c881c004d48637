from __future__ import annotations
from datetime import datetime, timezone
from flask import Blueprint, request, abort
from sqlalchemy import select, or_
from sigpe import get_db
from sigpe.constants.permissions import Role, AgentType
from sigpe.decorators.auth import require_permissions
from sigpe.decorators.audit import audit_log
from sigpe.models.hunter import Hunter, Guardian
from sigpe.models.permit import Permit
from sigpe.models.tax import Tax
from sigpe.services.audit import add_audit
from sigpe.services.guardians import guardian_json
from sigpe.services.hunters import (
    validate_hunter, apply_hunter_fields, hunter_json, suspend_hunter, reactivate_hunter,
    count_active_permits, delete_hunter,
)
from sigpe.services.permits import permit_json
from sigpe.services.policy import filter_by_scope, assert_hunter_access, territory_scope_enabled
from sigpe.services.taxes import tax_json
from sigpe.utils.listing import respond_with_list, respond_with_item, respond_with_rows
from sigpe.utils.sorting import apply_multi_sort

hunters_bp = Blueprint('hunters', __name__)

SORTABLE = {
    'last_name': Hunter.last_name,
    'first_name': Hunter.first_name,
    'category': Hunter.category,
    'region': Hunter.region,
    'created_at': Hunter.created_at,
    'updated_at': Hunter.updated_at,
    'id': Hunter.id,
}


def _get_hunter(hunter_id: int, principal) -> Hunter:
    h = get_db().get(Hunter, hunter_id)
    if not h:
        abort(404)
    assert_hunter_access(principal, h.id)
    return h


def _prefetch_hunter(hunter_id):
    h = get_db().get(Hunter, hunter_id) if hunter_id else None
    return hunter_json(h) if h else {}


def _assert_unique_id_number(session, id_number, exclude_id=None):
    q = select(Hunter.id).where(Hunter.id_number == id_number)
    if exclude_id is not None:
        q = q.where(Hunter.id != exclude_id)
    if session.execute(q).first():
        abort(409, description='A hunter with this ID number already exists')


def _default_territory(fields: dict, principal):
    # Agents register hunters inside their own territory unless told otherwise
    if not territory_scope_enabled() or principal.role not in (Role.AGENT.value, Role.SUB_AGENT.value):
        return fields
    if not fields.get('region') and principal.region:
        fields['region'] = principal.region
    sector_level = principal.role == Role.SUB_AGENT.value or principal.type == AgentType.SECTEUR.value
    if sector_level and not fields.get('zone') and principal.zone:
        fields['zone'] = principal.zone
    return fields


@hunters_bp.get('')
@require_permissions('HUNTER.VIEW')
def list_hunters(principal):
    session = get_db()
    q = filter_by_scope(session.query(Hunter), Hunter.id, principal)
    for key in ('region', 'zone', 'category'):
        value = request.args.get(key)
        if value:
            q = q.filter(getattr(Hunter, key) == value)
    active = request.args.get('is_active')
    if active in ('true', 'false'):
        q = q.filter(Hunter.is_active == (active == 'true'))
    term = request.args.get('q')
    if term:
        like = f'%{term}%'
        q = q.filter(or_(Hunter.last_name.ilike(like), Hunter.first_name.ilike(like), Hunter.id_number.ilike(like)))
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Hunter.id, default='last_name')
    return respond_with_list(q, hunter_json)


@hunters_bp.get('/<int:hunter_id>')
@require_permissions('HUNTER.VIEW')
def get_hunter(hunter_id: int, principal):
    h = _get_hunter(hunter_id, principal)
    return respond_with_item(hunter_json(h), h.updated_at)


@hunters_bp.post('')
@require_permissions('HUNTER.CREATE')
@audit_log('HUNTER.CREATE', entity='Hunter', entity_id_key='id', meta_keys=['id_number', 'category', 'region'])
def create_hunter(principal):
    session = get_db()
    fields = _default_territory(validate_hunter(request.json or {}), principal)
    _assert_unique_id_number(session, fields['id_number'])
    h = apply_hunter_fields(Hunter(), fields)
    session.add(h)
    session.commit()
    return hunter_json(h), 201


@hunters_bp.put('/<int:hunter_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('HUNTER.UPDATE', entity='Hunter', entity_id_key='id',
           diff_keys=['last_name', 'first_name', 'date_of_birth', 'phone', 'address', 'category', 'region', 'zone', 'is_minor'],
           pre_fetch=lambda a, kw: _prefetch_hunter(kw.get('hunter_id')))
def update_hunter(hunter_id: int, principal):
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    fields = validate_hunter(request.json or {}, partial=True)
    if 'id_number' in fields:
        _assert_unique_id_number(session, fields['id_number'], exclude_id=h.id)
    apply_hunter_fields(h, fields)
    session.commit()
    return hunter_json(h)


@hunters_bp.post('/<int:hunter_id>/suspend')
@require_permissions('HUNTER.SUSPEND')
@audit_log('HUNTER.SUSPEND', entity='Hunter', entity_id_key='id', meta_keys=['permits_suspended'])
def suspend(hunter_id: int, principal):
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    if not h.is_active:
        abort(400, description='Hunter already suspended')
    count = suspend_hunter(session, h)
    session.commit()
    body = hunter_json(h)
    body['permits_suspended'] = count
    return body


@hunters_bp.post('/<int:hunter_id>/reactivate')
@require_permissions('HUNTER.REACTIVATE')
@audit_log('HUNTER.REACTIVATE', entity='Hunter', entity_id_key='id')
def reactivate(hunter_id: int, principal):
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    if h.is_active:
        abort(400, description='Hunter is not suspended')
    reactivate_hunter(session, h)
    session.commit()
    return hunter_json(h)


@hunters_bp.delete('/<int:hunter_id>')
@require_permissions('HUNTER.DELETE')
@audit_log('HUNTER.DELETE', entity='Hunter', entity_id_arg='hunter_id', meta_keys=['id_number', 'forced'])
def remove_hunter(hunter_id: int, principal):
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    force = request.args.get('force') == 'true'
    active = count_active_permits(session, h.id)
    if active and not force:
        abort(409, description=f'Hunter holds {active} active permit(s); use force=true to delete anyway')
    id_number = h.id_number
    delete_hunter(session, h)
    session.commit()
    return {'deleted': True, 'id_number': id_number, 'forced': force}


@hunters_bp.post('/<int:hunter_id>/deletion-request')
@require_permissions('HUNTER.REQUEST_DELETION')
def request_deletion(hunter_id: int, principal):
    """Agents without delete rights flag a hunter for an administrator to remove."""
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    reason = (request.json or {}).get('reason') or ''
    add_audit('HUNTER.REQUEST_DELETION', 'Hunter', h.id, f'Deletion requested for hunter {h.id}: {reason}'.strip(),
              {'reason': reason}, user_id=principal.user_id)
    session.commit()
    return {'requested': True, 'hunter_id': h.id}, 202


@hunters_bp.get('/<int:hunter_id>/permits')
@require_permissions('PERMIT.VIEW')
def hunter_permits(hunter_id: int, principal):
    h = _get_hunter(hunter_id, principal)
    q = get_db().query(Permit).filter(Permit.hunter_id == h.id).order_by(Permit.issue_date.desc(), Permit.id.desc())
    return respond_with_list(q, permit_json)


@hunters_bp.get('/<int:hunter_id>/taxes')
@require_permissions('PERMIT.VIEW')
def hunter_taxes(hunter_id: int, principal):
    h = _get_hunter(hunter_id, principal)
    q = get_db().query(Tax).filter(Tax.hunter_id == h.id).order_by(Tax.issue_date.desc(), Tax.id.desc())
    return respond_with_list(q, tax_json, ts_attr='created_at')


@hunters_bp.get('/<int:hunter_id>/guardians')
@require_permissions('HUNTER.VIEW')
def hunter_guardians(hunter_id: int, principal):
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    rows = []
    if h.guardian_id is not None:
        g = session.get(Guardian, h.guardian_id)
        if g:
            rows.append(guardian_json(g))
    return respond_with_rows(rows, h.updated_at)


@hunters_bp.post('/<int:hunter_id>/guardians/<int:guardian_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUARDIAN.ASSOCIATE', entity='Hunter', entity_id_key='id', diff_keys=['guardian_id'],
           pre_fetch=lambda a, kw: _prefetch_hunter(kw.get('hunter_id')))
def associate_guardian(hunter_id: int, guardian_id: int, principal):
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    g = session.get(Guardian, guardian_id)
    if not g:
        abort(404, description='Guardian not found')
    h.guardian_id = g.id
    # Explicit bump: re-associating the same guardian must still change validators
    h.updated_at = datetime.now(timezone.utc)
    session.commit()
    body = hunter_json(h)
    body['guardian'] = guardian_json(g)
    return body


@hunters_bp.delete('/<int:hunter_id>/guardians/<int:guardian_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUARDIAN.DISSOCIATE', entity='Hunter', entity_id_key='id', diff_keys=['guardian_id'],
           pre_fetch=lambda a, kw: _prefetch_hunter(kw.get('hunter_id')))
def dissociate_guardian(hunter_id: int, guardian_id: int, principal):
    session = get_db()
    h = _get_hunter(hunter_id, principal)
    if h.guardian_id != guardian_id:
        abort(404, description='Guardian not associated with this hunter')
    h.guardian_id = None
    h.updated_at = datetime.now(timezone.utc)
    session.commit()
    return hunter_json(h)
