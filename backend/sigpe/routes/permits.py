from __future__ import annotations
from datetime import date
import logging
from flask import Blueprint, request, abort
from sqlalchemy import select
from sigpe import get_db
from sigpe.decorators.auth import require_permissions
from sigpe.decorators.audit import audit_log
from sigpe.models.hunter import Hunter
from sigpe.models.permit import Permit
from sigpe.models.tax import Tax
from sigpe.services.permit_status import PermitStatus, effective_status_clause
from sigpe.services.permits import permit_json, validate_permit, issue_permit
from sigpe.services.policy import filter_by_scope, assert_hunter_access
from sigpe.utils.listing import respond_with_list, respond_with_item
from sigpe.utils.sorting import apply_multi_sort
from sigpe.utils.validation import validate_fields, iso_date, non_negative_int, parse_date

log = logging.getLogger(__name__)

permits_bp = Blueprint('permits', __name__)

SORTABLE = {
    'permit_number': Permit.permit_number,
    'issue_date': Permit.issue_date,
    'expiry_date': Permit.expiry_date,
    'price': Permit.price,
    'updated_at': Permit.updated_at,
    'id': Permit.id,
}

RENEW_REQUIRED = {'expiry_date': iso_date('Expiry date must be an ISO date (YYYY-MM-DD)')}
RENEW_OPTIONAL = {'price': non_negative_int('Price must be a non-negative integer amount')}


def _get_permit(permit_id: int, principal) -> Permit:
    p = get_db().get(Permit, permit_id)
    if not p:
        abort(404)
    assert_hunter_access(principal, p.hunter_id)
    return p


def _prefetch_permit(permit_id):
    p = get_db().get(Permit, permit_id) if permit_id else None
    return permit_json(p) if p else {}


def permits_query(principal):
    session = get_db()
    q = filter_by_scope(session.query(Permit), Permit.hunter_id, principal)
    status = request.args.get('status')
    if status:
        if status not in [s.value for s in PermitStatus]:
            abort(400, description='status invalid')
        q = q.filter(effective_status_clause(status))
    hunter_id = request.args.get('hunter_id')
    if hunter_id:
        if not hunter_id.isdigit():
            abort(400, description='hunter_id must be int')
        q = q.filter(Permit.hunter_id == int(hunter_id))
    number = request.args.get('permit_number')
    if number:
        q = q.filter(Permit.permit_number.ilike(f'%{number}%'))
    return apply_multi_sort(q, request.args.get('sort'), SORTABLE, Permit.id, default='-issue_date')


@permits_bp.get('')
@require_permissions('PERMIT.VIEW')
def list_permits(principal):
    return respond_with_list(permits_query(principal), permit_json)


@permits_bp.get('/<int:permit_id>')
@require_permissions('PERMIT.VIEW')
def get_permit(permit_id: int, principal):
    p = _get_permit(permit_id, principal)
    return respond_with_item(permit_json(p), p.updated_at)


@permits_bp.post('')
@require_permissions('PERMIT.CREATE')
@audit_log('PERMIT.CREATE', entity='Permit', entity_id_key='id', meta_keys=['permit_number', 'hunter_id', 'price'],
           details_builder=lambda d: f"Permit {d.get('permit_number')} issued to hunter {d.get('hunter_id')}")
def create_permit(principal):
    session = get_db()
    data = request.json or {}
    hunter_id = data.get('hunter_id')
    if not isinstance(hunter_id, int):
        abort(400, description='hunter_id required')
    hunter = session.get(Hunter, hunter_id)
    if not hunter:
        abort(404, description='Hunter not found')
    assert_hunter_access(principal, hunter.id)
    fields = validate_permit(data)
    permit = issue_permit(session, hunter, fields)
    return permit_json(permit), 201


@permits_bp.put('/<int:permit_id>')
@require_permissions('PERMIT.EDIT')
@audit_log('PERMIT.UPDATE', entity='Permit', entity_id_key='id',
           diff_keys=['expiry_date', 'issue_date', 'price', 'type', 'area', 'weapons'],
           pre_fetch=lambda a, kw: _prefetch_permit(kw.get('permit_id')))
def update_permit(permit_id: int, principal):
    session = get_db()
    p = _get_permit(permit_id, principal)
    data = request.json or {}
    if 'status' in data:
        abort(400, description='Use suspend, reactivate or renew to change the status')
    fields = validate_permit(data, partial=True, current=p)
    for key, value in fields.items():
        setattr(p, key, value)
    session.commit()
    return permit_json(p)


@permits_bp.post('/<int:permit_id>/suspend')
@require_permissions('PERMIT.SUSPEND')
@audit_log('PERMIT.SUSPEND', entity='Permit', entity_id_key='id', diff_keys=['status'],
           pre_fetch=lambda a, kw: _prefetch_permit(kw.get('permit_id')), meta_keys=['permit_number'])
def suspend_permit(permit_id: int, principal):
    session = get_db()
    p = _get_permit(permit_id, principal)
    if p.status == Permit.STATUS_SUSPENDED:
        abort(400, description='Permit already suspended')
    p.status = Permit.STATUS_SUSPENDED
    session.commit()
    log.info('Permit %s suspended', p.permit_number)
    return permit_json(p)


@permits_bp.post('/<int:permit_id>/reactivate')
@require_permissions('PERMIT.REACTIVATE')
@audit_log('PERMIT.REACTIVATE', entity='Permit', entity_id_key='id', diff_keys=['status'],
           pre_fetch=lambda a, kw: _prefetch_permit(kw.get('permit_id')), meta_keys=['permit_number'])
def reactivate_permit(permit_id: int, principal):
    session = get_db()
    p = _get_permit(permit_id, principal)
    if p.status != Permit.STATUS_SUSPENDED:
        abort(400, description='Permit is not suspended')
    hunter = session.get(Hunter, p.hunter_id)
    if hunter is not None and not hunter.is_active:
        abort(400, description='Hunter is suspended')
    p.status = Permit.STATUS_ACTIVE
    session.commit()
    return permit_json(p)


@permits_bp.post('/<int:permit_id>/renew')
@require_permissions('PERMIT.EDIT')
@audit_log('PERMIT.RENEW', entity='Permit', entity_id_key='id', diff_keys=['expiry_date', 'status'],
           pre_fetch=lambda a, kw: _prefetch_permit(kw.get('permit_id')), meta_keys=['permit_number'])
def renew_permit(permit_id: int, principal):
    session = get_db()
    p = _get_permit(permit_id, principal)
    fields = validate_fields(request.json or {}, RENEW_REQUIRED, RENEW_OPTIONAL)
    expiry = parse_date(fields['expiry_date'])
    if expiry < date.today() or expiry < p.issue_date:
        abort(400, description='Renewed expiry_date must not be in the past')
    hunter = session.get(Hunter, p.hunter_id)
    if hunter is not None and not hunter.is_active:
        abort(400, description='Hunter is suspended')
    p.expiry_date = expiry
    p.status = Permit.STATUS_ACTIVE
    if fields.get('price') is not None:
        p.price = int(fields['price'])
    session.commit()
    log.info('Permit %s renewed until %s', p.permit_number, expiry.isoformat())
    return permit_json(p)


@permits_bp.delete('/<int:permit_id>')
@require_permissions('PERMIT.DELETE')
@audit_log('PERMIT.DELETE', entity='Permit', entity_id_arg='permit_id', meta_keys=['permit_number'])
def delete_permit(permit_id: int, principal):
    session = get_db()
    p = _get_permit(permit_id, principal)
    if session.execute(select(Tax.id).where(Tax.permit_id == p.id)).first():
        abort(409, description='Permit is referenced by taxes')
    number = p.permit_number
    session.delete(p)
    session.commit()
    return {'deleted': True, 'permit_number': number}
