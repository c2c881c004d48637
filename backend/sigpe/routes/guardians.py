from datetime import datetime, timezone
from flask import Blueprint, request, abort
from sqlalchemy import select
from sigpe import get_db
from sigpe.decorators.auth import require_permissions
from sigpe.decorators.audit import audit_log
from sigpe.models.hunter import Guardian, Hunter
from sigpe.services.guardians import validate_guardian, guardian_json
from sigpe.utils.listing import respond_with_list, respond_with_item
from sigpe.utils.sorting import apply_multi_sort

guardians_bp = Blueprint('guardians', __name__)

SORTABLE = {
    'last_name': Guardian.last_name,
    'first_name': Guardian.first_name,
    'updated_at': Guardian.updated_at,
    'id': Guardian.id,
}


def _get_guardian(guardian_id: int) -> Guardian:
    g = get_db().get(Guardian, guardian_id)
    if not g:
        abort(404)
    return g


def _prefetch_guardian(guardian_id):
    g = get_db().get(Guardian, guardian_id) if guardian_id else None
    return guardian_json(g) if g else {}


def _assert_unique_id_number(session, id_number, exclude_id=None):
    q = select(Guardian.id).where(Guardian.id_number == id_number)
    if exclude_id is not None:
        q = q.where(Guardian.id != exclude_id)
    if session.execute(q).first():
        abort(409, description='A guardian with this ID number already exists')


@guardians_bp.get('')
@require_permissions('HUNTER.VIEW')
def list_guardians(principal):
    q = get_db().query(Guardian)
    id_number = request.args.get('id_number')
    if id_number:
        q = q.filter(Guardian.id_number == id_number)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Guardian.id, default='last_name')
    return respond_with_list(q, guardian_json)


@guardians_bp.get('/<int:guardian_id>')
@require_permissions('HUNTER.VIEW')
def get_guardian(guardian_id: int, principal):
    g = _get_guardian(guardian_id)
    return respond_with_item(guardian_json(g), g.updated_at)


@guardians_bp.post('')
@require_permissions('HUNTER.CREATE')
@audit_log('GUARDIAN.CREATE', entity='Guardian', entity_id_key='id', meta_keys=['id_number', 'relationship'])
def create_guardian(principal):
    session = get_db()
    fields = validate_guardian(request.json or {})
    _assert_unique_id_number(session, fields['id_number'])
    g = Guardian(**fields)
    session.add(g)
    session.commit()
    return guardian_json(g), 201


@guardians_bp.put('/<int:guardian_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUARDIAN.UPDATE', entity='Guardian', entity_id_key='id',
           diff_keys=['last_name', 'first_name', 'id_number', 'relationship', 'phone', 'address'],
           pre_fetch=lambda a, kw: _prefetch_guardian(kw.get('guardian_id')))
def update_guardian(guardian_id: int, principal):
    session = get_db()
    g = _get_guardian(guardian_id)
    fields = validate_guardian(request.json or {}, partial=True)
    if 'id_number' in fields:
        _assert_unique_id_number(session, fields['id_number'], exclude_id=g.id)
    for key, value in fields.items():
        setattr(g, key, value)
    # /hunters/<id>/guardians is validated by the hunter's updated_at
    now = datetime.now(timezone.utc)
    for h in session.execute(select(Hunter).where(Hunter.guardian_id == g.id)).scalars():
        h.updated_at = now
    session.commit()
    return guardian_json(g)


@guardians_bp.delete('/<int:guardian_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUARDIAN.DELETE', entity='Guardian', entity_id_arg='guardian_id', meta_keys=['detached_hunters'])
def delete_guardian(guardian_id: int, principal):
    session = get_db()
    g = _get_guardian(guardian_id)
    hunters = session.execute(select(Hunter).where(Hunter.guardian_id == g.id)).scalars().all()
    now = datetime.now(timezone.utc)
    for h in hunters:
        h.guardian_id = None
        h.updated_at = now
    session.delete(g)
    session.commit()
    return {'deleted': True, 'detached_hunters': [h.id for h in hunters]}
