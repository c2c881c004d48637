from datetime import datetime, timezone
from flask import Blueprint, request, abort
from sqlalchemy import select, delete, update
from sigpe import get_db
from sigpe.constants.permissions import Role
from sigpe.decorators.auth import require_permissions, require_login
from sigpe.decorators.audit import audit_log
from sigpe.models.authz import User
from sigpe.models.guide import HuntingGuide, GuideHunterAssociation
from sigpe.models.hunter import Hunter
from sigpe.services.guides import validate_guide, guide_json
from sigpe.services.hunters import hunter_json
from sigpe.services.policy import filter_by_scope, assert_hunter_access
from sigpe.services.users import assert_unique_account
from sigpe.utils.listing import respond_with_list, respond_with_item
from sigpe.utils.sorting import apply_multi_sort
from sigpe.utils.validation import validate_fields, min_length, FieldValidationError

guides_bp = Blueprint('guides', __name__)

SORTABLE = {
    'last_name': HuntingGuide.last_name,
    'region': HuntingGuide.region,
    'zone': HuntingGuide.zone,
    'updated_at': HuntingGuide.updated_at,
    'id': HuntingGuide.id,
}

ACCOUNT_REQUIRED = {
    'username': min_length(3, 'Username must contain at least 3 characters'),
    'email': lambda v: None if isinstance(v, str) and '@' in v else 'Email is invalid',
    'password': min_length(6, 'Password must contain at least 6 characters'),
}


def _get_guide(guide_id: int) -> HuntingGuide:
    g = get_db().get(HuntingGuide, guide_id)
    if not g:
        abort(404)
    return g


def _prefetch_guide(guide_id):
    g = get_db().get(HuntingGuide, guide_id) if guide_id else None
    return guide_json(g) if g else {}


def _assert_unique_id_number(session, id_number, exclude_id=None):
    q = select(HuntingGuide.id).where(HuntingGuide.id_number == id_number)
    if exclude_id is not None:
        q = q.where(HuntingGuide.id != exclude_id)
    if session.execute(q).first():
        abort(409, description='A guide with this ID number already exists')


@guides_bp.get('')
@require_permissions('HUNTER.VIEW')
def list_guides(principal):
    q = get_db().query(HuntingGuide)
    for key in ('region', 'zone'):
        value = request.args.get(key)
        if value:
            q = q.filter(getattr(HuntingGuide, key) == value)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, HuntingGuide.id, default='last_name')
    return respond_with_list(q, guide_json)


@guides_bp.get('/<int:guide_id>')
@require_permissions('HUNTER.VIEW')
def get_guide(guide_id: int, principal):
    g = _get_guide(guide_id)
    return respond_with_item(guide_json(g), g.updated_at)


@guides_bp.post('')
@require_permissions('HUNTER.CREATE')
@audit_log('GUIDE.CREATE', entity='HuntingGuide', entity_id_key='id', meta_keys=['id_number', 'region', 'zone', 'user_id'])
def create_guide(principal):
    """Create a guide; an optional nested `account` also creates its guide login."""
    session = get_db()
    data = request.json or {}
    fields = validate_guide(data)
    _assert_unique_id_number(session, fields['id_number'])
    account = data.get('account')
    if account is not None:
        if not isinstance(account, dict):
            raise FieldValidationError({'account': 'account must be an object'})
        account = validate_fields(account, ACCOUNT_REQUIRED)
        assert_unique_account(session, account['username'], account['email'])
    g = HuntingGuide(**fields)
    session.add(g)
    session.flush()
    if account:
        user = User(
            username=account['username'],
            email=account['email'],
            first_name=g.first_name,
            last_name=g.last_name,
            phone=g.phone,
            region=g.region,
            zone=g.zone,
            role=Role.GUIDE.value,
            guide_id=g.id,
        )
        user.set_password(account['password'])
        session.add(user)
        session.flush()
        g.user_id = user.id
    session.commit()
    return guide_json(g), 201


@guides_bp.put('/<int:guide_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUIDE.UPDATE', entity='HuntingGuide', entity_id_key='id',
           diff_keys=['last_name', 'first_name', 'phone', 'zone', 'region', 'id_number', 'is_active'],
           pre_fetch=lambda a, kw: _prefetch_guide(kw.get('guide_id')))
def update_guide(guide_id: int, principal):
    session = get_db()
    g = _get_guide(guide_id)
    data = request.json or {}
    fields = validate_guide(data, partial=True)
    if 'id_number' in fields:
        _assert_unique_id_number(session, fields['id_number'], exclude_id=g.id)
    for key, value in fields.items():
        setattr(g, key, value)
    if isinstance(data.get('is_active'), bool):
        g.is_active = data['is_active']
    session.commit()
    return guide_json(g)


@guides_bp.delete('/<int:guide_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUIDE.DELETE', entity='HuntingGuide', entity_id_arg='guide_id', meta_keys=['id_number'])
def delete_guide(guide_id: int, principal):
    session = get_db()
    g = _get_guide(guide_id)
    session.execute(delete(GuideHunterAssociation).where(GuideHunterAssociation.guide_id == g.id))
    session.execute(update(User).where(User.guide_id == g.id).values(guide_id=None, is_active=False))
    id_number = g.id_number
    session.delete(g)
    session.commit()
    return {'deleted': True, 'id_number': id_number}


@guides_bp.get('/<int:guide_id>/hunters')
@require_login
def guide_hunters(guide_id: int, principal):
    g = _get_guide(guide_id)
    own = principal.role == Role.GUIDE.value and principal.guide_id == g.id
    if not own and not principal.allows('HUNTER.VIEW'):
        abort(403, description='Missing permission')
    q = get_db().query(Hunter).join(GuideHunterAssociation, GuideHunterAssociation.hunter_id == Hunter.id)
    q = q.filter(GuideHunterAssociation.guide_id == g.id)
    if not own:
        q = filter_by_scope(q, Hunter.id, principal)
    return respond_with_list(q.order_by(Hunter.last_name.asc(), Hunter.id.asc()), hunter_json)


@guides_bp.post('/<int:guide_id>/hunters/<int:hunter_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUIDE.ASSOCIATE', entity='HuntingGuide', entity_id_arg='guide_id', meta_keys=['hunter_id'])
def associate_hunter(guide_id: int, hunter_id: int, principal):
    session = get_db()
    g = _get_guide(guide_id)
    h = session.get(Hunter, hunter_id)
    if not h:
        abort(404, description='Hunter not found')
    assert_hunter_access(principal, h.id)
    exists = select(GuideHunterAssociation.id).where(
        GuideHunterAssociation.guide_id == g.id, GuideHunterAssociation.hunter_id == h.id
    )
    if session.execute(exists).first():
        abort(409, description='Hunter already associated with this guide')
    session.add(GuideHunterAssociation(guide_id=g.id, hunter_id=h.id))
    g.updated_at = datetime.now(timezone.utc)
    session.commit()
    return {'guide_id': g.id, 'hunter_id': h.id}, 201


@guides_bp.delete('/<int:guide_id>/hunters/<int:hunter_id>')
@require_permissions('HUNTER.EDIT')
@audit_log('GUIDE.DISSOCIATE', entity='HuntingGuide', entity_id_arg='guide_id', meta_keys=['hunter_id'])
def dissociate_hunter(guide_id: int, hunter_id: int, principal):
    session = get_db()
    g = _get_guide(guide_id)
    result = session.execute(
        delete(GuideHunterAssociation).where(
            GuideHunterAssociation.guide_id == g.id, GuideHunterAssociation.hunter_id == hunter_id
        )
    )
    if not result.rowcount:
        abort(404, description='Hunter not associated with this guide')
    g.updated_at = datetime.now(timezone.utc)
    session.commit()
    return {'guide_id': g.id, 'hunter_id': hunter_id}
