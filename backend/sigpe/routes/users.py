from flask import Blueprint, request, abort
from sqlalchemy import select, update, or_
from sigpe import get_db
from sigpe.constants.permissions import Role
from sigpe.decorators.auth import require_permissions
from sigpe.decorators.audit import audit_log
from sigpe.models.authz import User
from sigpe.models.guide import HuntingGuide
from sigpe.models.hunter import Hunter
from sigpe.models.permit_request import PermitRequest
from sigpe.services.users import validate_user, assert_unique_account, apply_user_fields, user_json
from sigpe.utils.listing import respond_with_list, respond_with_item
from sigpe.utils.sorting import apply_multi_sort

users_bp = Blueprint('users', __name__)

SORTABLE = {
    'username': User.username,
    'role': User.role,
    'region': User.region,
    'created_at': User.created_at,
    'updated_at': User.updated_at,
    'id': User.id,
}


def _get_user(user_id: int) -> User:
    u = get_db().get(User, user_id)
    if not u:
        abort(404)
    return u


def _prefetch_user(user_id):
    u = get_db().get(User, user_id) if user_id else None
    return user_json(u) if u else {}


def _assert_can_manage(principal, target: User):
    if target.role == Role.ADMIN.value and not principal.is_admin:
        abort(403, description='Only administrators can manage administrator accounts')


def _assert_can_grant(principal, role):
    if role == Role.ADMIN.value and not principal.is_admin:
        abort(403, description='Only administrators can grant the admin role')


def _check_links(session, fields):
    if fields.get('hunter_id') is not None and not session.get(Hunter, fields['hunter_id']):
        abort(400, description='hunter_id does not exist')
    if fields.get('guide_id') is not None and not session.get(HuntingGuide, fields['guide_id']):
        abort(400, description='guide_id does not exist')


@users_bp.get('')
@require_permissions('USER.VIEW')
def list_users(principal):
    q = get_db().query(User)
    role = request.args.get('role')
    if role:
        parsed = Role.parse(role)
        if parsed is None:
            abort(400, description='role invalid')
        q = q.filter(User.role == parsed.value)
    for key in ('region', 'zone'):
        value = request.args.get(key)
        if value:
            q = q.filter(getattr(User, key) == value)
    term = request.args.get('q')
    if term:
        like = f'%{term}%'
        q = q.filter(or_(User.username.ilike(like), User.email.ilike(like), User.last_name.ilike(like)))
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, User.id, default='username')
    return respond_with_list(q, user_json)


@users_bp.get('/<int:user_id>')
@require_permissions('USER.VIEW')
def get_user(user_id: int, principal):
    u = _get_user(user_id)
    return respond_with_item(user_json(u), u.updated_at)


@users_bp.post('')
@require_permissions('USER.CREATE')
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['username', 'role', 'type'])
def create_user(principal):
    session = get_db()
    fields = validate_user(request.json or {})
    _assert_can_grant(principal, fields['role'])
    assert_unique_account(session, fields['username'], fields['email'])
    _check_links(session, fields)
    u = apply_user_fields(User(), fields)
    session.add(u)
    session.commit()
    return user_json(u), 201


@users_bp.put('/<int:user_id>')
@require_permissions('USER.EDIT')
@audit_log('USER.UPDATE', entity='User', entity_id_key='id',
           diff_keys=['username', 'email', 'role', 'type', 'region', 'zone', 'hunter_id', 'guide_id'],
           pre_fetch=lambda a, kw: _prefetch_user(kw.get('user_id')))
def update_user(user_id: int, principal):
    session = get_db()
    u = _get_user(user_id)
    _assert_can_manage(principal, u)
    fields = validate_user(request.json or {}, partial=True)
    if 'role' in fields:
        _assert_can_grant(principal, fields['role'])
    assert_unique_account(session, fields.get('username'), fields.get('email'), exclude_id=u.id)
    _check_links(session, fields)
    apply_user_fields(u, fields)
    session.commit()
    return user_json(u)


@users_bp.post('/<int:user_id>/suspend')
@require_permissions('USER.SUSPEND')
@audit_log('USER.SUSPEND', entity='User', entity_id_key='id', diff_keys=['is_suspended'],
           pre_fetch=lambda a, kw: _prefetch_user(kw.get('user_id')))
def suspend_user(user_id: int, principal):
    session = get_db()
    u = _get_user(user_id)
    if u.id == principal.user_id:
        abort(400, description='You cannot suspend your own account')
    _assert_can_manage(principal, u)
    if u.is_suspended:
        abort(400, description='User already suspended')
    u.is_suspended = True
    session.commit()
    return user_json(u)


@users_bp.post('/<int:user_id>/reactivate')
@require_permissions('USER.REACTIVATE')
@audit_log('USER.REACTIVATE', entity='User', entity_id_key='id', diff_keys=['is_suspended'],
           pre_fetch=lambda a, kw: _prefetch_user(kw.get('user_id')))
def reactivate_user(user_id: int, principal):
    session = get_db()
    u = _get_user(user_id)
    _assert_can_manage(principal, u)
    if not u.is_suspended:
        abort(400, description='User is not suspended')
    u.is_suspended = False
    session.commit()
    return user_json(u)


@users_bp.delete('/<int:user_id>')
@require_permissions('USER.DELETE')
@audit_log('USER.DELETE', entity='User', entity_id_arg='user_id', meta_keys=['username'])
def delete_user(user_id: int, principal):
    session = get_db()
    u = _get_user(user_id)
    if u.id == principal.user_id:
        abort(400, description='You cannot delete your own account')
    owned = select(PermitRequest.id).where(or_(PermitRequest.user_id == u.id, PermitRequest.agent_id == u.id))
    if session.execute(owned).first():
        abort(409, description='User is referenced by permit requests')
    session.execute(update(HuntingGuide).where(HuntingGuide.user_id == u.id).values(user_id=None))
    username = u.username
    session.delete(u)
    session.commit()
    return {'deleted': True, 'username': username}
