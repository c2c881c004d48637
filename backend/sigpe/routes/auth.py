from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, get_jwt
from sqlalchemy import select
from sigpe import get_db
from sigpe.constants.permissions import Role
from sigpe.decorators.auth import require_login
from sigpe.decorators.audit import audit_log
from sigpe.models.authz import User, RevokedToken
from sigpe.models.hunter import Hunter
from sigpe.services.hunters import validate_hunter, apply_hunter_fields, hunter_json
from sigpe.services.users import assert_unique_account, profile_json
from sigpe.utils.validation import validate_fields, min_length, FieldValidationError

auth_bp = Blueprint('auth', __name__)

ACCOUNT_REQUIRED = {
    'username': min_length(3, 'Username must contain at least 3 characters'),
    'email': lambda v: None if isinstance(v, str) and '@' in v else 'Email is invalid',
    'password': min_length(6, 'Password must contain at least 6 characters'),
}


def _issue_token(user: User) -> str:
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    claims = {'role': user.role, 'type': user.type}
    return create_access_token(identity=str(user.id), additional_claims=claims)


@auth_bp.post('/login')
def login():
    data = request.json or {}
    login_name = data.get('username') or data.get('email')
    password = data.get('password')
    if not login_name or not password:
        abort(400, description='username (or email) & password required')
    session = get_db()
    user = session.execute(select(User).where(User.username == login_name)).scalar_one_or_none()
    if user is None:
        user = session.execute(select(User).where(User.email == login_name)).scalar_one_or_none()
    if not user or not user.verify_password(password):
        abort(401, description='invalid credentials')
    if user.is_suspended or not user.is_active:
        abort(403, description='Account suspended')
    return {'access_token': _issue_token(user), 'user': profile_json(user)}


@auth_bp.post('/logout')
@require_login
def logout(principal):
    session = get_db()
    jti = get_jwt()['jti']
    if not session.execute(select(RevokedToken.id).where(RevokedToken.jti == jti)).first():
        session.add(RevokedToken(jti=jti, user_id=principal.user_id))
        session.commit()
    return {'revoked': True}


@auth_bp.get('/me')
@require_login
def me(principal):
    user = get_db().get(User, principal.user_id)
    return profile_json(user)


@auth_bp.post('/register')
@audit_log('HUNTER.REGISTER', entity='Hunter', entity_id_key='hunter_id')
def register():
    """Hunter self-registration: creates the hunter record and its account."""
    data = request.json or {}
    session = get_db()
    errors = {}
    try:
        account = validate_fields(data, ACCOUNT_REQUIRED)
    except FieldValidationError as e:
        errors.update(e.fields)
        account = {}
    try:
        fields = validate_hunter(data)
    except FieldValidationError as e:
        errors.update(e.fields)
        fields = {}
    if errors:
        raise FieldValidationError(errors)
    assert_unique_account(session, account['username'], account['email'])
    if session.execute(select(Hunter.id).where(Hunter.id_number == fields['id_number'])).first():
        abort(409, description='A hunter with this ID number already exists')
    hunter = apply_hunter_fields(Hunter(), fields)
    session.add(hunter)
    session.flush()
    user = User(
        username=account['username'],
        email=account['email'],
        first_name=hunter.first_name,
        last_name=hunter.last_name,
        phone=hunter.phone,
        region=hunter.region,
        zone=hunter.zone,
        role=Role.HUNTER.value,
        hunter_id=hunter.id,
    )
    user.set_password(account['password'])
    session.add(user)
    session.commit()
    return {'hunter_id': hunter.id, 'hunter': hunter_json(hunter), 'user': profile_json(user)}, 201
