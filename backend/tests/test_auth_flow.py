from sigpe import get_db
from sigpe.models.authz import User
from tests.test_utils_seed import ensure_user, uid, PASSWORD
from tests.test_lifecycle_helpers import login_headers, user_headers


def test_login_by_username_and_email(client, app_context):
    user = ensure_user(role='agent', type='secteur', zone='Mbour')
    for login_name in (user.username, user.email):
        resp = client.post('/api/auth/login', json={'username': login_name, 'password': PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        body = resp.get_json()
        assert body['access_token']
        assert body['user']['landing_route'] == '/sector-dashboard'
        assert body['user']['permissions']['can_delete_hunter'] is False


def test_login_rejects_bad_credentials(client, app_context):
    user = ensure_user(role='admin')
    resp = client.post('/api/auth/login', json={'username': user.username, 'password': 'wrong'})
    assert resp.status_code == 401
    assert resp.get_json()['error']['status'] == 401
    resp = client.post('/api/auth/login', json={'username': user.username})
    assert resp.status_code == 400


def test_suspended_account_cannot_login_or_use_token(client, app_context):
    user = ensure_user(role='agent')
    headers = login_headers(client, user.username)
    session = get_db()
    session.get(User, user.id).is_suspended = True
    session.commit()
    assert client.post('/api/auth/login', json={'username': user.username, 'password': PASSWORD}).status_code == 403
    resp = client.get('/api/auth/me', headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['message'] == 'Account suspended'


def test_me_reports_permissions_and_landing_route(client, app_context):
    user = ensure_user(role='hunter')
    resp = client.get('/api/auth/me', headers=login_headers(client, user.username))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['role'] == 'hunter'
    assert body['landing_route'] == '/hunter-dashboard'
    assert body['permissions']['can_view_permits'] is True
    assert body['permissions']['can_create_permit'] is False


def test_missing_token_uses_error_shape(client):
    resp = client.get('/api/auth/me')
    assert resp.status_code == 401
    body = resp.get_json()
    assert body['error']['title'] == 'Unauthorized'
    assert body['message']


def test_logout_revokes_token(client, app_context):
    user = ensure_user(role='admin')
    headers = login_headers(client, user.username)
    assert client.get('/api/auth/me', headers=headers).status_code == 200
    assert client.post('/api/auth/logout', headers=headers).status_code == 200
    resp = client.get('/api/auth/me', headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'Token has been revoked'


def test_register_creates_hunter_and_account(client, app_context):
    username = uid('self-')
    payload = {
        'username': username,
        'email': f'{username}@example.com',
        'password': 'long-enough',
        'last_name': 'Fall',
        'first_name': 'Cheikh',
        'date_of_birth': '1990-02-01',
        'id_number': uid('REG-'),
        'address': 'Quartier Escale, Kaolack',
        'profession': 'Teacher',
        'category': 'resident',
        'region': 'Kaolack',
    }
    resp = client.post('/api/auth/register', json=payload)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['user']['role'] == 'hunter'
    assert body['user']['hunter_id'] == body['hunter']['id']
    assert body['hunter']['is_minor'] is False
    # Same account twice conflicts
    assert client.post('/api/auth/register', json=payload).status_code == 409
    headers = login_headers(client, username, 'long-enough')
    assert client.get('/api/auth/me', headers=headers).get_json()['hunter_id'] == body['hunter']['id']


def test_register_reports_all_field_errors(client):
    resp = client.post('/api/auth/register', json={'username': 'ab', 'last_name': 'X'})
    assert resp.status_code == 400
    fields = resp.get_json()['fields']
    assert 'username' in fields and 'email' in fields and 'last_name' in fields and 'date_of_birth' in fields


def test_username_and_email_share_one_namespace(client, app_context):
    _, headers = user_headers('admin')
    existing = ensure_user(role='agent')
    payload = {'username': existing.email, 'email': f"{uid('other-')}@example.com", 'password': 'secret-pw', 'role': 'agent'}
    assert client.post('/api/users', json=payload, headers=headers).status_code == 409
    payload = {'username': uid('other-'), 'email': existing.username + '@example.org', 'password': 'secret-pw', 'role': 'agent'}
    assert client.post('/api/users', json=payload, headers=headers).status_code == 201
    mailbox_name = ensure_user(username=f"{uid('box-')}@example.net", role='agent')
    payload = {'username': uid('third-'), 'email': mailbox_name.username, 'password': 'secret-pw', 'role': 'agent'}
    assert client.post('/api/users', json=payload, headers=headers).status_code == 409


def test_login_prefers_username_over_email(client, app_context):
    by_email = ensure_user(role='agent')
    # Rows written directly can still clash with an older record
    by_name = ensure_user(username=by_email.email, role='sub-agent')
    resp = client.post('/api/auth/login', json={'username': by_email.email, 'password': PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    assert resp.get_json()['user']['id'] == by_name.id
