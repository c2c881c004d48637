from datetime import date, timedelta
from tests.test_utils_seed import uid, ensure_hunter, ensure_user, create_permit, ensure_guide, associate_guide
from tests.test_lifecycle_helpers import jwt_headers, user_headers, create_resource_and_assert


def _seed_region(client, staff_headers, region):
    """Two hunters in a fresh region: one active, one expired by date, one suspended permit."""
    first = ensure_hunter(region=region, zone=region)
    second = ensure_hunter(region=region, zone=region)
    create_permit(first, price=10000)
    create_permit(first, expiry=date.today() - timedelta(days=2), price=20000)
    create_permit(second, status='suspended', price=5000)
    live = create_permit(second, price=7000)
    create_resource_and_assert(client, '/api/taxes', {
        'hunter_id': second.id, 'permit_id': live.id, 'amount': 3000,
        'animal_type': 'lievre', 'quantity': 1, 'location': region,
    }, staff_headers)
    return first, second


def test_stats_are_scoped_and_partition_permits(client, app_context):
    region = uid('Region-')
    _, agent = user_headers('agent', region=region)
    _seed_region(client, agent, region)
    ensure_hunter(region=uid('Elsewhere-'))
    stats = client.get('/api/stats', headers=agent).get_json()
    assert stats['hunters'] == 2
    assert stats['permits'] == {'total': 4, 'active': 2, 'expired': 1, 'suspended': 1}
    assert stats['taxes'] == 1
    assert stats['revenue'] == {'permits': 42000, 'taxes': 3000, 'total': 45000}


def test_stats_forbidden_for_hunters(client, app_context):
    hunter = ensure_hunter()
    account = ensure_user(role='hunter', hunter_id=hunter.id)
    assert client.get('/api/stats', headers=jwt_headers(account.id)).status_code == 403


def test_staff_dashboard_has_stats_and_recent_permits(client, app_context):
    region = uid('Region-')
    _, agent = user_headers('agent', region=region)
    _seed_region(client, agent, region)
    body = client.get('/api/dashboard', headers=agent).get_json()
    assert body['role'] == 'agent'
    assert body['landing_route'] == '/agent-dashboard'
    assert body['permissions']['can_delete_hunter'] is False
    assert body['stats']['permits']['total'] == 4
    assert len(body['recent_permits']) == 4


def test_hunter_dashboard_lists_own_records(client, app_context):
    hunter = ensure_hunter()
    create_permit(hunter)
    account = ensure_user(role='hunter', hunter_id=hunter.id)
    headers = jwt_headers(account.id)
    client.post('/api/permit-requests', json={'permit_type': 'GRANDE_CHASSE'}, headers=headers)
    body = client.get('/api/dashboard', headers=headers).get_json()
    assert body['landing_route'] == '/hunter-dashboard'
    assert body['hunter']['id'] == hunter.id
    assert len(body['permits']) == 1
    assert body['taxes'] == []
    assert [r['statut'] for r in body['requests']] == ['NOUVELLE']
    assert 'stats' not in body


def test_guide_dashboard_lists_associated_hunters(client, app_context):
    guide = ensure_guide()
    hunter = ensure_hunter()
    create_permit(hunter)
    associate_guide(guide, hunter)
    account = ensure_user(role='guide', guide_id=guide.id)
    body = client.get('/api/dashboard', headers=jwt_headers(account.id)).get_json()
    assert body['landing_route'] == '/guide-dashboard'
    assert [h['id'] for h in body['hunters']] == [hunter.id]
    assert len(body['hunters'][0]['permits']) == 1


def test_history_is_admin_only_and_records_operations(client, app_context):
    admin_user, admin = user_headers('admin')
    _, agent = user_headers('agent')
    hunter = ensure_hunter()
    assert client.post(f'/api/hunters/{hunter.id}/suspend', headers=admin).status_code == 200
    assert client.get('/api/history', headers=agent).status_code == 403
    resp = client.get('/api/history', query_string={'user_id': admin_user.id, 'operation': 'HUNTER.SUSPEND'}, headers=admin)
    assert resp.status_code == 200
    entries = resp.get_json()['data']
    assert entries and entries[0]['entity_id'] == str(hunter.id)
    assert client.get('/api/history', query_string={'user_id': 'x'}, headers=admin).status_code == 400
