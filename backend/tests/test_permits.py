from datetime import date, timedelta
import re
from sigpe import get_db
from sigpe.models.tax import Tax
from tests.test_utils_seed import ensure_hunter, ensure_user, create_permit, uid
from tests.test_lifecycle_helpers import jwt_headers, user_headers, assert_transition

NUMBER_RE = re.compile(r'^P-\d{4}-\d{4,}$')


def _iso(d: date) -> str:
    return d.isoformat()


def _payload(hunter_id, **extra):
    body = {
        'hunter_id': hunter_id,
        'issue_date': _iso(date.today()),
        'expiry_date': _iso(date.today() + timedelta(days=365)),
        'price': 15000,
        'type': 'PETITE_CHASSE_RESIDENT',
    }
    body.update(extra)
    return body


def test_issue_permit_allocates_number(client, app_context):
    _, headers = user_headers('admin')
    hunter = ensure_hunter()
    first = client.post('/api/permits', json=_payload(hunter.id), headers=headers)
    second = client.post('/api/permits', json=_payload(hunter.id), headers=headers)
    assert first.status_code == 201, first.get_json()
    assert second.status_code == 201, second.get_json()
    a, b = first.get_json(), second.get_json()
    assert NUMBER_RE.match(a['permit_number'])
    assert a['permit_number'].startswith(f'P-{date.today().year}-')
    assert a['permit_number'] != b['permit_number']
    assert a['status'] == 'active' and a['status_label'] == 'Actif'
    assert a['price'] == 15000


def test_active_permit_past_expiry_reads_back_expired(client, app_context):
    _, headers = user_headers('admin')
    hunter = ensure_hunter()
    yesterday = date.today() - timedelta(days=1)
    resp = client.post('/api/permits', json=_payload(
        hunter.id, issue_date=_iso(yesterday - timedelta(days=30)), expiry_date=_iso(yesterday), status='active',
    ), headers=headers)
    assert resp.status_code == 201, resp.get_json()
    created = resp.get_json()
    assert created['status'] == 'expired'
    assert created['stored_status'] == 'active'
    fetched = client.get(f"/api/permits/{created['id']}", headers=headers).get_json()
    assert fetched['status'] == 'expired'
    assert fetched['status_label'] == 'Expiré'
    listed = client.get(f'/api/permits?status=expired&hunter_id={hunter.id}', headers=headers).get_json()
    assert [p['id'] for p in listed['data']] == [created['id']]
    active = client.get(f'/api/permits?status=active&hunter_id={hunter.id}', headers=headers).get_json()
    assert created['id'] not in [p['id'] for p in active['data']]


def test_permit_validation(client, app_context):
    _, headers = user_headers('admin')
    hunter = ensure_hunter()
    resp = client.post('/api/permits', json={'hunter_id': hunter.id, 'price': -5}, headers=headers)
    assert resp.status_code == 400
    fields = resp.get_json()['fields']
    assert 'expiry_date' in fields and 'price' in fields
    resp = client.post('/api/permits', json=_payload(hunter.id, expiry_date='2000-01-01'), headers=headers)
    assert resp.status_code == 400
    # Issue date defaults to today before the ordering check
    past = _iso(date.today() - timedelta(days=1))
    resp = client.post('/api/permits', json={'hunter_id': hunter.id, 'expiry_date': past}, headers=headers)
    assert resp.status_code == 400
    assert client.post('/api/permits', json=_payload(999999), headers=headers).status_code == 404


def test_suspend_reactivate_renew(client, app_context):
    _, headers = user_headers('agent')
    hunter = ensure_hunter()
    permit = create_permit(hunter, expiry=date.today() - timedelta(days=3))
    base = f'/api/permits/{permit.id}'
    assert_transition(client, f'{base}/suspend', headers, 200, expected_body_value='suspended')
    assert_transition(client, f'{base}/suspend', headers, 400)
    # Reactivated but still past expiry
    assert_transition(client, f'{base}/reactivate', headers, 200, expected_body_value='expired')
    new_expiry = _iso(date.today() + timedelta(days=200))
    resp = assert_transition(client, f'{base}/renew', headers, 200, payload={'expiry_date': new_expiry},
                             expected_body_value='active')
    assert resp.get_json()['expiry_date'] == new_expiry
    assert_transition(client, f'{base}/renew', headers, 400, payload={'expiry_date': '2001-01-01'})


def test_update_cannot_touch_status(client, app_context):
    _, headers = user_headers('agent')
    permit = create_permit(ensure_hunter())
    resp = client.put(f'/api/permits/{permit.id}', json={'status': 'active'}, headers=headers)
    assert resp.status_code == 400
    resp = client.put(f'/api/permits/{permit.id}', json={'area': 'Niokolo-Koba'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['area'] == 'Niokolo-Koba'


def test_delete_refused_when_taxes_reference_permit(client, app_context):
    _, headers = user_headers('admin')
    hunter = ensure_hunter()
    permit = create_permit(hunter)
    session = get_db()
    session.add(Tax(tax_number=uid('T-X-'), hunter_id=hunter.id, permit_id=permit.id, amount=5000,
                    issue_date=date.today(), animal_type='phacochere', quantity=1, location='Mbour'))
    session.commit()
    resp = client.delete(f'/api/permits/{permit.id}', headers=headers)
    assert resp.status_code == 409
    free = create_permit(hunter)
    assert client.delete(f'/api/permits/{free.id}', headers=headers).status_code == 200
    assert client.get(f'/api/permits/{free.id}', headers=headers).status_code == 404


def test_agent_cannot_delete_and_hunter_cannot_issue(client, app_context):
    _, agent_headers = user_headers('agent')
    hunter = ensure_hunter()
    permit = create_permit(hunter)
    assert client.delete(f'/api/permits/{permit.id}', headers=agent_headers).status_code == 403
    hunter_user = ensure_user(role='hunter', hunter_id=hunter.id)
    resp = client.post('/api/permits', json=_payload(hunter.id), headers=jwt_headers(hunter_user.id))
    assert resp.status_code == 403
    assert resp.get_json()['message'] == 'Missing permission'


def test_hunter_sees_only_own_permits(client, app_context):
    mine = ensure_hunter()
    other = ensure_hunter()
    own_permit = create_permit(mine)
    other_permit = create_permit(other)
    user = ensure_user(role='hunter', hunter_id=mine.id)
    headers = jwt_headers(user.id)
    listed = client.get('/api/permits', headers=headers).get_json()
    assert [p['id'] for p in listed['data']] == [own_permit.id]
    assert client.get(f'/api/permits/{other_permit.id}', headers=headers).status_code == 403


def test_territory_scope_for_regional_agent(client, app_context, monkeypatch):
    region = uid('Region-')
    inside = ensure_hunter(region=region)
    outside = ensure_hunter(region=uid('Elsewhere-'))
    inside_permit = create_permit(inside)
    outside_permit = create_permit(outside)
    agent = ensure_user(role='agent', type='regional', region=region)
    headers = jwt_headers(agent.id)
    listed = client.get('/api/permits', headers=headers).get_json()
    assert [p['id'] for p in listed['data']] == [inside_permit.id]
    assert client.get(f'/api/permits/{outside_permit.id}', headers=headers).status_code == 403
    monkeypatch.setitem(app_context.config, 'ENFORCE_TERRITORY_SCOPE', False)
    assert client.get(f'/api/permits/{outside_permit.id}', headers=headers).status_code == 200


def test_sector_agent_scoped_by_zone(client, app_context):
    zone = uid('Zone-')
    region = uid('Region-')
    in_zone = ensure_hunter(region=region, zone=zone)
    same_region_other_zone = ensure_hunter(region=region, zone=uid('Zone-'))
    agent = ensure_user(role='sub-agent', region=region, zone=zone)
    headers = jwt_headers(agent.id)
    assert client.get(f'/api/hunters/{in_zone.id}', headers=headers).status_code == 200
    assert client.get(f'/api/hunters/{same_region_other_zone.id}', headers=headers).status_code == 403
