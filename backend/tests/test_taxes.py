from datetime import date, timedelta
import re
from tests.test_utils_seed import ensure_hunter, ensure_user, create_permit, uid
from tests.test_lifecycle_helpers import jwt_headers, user_headers, create_resource_and_assert


def tax_payload(hunter_id, permit_id=None, **extra):
    body = {'hunter_id': hunter_id, 'amount': 15000, 'animal_type': 'phacochere', 'quantity': 2, 'location': 'Mbour'}
    if permit_id is not None:
        body['permit_id'] = permit_id
    body.update(extra)
    return body


def test_tax_numbered_and_linked_to_permit(client, app_context):
    _, headers = user_headers('agent')
    hunter = ensure_hunter()
    permit = create_permit(hunter)
    first = create_resource_and_assert(client, '/api/taxes', tax_payload(hunter.id, permit.id), headers)
    second = create_resource_and_assert(client, '/api/taxes', tax_payload(hunter.id, permit.id), headers)
    assert re.match(rf'^T-{date.today().year}-\d{{4,}}$', first['tax_number'])
    assert first['tax_number'] != second['tax_number']
    assert first['permit_id'] == permit.id
    assert first['amount'] == 15000


def test_supplied_tax_number_must_be_unique(client, app_context):
    _, headers = user_headers('agent')
    hunter = ensure_hunter()
    permit = create_permit(hunter)
    number = uid('QUIT-')
    create_resource_and_assert(client, '/api/taxes', tax_payload(hunter.id, permit.id, tax_number=number), headers)
    resp = client.post('/api/taxes', json=tax_payload(hunter.id, permit.id, tax_number=number), headers=headers)
    assert resp.status_code == 409


def test_tax_requires_usable_permit(client, app_context):
    _, headers = user_headers('agent')
    hunter = ensure_hunter()
    other = ensure_hunter()
    expired = create_permit(hunter, expiry=date.today() - timedelta(days=1))
    foreign = create_permit(other)
    assert client.post('/api/taxes', json=tax_payload(hunter.id), headers=headers).status_code == 400
    assert client.post('/api/taxes', json=tax_payload(hunter.id, expired.id), headers=headers).status_code == 400
    assert client.post('/api/taxes', json=tax_payload(hunter.id, foreign.id), headers=headers).status_code == 400
    resp = client.post('/api/taxes', json=tax_payload(hunter.id, quantity=0, amount='x'), headers=headers)
    assert resp.status_code == 400
    assert set(resp.get_json()['fields']) == {'quantity', 'amount'}


def test_external_hunter_tax_without_permit(client, app_context):
    _, headers = user_headers('agent')
    hunter = ensure_hunter()
    body = create_resource_and_assert(client, '/api/taxes', tax_payload(
        hunter.id, external_hunter_name='Jean Dupont', external_hunter_region='Europe'), headers)
    assert body['permit_id'] is None
    assert body['external_hunter_name'] == 'Jean Dupont'


def test_hunter_lists_own_taxes_only(client, app_context):
    _, staff = user_headers('admin')
    mine = ensure_hunter()
    other = ensure_hunter()
    own_tax = create_resource_and_assert(client, '/api/taxes', tax_payload(mine.id, create_permit(mine).id), staff)
    other_tax = create_resource_and_assert(client, '/api/taxes', tax_payload(other.id, create_permit(other).id), staff)
    account = ensure_user(role='hunter', hunter_id=mine.id)
    headers = jwt_headers(account.id)
    listed = client.get('/api/taxes', headers=headers).get_json()
    assert [t['id'] for t in listed['data']] == [own_tax['id']]
    assert client.get(f"/api/taxes/{other_tax['id']}", headers=headers).status_code == 403
    assert client.post('/api/taxes', json=tax_payload(mine.id), headers=headers).status_code == 403
