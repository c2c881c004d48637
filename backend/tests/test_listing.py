from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
import pytest
from tests.test_utils_seed import uid, ensure_hunter
from tests.test_lifecycle_helpers import user_headers


@pytest.fixture()
def region_hunters(app_context):
    region = uid('List-')
    hunters = [ensure_hunter(region=region, last_name=name) for name in ('Ba', 'Cisse', 'Diallo')]
    return region, hunters


def test_pagination_meta(client, region_hunters):
    region, hunters = region_hunters
    _, headers = user_headers('admin')
    body = client.get('/api/hunters', query_string={'region': region, 'limit': 2, 'offset': 1}, headers=headers).get_json()
    assert body['pagination'] == {'total': 3, 'limit': 2, 'offset': 1, 'returned': 2}
    assert [h['last_name'] for h in body['data']] == ['Cisse', 'Diallo']


def test_limit_is_clamped(client, region_hunters):
    region, _ = region_hunters
    _, headers = user_headers('admin')
    body = client.get('/api/hunters', query_string={'region': region, 'limit': 10000}, headers=headers).get_json()
    assert body['pagination']['limit'] == 200
    body = client.get('/api/hunters', query_string={'region': region, 'limit': 0, 'offset': -5}, headers=headers).get_json()
    assert body['pagination']['limit'] == 1
    assert body['pagination']['offset'] == 0


def test_sort_descending_and_invalid(client, region_hunters):
    region, _ = region_hunters
    _, headers = user_headers('admin')
    body = client.get('/api/hunters', query_string={'region': region, 'sort': '-last_name'}, headers=headers).get_json()
    assert [h['last_name'] for h in body['data']] == ['Diallo', 'Cisse', 'Ba']
    resp = client.get('/api/hunters', query_string={'region': region, 'sort': 'password'}, headers=headers)
    assert resp.status_code == 400


def test_etag_round_trip_and_head(client, region_hunters):
    region, _ = region_hunters
    _, headers = user_headers('admin')
    first = client.get('/api/hunters', query_string={'region': region}, headers=headers)
    etag = first.headers['ETag']
    assert first.headers['Last-Modified']
    again = client.get('/api/hunters', query_string={'region': region}, headers={**headers, 'If-None-Match': f'"{etag}"'})
    assert again.status_code == 304
    assert again.data == b''
    other = client.get('/api/hunters', query_string={'region': region}, headers={**headers, 'If-None-Match': 'stale'})
    assert other.status_code == 200
    head = client.head('/api/hunters', query_string={'region': region}, headers=headers)
    assert head.status_code == 200
    assert head.data == b''
    assert head.headers['ETag'] == etag


def test_if_modified_since(client, region_hunters):
    region, _ = region_hunters
    _, headers = user_headers('admin')
    future = format_datetime(datetime.now(timezone.utc) + timedelta(days=1), usegmt=True)
    resp = client.get('/api/hunters', query_string={'region': region}, headers={**headers, 'If-Modified-Since': future})
    assert resp.status_code == 304
    resp = client.get('/api/hunters', query_string={'region': region},
                      headers={**headers, 'If-Modified-Since': '2000-01-01T00:00:00Z'})
    assert resp.status_code == 200


def test_item_etag(client, region_hunters):
    _, hunters = region_hunters
    _, headers = user_headers('admin')
    first = client.get(f'/api/hunters/{hunters[0].id}', headers=headers)
    assert first.status_code == 200
    cached = client.get(f'/api/hunters/{hunters[0].id}', headers={**headers, 'If-None-Match': first.headers['ETag']})
    assert cached.status_code == 304
    client.put(f'/api/hunters/{hunters[0].id}', json={'profession': 'Fisherman'}, headers=headers)
    changed = client.get(f'/api/hunters/{hunters[0].id}', headers={**headers, 'If-None-Match': first.headers['ETag']})
    assert changed.status_code == 200
    assert changed.get_json()['profession'] == 'Fisherman'
