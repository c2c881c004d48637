from sigpe.openapi import build_openapi_spec, ENTITIES


def test_document_shape():
    doc = build_openapi_spec()
    assert doc['info']['title'] == 'SIGPE API'
    assert all(path.startswith('/api/') for path in doc['paths'])
    for schema_name, coll, id_param, _perm, _sortable in ENTITIES:
        assert f'/api/{coll}' in doc['paths']
        assert f'/api/{coll}/{{{id_param}}}' in doc['paths']
        assert f'Sort{schema_name}Param' in doc['components']['parameters']


def test_status_extensions():
    schemas = build_openapi_spec()['components']['schemas']
    assert 'VALIDEE' in schemas['PermitRequest']['x-transitions']
    assert schemas['Permit']['x-statuses'] == ['active', 'expired', 'suspended']


def test_operation_ids_unique():
    doc = build_openapi_spec()
    ids = [op['operationId'] for ops in doc['paths'].values() for op in ops.values()]
    assert len(ids) == len(set(ids))


def test_served_document_and_docs(client):
    assert client.get('/openapi.json').get_json()['paths']
    assert b'redoc' in client.get('/docs').data
