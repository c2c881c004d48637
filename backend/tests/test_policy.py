import pytest
from sigpe.constants.permissions import ALL_PERMISSION_CODES, Role
from sigpe.services.policy import resolve_permissions, landing_route, Permissions, Principal, CODE_FLAGS


def _granted(perms: Permissions):
    return {name for name, value in perms.as_dict().items() if value}


def test_admin_gets_everything():
    perms = resolve_permissions('admin')
    assert all(perms.as_dict().values())
    assert perms.can_delete_hunter is True
    assert perms.codes == frozenset(ALL_PERMISSION_CODES)


def test_agent_everything_but_deletes():
    perms = resolve_permissions('agent')
    assert perms.can_delete_hunter is False
    assert perms.can_delete_permit is False
    assert perms.can_delete_user is False
    assert perms.can_request_hunter_deletion is True
    assert perms.can_create_user is True
    assert len(_granted(perms)) == len(CODE_FLAGS) - 3


def test_agent_type_does_not_change_permissions():
    assert resolve_permissions('agent', 'secteur') == resolve_permissions('agent', 'regional')


def test_sub_agent_no_user_management():
    perms = resolve_permissions('sub-agent')
    assert perms.can_create_permit and perms.can_suspend_hunter
    assert not perms.can_delete_permit
    assert not any(v for k, v in perms.as_dict().items() if k.endswith('user') or k.endswith('users'))


@pytest.mark.parametrize('role', ['hunter', 'guide', 'hunting-guide'])
def test_view_only_roles(role):
    perms = resolve_permissions(role)
    assert perms.can_view_permits is True
    assert perms.can_create_permit is False
    assert _granted(perms) == {'can_view_permits'}


@pytest.mark.parametrize('role', [None, '', 'superuser', 'ADMIN'])
def test_unknown_role_gets_nothing(role):
    assert not _granted(resolve_permissions(role))


@pytest.mark.parametrize('role,type_,expected', [
    ('admin', None, '/dashboard'),
    ('agent', None, '/agent-dashboard'),
    ('agent', 'regional', '/agent-dashboard'),
    ('agent', 'secteur', '/sector-dashboard'),
    ('sub-agent', None, '/sector-dashboard'),
    ('hunter', None, '/hunter-dashboard'),
    ('guide', None, '/guide-dashboard'),
    ('hunting-guide', None, '/guide-dashboard'),
    ('nobody', None, '/login'),
    (None, None, '/login'),
])
def test_landing_routes(role, type_, expected):
    assert landing_route(role, type_) == expected


def test_role_parse_alias():
    assert Role.parse('hunting-guide') is Role.GUIDE
    assert Role.parse('unknown') is None


def test_principal_from_user_recomputes_permissions():
    class FakeUser:
        id = 7
        role = 'hunting-guide'
        type = None
        hunter_id = None
        guide_id = 3
        region = 'Thies'
        zone = None

    principal = Principal.from_user(FakeUser())
    assert principal.role == 'guide'
    assert principal.allows('PERMIT.VIEW')
    assert not principal.allows('PERMIT.VIEW', 'PERMIT.CREATE')
    assert principal.landing_route == '/guide-dashboard'
    assert not principal.is_admin
