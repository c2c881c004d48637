from datetime import date, datetime, timedelta
import pytest
from sigpe import get_db
from sigpe.models.permit import Permit
from sigpe.services.permit_status import (
    PermitStatus, effective_status, effective_status_clause, is_permit_active, is_permit_expired, is_permit_suspended,
)
from tests.test_utils_seed import ensure_hunter, create_permit

TODAY = date(2026, 6, 15)


@pytest.mark.parametrize('stored,expiry,expected', [
    ('suspended', TODAY - timedelta(days=10), PermitStatus.SUSPENDED),
    ('suspended', TODAY + timedelta(days=10), PermitStatus.SUSPENDED),
    ('expired', TODAY + timedelta(days=10), PermitStatus.EXPIRED),
    ('active', TODAY - timedelta(days=1), PermitStatus.EXPIRED),
    ('active', TODAY, PermitStatus.ACTIVE),
    ('active', TODAY + timedelta(days=1), PermitStatus.ACTIVE),
])
def test_effective_status_precedence(stored, expiry, expected):
    permit = {'status': stored, 'expiry_date': expiry}
    assert effective_status(permit, TODAY) is expected


def test_predicates_agree_with_effective_status():
    stale = {'status': 'active', 'expiry_date': '2026-06-14'}
    assert is_permit_expired(stale, TODAY)
    assert not is_permit_active(stale, TODAY)
    assert not is_permit_suspended(stale)
    suspended = {'status': 'suspended', 'expiry_date': '2020-01-01'}
    assert is_permit_suspended(suspended)
    assert not is_permit_expired(suspended, TODAY)


def test_datetime_now_compares_by_calendar_date():
    permit = {'status': 'active', 'expiry_date': TODAY}
    late_evening = datetime(2026, 6, 15, 23, 59, 59)
    assert effective_status(permit, late_evening) is PermitStatus.ACTIVE
    assert effective_status(permit, datetime(2026, 6, 16, 0, 0, 1)) is PermitStatus.EXPIRED


def test_labels():
    assert PermitStatus.ACTIVE.label == 'Actif'
    assert PermitStatus.EXPIRED.label == 'Expiré'
    assert PermitStatus.SUSPENDED.label == 'Suspendu'


def test_sql_clause_matches_python_rule(app_context):
    hunter = ensure_hunter()
    today = date.today()
    permits = [
        create_permit(hunter, expiry=today - timedelta(days=1), status='active'),
        create_permit(hunter, expiry=today, status='active'),
        create_permit(hunter, expiry=today + timedelta(days=5), status='expired'),
        create_permit(hunter, expiry=today - timedelta(days=5), status='suspended'),
    ]
    ids = [p.id for p in permits]
    session = get_db()
    for status in PermitStatus:
        rows = session.query(Permit).filter(Permit.id.in_(ids), effective_status_clause(status, today)).all()
        expected = {p.id for p in permits if effective_status(p, today) is status}
        assert {p.id for p in rows} == expected
