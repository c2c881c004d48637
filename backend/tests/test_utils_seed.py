"""Test seeding utilities to reduce duplication.

The database is shared by the whole session, so every helper takes (or
generates) unique identifiers; tests must not rely on global counts.
"""
from datetime import date, timedelta
from typing import Optional
import uuid
from sigpe import get_db
from sigpe.models.authz import User
from sigpe.models.guide import HuntingGuide, GuideHunterAssociation
from sigpe.models.hunter import Hunter, Guardian, is_minor_on
from sigpe.models.permit import Permit
from sigpe.services.numbering import allocate_number, PERMIT_COUNTER

PASSWORD = 'secret-pw'


def uid(prefix: str = '') -> str:
    return f"{prefix}{uuid.uuid4().hex[:8]}"


def ensure_user(username: Optional[str] = None, role: str = 'admin', password: str = PASSWORD, **fields) -> User:
    session = get_db()
    username = username or uid(f'{role}-')
    u = session.query(User).filter_by(username=username).one_or_none()
    if not u:
        u = User(username=username, email=f'{username}@example.com', role=role, password_hash='', **fields)
        u.set_password(password)
        session.add(u); session.commit(); session.refresh(u)
    return u


def ensure_hunter(id_number: Optional[str] = None, **fields) -> Hunter:
    """Idempotently ensure a Hunter exists (by id_number); defaults describe an adult resident."""
    session = get_db()
    id_number = id_number or uid('CNI-')
    h = session.query(Hunter).filter_by(id_number=id_number).one_or_none()
    if not h:
        values = {
            'last_name': 'Diop',
            'first_name': 'Moussa',
            'date_of_birth': date(1985, 4, 12),
            'address': 'Rue 10, Thies',
            'profession': 'Farmer',
            'category': 'resident',
            'region': 'Thies',
            'zone': 'Mbour',
        }
        values.update(fields)
        h = Hunter(id_number=id_number, **values)
        h.is_minor = is_minor_on(h.date_of_birth)
        session.add(h); session.commit(); session.refresh(h)
    return h


def ensure_guardian(id_number: Optional[str] = None, **fields) -> Guardian:
    session = get_db()
    id_number = id_number or uid('GRD-')
    g = session.query(Guardian).filter_by(id_number=id_number).one_or_none()
    if not g:
        values = {'last_name': 'Ndiaye', 'first_name': 'Awa', 'relationship': 'mother', 'phone': '771234567'}
        values.update(fields)
        g = Guardian(id_number=id_number, **values)
        session.add(g); session.commit(); session.refresh(g)
    return g


def create_permit(hunter: Hunter, expiry: Optional[date] = None, status: str = 'active', price: int = 15000, issue: Optional[date] = None) -> Permit:
    """Create a Permit directly (non-idempotent), numbered through the shared counter."""
    session = get_db()
    issue = issue or date.today() - timedelta(days=30)
    p = Permit(
        permit_number=allocate_number(session, PERMIT_COUNTER),
        hunter_id=hunter.id,
        issue_date=issue,
        expiry_date=expiry or date.today() + timedelta(days=335),
        status=status,
        price=price,
    )
    session.add(p); session.commit(); session.refresh(p)
    return p


def ensure_guide(id_number: Optional[str] = None, **fields) -> HuntingGuide:
    session = get_db()
    id_number = id_number or uid('GDE-')
    g = session.query(HuntingGuide).filter_by(id_number=id_number).one_or_none()
    if not g:
        values = {'last_name': 'Sow', 'first_name': 'Ibrahima', 'phone': '776543210', 'zone': 'Mbour', 'region': 'Thies'}
        values.update(fields)
        g = HuntingGuide(id_number=id_number, **values)
        session.add(g); session.commit(); session.refresh(g)
    return g


def associate_guide(guide: HuntingGuide, hunter: Hunter):
    session = get_db()
    session.add(GuideHunterAssociation(guide_id=guide.id, hunter_id=hunter.id)); session.commit()


__all__ = [
    'PASSWORD', 'uid', 'ensure_user', 'ensure_hunter', 'ensure_guardian', 'create_permit', 'ensure_guide', 'associate_guide',
]
