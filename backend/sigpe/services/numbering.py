"""Sequential human-readable numbers: P-{year}-{seq:04d} for permits, T-... for taxes.

Allocation goes through a database counter row incremented with a single
UPDATE inside the caller's transaction, so two concurrent issuances cannot
read the same "next" value. Number columns also carry unique constraints;
callers use issue_with_number() to retry after a collision.
"""
from __future__ import annotations
from datetime import date
import logging
import re
from typing import Callable, Iterable, Optional, TypeVar
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sigpe.models.permit import NumberSequence, Permit
from sigpe.models.tax import Tax

log = logging.getLogger(__name__)

T = TypeVar('T')

PERMIT_COUNTER = 'permit'
TAX_COUNTER = 'tax'

_PREFIXES = {PERMIT_COUNTER: 'P', TAX_COUNTER: 'T'}
_SOURCES = {PERMIT_COUNTER: Permit.permit_number, TAX_COUNTER: Tax.tax_number}

_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


class NumberingError(Exception):
    """Raised when a unique number could not be allocated within the retry budget."""


def parse_sequence(number: Optional[str]) -> int:
    """Trailing '-' token as an integer; unparsable tokens count as 0."""
    if not number:
        return 0
    token = str(number).split('-')[-1]
    match = _LEADING_INT.match(token)
    return int(match.group(1)) if match else 0


def format_number(prefix: str, year: int, sequence: int) -> str:
    return f'{prefix}-{year}-{sequence:04d}'


def next_permit_number(existing_numbers: Iterable[str], year: Optional[int] = None) -> str:
    year = year or date.today().year
    highest = max((parse_sequence(n) for n in existing_numbers), default=0)
    return format_number(_PREFIXES[PERMIT_COUNTER], year, highest + 1)


def scan_highest_sequence(session, counter: str) -> int:
    column = _SOURCES[counter]
    return max((parse_sequence(n) for n in session.execute(select(column)).scalars()), default=0)


def resync_counter(session, counter: str) -> int:
    """Create the counter row if missing and lift it to the highest number already stored."""
    highest = scan_highest_sequence(session, counter)
    row = session.get(NumberSequence, counter, populate_existing=True)
    if row is None:
        session.add(NumberSequence(name=counter, last_value=highest))
        session.flush()
        return highest
    if row.last_value < highest:
        log.warning('Counter %s behind stored numbers (%s < %s); resynchronising', counter, row.last_value, highest)
        row.last_value = highest
        session.flush()
    return row.last_value


def number_taken(session, counter: str, number: str) -> bool:
    column = _SOURCES[counter]
    return session.execute(select(column).where(column == number)).first() is not None


def allocate_sequence(session, counter: str) -> int:
    if session.get(NumberSequence, counter) is None:
        resync_counter(session, counter)
    session.execute(
        update(NumberSequence)
        .where(NumberSequence.name == counter)
        .values(last_value=NumberSequence.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    value = session.execute(select(NumberSequence.last_value).where(NumberSequence.name == counter)).scalar_one()
    return value


def allocate_number(session, counter: str = PERMIT_COUNTER, year: Optional[int] = None) -> str:
    year = year or date.today().year
    return format_number(_PREFIXES[counter], year, allocate_sequence(session, counter))


def issue_with_number(session, counter: str, build: Callable[[str], T], max_retries: int = 5, year: Optional[int] = None) -> T:
    """Allocate a number, add build(number) and commit; retry while the number turns out to be taken.

    An IntegrityError for any other reason (foreign key, not null) propagates unchanged.
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        number = allocate_number(session, counter, year)
        obj = build(number)
        stored_number = getattr(obj, _SOURCES[counter].key, number)
        session.add(obj)
        try:
            session.commit()
            return obj
        except IntegrityError:
            session.rollback()
            if not number_taken(session, counter, stored_number):
                raise
            log.warning('Number %s already taken (attempt %s/%s)', stored_number, attempt, attempts)
            resync_counter(session, counter)
            session.commit()
    raise NumberingError(f'Could not allocate a unique {counter} number after {attempts} attempts')


def counter_value(session, counter: str) -> int:
    value = session.execute(select(func.coalesce(NumberSequence.last_value, 0)).where(NumberSequence.name == counter)).scalar_one_or_none()
    return value or 0
