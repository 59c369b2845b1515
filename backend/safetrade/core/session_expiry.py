"""Session Expiry — derived predicate for cooperative (caller-checked) expiry.

Invariants:
    - Only BOOKED and CHECKIN_PENDING sessions can be expired
    - A session without expired_at never expires
    - Pure: the clock is passed in, never read here

Design Decisions:
    - Naive datetimes are read as UTC: SQLite drops tzinfo on round-trip
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol

from safetrade.core.domain_types import EscrowSessionStatus
from safetrade.core.transition_table import EXPIRABLE_STATUSES


class ExpirableSession(Protocol):
    status: str
    expired_at: datetime | None


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_session_expired(session: ExpirableSession, now: datetime) -> bool:
    if session.expired_at is None:
        return False
    if EscrowSessionStatus(session.status) not in EXPIRABLE_STATUSES:
        return False
    return as_utc(now) > as_utc(session.expired_at)


def extended_deadline(now: datetime, minutes: int) -> datetime:
    """New expired_at for an EXTEND_SESSION action."""
    return as_utc(now) + timedelta(minutes=minutes)
