"""Expiry Sweep — batch expiry routed through the transition service.

Tests cover:
    - Only overdue BOOKED / CHECKIN_PENDING sessions are expired
    - Each expiry leaves a SYSTEM audit row
    - limit bounds the batch
    - Sessions checked in after selection are left alone
"""

from datetime import timedelta

from safetrade.core.domain_types import EscrowSessionStatus as S, SessionAction as A, UserRole as R
from safetrade.models.escrow_session import EscrowSession
from safetrade.services.expiry_sweep import expire_overdue_sessions, find_overdue_session_ids


async def test_sweep_expires_only_overdue(
    transitions, test_session_factory, make_session, fetch, audit_rows, clock,
):
    overdue_booked = await make_session(S.BOOKED, expired_at=clock() - timedelta(minutes=1))
    overdue_pending = await make_session(S.CHECKIN_PENDING, expired_at=clock() - timedelta(hours=2))
    future = await make_session(S.BOOKED, expired_at=clock() + timedelta(hours=1))
    checked_in = await make_session(S.CHECKED_IN, expired_at=clock() - timedelta(hours=1))
    no_deadline = await make_session(S.BOOKED)

    results = await expire_overdue_sessions(transitions, test_session_factory, clock())

    assert {r.session_id for r in results} == {overdue_booked.id, overdue_pending.id}
    for session in (overdue_booked, overdue_pending):
        assert (await fetch(EscrowSession, session.id)).status == S.EXPIRED.value
        assert (await audit_rows(session.id))[0].performed_by_role == "SYSTEM"
    for session in (future, checked_in, no_deadline):
        assert await audit_rows(session.id) == []


async def test_sweep_respects_limit(transitions, test_session_factory, make_session, clock):
    for minutes in (1, 2, 3):
        await make_session(S.BOOKED, expired_at=clock() - timedelta(minutes=minutes))

    results = await expire_overdue_sessions(transitions, test_session_factory, clock(), limit=2)

    assert len(results) == 2


async def test_session_checked_in_after_selection_is_left_alone(
    transitions, test_session_factory, make_session, fetch, clock,
):
    session = await make_session(S.CHECKIN_PENDING, expired_at=clock() - timedelta(minutes=1))
    candidates = await find_overdue_session_ids(test_session_factory, clock(), 10)
    assert candidates == [session.id]

    await transitions.perform_action(session.id, A.CHECK_IN, "merchant-1", R.MERCHANT)

    assert await transitions.expire_if_due(candidates[0]) is None
    assert (await fetch(EscrowSession, session.id)).status == S.CHECKED_IN.value


async def test_sweep_with_nothing_due(transitions, test_session_factory, clock):
    assert await expire_overdue_sessions(transitions, test_session_factory, clock()) == []
