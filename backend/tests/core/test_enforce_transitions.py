"""Transition Evaluator — tests for can_transition and can_perform_action.

Tests cover:
    - Exhaustive (current, target, role) agreement with table + permissions + dispute rule
    - DISPUTED reachable from every non-terminal status, never from a terminal one
    - Denial reasons list the allowed targets (or "none")
    - Role denials carry ROLE_NOT_PERMITTED and list allowed roles
    - EXTEND_SESSION only from EXPIRED; CLOSE_SESSION from any non-terminal by MERCHANT/ADMIN
    - Unknown actions and role parsing
"""

import pytest

from safetrade.core.domain_types import (
    EscrowSessionStatus as S, SessionAction as A, UserRole as R,
)
from safetrade.core.enforce_transitions import (
    ACTION_TARGETS,
    TransitionCheck,
    can_perform_action,
    can_transition,
    parse_user_role,
    target_for_action,
)
from safetrade.core.transition_table import (
    TERMINAL_STATUSES, TRANSITION_PERMISSIONS, VALID_TRANSITIONS,
)


def _expected(current: S, target: S, role: R | None) -> bool:
    if target == S.DISPUTED:
        return current not in TERMINAL_STATUSES
    if target not in VALID_TRANSITIONS[current]:
        return False
    roles = TRANSITION_PERMISSIONS.get((current, target))
    if role is None or not roles:
        return True
    return role in roles


# ─── Exhaustive agreement ────────────────────────────────────────

@pytest.mark.parametrize("current", list(S))
def test_can_transition_matches_tables_for_every_pair_and_role(current):
    for target in S:
        for role in [None, *R]:
            check = can_transition(current, target, role)
            assert check.valid == _expected(current, target, role), (
                current, target, role, check.reason,
            )
            assert (check.reason is None) == check.valid


# ─── Disputes ────────────────────────────────────────────────────

@pytest.mark.parametrize("current", [s for s in S if s not in TERMINAL_STATUSES])
def test_dispute_allowed_from_non_terminal(current):
    assert can_transition(current, S.DISPUTED, R.BUYER).valid


@pytest.mark.parametrize("current", sorted(TERMINAL_STATUSES))
def test_dispute_denied_from_terminal(current):
    check = can_transition(current, S.DISPUTED)
    assert not check.valid
    assert check.reason == f"Cannot open dispute from terminal state {current.value}"
    assert check.error_code == "INVALID_TRANSITION"


def test_dispute_allowed_from_expired_and_verification_failed():
    assert can_transition(S.EXPIRED, S.DISPUTED).valid
    assert can_transition(S.VERIFICATION_FAILED, S.DISPUTED).valid


# ─── Denial messages ─────────────────────────────────────────────

def test_table_denial_lists_allowed_targets():
    check = can_transition(S.CREATED, S.COMPLETED)
    assert not check.valid
    assert check.error_code == "INVALID_TRANSITION"
    assert check.reason == (
        "Cannot transition from CREATED to COMPLETED. "
        "Allowed transitions: BOOKED, CANCELLED"
    )


def test_table_denial_from_terminal_lists_none():
    check = can_transition(S.COMPLETED, S.BOOKED)
    assert not check.valid
    assert check.reason.endswith("Allowed transitions: none")


def test_role_denial_lists_allowed_roles():
    check = can_transition(S.RELEASE_REQUESTED, S.RELEASE_APPROVED, R.BUYER)
    assert not check.valid
    assert check.error_code == "ROLE_NOT_PERMITTED"
    assert "RELEASE_REQUESTED->RELEASE_APPROVED" in check.reason
    assert "Allowed roles: ADMIN, MODERATOR" in check.reason


def test_no_role_skips_permission_check():
    assert can_transition(S.RELEASE_REQUESTED, S.RELEASE_APPROVED).valid


def test_happy_path_checked_in_to_verification_by_merchant():
    assert can_transition(S.CHECKED_IN, S.VERIFICATION_IN_PROGRESS, R.MERCHANT).valid


# ─── Actions ─────────────────────────────────────────────────────

def test_action_targets_cover_every_action():
    assert set(ACTION_TARGETS) == set(A)
    assert target_for_action(A.CLOSE_SESSION) == S.CANCELLED


def test_extend_only_from_expired():
    check = can_perform_action(S.BOOKED, A.EXTEND_SESSION, R.MERCHANT)
    assert not check.valid
    assert "current state is BOOKED" in check.reason
    assert can_perform_action(S.EXPIRED, A.EXTEND_SESSION, R.MERCHANT).valid


@pytest.mark.parametrize("current", [s for s in S if s != S.EXPIRED])
@pytest.mark.parametrize("role", list(R) + [None])
def test_extend_denied_from_every_non_expired_status(current, role):
    check = can_perform_action(current, A.EXTEND_SESSION, role)
    assert not check.valid
    assert check.error_code == "INVALID_TRANSITION"


def test_extend_respects_role_map():
    check = can_perform_action(S.EXPIRED, A.EXTEND_SESSION, R.BUYER)
    assert not check.valid
    assert check.error_code == "ROLE_NOT_PERMITTED"


@pytest.mark.parametrize("current", [s for s in S if s not in TERMINAL_STATUSES])
def test_close_allowed_from_any_live_status_for_merchant(current):
    assert can_perform_action(current, A.CLOSE_SESSION, R.MERCHANT).valid
    assert can_perform_action(current, A.CLOSE_SESSION, R.ADMIN).valid


def test_close_denied_for_buyer():
    check = can_perform_action(S.CHECKED_IN, A.CLOSE_SESSION, R.BUYER)
    assert not check.valid
    assert check.error_code == "ROLE_NOT_PERMITTED"


@pytest.mark.parametrize("current", list(S))
@pytest.mark.parametrize("role", [r for r in R if r not in (R.MERCHANT, R.ADMIN)])
def test_close_denied_for_other_roles_from_every_status(current, role):
    assert not can_perform_action(current, A.CLOSE_SESSION, role).valid


@pytest.mark.parametrize("current", sorted(TERMINAL_STATUSES))
def test_close_denied_from_terminal(current):
    assert not can_perform_action(current, A.CLOSE_SESSION, R.ADMIN).valid


def test_check_in_action_delegates_to_table():
    assert can_perform_action(S.CHECKIN_PENDING, "CHECK_IN", R.MERCHANT).valid
    assert not can_perform_action(S.BOOKED, A.CHECK_IN, R.MERCHANT).valid


def test_unknown_action():
    check = can_perform_action(S.CREATED, "TELEPORT")
    assert not check.valid
    assert check.error_code == "UNKNOWN_ACTION"


# ─── Helpers ─────────────────────────────────────────────────────

def test_transition_check_constructors():
    assert TransitionCheck.allow() == TransitionCheck(valid=True)
    denied = TransitionCheck.deny("nope")
    assert denied.error_code == "INVALID_TRANSITION"


def test_parse_user_role():
    assert parse_user_role("merchant") is R.MERCHANT
    assert parse_user_role("ADMIN") is R.ADMIN
    assert parse_user_role("wizard") is None
    assert parse_user_role(None) is None
