"""Transition Table — static legality data for the escrow session lifecycle.

Invariants:
    - Every EscrowSessionStatus is a key of VALID_TRANSITIONS (terminal states map to empty sets)
    - DISPUTED never appears as a target here: opening a dispute is decided by
      can_transition's special case, which is the single source of truth
    - TRANSITION_PERMISSIONS keys are (from, to) pairs present in VALID_TRANSITIONS
    - A pair with no permission entry carries no role restriction

Design Decisions:
    - Data describes legality: frozensets in module-level dicts, consulted at call time,
      unit-testable without persistence
    - Pure lookups only: no IO, no logging
"""

from safetrade.core.domain_types import EscrowSessionStatus as S, UserRole as R


TERMINAL_STATUSES: frozenset[S] = frozenset({S.COMPLETED, S.CANCELLED})

# Statuses in which a session can lapse into EXPIRED.
EXPIRABLE_STATUSES: frozenset[S] = frozenset({S.BOOKED, S.CHECKIN_PENDING})


VALID_TRANSITIONS: dict[S, frozenset[S]] = {
    S.CREATED: frozenset({S.BOOKED, S.CANCELLED}),
    S.BOOKED: frozenset({S.CHECKIN_PENDING, S.EXPIRED, S.CANCELLED}),
    S.CHECKIN_PENDING: frozenset({S.CHECKED_IN, S.EXPIRED}),
    S.CHECKED_IN: frozenset({S.VERIFICATION_IN_PROGRESS}),
    S.VERIFICATION_IN_PROGRESS: frozenset({
        S.VERIFICATION_PASSED, S.VERIFICATION_FAILED,
    }),
    S.VERIFICATION_PASSED: frozenset({S.RELEASE_REQUESTED}),
    S.VERIFICATION_FAILED: frozenset(),
    S.RELEASE_REQUESTED: frozenset({S.RELEASE_APPROVED}),
    S.RELEASE_APPROVED: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
    # Dispute resolution: back into verification or release
    S.DISPUTED: frozenset({
        S.VERIFICATION_IN_PROGRESS, S.VERIFICATION_PASSED, S.RELEASE_REQUESTED,
    }),
    S.CANCELLED: frozenset(),
    # Extension back to check-in, or give up
    S.EXPIRED: frozenset({S.CHECKIN_PENDING, S.CANCELLED}),
}


TRANSITION_PERMISSIONS: dict[tuple[S, S], frozenset[R]] = {
    (S.CREATED, S.BOOKED): frozenset({R.BUYER, R.SELLER}),
    (S.BOOKED, S.CHECKIN_PENDING): frozenset({R.SYSTEM}),
    (S.CHECKIN_PENDING, S.CHECKED_IN): frozenset({R.MERCHANT}),
    (S.CHECKIN_PENDING, S.EXPIRED): frozenset({R.SYSTEM}),
    (S.BOOKED, S.EXPIRED): frozenset({R.SYSTEM}),
    (S.CHECKED_IN, S.VERIFICATION_IN_PROGRESS): frozenset({R.MERCHANT}),
    (S.VERIFICATION_IN_PROGRESS, S.VERIFICATION_PASSED): frozenset({R.MERCHANT}),
    (S.VERIFICATION_IN_PROGRESS, S.VERIFICATION_FAILED): frozenset({R.MERCHANT}),
    (S.VERIFICATION_PASSED, S.RELEASE_REQUESTED): frozenset({
        R.BUYER, R.SELLER, R.MERCHANT,
    }),
    (S.RELEASE_REQUESTED, S.RELEASE_APPROVED): frozenset({R.ADMIN, R.MODERATOR}),
    (S.RELEASE_APPROVED, S.COMPLETED): frozenset({R.SYSTEM}),
    (S.CREATED, S.CANCELLED): frozenset({R.BUYER, R.SELLER}),
    (S.BOOKED, S.CANCELLED): frozenset({R.BUYER, R.SELLER}),
    (S.EXPIRED, S.CHECKIN_PENDING): frozenset({R.MERCHANT, R.ADMIN}),
    (S.EXPIRED, S.CANCELLED): frozenset({R.MERCHANT, R.ADMIN}),
}


# Roles allowed to force-close a live session (CLOSE_SESSION).
CLOSE_SESSION_ROLES: frozenset[R] = frozenset({R.MERCHANT, R.ADMIN})


def get_allowed_transitions(status: S) -> list[S]:
    """Allowed targets from status, in enum declaration order."""
    allowed = VALID_TRANSITIONS.get(status, frozenset())
    return [s for s in S if s in allowed]


def allowed_roles_for(current: S, target: S) -> list[R]:
    """Roles permitted for current -> target; empty list means unrestricted."""
    roles = TRANSITION_PERMISSIONS.get((current, target), frozenset())
    return [r for r in R if r in roles]


def is_terminal_status(status: S) -> bool:
    return status in TERMINAL_STATUSES


def transition_key(current: S, target: S) -> str:
    return f"{current.value}->{target.value}"
