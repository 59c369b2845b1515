"""State Machine Evaluator — decides whether a requested status change is legal.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Denials are returned as values (TransitionCheck), never raised
    - DISPUTED is reachable from every non-terminal status and from no terminal one,
      regardless of the static table
    - When a role is supplied, a (current, target) pair with a permission entry
      only admits the roles listed there

Design Decisions:
    - Return values over exceptions: callers branch on .valid, and the transition
      service forwards .reason verbatim to the web layer
    - error_code distinguishes table denials (INVALID_TRANSITION) from role denials
      (ROLE_NOT_PERMITTED) so the shell can map them to 400 vs 403
"""

from dataclasses import dataclass

from safetrade.core.domain_types import (
    EscrowSessionStatus as S, SessionAction, UserRole,
)
from safetrade.core.transition_table import (
    CLOSE_SESSION_ROLES,
    allowed_roles_for,
    get_allowed_transitions,
    is_terminal_status,
    transition_key,
)


@dataclass(frozen=True)
class TransitionCheck:
    """Outcome of a legality check."""
    valid: bool
    reason: str | None = None
    error_code: str | None = None

    @classmethod
    def allow(cls) -> "TransitionCheck":
        return cls(valid=True)

    @classmethod
    def deny(cls, reason: str, error_code: str = "INVALID_TRANSITION") -> "TransitionCheck":
        return cls(valid=False, reason=reason, error_code=error_code)


ACTION_TARGETS: dict[SessionAction, S] = {
    SessionAction.CHECK_IN: S.CHECKED_IN,
    SessionAction.START_VERIFICATION: S.VERIFICATION_IN_PROGRESS,
    SessionAction.PASS_VERIFICATION: S.VERIFICATION_PASSED,
    SessionAction.FAIL_VERIFICATION: S.VERIFICATION_FAILED,
    SessionAction.REQUEST_RELEASE: S.RELEASE_REQUESTED,
    SessionAction.APPROVE_RELEASE: S.RELEASE_APPROVED,
    SessionAction.EXTEND_SESSION: S.CHECKIN_PENDING,
    SessionAction.CLOSE_SESSION: S.CANCELLED,
}


def _join(values) -> str:
    names = [v.value for v in values]
    return ", ".join(names) if names else "none"


def can_transition(
    current: S, target: S, role: UserRole | None = None,
) -> TransitionCheck:
    """Check current -> target against the dispute rule, the table and the role map."""
    if target == S.DISPUTED:
        if is_terminal_status(current):
            return TransitionCheck.deny(
                f"Cannot open dispute from terminal state {current.value}",
            )
        return TransitionCheck.allow()

    allowed = get_allowed_transitions(current)
    if target not in allowed:
        return TransitionCheck.deny(
            f"Cannot transition from {current.value} to {target.value}. "
            f"Allowed transitions: {_join(allowed)}",
        )

    if role is not None:
        roles = allowed_roles_for(current, target)
        if roles and role not in roles:
            return TransitionCheck.deny(
                f"User role {role.value} cannot perform transition "
                f"{transition_key(current, target)}. "
                f"Allowed roles: {_join(roles)}",
                "ROLE_NOT_PERMITTED",
            )

    return TransitionCheck.allow()


def can_perform_action(
    current: S, action: SessionAction | str, role: UserRole | None = None,
) -> TransitionCheck:
    """Map a named business action onto its transition, with the extend/close special cases."""
    try:
        action = SessionAction(action)
    except ValueError:
        return TransitionCheck.deny(f"Unknown action: {action}", "UNKNOWN_ACTION")

    if action == SessionAction.EXTEND_SESSION and current != S.EXPIRED:
        return TransitionCheck.deny(
            "Can only extend session from EXPIRED state, "
            f"current state is {current.value}",
        )

    if action == SessionAction.CLOSE_SESSION:
        if is_terminal_status(current):
            return TransitionCheck.deny(
                f"Cannot close session from terminal state {current.value}",
            )
        if role is not None and role not in CLOSE_SESSION_ROLES:
            return TransitionCheck.deny(
                "Only MERCHANT or ADMIN can close session, "
                f"current role is {role.value}",
                "ROLE_NOT_PERMITTED",
            )
        return TransitionCheck.allow()

    return can_transition(current, ACTION_TARGETS[action], role)


def target_for_action(action: SessionAction) -> S:
    return ACTION_TARGETS[action]


def parse_user_role(role: str | None) -> UserRole | None:
    """Parse an identity-layer role string; None when unknown."""
    if role is None:
        return None
    try:
        return UserRole(role.upper())
    except ValueError:
        return None
