"""Guard Predicates — small pure checks invoked alongside the transition check.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Guards never look at session status; callers combine them with can_transition
    - Return TransitionCheck so the error path has the same shape as the evaluator's

Design Decisions:
    - Status predicates (can_book, can_verify, ...) kept next to the guards: route handlers
      use them for early, user-facing checks before calling the transition service
"""

from safetrade.core.domain_types import EscrowSessionStatus as S
from safetrade.core.enforce_transitions import TransitionCheck

MIN_VERIFICATION_PHOTOS = 3


def can_check_in(buyer_present: bool, seller_present: bool) -> TransitionCheck:
    """Check-in requires both parties physically present."""
    if not buyer_present or not seller_present:
        return TransitionCheck.deny(
            "Both buyer and seller must be present. "
            f"Buyer: {buyer_present}, Seller: {seller_present}",
            "PARTIES_NOT_PRESENT",
        )
    return TransitionCheck.allow()


def can_complete_verification(
    photo_count: int, min_photos: int = MIN_VERIFICATION_PHOTOS,
) -> TransitionCheck:
    """Verification needs at least min_photos photos of the card."""
    if photo_count < min_photos:
        return TransitionCheck.deny(
            f"Verification requires minimum {min_photos} photos, "
            f"provided {photo_count}",
            "INSUFFICIENT_PHOTOS",
        )
    return TransitionCheck.allow()


def can_book(status: S) -> bool:
    return status == S.CREATED


def can_check_in_status(status: S) -> bool:
    return status == S.CHECKIN_PENDING


def can_verify(status: S) -> bool:
    return status in (S.CHECKED_IN, S.DISPUTED)


def can_request_release(status: S) -> bool:
    return status == S.VERIFICATION_PASSED
