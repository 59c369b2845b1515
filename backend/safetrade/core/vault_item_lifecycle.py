"""Vault Item Lifecycle — legal status changes for a physical item in custody.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Every VaultItemStatus is a key of VAULT_ITEM_TRANSITIONS
    - REJECTED, SOLD and RETURNED are terminal (empty target sets)
    - IN_CASE -> ASSIGNED_TO_SHOP is the slot-removal edge; re-slotting an
      IN_CASE item keeps its status and is not a lifecycle transition

Design Decisions:
    - Same shape as the escrow table: frozensets in a module-level dict, checked
      by an evaluator that returns a TransitionCheck instead of raising
"""

from safetrade.core.domain_types import VaultItemStatus as V
from safetrade.core.enforce_transitions import TransitionCheck


VAULT_ITEM_TRANSITIONS: dict[V, frozenset[V]] = {
    V.PENDING_REVIEW: frozenset({V.ACCEPTED, V.REJECTED}),
    V.ACCEPTED: frozenset({V.ASSIGNED_TO_SHOP}),
    V.REJECTED: frozenset(),
    # Must sit in a case before it can be listed online
    V.ASSIGNED_TO_SHOP: frozenset({V.IN_CASE, V.RETURNED}),
    V.IN_CASE: frozenset({
        V.LISTED_ONLINE, V.SOLD, V.RETURNED, V.ASSIGNED_TO_SHOP,
    }),
    V.LISTED_ONLINE: frozenset({V.RESERVED, V.RETURNED}),
    V.RESERVED: frozenset({V.SOLD, V.RETURNED}),
    V.SOLD: frozenset(),
    V.RETURNED: frozenset(),
}

TERMINAL_ITEM_STATUSES: frozenset[V] = frozenset(
    status for status, targets in VAULT_ITEM_TRANSITIONS.items() if not targets
)


def get_allowed_item_transitions(status: V) -> list[V]:
    allowed = VAULT_ITEM_TRANSITIONS.get(status, frozenset())
    return [s for s in V if s in allowed]


def can_transition_item(current: V | str, target: V | str) -> TransitionCheck:
    current, target = V(current), V(target)
    allowed = get_allowed_item_transitions(current)
    if target not in allowed:
        names = ", ".join(s.value for s in allowed) or "none"
        return TransitionCheck.deny(
            f"Cannot transition from {current.value} to {target.value}. "
            f"Allowed transitions: {names}",
        )
    return TransitionCheck.allow()


def can_sell_physically(status: V | str) -> bool:
    """Over-the-counter sale needs the card in a case (or listed from one)."""
    return V(status) in (V.IN_CASE, V.LISTED_ONLINE)


def can_list_online(status: V | str) -> bool:
    return V(status) == V.IN_CASE
