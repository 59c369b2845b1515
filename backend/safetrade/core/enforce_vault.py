"""Vault Rule Enforcement — validates slot operations against LOCKED row snapshots.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Inputs must be rows read AFTER the allocator acquired its row locks;
      validating pre-lock reads is a correctness bug, not a style choice
    - Return the first SafeTradeError on violation, None on success
    - validate_* chains checks in a fixed order; the first error wins

Design Decisions:
    - Return errors (not raise): same shape as enforce_gates-style checks, and the
      allocator raises the result inside its transaction so rollback precedes the caller
"""

from typing import Protocol
from uuid import UUID

from safetrade.core.domain_types import (
    ShopId, VaultCaseStatus, VaultItemStatus, VaultSlotStatus,
)
from safetrade.core.errors import (
    ErrorContext,
    InvalidStateError,
    OwnershipMismatchError,
    ResourceNotFoundError,
    SafeTradeError,
    SlotNotOccupiedError,
    SlotOccupiedError,
)
from safetrade.core.vault_item_lifecycle import can_transition_item


class ItemLike(Protocol):
    id: UUID
    status: str
    shop_id_current: str | None
    slot_id: UUID | None
    case_id: UUID | None


class SlotLike(Protocol):
    id: UUID
    case_id: UUID
    slot_code: str
    status: str


class CaseLike(Protocol):
    id: UUID
    authorized_shop_id: str | None
    status: str


def _ctx(item: ItemLike | None = None, slot: SlotLike | None = None) -> ErrorContext:
    return ErrorContext(
        item_id=str(item.id) if item is not None else None,
        slot_id=str(slot.id) if slot is not None else None,
    )


# ─── Single checks ───────────────────────────────────────────────

def check_item_assignable(item: ItemLike) -> SafeTradeError | None:
    """ASSIGNED_TO_SHOP -> IN_CASE must be a lifecycle edge; an IN_CASE item is re-slotted."""
    current = VaultItemStatus(item.status)
    if current == VaultItemStatus.IN_CASE:
        return None
    check = can_transition_item(current, VaultItemStatus.IN_CASE)
    if not check.valid:
        return InvalidStateError(
            f"Item cannot be assigned to a slot. {check.reason}", _ctx(item),
        )
    return None


def check_item_removable(item: ItemLike) -> SafeTradeError | None:
    check = can_transition_item(item.status, VaultItemStatus.ASSIGNED_TO_SHOP)
    if not check.valid:
        return InvalidStateError(
            f"Item cannot be removed from its slot. {check.reason}", _ctx(item),
        )
    return None


def check_item_owned_by(item: ItemLike, shop_id: ShopId) -> SafeTradeError | None:
    if item.shop_id_current != shop_id:
        return OwnershipMismatchError(
            "Item is not assigned to this shop", _ctx(item),
        )
    return None


def check_item_in_slot(item: ItemLike, slot: SlotLike) -> SafeTradeError | None:
    if item.slot_id != slot.id:
        return InvalidStateError(
            f"Item is not in slot {slot.slot_code}", _ctx(item, slot),
        )
    return None


def check_slot_free(slot: SlotLike) -> SafeTradeError | None:
    if VaultSlotStatus(slot.status) != VaultSlotStatus.FREE:
        return SlotOccupiedError(slot.slot_code, _ctx(slot=slot))
    return None


def check_slot_occupied(slot: SlotLike) -> SafeTradeError | None:
    if VaultSlotStatus(slot.status) != VaultSlotStatus.OCCUPIED:
        return SlotNotOccupiedError(slot.slot_code, _ctx(slot=slot))
    return None


def check_case_authorized(
    case: CaseLike | None, slot: SlotLike, shop_id: ShopId, require_active: bool = True,
) -> SafeTradeError | None:
    """Slot's case must exist, belong to shop_id and (optionally) be active in the shop."""
    if case is None:
        return ResourceNotFoundError(
            "VaultCase", str(slot.case_id), _ctx(slot=slot),
        )
    if case.authorized_shop_id != shop_id:
        return OwnershipMismatchError(
            f"Slot {slot.slot_code} does not belong to a case authorized for this shop",
            _ctx(slot=slot),
        )
    if require_active and VaultCaseStatus(case.status) != VaultCaseStatus.IN_SHOP_ACTIVE:
        return InvalidStateError(
            f"Case is not active. Current status: {case.status}", _ctx(slot=slot),
        )
    return None


# ─── Operation validators ────────────────────────────────────────

def validate_assignment(
    item: ItemLike, slot: SlotLike, case: CaseLike | None, shop_id: ShopId,
) -> SafeTradeError | None:
    return (
        check_item_assignable(item)
        or check_item_owned_by(item, shop_id)
        or check_slot_free(slot)
        or check_case_authorized(case, slot, shop_id)
    )


def validate_move(
    item: ItemLike,
    from_slot: SlotLike,
    to_slot: SlotLike,
    from_case: CaseLike | None,
    to_case: CaseLike | None,
    shop_id: ShopId,
) -> SafeTradeError | None:
    if from_slot.id == to_slot.id:
        return InvalidStateError(
            "Source and destination slot are the same", _ctx(item, from_slot),
        )
    if VaultItemStatus(item.status) != VaultItemStatus.IN_CASE:
        return InvalidStateError(
            f"Item cannot be moved. Current status: {item.status}", _ctx(item),
        )
    return (
        check_item_in_slot(item, from_slot)
        or check_item_owned_by(item, shop_id)
        or check_slot_occupied(from_slot)
        or check_slot_free(to_slot)
        or check_case_authorized(from_case, from_slot, shop_id, require_active=False)
        or check_case_authorized(to_case, to_slot, shop_id)
    )


def validate_removal(
    item: ItemLike, slot: SlotLike, case: CaseLike | None, shop_id: ShopId,
) -> SafeTradeError | None:
    return (
        check_item_in_slot(item, slot)
        or check_item_removable(item)
        or check_item_owned_by(item, shop_id)
        or check_slot_occupied(slot)
        or check_case_authorized(case, slot, shop_id, require_active=False)
    )
