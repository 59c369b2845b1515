"""Vault Enforcement — tests for pure slot-operation validators.

Tests cover:
    - validate_assignment: item status, ownership, slot free, case authorized + active
    - validate_move: same slot, IN_CASE, item in source slot, occupancy, cases
    - validate_removal: item in slot, ownership, occupied, case authorized (inactive ok)
    - Item status changes follow the vault item lifecycle
    - First error wins
"""

import uuid
from dataclasses import dataclass, field

import pytest

from safetrade.core.domain_types import (
    VaultCaseStatus, VaultItemStatus, VaultSlotStatus,
)
from safetrade.core.enforce_vault import (
    check_case_authorized,
    validate_assignment,
    validate_move,
    validate_removal,
)
from safetrade.core.errors import (
    InvalidStateError,
    OwnershipMismatchError,
    ResourceNotFoundError,
    SlotNotOccupiedError,
    SlotOccupiedError,
)

SHOP = "shop-1"


@dataclass
class _Case:
    authorized_shop_id: str | None = SHOP
    status: str = VaultCaseStatus.IN_SHOP_ACTIVE.value
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class _Slot:
    case_id: uuid.UUID
    slot_code: str = "S01"
    status: str = VaultSlotStatus.FREE.value
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class _Item:
    status: str = VaultItemStatus.ASSIGNED_TO_SHOP.value
    shop_id_current: str | None = SHOP
    slot_id: uuid.UUID | None = None
    case_id: uuid.UUID | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


def _in_slot(case: _Case, code: str = "S01") -> tuple[_Item, _Slot]:
    slot = _Slot(case.id, code, VaultSlotStatus.OCCUPIED.value)
    item = _Item(VaultItemStatus.IN_CASE.value, SHOP, slot.id, case.id)
    return item, slot


# ─── validate_assignment ─────────────────────────────────────────

def test_assignment_valid():
    case = _Case()
    assert validate_assignment(_Item(), _Slot(case.id), case, SHOP) is None


def test_assignment_valid_for_item_already_in_case():
    case = _Case()
    item, _ = _in_slot(case)
    assert validate_assignment(item, _Slot(case.id, "S02"), case, SHOP) is None


@pytest.mark.parametrize("status", [
    VaultItemStatus.PENDING_REVIEW, VaultItemStatus.SOLD, VaultItemStatus.LISTED_ONLINE,
])
def test_assignment_rejects_item_status(status):
    case = _Case()
    error = validate_assignment(_Item(status=status.value), _Slot(case.id), case, SHOP)
    assert isinstance(error, InvalidStateError)


def test_assignment_rejects_item_of_other_shop():
    case = _Case()
    error = validate_assignment(_Item(shop_id_current="shop-2"), _Slot(case.id), case, SHOP)
    assert isinstance(error, OwnershipMismatchError)
    assert error.http_status == 403


def test_assignment_rejects_occupied_slot():
    case = _Case()
    slot = _Slot(case.id, "S04", VaultSlotStatus.OCCUPIED.value)
    error = validate_assignment(_Item(), slot, case, SHOP)
    assert isinstance(error, SlotOccupiedError)
    assert error.code == "SLOT_OCCUPIED"
    assert error.http_status == 409
    assert error.context.slot_id == str(slot.id)


def test_assignment_rejects_case_of_other_shop():
    case = _Case(authorized_shop_id="shop-2")
    error = validate_assignment(_Item(), _Slot(case.id), case, SHOP)
    assert isinstance(error, OwnershipMismatchError)


def test_assignment_rejects_inactive_case():
    case = _Case(status=VaultCaseStatus.IN_HUB.value)
    error = validate_assignment(_Item(), _Slot(case.id), case, SHOP)
    assert isinstance(error, InvalidStateError)


def test_assignment_missing_case():
    error = validate_assignment(_Item(), _Slot(uuid.uuid4()), None, SHOP)
    assert isinstance(error, ResourceNotFoundError)


def test_first_error_wins():
    case = _Case(authorized_shop_id="shop-2")
    slot = _Slot(case.id, status=VaultSlotStatus.OCCUPIED.value)
    error = validate_assignment(_Item(status="SOLD"), slot, case, SHOP)
    assert isinstance(error, InvalidStateError)


# ─── validate_move ───────────────────────────────────────────────

def test_move_valid_across_cases():
    src, dst = _Case(), _Case()
    item, from_slot = _in_slot(src)
    to_slot = _Slot(dst.id, "S09")
    assert validate_move(item, from_slot, to_slot, src, dst, SHOP) is None


def test_move_same_slot_rejected():
    case = _Case()
    item, slot = _in_slot(case)
    error = validate_move(item, slot, slot, case, case, SHOP)
    assert isinstance(error, InvalidStateError)


def test_move_requires_in_case_item():
    case = _Case()
    error = validate_move(
        _Item(), _Slot(case.id), _Slot(case.id, "S02"), case, case, SHOP,
    )
    assert isinstance(error, InvalidStateError)


def test_move_item_not_in_source_slot():
    case = _Case()
    item, _ = _in_slot(case)
    other = _Slot(case.id, "S03", VaultSlotStatus.OCCUPIED.value)
    error = validate_move(item, other, _Slot(case.id, "S04"), case, case, SHOP)
    assert isinstance(error, InvalidStateError)


def test_move_target_occupied():
    case = _Case()
    item, from_slot = _in_slot(case)
    to_slot = _Slot(case.id, "S02", VaultSlotStatus.OCCUPIED.value)
    error = validate_move(item, from_slot, to_slot, case, case, SHOP)
    assert isinstance(error, SlotOccupiedError)


def test_move_source_not_occupied():
    case = _Case()
    item, from_slot = _in_slot(case)
    from_slot.status = VaultSlotStatus.FREE.value
    error = validate_move(item, from_slot, _Slot(case.id, "S02"), case, case, SHOP)
    assert isinstance(error, SlotNotOccupiedError)


def test_move_out_of_inactive_case_into_active():
    src = _Case(status=VaultCaseStatus.RETIRED.value)
    dst = _Case()
    item, from_slot = _in_slot(src)
    assert validate_move(item, from_slot, _Slot(dst.id), src, dst, SHOP) is None


def test_move_into_inactive_case_rejected():
    src = _Case()
    dst = _Case(status=VaultCaseStatus.IN_HUB.value)
    item, from_slot = _in_slot(src)
    error = validate_move(item, from_slot, _Slot(dst.id), src, dst, SHOP)
    assert isinstance(error, InvalidStateError)


def test_move_into_case_of_other_shop_rejected():
    src = _Case()
    dst = _Case(authorized_shop_id="shop-2")
    item, from_slot = _in_slot(src)
    error = validate_move(item, from_slot, _Slot(dst.id), src, dst, SHOP)
    assert isinstance(error, OwnershipMismatchError)


# ─── validate_removal ────────────────────────────────────────────

def test_removal_valid():
    case = _Case()
    item, slot = _in_slot(case)
    assert validate_removal(item, slot, case, SHOP) is None


def test_removal_from_inactive_case_allowed():
    case = _Case(status=VaultCaseStatus.IN_HUB.value)
    item, slot = _in_slot(case)
    assert validate_removal(item, slot, case, SHOP) is None


def test_removal_wrong_slot():
    case = _Case()
    item, _ = _in_slot(case)
    error = validate_removal(item, _Slot(case.id, "S05", "OCCUPIED"), case, SHOP)
    assert isinstance(error, InvalidStateError)


def test_removal_other_shop():
    case = _Case()
    item, slot = _in_slot(case)
    assert isinstance(validate_removal(item, slot, case, "shop-2"), OwnershipMismatchError)


def test_case_authorized_without_active_requirement():
    case = _Case(status=VaultCaseStatus.RETIRED.value)
    slot = _Slot(case.id)
    assert check_case_authorized(case, slot, SHOP, require_active=False) is None
    assert check_case_authorized(case, slot, SHOP) is not None


# ─── Item lifecycle ──────────────────────────────────────────────

def test_assignment_rejects_accepted_item_with_allowed_targets():
    case = _Case()
    item = _Item(status=VaultItemStatus.ACCEPTED.value)
    error = validate_assignment(item, _Slot(case.id), case, SHOP)
    assert isinstance(error, InvalidStateError)
    assert "Allowed transitions: ASSIGNED_TO_SHOP" in error.message


@pytest.mark.parametrize("status", [
    VaultItemStatus.LISTED_ONLINE, VaultItemStatus.RESERVED, VaultItemStatus.SOLD,
])
def test_removal_rejects_item_past_in_case(status):
    case = _Case()
    item, slot = _in_slot(case)
    item.status = status.value
    error = validate_removal(item, slot, case, SHOP)
    assert isinstance(error, InvalidStateError)
    assert f"from {status.value} to ASSIGNED_TO_SHOP" in error.message
