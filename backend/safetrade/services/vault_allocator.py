"""Vault Allocator — item-to-slot bindings with exactly-once occupancy under concurrency.

Invariants:
    - LOCK BEFORE VALIDATE: every operation locks its rows first, then validates only
      the locked values (core/enforce_vault.py); pre-lock reads are never trusted
    - Lock order is global and identical for every operation type:
      item row -> slot rows (one statement, ORDER BY id) -> case rows (FOR SHARE)
    - Item, slot(s) and the vault audit rows commit together; a validation error
      raised after locking rolls the whole transaction back
    - A slot is FREE iff no item references it

Design Decisions:
    - One transaction per public call: the allocator owns its boundary, callers never
      see half-applied state
    - Errors are typed SafeTradeError subclasses raised inside atomic(), so rollback
      precedes propagation; the web layer maps http_status
    - populate_existing on locked selects: the row values always come from the
      locking read, even if an earlier read in the same session cached them
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safetrade.core.domain_types import (
    ActorId, CaseId, ItemId, ShopId, SlotId,
    VaultAuditAction, VaultItemStatus, VaultSlotStatus,
)
from safetrade.core.enforce_vault import (
    validate_assignment, validate_move, validate_removal,
)
from safetrade.core.errors import (
    ErrorContext, InvalidTokenError, ResourceNotFoundError, SafeTradeError,
)
from safetrade.core.qr_tokens import is_well_formed_token
from safetrade.core.repository_protocols import Clock, utc_now
from safetrade.infrastructure.database import atomic
from safetrade.models.vault_audit_log import VaultAuditLog
from safetrade.models.vault_case import VaultCase
from safetrade.models.vault_case_slot import VaultCaseSlot
from safetrade.models.vault_item import VaultItem

logger = logging.getLogger(__name__)


@dataclass
class SlotAssignment:
    item: VaultItem
    slot: VaultCaseSlot
    freed_slot: VaultCaseSlot | None = None


@dataclass
class SlotMove:
    item: VaultItem
    from_slot: VaultCaseSlot
    to_slot: VaultCaseSlot


@dataclass
class SlotRelease:
    item: VaultItem
    slot: VaultCaseSlot


def _binding(item: VaultItem) -> dict:
    return {
        "status": item.status,
        "slot_id": str(item.slot_id) if item.slot_id else None,
        "case_id": str(item.case_id) if item.case_id else None,
    }


class VaultAllocator:
    """Assign, move and remove vault items under pessimistic row locks."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def assign_item_to_slot(
        self,
        item_id: ItemId,
        slot_id: SlotId,
        shop_id: ShopId,
        performed_by_id: ActorId | None = None,
    ) -> SlotAssignment:
        """Place an item into a FREE slot; frees the item's previous slot if it had one."""
        async with atomic(self._session_factory) as db:
            item = await self._lock_item(db, item_id)
            previous_slot_id = item.slot_id if item.slot_id != slot_id else None
            slots = await self._lock_slots(db, [slot_id, previous_slot_id])
            slot = slots[slot_id]
            cases = await self._share_cases(db, [slot.case_id])

            self._raise_if(validate_assignment(
                item, slot, cases.get(slot.case_id), shop_id,
            ), "assign")

            before = _binding(item)
            freed_slot = None
            if previous_slot_id is not None:
                freed_slot = slots[previous_slot_id]
                freed_slot.status = VaultSlotStatus.FREE.value
                self._audit(
                    db, VaultAuditAction.SLOT_FREED, performed_by_id,
                    item_id=item.id, case_id=freed_slot.case_id, slot_id=freed_slot.id,
                    notes=f"Freed by reassignment to slot {slot.slot_code}",
                )

            item.status = VaultItemStatus.IN_CASE.value
            item.case_id = slot.case_id
            item.slot_id = slot.id
            slot.status = VaultSlotStatus.OCCUPIED.value
            self._audit(
                db, VaultAuditAction.ITEM_MOVED_TO_SLOT, performed_by_id,
                item_id=item.id, case_id=slot.case_id, slot_id=slot.id,
                old_value=before, new_value=_binding(item),
                notes=f"Assigned to slot {slot.slot_code}",
            )

        logger.info(
            f"Item assigned to slot {slot.slot_code}",
            extra={"item_id": str(item_id), "slot_id": str(slot_id)},
        )
        return SlotAssignment(item=item, slot=slot, freed_slot=freed_slot)

    async def move_item_between_slots(
        self,
        item_id: ItemId,
        from_slot_id: SlotId,
        to_slot_id: SlotId,
        shop_id: ShopId,
        performed_by_id: ActorId | None = None,
    ) -> SlotMove:
        """Move an IN_CASE item from its current slot to a FREE one."""
        async with atomic(self._session_factory) as db:
            item = await self._lock_item(db, item_id)
            slots = await self._lock_slots(db, [from_slot_id, to_slot_id])
            from_slot, to_slot = slots[from_slot_id], slots[to_slot_id]
            cases = await self._share_cases(db, [from_slot.case_id, to_slot.case_id])

            self._raise_if(validate_move(
                item, from_slot, to_slot,
                cases.get(from_slot.case_id), cases.get(to_slot.case_id),
                shop_id,
            ), "move")

            before = _binding(item)
            item.slot_id = to_slot.id
            item.case_id = to_slot.case_id
            from_slot.status = VaultSlotStatus.FREE.value
            to_slot.status = VaultSlotStatus.OCCUPIED.value
            self._audit(
                db, VaultAuditAction.ITEM_MOVED_TO_SLOT, performed_by_id,
                item_id=item.id, case_id=to_slot.case_id, slot_id=to_slot.id,
                old_value=before, new_value=_binding(item),
                notes=f"Moved from slot {from_slot.slot_code} to {to_slot.slot_code}",
            )

        logger.info(
            f"Item moved {from_slot.slot_code} -> {to_slot.slot_code}",
            extra={"item_id": str(item_id), "slot_id": str(to_slot_id)},
        )
        return SlotMove(item=item, from_slot=from_slot, to_slot=to_slot)

    async def remove_item_from_slot(
        self,
        item_id: ItemId,
        slot_id: SlotId,
        shop_id: ShopId,
        performed_by_id: ActorId | None = None,
    ) -> SlotRelease:
        """Take an item out of its slot; it reverts to ASSIGNED_TO_SHOP."""
        async with atomic(self._session_factory) as db:
            item = await self._lock_item(db, item_id)
            slots = await self._lock_slots(db, [slot_id])
            slot = slots[slot_id]
            cases = await self._share_cases(db, [slot.case_id])

            self._raise_if(validate_removal(
                item, slot, cases.get(slot.case_id), shop_id,
            ), "remove")

            before = _binding(item)
            item.status = VaultItemStatus.ASSIGNED_TO_SHOP.value
            item.slot_id = None
            item.case_id = None
            slot.status = VaultSlotStatus.FREE.value
            self._audit(
                db, VaultAuditAction.ITEM_REMOVED_FROM_SLOT, performed_by_id,
                item_id=item.id, case_id=slot.case_id, slot_id=slot.id,
                old_value=before, new_value=_binding(item),
                notes=f"Removed from slot {slot.slot_code}",
            )

        logger.info(
            f"Item removed from slot {slot.slot_code}",
            extra={"item_id": str(item_id), "slot_id": str(slot_id)},
        )
        return SlotRelease(item=item, slot=slot)

    async def find_slot_by_token(self, qr_token: str) -> VaultCaseSlot:
        """Resolve a scanned slot QR token (read-only)."""
        if not is_well_formed_token(qr_token):
            raise InvalidTokenError()
        async with self._session_factory() as db:
            result = await db.execute(
                select(VaultCaseSlot).where(VaultCaseSlot.qr_token == qr_token),
            )
            slot = result.scalar_one_or_none()
        if slot is None:
            raise ResourceNotFoundError("VaultCaseSlot", qr_token)
        return slot

    # ─── Locking ─────────────────────────────────────────────────

    async def _lock_item(self, db: AsyncSession, item_id: ItemId) -> VaultItem:
        result = await db.execute(
            select(VaultItem)
            .where(VaultItem.id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise ResourceNotFoundError(
                "VaultItem", str(item_id), ErrorContext(item_id=str(item_id)),
            )
        return item

    async def _lock_slots(
        self, db: AsyncSession, slot_ids: list[SlotId | None],
    ) -> dict[SlotId, VaultCaseSlot]:
        """Lock all requested slots in one statement, always in id order."""
        wanted = {sid for sid in slot_ids if sid is not None}
        result = await db.execute(
            select(VaultCaseSlot)
            .where(VaultCaseSlot.id.in_(sorted(wanted)))
            .order_by(VaultCaseSlot.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        slots = {slot.id: slot for slot in result.scalars().all()}
        for sid in slot_ids:
            if sid is not None and sid not in slots:
                raise ResourceNotFoundError(
                    "VaultCaseSlot", str(sid), ErrorContext(slot_id=str(sid)),
                )
        return slots

    async def _share_cases(
        self, db: AsyncSession, case_ids: list[CaseId],
    ) -> dict[CaseId, VaultCase]:
        """Read owning cases under a shared lock so authorization cannot change mid-operation."""
        result = await db.execute(
            select(VaultCase)
            .where(VaultCase.id.in_(sorted(set(case_ids))))
            .order_by(VaultCase.id)
            .with_for_update(read=True)
            .execution_options(populate_existing=True)
        )
        return {case.id: case for case in result.scalars().all()}

    # ─── Helpers ─────────────────────────────────────────────────

    def _raise_if(self, error: SafeTradeError | None, operation: str) -> None:
        if error is None:
            return
        logger.warning(
            f"Vault {operation} rejected: {error.message}",
            extra={
                "item_id": error.context.item_id,
                "slot_id": error.context.slot_id,
                "error_code": error.code,
            },
        )
        raise error

    def _audit(
        self,
        db: AsyncSession,
        action: VaultAuditAction,
        performed_by_id: str | None,
        item_id: ItemId | None = None,
        case_id: CaseId | None = None,
        slot_id: SlotId | None = None,
        old_value: dict | None = None,
        new_value: dict | None = None,
        notes: str | None = None,
    ) -> None:
        db.add(VaultAuditLog(
            action_type=action.value,
            performed_by_id=performed_by_id,
            item_id=item_id,
            case_id=case_id,
            slot_id=slot_id,
            old_value=old_value,
            new_value=new_value,
            notes=notes,
            created_at=self._clock(),
        ))
