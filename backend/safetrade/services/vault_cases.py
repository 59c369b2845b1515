"""Vault Case Service — provisions cases and their fixed slot layout.

Invariants:
    - A case and all of its slots and the CASE_CREATED audit row commit together
    - New slots are FREE, coded S01..Snn, each with its own slot QR token
    - A case created for a shop is IN_SHOP_ACTIVE; otherwise it waits in the hub
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safetrade.config import Settings, get_settings
from safetrade.core.domain_types import (
    ActorId, CaseId, ShopId,
    VaultAuditAction, VaultCaseStatus, VaultSlotStatus,
)
from safetrade.core.qr_tokens import generate_slot_qr_token, slot_code_for
from safetrade.core.repository_protocols import Clock, utc_now
from safetrade.infrastructure.database import atomic
from safetrade.models.vault_audit_log import VaultAuditLog
from safetrade.models.vault_case import VaultCase
from safetrade.models.vault_case_slot import VaultCaseSlot

logger = logging.getLogger(__name__)


class VaultCaseService:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        settings: Settings | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._settings = settings or get_settings()

    async def create_case(
        self,
        shop_id: ShopId | None = None,
        label: str | None = None,
        slot_count: int | None = None,
        performed_by_id: ActorId | None = None,
    ) -> VaultCase:
        if slot_count is None:
            slot_count = self._settings.vault_case_slot_count
        if not 1 <= slot_count <= 99:
            raise ValueError(f"slot_count must be between 1 and 99, got {slot_count}")

        now = self._clock()
        case = VaultCase(
            id=uuid.uuid4(),
            authorized_shop_id=shop_id,
            status=(
                VaultCaseStatus.IN_SHOP_ACTIVE.value if shop_id
                else VaultCaseStatus.IN_HUB.value
            ),
            label=label,
            created_at=now,
        )
        async with atomic(self._session_factory) as db:
            db.add(case)
            await db.flush()
            for index in range(1, slot_count + 1):
                code = slot_code_for(index)
                db.add(VaultCaseSlot(
                    case_id=case.id,
                    slot_code=code,
                    status=VaultSlotStatus.FREE.value,
                    qr_token=generate_slot_qr_token(str(case.id), code),
                ))
            db.add(VaultAuditLog(
                action_type=VaultAuditAction.CASE_CREATED.value,
                performed_by_id=performed_by_id,
                case_id=case.id,
                new_value={
                    "status": case.status,
                    "authorized_shop_id": shop_id,
                    "slot_count": slot_count,
                },
                notes=f"Case created with {slot_count} slots",
                created_at=now,
            ))

        logger.info(
            f"Vault case created with {slot_count} slots",
            extra={"case_id": str(case.id)},
        )
        return case

    async def list_slots(self, case_id: CaseId) -> list[VaultCaseSlot]:
        """Slots of a case ordered by slot code (read-only)."""
        async with self._session_factory() as db:
            result = await db.execute(
                select(VaultCaseSlot)
                .where(VaultCaseSlot.case_id == case_id)
                .order_by(VaultCaseSlot.slot_code)
            )
            return list(result.scalars().all())
