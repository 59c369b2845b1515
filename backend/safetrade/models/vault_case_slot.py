"""VaultCaseSlot ORM — one physical compartment inside a case.

Invariants:
    - status is FREE iff no VaultItem references this slot
    - status is written only by VaultAllocator (and VaultCaseService at creation)
    - qr_token is unique across all slots
"""

import uuid

from sqlalchemy import String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from safetrade.core.domain_types import VaultSlotStatus
from safetrade.db.base import Base


class VaultCaseSlot(Base):
    __tablename__ = "vault_case_slots"
    __table_args__ = (
        UniqueConstraint("case_id", "slot_code", name="uq_vault_case_slots_case_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vault_cases.id"), nullable=False,
    )
    slot_code: Mapped[str] = mapped_column(String(8), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=VaultSlotStatus.FREE.value,
    )
    qr_token: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True,
    )
