"""VaultItem ORM — a physical card tracked through the vault.

Invariants:
    - slot_id is non-NULL iff status is IN_CASE
    - slot_id points to a slot whose case_id equals this item's case_id, and that
      case's authorized_shop_id equals shop_id_current
    - Slot/case refs are cleared on removal; items are never deleted

Design Decisions:
    - case_id denormalized next to slot_id: case-level inventory queries skip a JOIN
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from safetrade.core.domain_types import VaultItemStatus
from safetrade.db.base import Base


class VaultItem(Base):
    __tablename__ = "vault_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VaultItemStatus.PENDING_REVIEW.value,
    )
    shop_id_current: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True,
    )
    case_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vault_cases.id"), nullable=True,
    )
    slot_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vault_case_slots.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
