"""VaultCase ORM — a physical case with a fixed number of slots.

Invariants:
    - Slots may only be manipulated while status is IN_SHOP_ACTIVE and the
      requesting shop equals authorized_shop_id
    - authorized_shop_id is NULL while the case sits in the hub (IN_HUB)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from safetrade.core.domain_types import VaultCaseStatus
from safetrade.db.base import Base


class VaultCase(Base):
    __tablename__ = "vault_cases"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    authorized_shop_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VaultCaseStatus.IN_HUB.value,
    )
    label: Mapped[str | None] = mapped_column(String(120), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
