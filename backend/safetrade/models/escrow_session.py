"""EscrowSession ORM — one mediated trade and its lifecycle status.

Invariants:
    - status is always an EscrowSessionStatus value
    - status is written only by EscrowTransitionService (single writer path)
    - COMPLETED and CANCELLED are terminal: no status write after reaching them
    - qr_token is unique; NULL until a check-in token is issued
    - Never hard-deleted (audit and dispute history reference it)

Design Decisions:
    - status stored as String, not a DB enum: adding a status needs no ALTER TYPE
    - Party ids are opaque strings from the identity layer (no users table here)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from safetrade.core.domain_types import EscrowSessionStatus
from safetrade.db.base import Base


class EscrowSession(Base):
    """Escrow session, the aggregate root of the audit trail."""
    __tablename__ = "escrow_sessions"
    __table_args__ = (
        Index("ix_escrow_sessions_status_expired_at", "status", "expired_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=EscrowSessionStatus.CREATED.value,
    )
    buyer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(64), nullable=False)
    merchant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    qr_token: Mapped[str | None] = mapped_column(
        String(128), nullable=True, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expired_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
