"""EscrowAuditLog ORM — append-only ledger of actions on an escrow session.

Invariants:
    - Never updated or deleted after insert
    - Transition rows are inserted in the same transaction as the status change
    - new_status is NULL for non-transition events (messages, uploads)

Design Decisions:
    - Python attribute event_metadata maps to column "metadata"
      (the name is reserved on declarative classes)
    - JSON column for metadata: opaque key/value, shape owned by the caller
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from safetrade.db.base import Base


class EscrowAuditLog(Base):
    """Audit entry for one mutating action on an escrow session."""
    __tablename__ = "escrow_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("escrow_sessions.id"),
        nullable=False, index=True,
    )
    action_type: Mapped[str] = mapped_column(String(80), nullable=False)
    performed_by_id: Mapped[str] = mapped_column(String(64), nullable=False)
    performed_by_role: Mapped[str] = mapped_column(String(20), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    event_metadata: Mapped[dict] = mapped_column(
        "metadata", JSON, nullable=False, default=dict,
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
