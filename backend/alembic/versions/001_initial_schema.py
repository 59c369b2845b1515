"""Initial schema — escrow sessions, escrow audit, vault cases, slots, items, vault audit.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "escrow_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="CREATED"),
        sa.Column("buyer_id", sa.String(64), nullable=False),
        sa.Column("seller_id", sa.String(64), nullable=False),
        sa.Column("merchant_id", sa.String(64), nullable=True),
        sa.Column("qr_token", sa.String(128), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_escrow_sessions_status_expired_at", "escrow_sessions", ["status", "expired_at"],
    )

    op.create_table(
        "escrow_audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("session_id", UUID(as_uuid=True), sa.ForeignKey("escrow_sessions.id"), nullable=False),
        sa.Column("action_type", sa.String(80), nullable=False),
        sa.Column("performed_by_id", sa.String(64), nullable=False),
        sa.Column("performed_by_role", sa.String(20), nullable=False),
        sa.Column("old_status", sa.String(32), nullable=True),
        sa.Column("new_status", sa.String(32), nullable=True),
        sa.Column("metadata", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_escrow_audit_logs_session_id", "escrow_audit_logs", ["session_id"])

    op.create_table(
        "vault_cases",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("authorized_shop_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="IN_HUB"),
        sa.Column("label", sa.String(120), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_vault_cases_authorized_shop_id", "vault_cases", ["authorized_shop_id"])

    op.create_table(
        "vault_case_slots",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("case_id", UUID(as_uuid=True), sa.ForeignKey("vault_cases.id"), nullable=False),
        sa.Column("slot_code", sa.String(8), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="FREE"),
        sa.Column("qr_token", sa.String(128), nullable=False, unique=True),
        sa.UniqueConstraint("case_id", "slot_code", name="uq_vault_case_slots_case_code"),
    )

    op.create_table(
        "vault_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING_REVIEW"),
        sa.Column("shop_id_current", sa.String(64), nullable=True),
        sa.Column("case_id", UUID(as_uuid=True), sa.ForeignKey("vault_cases.id"), nullable=True),
        sa.Column("slot_id", UUID(as_uuid=True), sa.ForeignKey("vault_case_slots.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_vault_items_shop_id_current", "vault_items", ["shop_id_current"])

    op.create_table(
        "vault_audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("action_type", sa.String(40), nullable=False),
        sa.Column("performed_by_id", sa.String(64), nullable=True),
        sa.Column("item_id", UUID(as_uuid=True), nullable=True),
        sa.Column("case_id", UUID(as_uuid=True), nullable=True),
        sa.Column("slot_id", UUID(as_uuid=True), nullable=True),
        sa.Column("old_value", sa.JSON, nullable=True),
        sa.Column("new_value", sa.JSON, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_vault_audit_logs_item_id", "vault_audit_logs", ["item_id"])


def downgrade() -> None:
    op.drop_table("vault_audit_logs")
    op.drop_table("vault_items")
    op.drop_table("vault_case_slots")
    op.drop_table("vault_cases")
    op.drop_table("escrow_audit_logs")
    op.drop_table("escrow_sessions")
