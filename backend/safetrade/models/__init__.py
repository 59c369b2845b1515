"""ORM Models — SQLAlchemy declarative models for escrow sessions and vault custody.

Invariants:
    - All models inherit from Base (db/base.py)
    - Audit tables are append-only: no service issues UPDATE or DELETE against them

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all or
      alembic autogenerate runs
"""

from safetrade.models.escrow_session import EscrowSession  # noqa: F401
from safetrade.models.escrow_audit_log import EscrowAuditLog  # noqa: F401
from safetrade.models.vault_case import VaultCase  # noqa: F401
from safetrade.models.vault_case_slot import VaultCaseSlot  # noqa: F401
from safetrade.models.vault_item import VaultItem  # noqa: F401
from safetrade.models.vault_audit_log import VaultAuditLog  # noqa: F401
