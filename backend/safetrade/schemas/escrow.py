"""Escrow Schemas — result and provenance models exchanged with the web layer.

Invariants:
    - TransitionResult.success is False iff error is set
    - AuditProvenance.ip_address holds a single address (first hop of X-Forwarded-For)
    - AuditProvenance.user_agent never exceeds the audit column width

Design Decisions:
    - Result as value, not exception: transition denials are expected outcomes that
      callers branch on; raise_for_error() exists for callers that prefer exceptions
    - field_validator for side-effect-free normalization; models stay pure
"""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from safetrade.core.domain_types import EscrowSessionStatus
from safetrade.core.errors import (
    ErrorContext,
    InvalidTransitionError,
    ResourceNotFoundError,
    RoleNotPermittedError,
)

MAX_USER_AGENT_LENGTH = 512
MAX_IP_LENGTH = 45


class TransitionResult(BaseModel):
    """Outcome of a status change requested through the transition service."""
    success: bool
    error: str | None = None
    error_code: str | None = None
    session_id: UUID | None = None
    old_status: EscrowSessionStatus | None = None
    new_status: EscrowSessionStatus | None = None

    @classmethod
    def ok(
        cls, session_id: UUID, old: EscrowSessionStatus, new: EscrowSessionStatus,
    ) -> "TransitionResult":
        return cls(success=True, session_id=session_id, old_status=old, new_status=new)

    @classmethod
    def failed(
        cls, error: str, error_code: str, session_id: UUID | None = None,
        old: EscrowSessionStatus | None = None,
    ) -> "TransitionResult":
        return cls(
            success=False, error=error, error_code=error_code,
            session_id=session_id, old_status=old,
        )

    def raise_for_error(self) -> None:
        """Raise the typed error matching error_code; no-op on success."""
        if self.success:
            return
        ctx = ErrorContext(
            session_id=str(self.session_id) if self.session_id else None,
        )
        if self.error_code == "RESOURCE_NOT_FOUND":
            raise ResourceNotFoundError("EscrowSession", str(self.session_id), ctx)
        if self.error_code == "ROLE_NOT_PERMITTED":
            raise RoleNotPermittedError(self.error or "Role not permitted", ctx)
        raise InvalidTransitionError(self.error or "Invalid transition", ctx)


class AuditProvenance(BaseModel):
    """Network provenance and caller metadata attached to an audit row."""
    metadata: dict = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None

    @field_validator("ip_address")
    @classmethod
    def first_forwarded_hop(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.split(",")[0].strip()
        return v[:MAX_IP_LENGTH] or None

    @field_validator("user_agent")
    @classmethod
    def truncate_user_agent(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v[:MAX_USER_AGENT_LENGTH] or None
