"""Escrow Transition Service — the only mutator of escrow session status.

Invariants:
    - Status change and its audit row commit together or not at all
    - The session row is locked (SELECT ... FOR UPDATE) before the evaluator runs,
      so two racing callers cannot both move the same session out of the same status
    - Denials are returned as TransitionResult values; nothing is written on denial
    - Database failures on the transition path propagate (DatabaseError); a status
      change never "succeeds" without its audit trail
    - create_audit_event is best-effort: failures are logged and swallowed

Design Decisions:
    - Strict vs best-effort audit are two separate entry points:
      routine events (messages, uploads) must not block transitions, and transitions
      must never be unaudited
    - Expiry is cooperative: expire_if_due re-checks the predicate under the lock and
      writes EXPIRED through the same strict path (no timer thread)
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safetrade.config import Settings, get_settings
from safetrade.core.domain_types import (
    ActorId, EscrowSessionStatus, SessionAction, SessionId, UserRole,
)
from safetrade.core.enforce_guards import can_complete_verification
from safetrade.core.enforce_transitions import (
    TransitionCheck, can_perform_action, can_transition, target_for_action,
)
from safetrade.core.repository_protocols import Clock, utc_now
from safetrade.core.session_expiry import extended_deadline, is_session_expired
from safetrade.infrastructure.database import atomic
from safetrade.models.escrow_audit_log import EscrowAuditLog
from safetrade.models.escrow_session import EscrowSession
from safetrade.schemas.escrow import AuditProvenance, TransitionResult

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = ActorId("system")


def transition_action_type(old: EscrowSessionStatus, new: EscrowSessionStatus) -> str:
    return f"TRANSITION_{old.value}_TO_{new.value}"


class EscrowTransitionService:
    """Validated, audited status changes for escrow sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        settings: Settings | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._settings = settings or get_settings()

    # ─── Strict path ─────────────────────────────────────────────

    async def transition_status(
        self,
        session_id: SessionId,
        new_status: EscrowSessionStatus | str,
        actor_id: ActorId,
        actor_role: UserRole | str,
        metadata: dict | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> TransitionResult:
        """Move a session to new_status if the state machine allows it for actor_role."""
        new_status = EscrowSessionStatus(new_status)
        actor_role = UserRole(actor_role)
        provenance = AuditProvenance(
            metadata=metadata or {}, ip_address=ip_address, user_agent=user_agent,
        )

        async with atomic(self._session_factory) as db:
            session = await self._lock_session(db, session_id)
            if session is None:
                return self._not_found(session_id)

            old_status = EscrowSessionStatus(session.status)
            check = can_transition(old_status, new_status, actor_role)
            if not check.valid:
                return self._denied(session_id, old_status, new_status, actor_role, check)

            self._apply(
                db, session, old_status, new_status, actor_id, actor_role, provenance,
            )

        self._log_success(session_id, old_status, new_status, actor_role)
        return TransitionResult.ok(session_id, old_status, new_status)

    async def perform_action(
        self,
        session_id: SessionId,
        action: SessionAction | str,
        actor_id: ActorId,
        actor_role: UserRole | str,
        metadata: dict | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        precondition: TransitionCheck | None = None,
    ) -> TransitionResult:
        """Run a named business action (CHECK_IN, CLOSE_SESSION, ...) as one audited transition.

        precondition carries a guard result (can_check_in, can_complete_verification)
        computed by the caller; an invalid guard fails before any lock is taken.
        """
        actor_role = UserRole(actor_role)
        if precondition is not None and not precondition.valid:
            logger.warning(
                f"Precondition failed for {action}: {precondition.reason}",
                extra={"session_id": str(session_id), "error_code": precondition.error_code},
            )
            return TransitionResult.failed(
                precondition.reason or "Precondition failed",
                precondition.error_code or "PRECONDITION_FAILED",
                session_id,
            )

        meta = dict(metadata or {})
        async with atomic(self._session_factory) as db:
            session = await self._lock_session(db, session_id)
            if session is None:
                return self._not_found(session_id)

            old_status = EscrowSessionStatus(session.status)
            check = can_perform_action(old_status, action, actor_role)
            if not check.valid:
                return self._denied(session_id, old_status, None, actor_role, check)

            action = SessionAction(action)
            new_status = target_for_action(action)
            meta["action"] = action.value
            if action == SessionAction.EXTEND_SESSION:
                new_deadline = extended_deadline(
                    self._clock(), self._settings.session_extension_minutes,
                )
                meta["original_expired_at"] = (
                    session.expired_at.isoformat() if session.expired_at else None
                )
                meta["new_expired_at"] = new_deadline.isoformat()
                session.expired_at = new_deadline

            provenance = AuditProvenance(
                metadata=meta, ip_address=ip_address, user_agent=user_agent,
            )
            self._apply(
                db, session, old_status, new_status, actor_id, actor_role, provenance,
            )

        self._log_success(session_id, old_status, new_status, actor_role)
        return TransitionResult.ok(session_id, old_status, new_status)

    def verification_precondition(self, photo_count: int) -> TransitionCheck:
        """Photo guard for PASS_VERIFICATION using the configured minimum."""
        return can_complete_verification(
            photo_count, self._settings.verification_min_photos,
        )

    async def expire_if_due(self, session_id: SessionId) -> TransitionResult | None:
        """Write EXPIRED if the session is overdue right now; None when it is not."""
        async with atomic(self._session_factory) as db:
            session = await self._lock_session(db, session_id)
            if session is None:
                return self._not_found(session_id)

            now = self._clock()
            if not is_session_expired(session, now):
                return None

            old_status = EscrowSessionStatus(session.status)
            new_status = EscrowSessionStatus.EXPIRED
            check = can_transition(old_status, new_status, UserRole.SYSTEM)
            if not check.valid:
                return self._denied(
                    session_id, old_status, new_status, UserRole.SYSTEM, check,
                )

            provenance = AuditProvenance(metadata={
                "expired_at": session.expired_at.isoformat(),
                "detected_at": now.isoformat(),
            })
            self._apply(
                db, session, old_status, new_status,
                SYSTEM_ACTOR_ID, UserRole.SYSTEM, provenance,
            )

        self._log_success(session_id, old_status, new_status, UserRole.SYSTEM)
        return TransitionResult.ok(session_id, old_status, new_status)

    # ─── Best-effort path ────────────────────────────────────────

    async def create_audit_event(
        self,
        session_id: SessionId,
        action_type: str,
        actor_id: ActorId,
        actor_role: UserRole | str,
        old_status: EscrowSessionStatus | str | None = None,
        new_status: EscrowSessionStatus | str | None = None,
        metadata: dict | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Record a non-transition event. Never raises."""
        try:
            provenance = AuditProvenance(
                metadata=metadata or {}, ip_address=ip_address, user_agent=user_agent,
            )
            async with atomic(self._session_factory) as db:
                db.add(EscrowAuditLog(
                    session_id=session_id,
                    action_type=action_type,
                    performed_by_id=actor_id,
                    performed_by_role=UserRole(actor_role).value,
                    old_status=_status_value(old_status),
                    new_status=_status_value(new_status),
                    event_metadata=provenance.metadata,
                    ip_address=provenance.ip_address,
                    user_agent=provenance.user_agent,
                    created_at=self._clock(),
                ))
        except Exception:
            logger.exception(
                f"Failed to write audit event {action_type}",
                extra={"session_id": str(session_id), "action_type": action_type},
            )

    # ─── Internals ───────────────────────────────────────────────

    async def _lock_session(
        self, db: AsyncSession, session_id: SessionId,
    ) -> EscrowSession | None:
        result = await db.execute(
            select(EscrowSession)
            .where(EscrowSession.id == session_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    def _apply(
        self,
        db: AsyncSession,
        session: EscrowSession,
        old_status: EscrowSessionStatus,
        new_status: EscrowSessionStatus,
        actor_id: ActorId,
        actor_role: UserRole,
        provenance: AuditProvenance,
    ) -> None:
        now = self._clock()
        session.status = new_status.value
        session.last_activity = now
        db.add(EscrowAuditLog(
            session_id=session.id,
            action_type=transition_action_type(old_status, new_status),
            performed_by_id=actor_id,
            performed_by_role=actor_role.value,
            old_status=old_status.value,
            new_status=new_status.value,
            event_metadata=provenance.metadata,
            ip_address=provenance.ip_address,
            user_agent=provenance.user_agent,
            created_at=now,
        ))

    def _not_found(self, session_id: SessionId) -> TransitionResult:
        logger.warning(
            "Transition requested for unknown session",
            extra={"session_id": str(session_id), "error_code": "RESOURCE_NOT_FOUND"},
        )
        return TransitionResult.failed(
            "Session not found", "RESOURCE_NOT_FOUND", session_id,
        )

    def _denied(
        self,
        session_id: SessionId,
        old_status: EscrowSessionStatus,
        new_status: EscrowSessionStatus | None,
        actor_role: UserRole,
        check: TransitionCheck,
    ) -> TransitionResult:
        logger.warning(
            f"Transition denied: {check.reason}",
            extra={
                "session_id": str(session_id),
                "old_status": old_status.value,
                "new_status": new_status.value if new_status else None,
                "actor_role": actor_role.value,
                "error_code": check.error_code,
            },
        )
        return TransitionResult.failed(
            check.reason or "Invalid transition",
            check.error_code or "INVALID_TRANSITION",
            session_id,
            old_status,
        )

    def _log_success(
        self,
        session_id: SessionId,
        old_status: EscrowSessionStatus,
        new_status: EscrowSessionStatus,
        actor_role: UserRole,
    ) -> None:
        logger.info(
            f"Session {old_status.value} -> {new_status.value}",
            extra={
                "session_id": str(session_id),
                "old_status": old_status.value,
                "new_status": new_status.value,
                "actor_role": actor_role.value,
            },
        )


def _status_value(status: EscrowSessionStatus | str | None) -> str | None:
    if status is None:
        return None
    return EscrowSessionStatus(status).value
