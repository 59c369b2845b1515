"""Expiry Sweep — batch helper that expires overdue sessions through the transition service.

Invariants:
    - Never writes session status itself: every EXPIRED write goes through
      EscrowTransitionService.expire_if_due (row lock + audit row)
    - The candidate query is advisory; expire_if_due re-checks under the lock,
      so a session extended concurrently is left alone

Design Decisions:
    - Plain coroutine invoked by an external scheduler (cron, job runner): the core
      owns no timer thread
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safetrade.core.repository_protocols import utc_now
from safetrade.core.transition_table import EXPIRABLE_STATUSES
from safetrade.models.escrow_session import EscrowSession
from safetrade.schemas.escrow import TransitionResult
from safetrade.services.escrow_transitions import EscrowTransitionService

logger = logging.getLogger(__name__)


async def find_overdue_session_ids(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime,
    limit: int,
) -> list:
    async with session_factory() as db:
        result = await db.execute(
            select(EscrowSession.id)
            .where(EscrowSession.status.in_([s.value for s in EXPIRABLE_STATUSES]))
            .where(EscrowSession.expired_at.is_not(None))
            .where(EscrowSession.expired_at < now)
            .order_by(EscrowSession.expired_at)
            .limit(limit)
        )
        return list(result.scalars().all())


async def expire_overdue_sessions(
    service: EscrowTransitionService,
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime | None = None,
    limit: int = 100,
) -> list[TransitionResult]:
    """Expire up to limit overdue sessions; returns one result per session actually expired."""
    now = now or utc_now()
    candidates = await find_overdue_session_ids(session_factory, now, limit)
    expired: list[TransitionResult] = []
    for session_id in candidates:
        result = await service.expire_if_due(session_id)
        if result is not None and result.success:
            expired.append(result)
    if candidates:
        logger.info(
            f"Expiry sweep: {len(expired)}/{len(candidates)} sessions expired",
        )
    return expired
