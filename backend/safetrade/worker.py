"""Expiry Worker — process entry point that runs one expiry sweep.

Invariants:
    - Logging and the database pool are initialized once per process, from settings
    - The pool is disposed on exit, also when the sweep fails

Design Decisions:
    - One sweep per invocation: scheduling (cron, k8s CronJob) stays outside the process
    - lifespan() mirrors a web app's startup/shutdown so a host application can reuse it
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from safetrade.config import Settings, get_settings
from safetrade.core.repository_protocols import Clock, utc_now
from safetrade.infrastructure.database import DatabaseSessionManager, init_db
from safetrade.infrastructure.observability import setup_logging
from safetrade.services.escrow_transitions import EscrowTransitionService
from safetrade.services.expiry_sweep import expire_overdue_sessions

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(
    settings: Settings | None = None,
) -> AsyncGenerator[DatabaseSessionManager, None]:
    """Startup/shutdown lifecycle."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("SafeTrade worker started")
    try:
        yield manager
    finally:
        await manager.dispose()
        logger.info("SafeTrade worker shutting down")


async def run_expiry_sweep(
    manager: DatabaseSessionManager,
    settings: Settings | None = None,
    clock: Clock = utc_now,
) -> int:
    """Expire one batch of overdue sessions; returns how many were expired."""
    settings = settings or get_settings()
    service = EscrowTransitionService(manager.session_factory, clock=clock, settings=settings)
    results = await expire_overdue_sessions(
        service, manager.session_factory, clock(), settings.expiry_sweep_batch_size,
    )
    return len(results)


async def _main() -> int:
    settings = get_settings()
    async with lifespan(settings) as manager:
        if not await manager.health_check():
            logger.error("Database unreachable, skipping expiry sweep")
            return 1
        await run_expiry_sweep(manager, settings)
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_main()))
