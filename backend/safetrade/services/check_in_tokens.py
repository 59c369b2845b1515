"""Check-in Token Service — collision-checked QR tokens for escrow sessions.

Invariants:
    - A returned token had no matching escrow_sessions.qr_token at check time;
      the unique index is the final arbiter under concurrent inserts
    - At most max_attempts candidates are tried; exhaustion raises
      TokenGenerationExhaustedError (never returns a duplicate)
    - issue_check_in_token is idempotent: a session keeps its first token

Design Decisions:
    - Randomized backoff between attempts (0..retry_max_delay) so colliding
      writers do not retry in lockstep; skipped under the session row lock
    - Existence checks go through the TokenRegistry protocol: issue_check_in_token
      checks inside its own locked transaction, standalone callers use this service
"""

import asyncio
import logging
import random

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safetrade.config import Settings, get_settings
from safetrade.core.domain_types import SessionId
from safetrade.core.errors import (
    ErrorContext, InvalidTokenError, ResourceNotFoundError,
    TokenGenerationExhaustedError,
)
from safetrade.core.qr_tokens import generate_qr_token, is_well_formed_token
from safetrade.core.repository_protocols import TokenRegistry
from safetrade.infrastructure.database import atomic
from safetrade.models.escrow_session import EscrowSession

logger = logging.getLogger(__name__)


async def _token_taken(db: AsyncSession, token: str) -> bool:
    result = await db.execute(
        select(EscrowSession.id).where(EscrowSession.qr_token == token),
    )
    return result.first() is not None


async def _backoff(max_delay: float) -> None:
    await asyncio.sleep(random.uniform(0, max_delay))


class _SessionRegistry:
    """TokenRegistry bound to an already-open session."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def token_exists(self, token: str) -> bool:
        return await _token_taken(self._db, token)


class CheckInTokenService:

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    async def token_exists(self, token: str) -> bool:
        async with self._session_factory() as db:
            return await _token_taken(db, token)

    async def generate_unique_token(
        self,
        max_attempts: int | None = None,
        registry: TokenRegistry | None = None,
        backoff: bool = True,
    ) -> str:
        """Generate a check-in token not present in the store.

        backoff=False retries immediately; callers holding row locks use it.
        """
        max_attempts = max_attempts or self._settings.qr_token_max_attempts
        registry = registry or self
        max_delay = self._settings.qr_token_retry_max_delay_ms / 1000

        for attempt in range(1, max_attempts + 1):
            token = generate_qr_token()
            if not await registry.token_exists(token):
                return token
            logger.warning(
                "QR token collision, retrying",
                extra={"attempt": attempt},
            )
            if backoff and attempt < max_attempts and max_delay > 0:
                await _backoff(max_delay)

        logger.error(
            f"QR token generation exhausted after {max_attempts} attempts",
            extra={"attempt": max_attempts, "error_code": "TOKEN_GENERATION_EXHAUSTED"},
        )
        raise TokenGenerationExhaustedError(max_attempts)

    async def issue_check_in_token(self, session_id: SessionId) -> str:
        """Attach a check-in token to the session, or return the one it already has."""
        async with atomic(self._session_factory) as db:
            result = await db.execute(
                select(EscrowSession)
                .where(EscrowSession.id == session_id)
                .with_for_update()
            )
            session = result.scalar_one_or_none()
            if session is None:
                raise ResourceNotFoundError(
                    "EscrowSession", str(session_id),
                    ErrorContext(session_id=str(session_id)),
                )
            if session.qr_token:
                return session.qr_token

            token = await self.generate_unique_token(
                registry=_SessionRegistry(db), backoff=False,
            )
            session.qr_token = token

        logger.info(
            "Check-in token issued", extra={"session_id": str(session_id)},
        )
        return token

    async def find_session_by_token(self, token: str) -> EscrowSession:
        if not is_well_formed_token(token):
            raise InvalidTokenError()
        async with self._session_factory() as db:
            result = await db.execute(
                select(EscrowSession).where(EscrowSession.qr_token == token),
            )
            session = result.scalar_one_or_none()
        if session is None:
            raise ResourceNotFoundError("EscrowSession", token)
        return session
