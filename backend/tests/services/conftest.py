"""Service test fixtures — async in-memory DB, frozen clock, seeded rows.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Services receive the test session factory directly (no db_manager)
    - The clock is a mutable fixture so expiry tests can move time forward

Design Decisions:
    - SQLite in-memory: fast, no external dependency; it ignores FOR UPDATE, so races
      are exercised sequentially here and concurrently in test_concurrency_postgres.py
    - StaticPool: one shared connection keeps the in-memory database alive across sessions
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from safetrade.config import Settings
from safetrade.core.domain_types import EscrowSessionStatus, VaultItemStatus
from safetrade.db.base import Base
from safetrade.models.escrow_audit_log import EscrowAuditLog
from safetrade.models.escrow_session import EscrowSession
from safetrade.models.vault_audit_log import VaultAuditLog
from safetrade.models.vault_item import VaultItem
from safetrade.services.check_in_tokens import CheckInTokenService
from safetrade.services.escrow_transitions import EscrowTransitionService
from safetrade.services.vault_allocator import VaultAllocator
from safetrade.services.vault_cases import VaultCaseService

SHOP = "shop-1"
OTHER_SHOP = "shop-2"
START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def settings():
    return Settings(
        qr_token_max_attempts=3,
        qr_token_retry_max_delay_ms=0,
        session_extension_minutes=60,
    )


@pytest.fixture
def transitions(test_session_factory, clock, settings):
    return EscrowTransitionService(test_session_factory, clock=clock, settings=settings)


@pytest.fixture
def allocator(test_session_factory, clock):
    return VaultAllocator(test_session_factory, clock=clock)


@pytest.fixture
def cases(test_session_factory, clock, settings):
    return VaultCaseService(test_session_factory, clock=clock, settings=settings)


@pytest.fixture
def tokens(test_session_factory, settings):
    return CheckInTokenService(test_session_factory, settings=settings)


@pytest.fixture
def make_session(test_session_factory, clock):
    """Insert an escrow session in the given status; returns the row."""
    async def _make(
        status: EscrowSessionStatus = EscrowSessionStatus.CREATED,
        expired_at: datetime | None = None,
        qr_token: str | None = None,
    ) -> EscrowSession:
        async with test_session_factory() as db:
            session = EscrowSession(
                status=status.value,
                buyer_id="buyer-1",
                seller_id="seller-1",
                merchant_id="merchant-1",
                qr_token=qr_token,
                created_at=clock(),
                last_activity=clock(),
                expired_at=expired_at,
            )
            db.add(session)
            await db.commit()
            return session
    return _make


@pytest.fixture
def make_item(test_session_factory):
    async def _make(
        shop_id: str | None = SHOP,
        status: VaultItemStatus = VaultItemStatus.ASSIGNED_TO_SHOP,
        name: str = "Charizard Base Set",
    ) -> VaultItem:
        async with test_session_factory() as db:
            item = VaultItem(name=name, status=status.value, shop_id_current=shop_id)
            db.add(item)
            await db.commit()
            return item
    return _make


@pytest.fixture
def fetch(test_session_factory):
    """Read a fresh copy of a row by primary key."""
    async def _fetch(model, pk):
        async with test_session_factory() as db:
            return await db.get(model, pk)
    return _fetch


@pytest.fixture
def audit_rows(test_session_factory):
    async def _rows(session_id):
        async with test_session_factory() as db:
            result = await db.execute(
                select(EscrowAuditLog)
                .where(EscrowAuditLog.session_id == session_id)
                .order_by(EscrowAuditLog.created_at)
            )
            return list(result.scalars().all())
    return _rows


@pytest.fixture
def vault_audit_rows(test_session_factory):
    async def _rows(item_id=None):
        async with test_session_factory() as db:
            query = select(VaultAuditLog)
            if item_id is not None:
                query = query.where(VaultAuditLog.item_id == item_id)
            result = await db.execute(query)
            return list(result.scalars().all())
    return _rows
