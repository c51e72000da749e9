# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest

from artisan._config import Settings
from artisan.domain import (
    ApprovalStatus,
    LiveStreamDraft,
    Principal,
    Producer,
    ProducerProfileDraft,
    Product,
    ProductDraft,
)
from artisan.session import MarketSession, connector_for
from artisan.store import MemoryEntityStore, SQLAlchemyEntityStore, create_database

from support import ADMIN, ok


@pytest.fixture
def settings():
    """Test settings: no retry back-off, generous timeouts."""
    return Settings(
        IDEMPOTENT_RETRY_ATTEMPTS=3,
        IDEMPOTENT_RETRY_DELAY_SECONDS=0.0,
        REMOTE_TIMEOUT_SECONDS=5.0,
        STALE_AFTER_SECONDS=120.0,
        REQUIRE_PAYMENT_PROOF=False,
    )


@pytest.fixture
def store():
    return MemoryEntityStore()


@pytest.fixture
async def sql_store():
    session_factory, engine = await create_database("sqlite+aiosqlite:///:memory:")
    yield SQLAlchemyEntityStore(session_factory)
    await engine.dispose()


@pytest.fixture
async def connect(store, settings):
    """Factory: a session connected as ``principal`` (to ``store`` unless given)."""
    sessions: list[MarketSession] = []

    async def _connect(principal: Principal, target=None, session_settings: Settings | None = None) -> MarketSession:
        session = MarketSession(session_settings or settings)
        ok(await session.connect(connector_for(target if target is not None else store, principal)))
        sessions.append(session)
        return session

    yield _connect

    for session in sessions:
        await session.close()


class Seeder:
    """Puts data straight into a store, bypassing sessions and caches."""

    def __init__(self, target) -> None:
        self.store = target

    async def producer(
        self,
        who: Principal,
        region: str = "Kutch",
        approve: bool = True,
        **extra,
    ) -> Producer:
        draft = ProducerProfileDraft(name=f"{who.id} crafts", region=region, bio="Third-generation weavers", **extra)
        producer = ok(await self.store.save_producer(who, draft))
        if approve:
            ok(await self.store.set_approval(ADMIN, who.id, ApprovalStatus.APPROVED))
            producer = ok(await self.store.get_producer(ADMIN, who.id))
        return producer

    async def product(
        self,
        owner: Principal,
        stock: int = 5,
        price: int = 1000,
        title: str = "Ajrakh stole",
        region: str = "Kutch",
        **extra,
    ) -> Product:
        draft = ProductDraft(title=title, price=price, stock=stock, region=region, description="Hand block printed", **extra)
        return ok(await self.store.save_product(owner, draft))

    async def live(self, owner: Principal, title: str = "Loom tour", starts_in: timedelta = timedelta(hours=1)):
        draft = LiveStreamDraft(title=title, start_time=datetime.now(timezone.utc) + starts_in)
        return ok(await self.store.create_live_stream(owner, draft))


@pytest.fixture
def seed(store):
    return Seeder(store)


@pytest.fixture
def sql_seed(sql_store):
    return Seeder(sql_store)
