# tests/test_session.py
import pytest

from artisan._config import Settings
from artisan._errors import ErrorKind
from artisan.domain import UserProfile
from artisan.session import (
    Connecting,
    Disconnected,
    Handle,
    MarketSession,
    Ready,
    connector_for,
)
from artisan.store import MemoryEntityStore

from support import ADMIN, BUYER, OTHER_BUYER, PRODUCER, FlakyStore, err, ok


class TestConnection:
    @pytest.mark.asyncio
    async def test_operations_before_connect_report_not_ready(self, settings):
        async with MarketSession(settings) as market:
            assert isinstance(market.state, Disconnected)

            e = err(await market.products.list_all(), ErrorKind.REMOTE_UNAVAILABLE)
            assert e.message == "session not ready"
            err(await market.reconciler.create_order("prd_1", 1), ErrorKind.REMOTE_UNAVAILABLE)
            err(market.identity.is_caller_admin(), ErrorKind.REMOTE_UNAVAILABLE)
            err(await market.identity.caller_profile(), ErrorKind.REMOTE_UNAVAILABLE)

    @pytest.mark.asyncio
    async def test_connect_failure_leaves_session_disconnected(self, settings):
        async def broken():
            raise ConnectionError("identity provider unreachable")

        async with MarketSession(settings) as market:
            e = err(await market.connect(broken), ErrorKind.REMOTE_UNAVAILABLE)

            assert "unreachable" in (e.reason or "")
            assert isinstance(market.state, Disconnected)
            assert not market.ready

    @pytest.mark.asyncio
    async def test_connecting_state_is_visible_during_identity_step(self, settings, store):
        seen = []

        async with MarketSession(settings) as market:
            async def observe():
                seen.append(market.state)
                return Handle(store, BUYER)

            ok(await market.connect(observe))

            assert isinstance(seen[0], Connecting)
            assert isinstance(market.state, Ready)
            assert market.state.handle.principal == BUYER

    @pytest.mark.asyncio
    async def test_closed_session_stays_closed(self, settings, store):
        market = MarketSession(settings)
        ok(await market.connect(connector_for(store, BUYER)))

        await market.close()

        assert isinstance(market.state, Disconnected)
        err(await market.connect(connector_for(store, BUYER)), ErrorKind.REMOTE_UNAVAILABLE)

    @pytest.mark.asyncio
    async def test_disconnect_then_reconnect(self, connect, store, seed):
        await seed.producer(PRODUCER)
        market = await connect(BUYER)
        await market.disconnect()

        err(await market.producers.list_all(), ErrorKind.REMOTE_UNAVAILABLE)

        ok(await market.connect(connector_for(store, BUYER)))
        assert [p.id for p in ok(await market.producers.list_all())] == [PRODUCER.id]


class TestIdentity:
    @pytest.mark.asyncio
    async def test_caller_profile_absent_then_saved(self, connect):
        market = await connect(BUYER)
        assert ok(await market.identity.caller_profile()) is None

        ok(await market.identity.save_caller_profile(UserProfile(name="Asha", role="buyer")))

        assert ok(await market.identity.caller_profile()) == UserProfile(name="Asha", role="buyer")

    @pytest.mark.asyncio
    async def test_is_caller_admin(self, connect):
        assert ok((await connect(ADMIN)).identity.is_caller_admin()) is True
        assert ok((await connect(BUYER)).identity.is_caller_admin()) is False


class TestCaching:
    @pytest.mark.asyncio
    async def test_repeated_reads_hit_cache(self, connect, store, seed):
        await seed.producer(PRODUCER)
        flaky = FlakyStore(store)
        market = await connect(BUYER, target=flaky)

        ok(await market.producers.list_all())
        ok(await market.producers.list_all())

        assert flaky.calls["list_producers"] == 1

    @pytest.mark.asyncio
    async def test_new_principal_drops_cached_answers(self, connect, store, seed):
        await seed.producer(PRODUCER)
        flaky = FlakyStore(store)
        market = await connect(BUYER, target=flaky)
        ok(await market.producers.list_all())

        ok(await market.connect(connector_for(flaky, BUYER)))
        ok(await market.producers.list_all())
        assert flaky.calls["list_producers"] == 1

        ok(await market.connect(connector_for(flaky, OTHER_BUYER)))
        ok(await market.producers.list_all())
        assert flaky.calls["list_producers"] == 2

    @pytest.mark.asyncio
    async def test_reads_are_retried(self, connect, store, seed):
        await seed.producer(PRODUCER)
        flaky = FlakyStore(store, {"list_producers": 2})
        market = await connect(BUYER, target=flaky)

        assert len(ok(await market.producers.list_all())) == 1
        assert flaky.calls["list_producers"] == 3


@pytest.mark.asyncio
async def test_slow_store_times_out(connect):
    slow = MemoryEntityStore(latency=0.2)
    market = await connect(
        BUYER,
        target=slow,
        session_settings=Settings(
            REMOTE_TIMEOUT_SECONDS=0.05,
            IDEMPOTENT_RETRY_ATTEMPTS=2,
            IDEMPOTENT_RETRY_DELAY_SECONDS=0.0,
        ),
    )

    e = err(await market.products.list_all(), ErrorKind.REMOTE_UNAVAILABLE)

    assert "timed out" in e.message
