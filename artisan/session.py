"""
Market session — connection state, remote call guard, cache ownership.

The store handle becomes available only after an identity step. Until then
the session is ``Disconnected`` (or ``Connecting``) and every operation
answers ``REMOTE_UNAVAILABLE("session not ready")`` instead of reaching for a
handle that is not there.

    session = MarketSession()
    async with session:
        await session.connect(connector_for(store, principal))
        match await session.products.list_verified():
            case Ok(products): ...
            case Error(e): ...
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan._config import Settings, get_settings
from artisan._errors import ErrorKind, MarketError, Errors
from artisan.cache import (
    CacheError,
    LocalTier,
    Mutation,
    QueryCache,
    QueryKey,
    invalidate_for,
    query_cache,
)
from artisan.domain import Principal
from artisan.identity import IdentityService
from artisan.lift import remote, retrying
from artisan.live import LiveService
from artisan.orders import OrderReconciler, OrderService
from artisan.producers import FollowGraph, ProducerService
from artisan.products import ProductService
from artisan.store import EntityStore, StoreResult

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Connection state
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Handle:
    """A resolved store handle bound to the caller it acts for."""
    store: EntityStore
    principal: Principal


@dataclass(frozen=True, slots=True)
class Disconnected:
    pass


@dataclass(frozen=True, slots=True)
class Connecting:
    pass


@dataclass(frozen=True, slots=True)
class Ready:
    handle: Handle


type ConnectionState = Disconnected | Connecting | Ready

type Connector = Callable[[], Awaitable[Handle]]
"""Performs the identity step and resolves a handle, or raises."""

type StoreCall[T] = Callable[[EntityStore, Principal], Awaitable[StoreResult[T]]]
"""One remote call, given the store and the principal it runs as."""


def connector_for(store: EntityStore, principal: Principal) -> Connector:
    """Connector for a store that needs no identity handshake."""
    async def connect() -> Handle:
        return Handle(store, principal)
    return connect


def not_ready() -> MarketError:
    return Errors.remote_unavailable("session not ready")


# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════


class MarketSession:
    """
    Owns the query cache and the connection; hosts the services.

    Example:
        async with MarketSession(settings) as market:
            await market.connect(connector_for(store, buyer))
            order_id = await market.reconciler.create_order("prd_1", 2)
    """

    def __init__(self, settings: Settings | None = None, cache: QueryCache | None = None) -> None:
        self.settings = settings or get_settings()
        self.cache = cache or (
            query_cache()
            .tier(LocalTier(max_size=self.settings.CACHE_MAX_SIZE))
            .stale_after(self.settings.STALE_AFTER_SECONDS)
            .build()
        )
        self._state: ConnectionState = Disconnected()

        self.identity = IdentityService(self)
        self.products = ProductService(self)
        self.producers = ProducerService(self)
        self.follows = FollowGraph(self)
        self.orders = OrderService(self)
        self.reconciler = OrderReconciler(self)
        self.live = LiveService(self)

    # ─── Connection ─────────────────────────────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def ready(self) -> bool:
        return isinstance(self._state, Ready)

    def caller(self) -> Result[Principal, MarketError]:
        match self._state:
            case Ready(handle):
                return Ok(handle.principal)
            case _:
                return Error(not_ready())

    async def connect(self, connector: Connector) -> Result[Principal, MarketError]:
        """
        Resolve a handle. A new principal drops every cached answer, since
        visibility depends on who is asking.
        """
        if self.cache.closed:
            return Error(Errors.remote_unavailable("session is closed"))
        previous = self._state
        self._state = Connecting()
        logger.info("session connecting")
        try:
            handle = await connector()
        except Exception as e:
            self._state = Disconnected()
            logger.warning(f"session connect failed: {e!r}")
            return Error(Errors.remote_unavailable("connect failed", str(e)))
        except BaseException:
            self._state = previous
            raise

        match previous:
            case Ready(old) if old.principal == handle.principal:
                pass
            case _:
                await self.cache.invalidate_all()
        self._state = Ready(handle)
        logger.info(f"session ready as {handle.principal.id} ({handle.principal.role})")
        return Ok(handle.principal)

    async def disconnect(self) -> None:
        if not isinstance(self._state, Disconnected):
            logger.info("session disconnected")
        self._state = Disconnected()

    async def close(self) -> None:
        """Tear down the cache and drop the handle. A closed session stays closed."""
        await self.disconnect()
        await self.cache.close()

    async def __aenter__(self) -> MarketSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ─── Calls ──────────────────────────────────────────────────────────────

    def call[T](
        self,
        fn: StoreCall[T],
        *,
        what: str,
        idempotent: bool = False,
    ) -> LazyCoroResult[T, MarketError]:
        """
        Run one guarded remote call.

        Idempotent calls are retried on ``REMOTE_UNAVAILABLE``; everything
        else surfaces its first failure unchanged.
        """

        async def _run() -> Result[T, MarketError]:
            match self._state:
                case Ready(handle):
                    pass
                case _:
                    return Error(not_ready())

            attempt = remote(
                lambda: fn(handle.store, handle.principal),
                what=what,
                timeout=self.settings.REMOTE_TIMEOUT_SECONDS,
            )

            if idempotent:
                return await retrying(
                    attempt,
                    attempts=self.settings.IDEMPOTENT_RETRY_ATTEMPTS,
                    delay=self.settings.IDEMPOTENT_RETRY_DELAY_SECONDS,
                    what=what,
                )
            return await attempt

        return LazyCoroResult(_run)

    def read[T](self, key: QueryKey, fn: StoreCall[T]) -> LazyCoroResult[T, MarketError]:
        """Cached, retried read addressed by ``key``."""

        async def _run() -> Result[T, MarketError]:
            cached = await self.cache.query(key, lambda: self.call(fn, what=key.render(), idempotent=True))
            match cached:
                case Ok(hit):
                    return Ok(hit.value)
                case Error(CacheError() as e):
                    return Error(Errors.remote_unavailable("query cache unavailable", e.message))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(_run)

    def mutate[T](
        self,
        mutation: Mutation,
        fn: StoreCall[T],
        *,
        idempotent: bool = False,
    ) -> LazyCoroResult[T, MarketError]:
        """
        Run a mutation and invalidate its declared families before returning.
        An unknown outcome (``REMOTE_UNAVAILABLE``) invalidates too. Only
        idempotent mutations (follow, unfollow) may pass ``idempotent=True``.
        """

        async def _run() -> Result[T, MarketError]:
            result = await self.call(fn, what=mutation.value, idempotent=idempotent)
            match result:
                case Ok(_):
                    await invalidate_for(self.cache, mutation)
                case Error(e) if e.kind == ErrorKind.REMOTE_UNAVAILABLE:
                    await invalidate_for(self.cache, mutation)
            return result

        return LazyCoroResult(_run)


__all__ = (
    "Handle",
    "Disconnected",
    "Connecting",
    "Ready",
    "ConnectionState",
    "Connector",
    "StoreCall",
    "connector_for",
    "not_ready",
    "MarketSession",
)
