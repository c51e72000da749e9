"""
Query cache — fluent builder + executor.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from kungfu import LazyCoroResult, Result, Ok, Error

from artisan.cache._types import (
    Family,
    QueryKey,
    Tier,
    LocalTier,
    CacheEntry,
    CacheResult,
    CacheError,
    CacheErrorKind,
    family_prefix,
)

logger = logging.getLogger(__name__)

type EntryTier = Tier[CacheEntry[Any]]


def _detached[T](value: T) -> T:
    """Lists are copied in and out of the cache; entities are frozen already."""
    if isinstance(value, list):
        return cast(T, list(value))
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# Query Cache Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class QueryCacheBuilder:
    """
    Fluent query cache builder.

    Example:
        cache = (
            C.query_cache()
            .tier(C.LocalTier(max_size=500))
            .stale_after(seconds=120)
            .build()
        )
    """

    _tiers: tuple[EntryTier, ...]
    _stale_after: timedelta | None

    def tier(self, t: EntryTier) -> QueryCacheBuilder:
        """Add cache tier."""
        return QueryCacheBuilder(
            _tiers=(*self._tiers, t),
            _stale_after=self._stale_after,
        )

    def stale_after(self, seconds: float | None) -> QueryCacheBuilder:
        """Entries older than this are re-fetched. ``None`` keeps them until invalidated."""
        return QueryCacheBuilder(
            _tiers=self._tiers,
            _stale_after=timedelta(seconds=seconds) if seconds is not None else None,
        )

    def build(self) -> QueryCache:
        """Build query cache. Defaults to a single in-memory tier."""
        tiers = self._tiers or (LocalTier[CacheEntry[Any]](),)
        return QueryCache(tiers=tiers, stale_after=self._stale_after)


# ═══════════════════════════════════════════════════════════════════════════════
# Query Cache
# ═══════════════════════════════════════════════════════════════════════════════


class QueryCache:
    """
    Read-through cache addressed by ``QueryKey``.

    Invalidation is per family. Each family carries a generation counter: a
    fetch that was in flight when its family got invalidated returns its value
    to the caller but does not write it back, so the next read re-fetches.
    """

    def __init__(
        self,
        tiers: tuple[EntryTier, ...],
        stale_after: timedelta | None = None,
    ) -> None:
        self._tiers = tiers
        self._stale_after = stale_after
        self._generations: dict[Family, int] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def generation(self, family: Family) -> int:
        return self._generations.get(family, 0)

    def query[T, E](
        self,
        key: QueryKey,
        fetch: Callable[[], LazyCoroResult[T, E]],
    ) -> LazyCoroResult[CacheResult[T], CacheError | E]:
        """
        Read through the cache.

        Tries tiers in order, skipping stale entries, then falls back to fetch.
        On fetch success, populates all tiers unless the family was
        invalidated meanwhile.
        """
        cache_key = key.render()

        async def execute() -> Result[CacheResult[T], CacheError | E]:
            if self._closed:
                return Error(CacheError(CacheErrorKind.CLOSED, "query cache is closed"))

            # Try each tier
            for t in self._tiers:
                try:
                    entry = await t.get(cache_key)
                except Exception as e:
                    logger.warning(f"cache tier {t.name} get failed for {cache_key}: {e!r}")
                    continue
                if entry is None:
                    continue
                if entry.is_stale(self._stale_after):
                    logger.debug(f"cache stale {cache_key} in {t.name}")
                    continue
                logger.debug(f"cache hit {cache_key} in {t.name}")
                return Ok(
                    CacheResult(
                        value=_detached(entry.value),
                        hit=True,
                        tier=t.name,
                        age=entry.age(),
                    )
                )

            # Cache miss: fetch from source
            logger.debug(f"cache miss {cache_key}")
            generation = self.generation(key.family)
            result = await fetch()
            match result:
                case Ok(value):
                    if not self._closed and self.generation(key.family) == generation:
                        entry = CacheEntry(_detached(value))
                        for t in self._tiers:
                            try:
                                await t.set(cache_key, entry)
                            except Exception as e:
                                logger.warning(f"cache tier {t.name} set failed for {cache_key}: {e!r}")
                    else:
                        logger.debug(f"cache skip write-back {cache_key}: invalidated during fetch")

                    return Ok(
                        CacheResult(
                            value=value,
                            hit=False,
                            tier=None,
                            age=None,
                        )
                    )
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    async def invalidate(self, *families: Family) -> int:
        """Invalidate every entry of each family in all tiers. Returns count."""
        total = 0
        for family in families:
            self._generations[family] = self.generation(family) + 1
            for t in self._tiers:
                try:
                    total += await t.delete_prefix(family_prefix(family))
                except Exception as e:
                    logger.warning(f"cache tier {t.name} invalidate failed for {family}: {e!r}")
        logger.debug(f"cache invalidated {sorted(f.value for f in families)}: {total} entries")
        return total

    async def invalidate_key(self, key: QueryKey) -> bool:
        """Invalidate a single key in all tiers."""
        self._generations[key.family] = self.generation(key.family) + 1
        deleted = False
        for t in self._tiers:
            try:
                if await t.delete(key.render()):
                    deleted = True
            except Exception as e:
                logger.warning(f"cache tier {t.name} delete failed for {key.render()}: {e!r}")
        return deleted

    async def invalidate_all(self, families: Iterable[Family] = tuple(Family)) -> int:
        return await self.invalidate(*families)

    async def close(self) -> None:
        """Drop all entries; further reads fail with ``CLOSED``."""
        if self._closed:
            return
        await self.invalidate_all()
        self._closed = True

    async def __aenter__(self) -> QueryCache:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


# ═══════════════════════════════════════════════════════════════════════════════
# query_cache(): Entry Point
# ═══════════════════════════════════════════════════════════════════════════════


def query_cache() -> QueryCacheBuilder:
    """
    Create query cache builder.

    Example:
        from artisan import cache as C

        async with C.query_cache().stale_after(120).build() as cache:
            result = await cache.query(C.QueryKey(C.Family.PRODUCT, (pid,)), fetch)
    """
    return QueryCacheBuilder(_tiers=(), _stale_after=None)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("QueryCacheBuilder", "QueryCache", "query_cache")
