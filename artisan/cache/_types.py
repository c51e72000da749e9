"""
Cache types: query identity, tiers, entries and errors.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum, StrEnum, auto
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Query Identity
# ═══════════════════════════════════════════════════════════════════════════════


class Family(StrEnum):
    """Closed set of cached read families."""

    PRODUCTS = "products"
    VERIFIED_PRODUCTS = "verified_products"
    PRODUCT = "product"
    PRODUCTS_BY_PRODUCER = "products_by_producer"
    PRODUCTS_IN_STOCK = "products_in_stock"
    PRODUCTS_BY_REGION = "products_by_region"
    PRODUCTS_BY_PRICE = "products_by_price"
    PRODUCTS_BY_RARITY = "products_by_rarity"

    ORDER = "order"
    ORDERS_BY_BUYER = "orders_by_buyer"
    ORDERS_BY_PRODUCT = "orders_by_product"

    PRODUCERS = "producers"
    VERIFIED_PRODUCERS = "verified_producers"
    PRODUCER = "producer"
    FOLLOWER_COUNT = "follower_count"
    IS_FOLLOWING = "is_following"
    FOLLOWED_PRODUCERS = "followed_producers"

    APPROVALS = "approvals"
    APPROVAL_HISTORY = "approval_history"

    LIVE_STREAMS = "live_streams"
    LIVE_STREAM = "live_stream"
    LIVE_STREAMS_BY_PRODUCER = "live_streams_by_producer"
    LIVE_STREAMS_BY_STATUS = "live_streams_by_status"
    LIVE_STREAMS_BY_REGIONS = "live_streams_by_regions"

    CALLER_PROFILE = "caller_profile"


@dataclass(frozen=True, slots=True)
class QueryKey:
    """
    Address of a cached read: family + discriminating parameters.

    Example:
        QueryKey(Family.PRODUCT, ("42",))
        QueryKey(Family.ORDERS_BY_BUYER, (buyer_id,))
    """

    family: Family
    params: tuple[object, ...] = ()

    def render(self) -> str:
        """Tier key. Every key of a family starts with ``family_prefix(family)``."""
        return f"{self.family.value}:" + "/".join(str(p) for p in self.params)


def family_prefix(family: Family) -> str:
    return f"{family.value}:"


# ═══════════════════════════════════════════════════════════════════════════════
# Tiers
# ═══════════════════════════════════════════════════════════════════════════════


class Tier[T](Protocol):
    """
    Where cache entries live. ``LocalTier`` is the default; implement this
    for a shared backend.
    """

    @property
    def name(self) -> str: ...

    async def get(self, key: str) -> T | None: ...

    async def set(self, key: str, value: T) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def delete_prefix(self, prefix: str) -> int:
        """Drop every key starting with ``prefix``. Returns how many went."""
        ...


class LocalTier[T]:
    """
    Process-local LRU, bounded by ``max_size`` entries.

    Example:
        tier = LocalTier[CacheEntry[Product]](max_size=1000)
    """

    def __init__(self, max_size: int = 1000) -> None:
        self.max_size = max_size
        self._entries: OrderedDict[str, T] = OrderedDict()

    @property
    def name(self) -> str:
        return "local"

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> T | None:
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: T) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)


# ═══════════════════════════════════════════════════════════════════════════════
# Entries and Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheEntry[T]:
    """Stored value + staleness marker."""
    value: T
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or datetime.now(timezone.utc)) - self.fetched_at

    def is_stale(self, stale_after: timedelta | None, now: datetime | None = None) -> bool:
        if stale_after is None:
            return False
        return self.age(now) >= stale_after


@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cache read result with metadata."""
    value: T
    hit: bool
    tier: str | None
    age: timedelta | None


class CacheErrorKind(Enum):
    """Cache error kinds."""
    CLOSED = auto()


@dataclass(frozen=True, slots=True)
class CacheError:
    """Cache operation error."""
    kind: CacheErrorKind
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Family",
    "QueryKey",
    "family_prefix",
    "Tier",
    "LocalTier",
    "CacheEntry",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
)
