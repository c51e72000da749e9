"""
Cache — read-through query cache with family invalidation.

    from artisan import cache as C

    cache = C.query_cache().stale_after(120).build()
    result = await cache.query(C.QueryKey(C.Family.PRODUCT, (pid,)), fetch)
    await C.invalidate_for(cache, C.Mutation.CREATE_ORDER)
"""

from __future__ import annotations

from artisan.cache._types import (
    Family,
    QueryKey,
    family_prefix,
    Tier,
    LocalTier,
    CacheEntry,
    CacheResult,
    CacheError,
    CacheErrorKind,
)
from artisan.cache._builder import query_cache, QueryCache, QueryCacheBuilder
from artisan.cache._ops import (
    PRODUCT_LISTINGS,
    ORDER_LISTINGS,
    PRODUCER_LISTINGS,
    LIVE_LISTINGS,
    FOLLOW_VIEWS,
    Mutation,
    INVALIDATES,
    invalidate_for,
)

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
    "query_cache",
    "QueryCache",
    "QueryCacheBuilder",
    "PRODUCT_LISTINGS",
    "ORDER_LISTINGS",
    "PRODUCER_LISTINGS",
    "LIVE_LISTINGS",
    "FOLLOW_VIEWS",
    "Mutation",
    "INVALIDATES",
    "invalidate_for",
)
