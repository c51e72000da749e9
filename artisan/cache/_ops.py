"""
Mutation declarations — which families each write invalidates.

Over-invalidating is fine, under-invalidating is a correctness bug: when a
new read family is added, every mutation that can change its answer must
list it here.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType

from artisan.cache._types import Family
from artisan.cache._builder import QueryCache

# ═══════════════════════════════════════════════════════════════════════════════
# Family groups
# ═══════════════════════════════════════════════════════════════════════════════

PRODUCT_LISTINGS: frozenset[Family] = frozenset({
    Family.PRODUCTS,
    Family.VERIFIED_PRODUCTS,
    Family.PRODUCT,
    Family.PRODUCTS_BY_PRODUCER,
    Family.PRODUCTS_IN_STOCK,
    Family.PRODUCTS_BY_REGION,
    Family.PRODUCTS_BY_PRICE,
    Family.PRODUCTS_BY_RARITY,
})

ORDER_LISTINGS: frozenset[Family] = frozenset({
    Family.ORDER,
    Family.ORDERS_BY_BUYER,
    Family.ORDERS_BY_PRODUCT,
})

PRODUCER_LISTINGS: frozenset[Family] = frozenset({
    Family.PRODUCERS,
    Family.VERIFIED_PRODUCERS,
    Family.PRODUCER,
})

LIVE_LISTINGS: frozenset[Family] = frozenset({
    Family.LIVE_STREAMS,
    Family.LIVE_STREAM,
    Family.LIVE_STREAMS_BY_PRODUCER,
    Family.LIVE_STREAMS_BY_STATUS,
    Family.LIVE_STREAMS_BY_REGIONS,
})

FOLLOW_VIEWS: frozenset[Family] = frozenset({
    Family.FOLLOWER_COUNT,
    Family.IS_FOLLOWING,
    Family.FOLLOWED_PRODUCERS,
})

# ═══════════════════════════════════════════════════════════════════════════════
# Mutations
# ═══════════════════════════════════════════════════════════════════════════════


class Mutation(StrEnum):
    SAVE_CALLER_PROFILE = "save_caller_profile"
    SAVE_PRODUCER = "save_producer"
    REQUEST_APPROVAL = "request_approval"
    SET_APPROVAL = "set_approval"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    SAVE_PRODUCT = "save_product"
    DELETE_PRODUCT = "delete_product"
    CREATE_ORDER = "create_order"
    UPDATE_ORDER_STATUS = "update_order_status"
    CANCEL_ORDER = "cancel_order"
    CREATE_LIVE_STREAM = "create_live_stream"
    UPDATE_LIVE_STREAM_STATUS = "update_live_stream_status"
    UPDATE_LIVE_STREAM_STORY = "update_live_stream_story"


INVALIDATES: Mapping[Mutation, frozenset[Family]] = MappingProxyType({
    Mutation.SAVE_CALLER_PROFILE: frozenset({Family.CALLER_PROFILE}),
    # a region change moves the producer's sessions between region listings
    Mutation.SAVE_PRODUCER: PRODUCER_LISTINGS | {
        Family.APPROVALS,
        Family.FOLLOWED_PRODUCERS,
        Family.LIVE_STREAMS_BY_REGIONS,
    },
    Mutation.REQUEST_APPROVAL: PRODUCER_LISTINGS | {Family.APPROVALS},
    # visibility of every product of the producer flips with its approval
    Mutation.SET_APPROVAL: PRODUCER_LISTINGS | PRODUCT_LISTINGS | {
        Family.APPROVALS,
        Family.APPROVAL_HISTORY,
        Family.FOLLOWED_PRODUCERS,
    },
    Mutation.FOLLOW: PRODUCER_LISTINGS | FOLLOW_VIEWS,
    Mutation.UNFOLLOW: PRODUCER_LISTINGS | FOLLOW_VIEWS,
    Mutation.SAVE_PRODUCT: PRODUCT_LISTINGS,
    Mutation.DELETE_PRODUCT: PRODUCT_LISTINGS,
    Mutation.CREATE_ORDER: PRODUCT_LISTINGS | ORDER_LISTINGS,
    Mutation.UPDATE_ORDER_STATUS: ORDER_LISTINGS,
    Mutation.CANCEL_ORDER: ORDER_LISTINGS | PRODUCT_LISTINGS,
    Mutation.CREATE_LIVE_STREAM: LIVE_LISTINGS,
    Mutation.UPDATE_LIVE_STREAM_STATUS: LIVE_LISTINGS,
    Mutation.UPDATE_LIVE_STREAM_STORY: LIVE_LISTINGS,
})


# ═══════════════════════════════════════════════════════════════════════════════
# invalidate_for(): apply a mutation's declaration
# ═══════════════════════════════════════════════════════════════════════════════


async def invalidate_for(cache: QueryCache, mutation: Mutation) -> int:
    """
    Invalidate every family ``mutation`` declares.

    Example:
        await C.invalidate_for(cache, C.Mutation.CREATE_ORDER)
    """
    return await cache.invalidate(*INVALIDATES[mutation])


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "PRODUCT_LISTINGS",
    "ORDER_LISTINGS",
    "PRODUCER_LISTINGS",
    "LIVE_LISTINGS",
    "FOLLOW_VIEWS",
    "Mutation",
    "INVALIDATES",
    "invalidate_for",
)
