"""
Entity Store protocol — the authoritative remote service.

Every method is a single opaque async call. The caller's principal travels
with every call; the store enforces authority and re-validates every
precondition inside mutating calls. Domain rejections come back as
``Error(MarketError)``. Transport failures are raised and turned into
``REMOTE_UNAVAILABLE`` by ``artisan.lift.remote``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Protocol

from kungfu import Result

from artisan._errors import MarketError
from artisan._types import LiveStreamId, OrderId, PrincipalId, ProducerId, ProductId
from artisan.domain import (
    ApprovalEvent,
    ApprovalInfo,
    ApprovalStatus,
    LiveStream,
    LiveStreamDraft,
    LiveStreamStatus,
    Order,
    OrderStatus,
    Principal,
    Producer,
    ProducerProfileDraft,
    Product,
    ProductDraft,
    UserProfile,
)

type StoreResult[T] = Result[T, MarketError]


class EntityStore(Protocol):
    """
    Remote entity service contract.

    Example:
        class RpcEntityStore:
            def __init__(self, client: RpcClient) -> None:
                self.client = client

            async def get_product(self, caller: Principal, product_id: ProductId) -> StoreResult[Product]:
                reply = await self.client.call("getProduct", product_id, as_=caller.id)
                return Ok(decode_product(reply)) if reply else Error(Errors.not_found("Product", product_id))
            ...
    """

    # ─── Producers ──────────────────────────────────────────────────────────

    async def save_producer(self, caller: Principal, draft: ProducerProfileDraft) -> StoreResult[Producer]:
        """Create-or-update the caller's producer profile. First save starts pending."""
        ...

    async def get_producer(self, caller: Principal, producer_id: ProducerId) -> StoreResult[Producer]:
        ...

    async def list_producers(self, caller: Principal) -> StoreResult[list[Producer]]:
        ...

    async def list_approved_producers(self, caller: Principal) -> StoreResult[list[Producer]]:
        ...

    async def set_approval(
        self, caller: Principal, producer_id: ProducerId, status: ApprovalStatus
    ) -> StoreResult[ApprovalInfo]:
        """Admin only."""
        ...

    async def request_approval(self, caller: Principal) -> StoreResult[ApprovalInfo]:
        ...

    async def list_approvals(self, caller: Principal) -> StoreResult[list[ApprovalInfo]]:
        """Admin only."""
        ...

    async def approval_history(self, caller: Principal, producer_id: ProducerId) -> StoreResult[list[ApprovalEvent]]:
        """Admin only."""
        ...

    async def follow(self, caller: Principal, producer_id: ProducerId) -> StoreResult[None]:
        """Idempotent."""
        ...

    async def unfollow(self, caller: Principal, producer_id: ProducerId) -> StoreResult[None]:
        """Idempotent."""
        ...

    async def follower_count(self, caller: Principal, producer_id: ProducerId) -> StoreResult[int]:
        ...

    async def is_following(
        self, caller: Principal, buyer: PrincipalId, producer_id: ProducerId
    ) -> StoreResult[bool]:
        ...

    async def list_followed(self, caller: Principal, buyer: PrincipalId) -> StoreResult[list[Producer]]:
        ...

    # ─── Products ───────────────────────────────────────────────────────────

    async def save_product(self, caller: Principal, draft: ProductDraft) -> StoreResult[Product]:
        ...

    async def delete_product(self, caller: Principal, product_id: ProductId) -> StoreResult[None]:
        ...

    async def get_product(self, caller: Principal, product_id: ProductId) -> StoreResult[Product]:
        ...

    async def list_products(self, caller: Principal) -> StoreResult[list[Product]]:
        ...

    async def list_products_by_producer(
        self, caller: Principal, producer_id: ProducerId
    ) -> StoreResult[list[Product]]:
        ...

    async def list_approved_products(self, caller: Principal) -> StoreResult[list[Product]]:
        ...

    async def list_products_in_stock(self, caller: Principal) -> StoreResult[list[Product]]:
        ...

    async def list_products_by_region(self, caller: Principal, region: str) -> StoreResult[list[Product]]:
        ...

    async def list_products_by_price_range(
        self, caller: Principal, min_price: int, max_price: int
    ) -> StoreResult[list[Product]]:
        ...

    async def list_products_by_rarity(self, caller: Principal, badge: str) -> StoreResult[list[Product]]:
        ...

    # ─── Orders ─────────────────────────────────────────────────────────────

    async def create_order(
        self,
        caller: Principal,
        product_id: ProductId,
        quantity: int,
        payment_proof: str | None,
    ) -> StoreResult[Order]:
        """Atomically decrement stock and create a pending order, or do neither."""
        ...

    async def get_order(self, caller: Principal, order_id: OrderId) -> StoreResult[Order]:
        ...

    async def list_orders_by_buyer(self, caller: Principal, buyer: PrincipalId) -> StoreResult[list[Order]]:
        ...

    async def list_orders_by_product(self, caller: Principal, product_id: ProductId) -> StoreResult[list[Order]]:
        ...

    async def update_order_status(
        self, caller: Principal, order_id: OrderId, status: OrderStatus
    ) -> StoreResult[Order]:
        ...

    async def cancel_order(self, caller: Principal, order_id: OrderId) -> StoreResult[Order]:
        ...

    # ─── Live streams ───────────────────────────────────────────────────────

    async def create_live_stream(self, caller: Principal, draft: LiveStreamDraft) -> StoreResult[LiveStream]:
        ...

    async def update_live_stream_status(
        self, caller: Principal, stream_id: LiveStreamId, status: LiveStreamStatus
    ) -> StoreResult[LiveStream]:
        ...

    async def update_live_stream_story(
        self, caller: Principal, stream_id: LiveStreamId, story: str
    ) -> StoreResult[LiveStream]:
        ...

    async def get_live_stream(self, caller: Principal, stream_id: LiveStreamId) -> StoreResult[LiveStream]:
        ...

    async def list_live_streams(self, caller: Principal) -> StoreResult[list[LiveStream]]:
        ...

    async def list_live_streams_by_producer(
        self, caller: Principal, producer_id: ProducerId
    ) -> StoreResult[list[LiveStream]]:
        ...

    async def list_live_streams_by_status(
        self, caller: Principal, status: LiveStreamStatus
    ) -> StoreResult[list[LiveStream]]:
        ...

    async def list_live_streams_by_regions(
        self, caller: Principal, regions: Sequence[str]
    ) -> StoreResult[list[LiveStream]]:
        ...

    # ─── Identity ───────────────────────────────────────────────────────────

    async def get_user_profile(self, caller: Principal, user: PrincipalId) -> StoreResult[UserProfile | None]:
        ...

    async def save_user_profile(self, caller: Principal, profile: UserProfile) -> StoreResult[None]:
        ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ("EntityStore", "StoreResult", "utcnow")
