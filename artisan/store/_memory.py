"""
In-memory Entity Store.

Reference implementation of the remote contract for tests and local demos.
Optional artificial latency makes interleavings between concurrent callers
observable.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from kungfu import Ok, Error

from artisan._errors import Errors
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
from artisan.lifecycle import (
    INITIAL_APPROVAL,
    INITIAL_LIVE_STATUS,
    can_view,
    check_approval,
    check_live_transition,
    check_story_edit,
    check_transition,
)
from artisan.store._protocol import StoreResult, utcnow

logger = logging.getLogger(__name__)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass
class MemoryEntityStore:
    latency: float = 0.0
    _producers: dict[ProducerId, Producer] = field(default_factory=dict[ProducerId, Producer])
    _products: dict[ProductId, Product] = field(default_factory=dict[ProductId, Product])
    _orders: dict[OrderId, Order] = field(default_factory=dict[OrderId, Order])
    _streams: dict[LiveStreamId, LiveStream] = field(default_factory=dict[LiveStreamId, LiveStream])
    _follows: set[tuple[PrincipalId, ProducerId]] = field(default_factory=set[tuple[PrincipalId, ProducerId]])
    _profiles: dict[PrincipalId, UserProfile] = field(default_factory=dict[PrincipalId, UserProfile])
    _history: list[ApprovalEvent] = field(default_factory=list[ApprovalEvent])
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def _tick(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    # ─── Producers ──────────────────────────────────────────────────────────

    def _with_count(self, producer: Producer) -> Producer:
        count = sum(1 for _, p in self._follows if p == producer.id)
        return replace(producer, follower_count=count)

    def _with_counts(self, producers: Iterable[Producer]) -> list[Producer]:
        return [self._with_count(p) for p in producers]

    async def save_producer(self, caller: Principal, draft: ProducerProfileDraft) -> StoreResult[Producer]:
        await self._tick()
        existing = self._producers.get(caller.id)
        approval = existing.approval if existing else INITIAL_APPROVAL
        producer = Producer(id=caller.id, approval=approval, **draft.fields())
        self._producers[caller.id] = producer
        if existing is None:
            logger.info(f"producer {caller.id} created ({approval})")
        return Ok(self._with_count(producer))

    async def get_producer(self, caller: Principal, producer_id: ProducerId) -> StoreResult[Producer]:
        await self._tick()
        producer = self._producers.get(producer_id)
        if producer is None:
            return Error(Errors.not_found("Producer", producer_id))
        return Ok(self._with_count(producer))

    async def list_producers(self, caller: Principal) -> StoreResult[list[Producer]]:
        await self._tick()
        return Ok(self._with_counts(self._producers.values()))

    async def list_approved_producers(self, caller: Principal) -> StoreResult[list[Producer]]:
        await self._tick()
        return Ok(self._with_counts(
            p for p in self._producers.values() if p.approval == ApprovalStatus.APPROVED
        ))

    async def set_approval(
        self, caller: Principal, producer_id: ProducerId, status: ApprovalStatus
    ) -> StoreResult[ApprovalInfo]:
        await self._tick()
        if not caller.is_admin:
            return Error(Errors.forbidden("only an admin may change producer approval"))
        producer = self._producers.get(producer_id)
        if producer is None:
            return Error(Errors.not_found("Producer", producer_id))
        match check_approval(caller, producer_id, producer.approval, status):
            case Error(e):
                return Error(e)
            case Ok(changed):
                if changed:
                    self._producers[producer_id] = replace(producer, approval=status)
                    self._history.append(ApprovalEvent(
                        producer_id=producer_id,
                        previous=producer.approval,
                        status=status,
                        actor=caller.id,
                        at=utcnow(),
                    ))
                return Ok(ApprovalInfo(producer_id, status))

    async def request_approval(self, caller: Principal) -> StoreResult[ApprovalInfo]:
        await self._tick()
        producer = self._producers.get(caller.id)
        if producer is None:
            return Error(Errors.not_found("Producer", caller.id))
        return Ok(ApprovalInfo(caller.id, producer.approval))

    async def list_approvals(self, caller: Principal) -> StoreResult[list[ApprovalInfo]]:
        await self._tick()
        if not caller.is_admin:
            return Error(Errors.forbidden("only an admin may list approvals"))
        return Ok([ApprovalInfo(p.id, p.approval) for p in self._producers.values()])

    async def approval_history(self, caller: Principal, producer_id: ProducerId) -> StoreResult[list[ApprovalEvent]]:
        await self._tick()
        if not caller.is_admin:
            return Error(Errors.forbidden("only an admin may read approval history"))
        return Ok([e for e in self._history if e.producer_id == producer_id])

    async def follow(self, caller: Principal, producer_id: ProducerId) -> StoreResult[None]:
        await self._tick()
        if producer_id not in self._producers:
            return Error(Errors.not_found("Producer", producer_id))
        self._follows.add((caller.id, producer_id))
        return Ok(None)

    async def unfollow(self, caller: Principal, producer_id: ProducerId) -> StoreResult[None]:
        await self._tick()
        if producer_id not in self._producers:
            return Error(Errors.not_found("Producer", producer_id))
        self._follows.discard((caller.id, producer_id))
        return Ok(None)

    async def follower_count(self, caller: Principal, producer_id: ProducerId) -> StoreResult[int]:
        await self._tick()
        if producer_id not in self._producers:
            return Error(Errors.not_found("Producer", producer_id))
        return Ok(self._with_count(self._producers[producer_id]).follower_count)

    async def is_following(
        self, caller: Principal, buyer: PrincipalId, producer_id: ProducerId
    ) -> StoreResult[bool]:
        await self._tick()
        return Ok((buyer, producer_id) in self._follows)

    async def list_followed(self, caller: Principal, buyer: PrincipalId) -> StoreResult[list[Producer]]:
        await self._tick()
        followed = {p for b, p in self._follows if b == buyer}
        return Ok(self._with_counts(p for pid, p in self._producers.items() if pid in followed))

    # ─── Products ───────────────────────────────────────────────────────────

    async def save_product(self, caller: Principal, draft: ProductDraft) -> StoreResult[Product]:
        await self._tick()
        if caller.id not in self._producers:
            return Error(Errors.forbidden("create a producer profile before listing products"))
        product_id = draft.id or new_id("prd")
        existing = self._products.get(product_id)
        if existing is not None and existing.producer_id != caller.id:
            return Error(Errors.forbidden(f"product:{product_id} belongs to another producer"))
        fields = draft.fields(exclude=frozenset({"id"}))
        product = Product(id=product_id, producer_id=caller.id, **fields)
        self._products[product_id] = product
        return Ok(product)

    async def delete_product(self, caller: Principal, product_id: ProductId) -> StoreResult[None]:
        await self._tick()
        product = self._products.get(product_id)
        if product is None:
            return Error(Errors.not_found("Product", product_id))
        if product.producer_id != caller.id:
            return Error(Errors.forbidden(f"product:{product_id} belongs to another producer"))
        del self._products[product_id]
        return Ok(None)

    async def get_product(self, caller: Principal, product_id: ProductId) -> StoreResult[Product]:
        await self._tick()
        product = self._products.get(product_id)
        if product is None:
            return Error(Errors.not_found("Product", product_id))
        return Ok(product)

    async def list_products(self, caller: Principal) -> StoreResult[list[Product]]:
        await self._tick()
        return Ok(list(self._products.values()))

    async def list_products_by_producer(
        self, caller: Principal, producer_id: ProducerId
    ) -> StoreResult[list[Product]]:
        await self._tick()
        return Ok([p for p in self._products.values() if p.producer_id == producer_id])

    async def list_approved_products(self, caller: Principal) -> StoreResult[list[Product]]:
        await self._tick()
        approved = {pid for pid, p in self._producers.items() if p.approval == ApprovalStatus.APPROVED}
        return Ok([p for p in self._products.values() if p.producer_id in approved])

    async def list_products_in_stock(self, caller: Principal) -> StoreResult[list[Product]]:
        await self._tick()
        return Ok([p for p in self._products.values() if p.stock > 0])

    async def list_products_by_region(self, caller: Principal, region: str) -> StoreResult[list[Product]]:
        await self._tick()
        return Ok([p for p in self._products.values() if p.region == region])

    async def list_products_by_price_range(
        self, caller: Principal, min_price: int, max_price: int
    ) -> StoreResult[list[Product]]:
        await self._tick()
        return Ok([p for p in self._products.values() if min_price <= p.price <= max_price])

    async def list_products_by_rarity(self, caller: Principal, badge: str) -> StoreResult[list[Product]]:
        await self._tick()
        return Ok([p for p in self._products.values() if p.rarity_badge == badge])

    # ─── Orders ─────────────────────────────────────────────────────────────

    async def create_order(
        self,
        caller: Principal,
        product_id: ProductId,
        quantity: int,
        payment_proof: str | None,
    ) -> StoreResult[Order]:
        await self._tick()
        if quantity < 1:
            return Error(Errors.validation("quantity must be at least 1"))
        # Check and decrement share the lock so two buyers cannot both take the last unit.
        async with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return Error(Errors.not_found("Product", product_id))
            if quantity > product.stock:
                return Error(Errors.insufficient_stock(product_id, quantity, product.stock))
            order = Order(
                id=new_id("ord"),
                buyer=caller.id,
                product_id=product_id,
                producer_id=product.producer_id,
                quantity=quantity,
                status=OrderStatus.PENDING,
                created_at=utcnow(),
                payment_proof=payment_proof,
            )
            self._products[product_id] = replace(product, stock=product.stock - quantity)
            self._orders[order.id] = order
        return Ok(order)

    async def get_order(self, caller: Principal, order_id: OrderId) -> StoreResult[Order]:
        await self._tick()
        order = self._orders.get(order_id)
        if order is None:
            return Error(Errors.not_found("Order", order_id))
        if not can_view(order, caller):
            return Error(Errors.forbidden(f"order:{order_id} is not visible to {caller.id}"))
        return Ok(order)

    async def list_orders_by_buyer(self, caller: Principal, buyer: PrincipalId) -> StoreResult[list[Order]]:
        await self._tick()
        if caller.id != buyer and not caller.is_admin:
            return Error(Errors.forbidden("orders of another buyer are not visible"))
        return Ok([o for o in self._orders.values() if o.buyer == buyer])

    async def list_orders_by_product(self, caller: Principal, product_id: ProductId) -> StoreResult[list[Order]]:
        await self._tick()
        product = self._products.get(product_id)
        if product is not None and product.producer_id != caller.id and not caller.is_admin:
            return Error(Errors.forbidden(f"orders of product:{product_id} are not visible"))
        return Ok([
            o for o in self._orders.values()
            if o.product_id == product_id and (caller.is_admin or o.producer_id == caller.id)
        ])

    async def update_order_status(
        self, caller: Principal, order_id: OrderId, status: OrderStatus
    ) -> StoreResult[Order]:
        await self._tick()
        order = self._orders.get(order_id)
        if order is None:
            return Error(Errors.not_found("Order", order_id))
        match check_transition(order, caller, status):
            case Error(e):
                return Error(e)
            case Ok(target):
                updated = replace(order, status=target)
                self._orders[order_id] = updated
                return Ok(updated)

    async def cancel_order(self, caller: Principal, order_id: OrderId) -> StoreResult[Order]:
        return await self.update_order_status(caller, order_id, OrderStatus.CANCELLED)

    # ─── Live streams ───────────────────────────────────────────────────────

    def _stream(self, stream_id: LiveStreamId) -> StoreResult[LiveStream]:
        stream = self._streams.get(stream_id)
        if stream is None:
            return Error(Errors.not_found("LiveStream", stream_id))
        return Ok(stream)

    async def create_live_stream(self, caller: Principal, draft: LiveStreamDraft) -> StoreResult[LiveStream]:
        await self._tick()
        if caller.id not in self._producers:
            return Error(Errors.forbidden("create a producer profile before scheduling live sessions"))
        stream = LiveStream(
            id=new_id("live"),
            producer_id=caller.id,
            title=draft.title,
            description=draft.description,
            start_time=draft.start_time,
            status=INITIAL_LIVE_STATUS,
        )
        self._streams[stream.id] = stream
        return Ok(stream)

    async def update_live_stream_status(
        self, caller: Principal, stream_id: LiveStreamId, status: LiveStreamStatus
    ) -> StoreResult[LiveStream]:
        await self._tick()
        match self._stream(stream_id):
            case Error(e):
                return Error(e)
            case Ok(stream):
                match check_live_transition(stream, caller, status):
                    case Error(e):
                        return Error(e)
                    case Ok(target):
                        updated = replace(stream, status=target)
                        self._streams[stream_id] = updated
                        return Ok(updated)

    async def update_live_stream_story(
        self, caller: Principal, stream_id: LiveStreamId, story: str
    ) -> StoreResult[LiveStream]:
        await self._tick()
        match self._stream(stream_id):
            case Error(e):
                return Error(e)
            case Ok(stream):
                match check_story_edit(stream, caller):
                    case Error(e):
                        return Error(e)
                    case Ok(_):
                        updated = replace(stream, story=story)
                        self._streams[stream_id] = updated
                        return Ok(updated)

    async def get_live_stream(self, caller: Principal, stream_id: LiveStreamId) -> StoreResult[LiveStream]:
        await self._tick()
        return self._stream(stream_id)

    async def list_live_streams(self, caller: Principal) -> StoreResult[list[LiveStream]]:
        await self._tick()
        return Ok(list(self._streams.values()))

    async def list_live_streams_by_producer(
        self, caller: Principal, producer_id: ProducerId
    ) -> StoreResult[list[LiveStream]]:
        await self._tick()
        return Ok([s for s in self._streams.values() if s.producer_id == producer_id])

    async def list_live_streams_by_status(
        self, caller: Principal, status: LiveStreamStatus
    ) -> StoreResult[list[LiveStream]]:
        await self._tick()
        return Ok([s for s in self._streams.values() if s.status == status])

    async def list_live_streams_by_regions(
        self, caller: Principal, regions: Sequence[str]
    ) -> StoreResult[list[LiveStream]]:
        await self._tick()
        in_regions = {pid for pid, p in self._producers.items() if p.region in regions}
        return Ok([s for s in self._streams.values() if s.producer_id in in_regions])

    # ─── Identity ───────────────────────────────────────────────────────────

    async def get_user_profile(self, caller: Principal, user: PrincipalId) -> StoreResult[UserProfile | None]:
        await self._tick()
        return Ok(self._profiles.get(user))

    async def save_user_profile(self, caller: Principal, profile: UserProfile) -> StoreResult[None]:
        await self._tick()
        self._profiles[caller.id] = profile
        return Ok(None)


__all__ = ("MemoryEntityStore", "new_id")
