"""
SQLAlchemy Entity Store — the remote contract backed by a relational database.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///market.db")
    store = SQLAlchemyEntityStore(session_factory)

    async with MarketSession() as market:
        await market.connect(connector_for(store, principal))

Mutations that guard an invariant (stock, order status, approval) use a
conditional ``UPDATE ... WHERE`` inside one transaction, so the database
serializes concurrent callers. Driver exceptions are not caught here; the
client turns them into ``REMOTE_UNAVAILABLE``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, cast

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

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
    MediaRef,
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
from artisan.store._memory import new_id
from artisan.store._protocol import StoreResult, utcnow


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════

class Base(DeclarativeBase):
    pass


class ProducerRow(Base):
    __tablename__ = "producers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    region: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    brand_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    brand_tagline: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    brand_color: Mapped[str] = mapped_column(String(7), nullable=False, default="")
    whatsapp: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    rarity_badge: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    profile_photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand_logo: Mapped[str | None] = mapped_column(Text, nullable=True)
    voice_story: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval: Mapped[str] = mapped_column(String(20), nullable=False, default=INITIAL_APPROVAL.value)


class ProductRow(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    producer_id: Mapped[str] = mapped_column(ForeignKey("producers.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False)
    region: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    rarity_badge: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    rarity_countdown_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    live_video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)
    voice_note: Mapped[str | None] = mapped_column(Text, nullable=True)


class OrderRow(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    buyer: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # No foreign key: orders outlive a deleted product.
    product_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    producer_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payment_proof: Mapped[str | None] = mapped_column(Text, nullable=True)


class LiveStreamRow(Base):
    __tablename__ = "live_streams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    producer_id: Mapped[str] = mapped_column(ForeignKey("producers.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    story: Mapped[str] = mapped_column(Text, nullable=False, default="")


class FollowRow(Base):
    __tablename__ = "follows"

    buyer: Mapped[str] = mapped_column(String(64), primary_key=True)
    producer_id: Mapped[str] = mapped_column(ForeignKey("producers.id"), primary_key=True)


class UserProfileRow(Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)


class ApprovalEventRow(Base):
    __tablename__ = "approval_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    producer_id: Mapped[str] = mapped_column(ForeignKey("producers.id"), nullable=False, index=True)
    previous: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(String(64), nullable=False)
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════

async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    kwargs: dict[str, Any] = {"echo": False}
    if ":memory:" in url:
        # One shared connection, otherwise every session sees an empty database.
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_async_engine(url, **kwargs)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


# ═══════════════════════════════════════════════════════════════════════════════
# Row ↔ entity
# ═══════════════════════════════════════════════════════════════════════════════

def _utc(value: datetime) -> datetime:
    # SQLite keeps no offset: every datetime is written as UTC. Naive input is taken as UTC.
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _ref(url: str | None) -> MediaRef | None:
    return MediaRef(url) if url else None


def _url(ref: MediaRef | None) -> str | None:
    return ref.url if ref else None


def _producer(row: ProducerRow, followers: int = 0) -> Producer:
    return Producer(
        id=row.id,
        name=row.name,
        region=row.region,
        bio=row.bio,
        brand_name=row.brand_name,
        brand_tagline=row.brand_tagline,
        brand_color=row.brand_color,
        whatsapp=row.whatsapp,
        rarity_badge=row.rarity_badge,
        profile_photo=_ref(row.profile_photo),
        brand_logo=_ref(row.brand_logo),
        voice_story=_ref(row.voice_story),
        approval=ApprovalStatus(row.approval),
        follower_count=followers,
    )


def _product(row: ProductRow) -> Product:
    return Product(
        id=row.id,
        producer_id=row.producer_id,
        title=row.title,
        description=row.description,
        price=row.price,
        stock=row.stock,
        region=row.region,
        rarity_badge=row.rarity_badge,
        rarity_countdown_end=_aware(row.rarity_countdown_end) if row.rarity_countdown_end else None,
        live_video_url=row.live_video_url,
        thumbnail=_ref(row.thumbnail),
        voice_note=_ref(row.voice_note),
    )


def _order(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        buyer=row.buyer,
        product_id=row.product_id,
        producer_id=row.producer_id,
        quantity=row.quantity,
        status=OrderStatus(row.status),
        created_at=_aware(row.created_at),
        payment_proof=row.payment_proof,
    )


def _stream(row: LiveStreamRow) -> LiveStream:
    return LiveStream(
        id=row.id,
        producer_id=row.producer_id,
        title=row.title,
        description=row.description,
        start_time=_aware(row.start_time),
        status=LiveStreamStatus(row.status),
        story=row.story,
    )


def _rowcount(result: Any) -> int:
    return cast(CursorResult[Any], result).rowcount


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════

class SQLAlchemyEntityStore:
    """
    Entity Store over an async SQLAlchemy session factory.

    Example:
        session_factory, engine = await create_database()
        store = SQLAlchemyEntityStore(session_factory)
        product = await store.get_product(caller, "prd_123")
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ─── Producers ──────────────────────────────────────────────────────────

    async def _producers(self, session: AsyncSession, stmt: Any) -> list[Producer]:
        rows = list((await session.execute(stmt)).scalars())
        counts = await self._follower_counts(session, [r.id for r in rows])
        return [_producer(r, counts.get(r.id, 0)) for r in rows]

    async def _follower_counts(self, session: AsyncSession, ids: Iterable[str]) -> dict[str, int]:
        ids = list(ids)
        if not ids:
            return {}
        stmt = (
            select(FollowRow.producer_id, func.count())
            .where(FollowRow.producer_id.in_(ids))
            .group_by(FollowRow.producer_id)
        )
        return {pid: count for pid, count in (await session.execute(stmt)).all()}

    async def save_producer(self, caller: Principal, draft: ProducerProfileDraft) -> StoreResult[Producer]:
        fields = draft.fields()
        for media in ("profile_photo", "brand_logo", "voice_story"):
            fields[media] = _url(fields[media])
        async with self._session_factory() as session, session.begin():
            row = await session.get(ProducerRow, caller.id)
            if row is None:
                row = ProducerRow(id=caller.id, approval=INITIAL_APPROVAL.value, **fields)
                session.add(row)
            else:
                for key, value in fields.items():
                    setattr(row, key, value)
            await session.flush()
            counts = await self._follower_counts(session, [caller.id])
            return Ok(_producer(row, counts.get(caller.id, 0)))

    async def get_producer(self, caller: Principal, producer_id: ProducerId) -> StoreResult[Producer]:
        async with self._session_factory() as session:
            found = await self._producers(session, select(ProducerRow).where(ProducerRow.id == producer_id))
            if not found:
                return Error(Errors.not_found("Producer", producer_id))
            return Ok(found[0])

    async def list_producers(self, caller: Principal) -> StoreResult[list[Producer]]:
        async with self._session_factory() as session:
            return Ok(await self._producers(session, select(ProducerRow)))

    async def list_approved_producers(self, caller: Principal) -> StoreResult[list[Producer]]:
        stmt = select(ProducerRow).where(ProducerRow.approval == ApprovalStatus.APPROVED.value)
        async with self._session_factory() as session:
            return Ok(await self._producers(session, stmt))

    async def set_approval(
        self, caller: Principal, producer_id: ProducerId, status: ApprovalStatus
    ) -> StoreResult[ApprovalInfo]:
        if not caller.is_admin:
            return Error(Errors.forbidden("only an admin may change producer approval"))
        async with self._session_factory() as session, session.begin():
            row = await session.get(ProducerRow, producer_id)
            if row is None:
                return Error(Errors.not_found("Producer", producer_id))
            current = ApprovalStatus(row.approval)
            match check_approval(caller, producer_id, current, status):
                case Error(e):
                    return Error(e)
                case Ok(False):
                    return Ok(ApprovalInfo(producer_id, current))
            result = await session.execute(
                update(ProducerRow)
                .where(ProducerRow.id == producer_id, ProducerRow.approval == current.value)
                .values(approval=status.value)
                .execution_options(synchronize_session=False)
            )
            if _rowcount(result) == 0:
                return Error(Errors.invalid_transition(f"producer:{producer_id}", current, status))
            session.add(ApprovalEventRow(
                producer_id=producer_id,
                previous=current.value,
                status=status.value,
                actor=caller.id,
                at=utcnow(),
            ))
            return Ok(ApprovalInfo(producer_id, status))

    async def request_approval(self, caller: Principal) -> StoreResult[ApprovalInfo]:
        async with self._session_factory() as session:
            row = await session.get(ProducerRow, caller.id)
            if row is None:
                return Error(Errors.not_found("Producer", caller.id))
            return Ok(ApprovalInfo(caller.id, ApprovalStatus(row.approval)))

    async def list_approvals(self, caller: Principal) -> StoreResult[list[ApprovalInfo]]:
        if not caller.is_admin:
            return Error(Errors.forbidden("only an admin may list approvals"))
        async with self._session_factory() as session:
            rows = (await session.execute(select(ProducerRow.id, ProducerRow.approval))).all()
            return Ok([ApprovalInfo(pid, ApprovalStatus(status)) for pid, status in rows])

    async def approval_history(self, caller: Principal, producer_id: ProducerId) -> StoreResult[list[ApprovalEvent]]:
        if not caller.is_admin:
            return Error(Errors.forbidden("only an admin may read approval history"))
        stmt = (
            select(ApprovalEventRow)
            .where(ApprovalEventRow.producer_id == producer_id)
            .order_by(ApprovalEventRow.id)
        )
        async with self._session_factory() as session:
            return Ok([
                ApprovalEvent(
                    producer_id=r.producer_id,
                    previous=ApprovalStatus(r.previous),
                    status=ApprovalStatus(r.status),
                    actor=r.actor,
                    at=_aware(r.at),
                )
                for r in (await session.execute(stmt)).scalars()
            ])

    async def follow(self, caller: Principal, producer_id: ProducerId) -> StoreResult[None]:
        async with self._session_factory() as session, session.begin():
            if await session.get(ProducerRow, producer_id) is None:
                return Error(Errors.not_found("Producer", producer_id))
            if await session.get(FollowRow, (caller.id, producer_id)) is None:
                session.add(FollowRow(buyer=caller.id, producer_id=producer_id))
            return Ok(None)

    async def unfollow(self, caller: Principal, producer_id: ProducerId) -> StoreResult[None]:
        async with self._session_factory() as session, session.begin():
            if await session.get(ProducerRow, producer_id) is None:
                return Error(Errors.not_found("Producer", producer_id))
            edge = await session.get(FollowRow, (caller.id, producer_id))
            if edge is not None:
                await session.delete(edge)
            return Ok(None)

    async def follower_count(self, caller: Principal, producer_id: ProducerId) -> StoreResult[int]:
        async with self._session_factory() as session:
            if await session.get(ProducerRow, producer_id) is None:
                return Error(Errors.not_found("Producer", producer_id))
            counts = await self._follower_counts(session, [producer_id])
            return Ok(counts.get(producer_id, 0))

    async def is_following(
        self, caller: Principal, buyer: PrincipalId, producer_id: ProducerId
    ) -> StoreResult[bool]:
        async with self._session_factory() as session:
            return Ok(await session.get(FollowRow, (buyer, producer_id)) is not None)

    async def list_followed(self, caller: Principal, buyer: PrincipalId) -> StoreResult[list[Producer]]:
        stmt = (
            select(ProducerRow)
            .join(FollowRow, FollowRow.producer_id == ProducerRow.id)
            .where(FollowRow.buyer == buyer)
        )
        async with self._session_factory() as session:
            return Ok(await self._producers(session, stmt))

    # ─── Products ───────────────────────────────────────────────────────────

    async def _products(self, stmt: Any) -> list[Product]:
        async with self._session_factory() as session:
            return [_product(r) for r in (await session.execute(stmt)).scalars()]

    async def save_product(self, caller: Principal, draft: ProductDraft) -> StoreResult[Product]:
        fields = draft.fields(exclude=frozenset({"id"}))
        for media in ("thumbnail", "voice_note"):
            fields[media] = _url(fields[media])
        if fields["rarity_countdown_end"] is not None:
            fields["rarity_countdown_end"] = _utc(fields["rarity_countdown_end"])
        async with self._session_factory() as session, session.begin():
            if await session.get(ProducerRow, caller.id) is None:
                return Error(Errors.forbidden("create a producer profile before listing products"))
            product_id = draft.id or new_id("prd")
            row = await session.get(ProductRow, product_id)
            if row is None:
                row = ProductRow(id=product_id, producer_id=caller.id, **fields)
                session.add(row)
            elif row.producer_id != caller.id:
                return Error(Errors.forbidden(f"product:{product_id} belongs to another producer"))
            else:
                for key, value in fields.items():
                    setattr(row, key, value)
            await session.flush()
            return Ok(_product(row))

    async def delete_product(self, caller: Principal, product_id: ProductId) -> StoreResult[None]:
        async with self._session_factory() as session, session.begin():
            row = await session.get(ProductRow, product_id)
            if row is None:
                return Error(Errors.not_found("Product", product_id))
            if row.producer_id != caller.id:
                return Error(Errors.forbidden(f"product:{product_id} belongs to another producer"))
            await session.delete(row)
            return Ok(None)

    async def get_product(self, caller: Principal, product_id: ProductId) -> StoreResult[Product]:
        async with self._session_factory() as session:
            row = await session.get(ProductRow, product_id)
            if row is None:
                return Error(Errors.not_found("Product", product_id))
            return Ok(_product(row))

    async def list_products(self, caller: Principal) -> StoreResult[list[Product]]:
        return Ok(await self._products(select(ProductRow)))

    async def list_products_by_producer(
        self, caller: Principal, producer_id: ProducerId
    ) -> StoreResult[list[Product]]:
        return Ok(await self._products(select(ProductRow).where(ProductRow.producer_id == producer_id)))

    async def list_approved_products(self, caller: Principal) -> StoreResult[list[Product]]:
        stmt = (
            select(ProductRow)
            .join(ProducerRow, ProducerRow.id == ProductRow.producer_id)
            .where(ProducerRow.approval == ApprovalStatus.APPROVED.value)
        )
        return Ok(await self._products(stmt))

    async def list_products_in_stock(self, caller: Principal) -> StoreResult[list[Product]]:
        return Ok(await self._products(select(ProductRow).where(ProductRow.stock > 0)))

    async def list_products_by_region(self, caller: Principal, region: str) -> StoreResult[list[Product]]:
        return Ok(await self._products(select(ProductRow).where(ProductRow.region == region)))

    async def list_products_by_price_range(
        self, caller: Principal, min_price: int, max_price: int
    ) -> StoreResult[list[Product]]:
        stmt = select(ProductRow).where(ProductRow.price >= min_price, ProductRow.price <= max_price)
        return Ok(await self._products(stmt))

    async def list_products_by_rarity(self, caller: Principal, badge: str) -> StoreResult[list[Product]]:
        return Ok(await self._products(select(ProductRow).where(ProductRow.rarity_badge == badge)))

    # ─── Orders ─────────────────────────────────────────────────────────────

    async def create_order(
        self,
        caller: Principal,
        product_id: ProductId,
        quantity: int,
        payment_proof: str | None,
    ) -> StoreResult[Order]:
        if quantity < 1:
            return Error(Errors.validation("quantity must be at least 1"))
        async with self._session_factory() as session, session.begin():
            product = await session.get(ProductRow, product_id)
            if product is None:
                return Error(Errors.not_found("Product", product_id))
            result = await session.execute(
                update(ProductRow)
                .where(ProductRow.id == product_id, ProductRow.stock >= quantity)
                .values(stock=ProductRow.stock - quantity)
                .execution_options(synchronize_session=False)
            )
            if _rowcount(result) == 0:
                await session.refresh(product)
                return Error(Errors.insufficient_stock(product_id, quantity, product.stock))
            row = OrderRow(
                id=new_id("ord"),
                buyer=caller.id,
                product_id=product_id,
                producer_id=product.producer_id,
                quantity=quantity,
                status=OrderStatus.PENDING.value,
                created_at=utcnow(),
                payment_proof=payment_proof,
            )
            session.add(row)
            await session.flush()
            return Ok(_order(row))

    async def get_order(self, caller: Principal, order_id: OrderId) -> StoreResult[Order]:
        async with self._session_factory() as session:
            row = await session.get(OrderRow, order_id)
            if row is None:
                return Error(Errors.not_found("Order", order_id))
            order = _order(row)
            if not can_view(order, caller):
                return Error(Errors.forbidden(f"order:{order_id} is not visible to {caller.id}"))
            return Ok(order)

    async def list_orders_by_buyer(self, caller: Principal, buyer: PrincipalId) -> StoreResult[list[Order]]:
        if caller.id != buyer and not caller.is_admin:
            return Error(Errors.forbidden("orders of another buyer are not visible"))
        async with self._session_factory() as session:
            rows = (await session.execute(select(OrderRow).where(OrderRow.buyer == buyer))).scalars()
            return Ok([_order(r) for r in rows])

    async def list_orders_by_product(self, caller: Principal, product_id: ProductId) -> StoreResult[list[Order]]:
        async with self._session_factory() as session:
            product = await session.get(ProductRow, product_id)
            if product is not None and product.producer_id != caller.id and not caller.is_admin:
                return Error(Errors.forbidden(f"orders of product:{product_id} are not visible"))
            stmt = select(OrderRow).where(OrderRow.product_id == product_id)
            if not caller.is_admin:
                stmt = stmt.where(OrderRow.producer_id == caller.id)
            return Ok([_order(r) for r in (await session.execute(stmt)).scalars()])

    async def update_order_status(
        self, caller: Principal, order_id: OrderId, status: OrderStatus
    ) -> StoreResult[Order]:
        async with self._session_factory() as session, session.begin():
            row = await session.get(OrderRow, order_id)
            if row is None:
                return Error(Errors.not_found("Order", order_id))
            order = _order(row)
            match check_transition(order, caller, status):
                case Error(e):
                    return Error(e)
            result = await session.execute(
                update(OrderRow)
                .where(OrderRow.id == order_id, OrderRow.status == order.status.value)
                .values(status=status.value)
                .execution_options(synchronize_session=False)
            )
            if _rowcount(result) == 0:
                # Another caller moved the order between our read and write.
                await session.refresh(row)
                return Error(Errors.invalid_transition(f"order:{order_id}", OrderStatus(row.status), status))
            return Ok(replace(order, status=status))

    async def cancel_order(self, caller: Principal, order_id: OrderId) -> StoreResult[Order]:
        return await self.update_order_status(caller, order_id, OrderStatus.CANCELLED)

    # ─── Live streams ───────────────────────────────────────────────────────

    async def _streams(self, stmt: Any) -> list[LiveStream]:
        async with self._session_factory() as session:
            return [_stream(r) for r in (await session.execute(stmt)).scalars()]

    async def create_live_stream(self, caller: Principal, draft: LiveStreamDraft) -> StoreResult[LiveStream]:
        async with self._session_factory() as session, session.begin():
            if await session.get(ProducerRow, caller.id) is None:
                return Error(Errors.forbidden("create a producer profile before scheduling live sessions"))
            row = LiveStreamRow(
                id=new_id("live"),
                producer_id=caller.id,
                title=draft.title,
                description=draft.description,
                start_time=_utc(draft.start_time),
                status=INITIAL_LIVE_STATUS.value,
                story="",
            )
            session.add(row)
            await session.flush()
            return Ok(_stream(row))

    async def update_live_stream_status(
        self, caller: Principal, stream_id: LiveStreamId, status: LiveStreamStatus
    ) -> StoreResult[LiveStream]:
        async with self._session_factory() as session, session.begin():
            row = await session.get(LiveStreamRow, stream_id)
            if row is None:
                return Error(Errors.not_found("LiveStream", stream_id))
            current = LiveStreamStatus(row.status)
            match check_live_transition(_stream(row), caller, status):
                case Error(e):
                    return Error(e)
            result = await session.execute(
                update(LiveStreamRow)
                .where(LiveStreamRow.id == stream_id, LiveStreamRow.status == current.value)
                .values(status=status.value)
                .execution_options(synchronize_session=False)
            )
            if _rowcount(result) == 0:
                await session.refresh(row)
                return Error(Errors.invalid_transition(f"live:{stream_id}", LiveStreamStatus(row.status), status))
            await session.refresh(row)
            return Ok(_stream(row))

    async def update_live_stream_story(
        self, caller: Principal, stream_id: LiveStreamId, story: str
    ) -> StoreResult[LiveStream]:
        async with self._session_factory() as session, session.begin():
            row = await session.get(LiveStreamRow, stream_id)
            if row is None:
                return Error(Errors.not_found("LiveStream", stream_id))
            match check_story_edit(_stream(row), caller):
                case Error(e):
                    return Error(e)
            row.story = story
            await session.flush()
            return Ok(_stream(row))

    async def get_live_stream(self, caller: Principal, stream_id: LiveStreamId) -> StoreResult[LiveStream]:
        async with self._session_factory() as session:
            row = await session.get(LiveStreamRow, stream_id)
            if row is None:
                return Error(Errors.not_found("LiveStream", stream_id))
            return Ok(_stream(row))

    async def list_live_streams(self, caller: Principal) -> StoreResult[list[LiveStream]]:
        return Ok(await self._streams(select(LiveStreamRow)))

    async def list_live_streams_by_producer(
        self, caller: Principal, producer_id: ProducerId
    ) -> StoreResult[list[LiveStream]]:
        return Ok(await self._streams(select(LiveStreamRow).where(LiveStreamRow.producer_id == producer_id)))

    async def list_live_streams_by_status(
        self, caller: Principal, status: LiveStreamStatus
    ) -> StoreResult[list[LiveStream]]:
        return Ok(await self._streams(select(LiveStreamRow).where(LiveStreamRow.status == status.value)))

    async def list_live_streams_by_regions(
        self, caller: Principal, regions: Sequence[str]
    ) -> StoreResult[list[LiveStream]]:
        stmt = (
            select(LiveStreamRow)
            .join(ProducerRow, ProducerRow.id == LiveStreamRow.producer_id)
            .where(ProducerRow.region.in_(list(regions)))
        )
        return Ok(await self._streams(stmt))

    # ─── Identity ───────────────────────────────────────────────────────────

    async def get_user_profile(self, caller: Principal, user: PrincipalId) -> StoreResult[UserProfile | None]:
        async with self._session_factory() as session:
            row = await session.get(UserProfileRow, user)
            return Ok(UserProfile(row.name, row.role) if row else None)

    async def save_user_profile(self, caller: Principal, profile: UserProfile) -> StoreResult[None]:
        async with self._session_factory() as session, session.begin():
            row = await session.get(UserProfileRow, caller.id)
            if row is None:
                session.add(UserProfileRow(id=caller.id, name=profile.name, role=profile.role))
            else:
                row.name = profile.name
                row.role = profile.role
            return Ok(None)


__all__ = ("SQLAlchemyEntityStore", "create_database", "Base")
