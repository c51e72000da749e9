# tests/test_sql_store.py
"""The SQL store behind a real session, on in-memory SQLite."""

from datetime import datetime, timedelta, timezone

import pytest

from artisan._errors import ErrorKind
from artisan.domain import (
    ApprovalStatus,
    LiveStreamDraft,
    LiveStreamStatus,
    MediaRef,
    OrderStatus,
    ProducerProfileDraft,
    UserProfile,
)

from support import ADMIN, BUYER, OTHER_BUYER, PRODUCER, OTHER_PRODUCER, err, ok


@pytest.fixture
async def listed(sql_seed):
    await sql_seed.producer(PRODUCER)
    return await sql_seed.product(PRODUCER, stock=3, price=700, title="Chanderi saree", region="Chanderi")


@pytest.mark.asyncio
async def test_order_decrements_stock(connect, sql_store, listed):
    market = await connect(BUYER, target=sql_store)

    order_id = ok(await market.reconciler.create_order(listed.id, 2, payment_proof="pay_1"))

    order = ok(await market.orders.get(order_id))
    assert (order.status, order.quantity, order.payment_proof) == (OrderStatus.PENDING, 2, "pay_1")
    assert order.created_at.tzinfo is not None
    assert ok(await market.products.get(listed.id)).stock == 1


@pytest.mark.asyncio
async def test_store_refuses_overselling(sql_store, listed):
    ok(await sql_store.create_order(BUYER, listed.id, 3, None))

    e = err(await sql_store.create_order(OTHER_BUYER, listed.id, 1, None), ErrorKind.INSUFFICIENT_STOCK)

    assert "have 0" in e.message
    assert ok(await sql_store.list_orders_by_buyer(OTHER_BUYER, OTHER_BUYER.id)) == []


@pytest.mark.asyncio
async def test_order_transitions(connect, sql_store, listed):
    buyer = await connect(BUYER, target=sql_store)
    producer = await connect(PRODUCER, target=sql_store)
    order_id = ok(await buyer.reconciler.create_order(listed.id, 1))

    ok(await producer.orders.update_status(order_id, OrderStatus.CONFIRMED))
    err(await producer.orders.update_status(order_id, OrderStatus.DELIVERED), ErrorKind.INVALID_TRANSITION)
    ok(await producer.orders.update_status(order_id, OrderStatus.SHIPPED))
    err(await buyer.orders.cancel(order_id), ErrorKind.INVALID_TRANSITION)

    assert [o.status for o in ok(await producer.orders.list_by_product(listed.id))] == [OrderStatus.SHIPPED]


@pytest.mark.asyncio
async def test_buyer_cancel(connect, sql_store, listed):
    buyer = await connect(BUYER, target=sql_store)
    order_id = ok(await buyer.reconciler.create_order(listed.id, 1))

    assert ok(await buyer.orders.cancel(order_id)).status == OrderStatus.CANCELLED
    err(await sql_store.get_order(OTHER_BUYER, order_id), ErrorKind.FORBIDDEN)


@pytest.mark.asyncio
async def test_approval_and_history(connect, sql_store, sql_seed):
    await sql_seed.producer(PRODUCER, approve=False)
    product = await sql_seed.product(PRODUCER)
    admin = await connect(ADMIN, target=sql_store)
    assert ok(await admin.products.list_verified()) == []

    ok(await admin.producers.approve(PRODUCER.id))
    assert [p.id for p in ok(await admin.products.list_verified())] == [product.id]

    ok(await admin.producers.reject(PRODUCER.id))
    ok(await admin.producers.reject(PRODUCER.id))

    history = ok(await admin.producers.approval_history(PRODUCER.id))
    assert [e.status for e in history] == [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED]
    assert ok(await admin.products.list_verified()) == []


@pytest.mark.asyncio
async def test_resave_keeps_approval_and_media(sql_store, sql_seed):
    await sql_seed.producer(PRODUCER)
    photo = MediaRef("https://cdn.example/meera.jpg")

    saved = ok(await sql_store.save_producer(
        PRODUCER, ProducerProfileDraft(name="Meera", region="Bagru", profile_photo=photo)
    ))

    assert saved.approval == ApprovalStatus.APPROVED
    assert ok(await sql_store.get_producer(BUYER, PRODUCER.id)).profile_photo == photo


@pytest.mark.asyncio
async def test_follows(connect, sql_store, sql_seed):
    await sql_seed.producer(PRODUCER)
    first = await connect(BUYER, target=sql_store)
    second = await connect(OTHER_BUYER, target=sql_store)

    ok(await first.follows.follow(PRODUCER.id))
    ok(await first.follows.follow(PRODUCER.id))
    ok(await second.follows.follow(PRODUCER.id))

    assert ok(await sql_store.follower_count(BUYER, PRODUCER.id)) == 2
    assert [p.follower_count for p in ok(await first.follows.followed_producers())] == [2]

    ok(await second.follows.unfollow(PRODUCER.id))
    assert ok(await sql_store.follower_count(BUYER, PRODUCER.id)) == 1
    assert ok(await second.follows.is_following(PRODUCER.id)) is False


@pytest.mark.asyncio
async def test_live_sessions(connect, sql_store, sql_seed):
    await sql_seed.producer(PRODUCER, region="Kutch")
    await sql_seed.producer(OTHER_PRODUCER, region="Bagru")
    mine = await sql_seed.live(PRODUCER)
    await sql_seed.live(OTHER_PRODUCER)
    market = await connect(PRODUCER, target=sql_store)

    assert [s.id for s in ok(await market.live.list_by_regions(["Kutch"]))] == [mine.id]

    ok(await market.live.start(mine.id))
    ok(await market.live.update_story(mine.id, "Mirror work"))
    ended = ok(await market.live.end(mine.id))

    assert (ended.status, ended.story) == (LiveStreamStatus.ENDED, "Mirror work")
    assert ended.start_time.tzinfo is not None
    err(await market.live.update_story(mine.id, "late"), ErrorKind.INVALID_TRANSITION)


@pytest.mark.asyncio
async def test_offset_datetimes_keep_their_instant(sql_store, sql_seed):
    await sql_seed.producer(PRODUCER)
    ist = timezone(timedelta(hours=5, minutes=30))
    starts = datetime(2030, 1, 15, 19, 0, tzinfo=ist)

    stream = ok(await sql_store.create_live_stream(PRODUCER, LiveStreamDraft(title="Evening loom", start_time=starts)))
    product = await sql_seed.product(PRODUCER, rarity_countdown_end=starts)

    stored = ok(await sql_store.get_live_stream(BUYER, stream.id)).start_time
    assert stored == starts
    assert stored.utcoffset() == timedelta(0)
    assert stored.hour == 13 and stored.minute == 30
    assert ok(await sql_store.get_product(BUYER, product.id)).rarity_countdown_end == starts


@pytest.mark.asyncio
async def test_user_profile(sql_store):
    assert ok(await sql_store.get_user_profile(BUYER, BUYER.id)) is None

    ok(await sql_store.save_user_profile(BUYER, UserProfile("Asha", "buyer")))
    ok(await sql_store.save_user_profile(BUYER, UserProfile("Asha K", "buyer")))

    assert ok(await sql_store.get_user_profile(BUYER, BUYER.id)) == UserProfile("Asha K", "buyer")


@pytest.mark.asyncio
async def test_deleted_product(sql_store, listed):
    ok(await sql_store.delete_product(PRODUCER, listed.id))
    err(await sql_store.get_product(BUYER, listed.id), ErrorKind.NOT_FOUND)
    err(await sql_store.create_order(BUYER, listed.id, 1, None), ErrorKind.NOT_FOUND)
