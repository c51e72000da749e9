# tests/test_cache.py
import asyncio

import pytest
from kungfu import Ok, Error, LazyCoroResult

from artisan import cache as C
from artisan.cache import CacheErrorKind, Family, Mutation, QueryKey

from support import ok


def counting_fetch(values):
    """Fetch factory returning successive ``values``; ``calls`` counts fetches."""
    calls = []

    def fetch():
        async def _run():
            calls.append(1)
            return Ok(values[min(len(calls), len(values)) - 1])
        return LazyCoroResult(_run)

    return fetch, calls


@pytest.mark.asyncio
async def test_second_read_is_a_hit():
    cache = C.query_cache().build()
    fetch, calls = counting_fetch(["a"])
    key = QueryKey(Family.PRODUCT, ("prd_1",))

    first = ok(await cache.query(key, fetch))
    second = ok(await cache.query(key, fetch))

    assert (first.hit, second.hit) == (False, True)
    assert second.value == "a"
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_invalidate_drops_whole_family_only():
    cache = C.query_cache().build()
    fetch, calls = counting_fetch(["v1", "v2", "v3", "v4"])
    p1 = QueryKey(Family.PRODUCT, ("prd_1",))
    p2 = QueryKey(Family.PRODUCT, ("prd_2",))
    listing = QueryKey(Family.PRODUCTS_BY_REGION, ("Kutch",))

    for key in (p1, p2, listing):
        ok(await cache.query(key, fetch))
    dropped = await cache.invalidate(Family.PRODUCT)

    assert dropped == 2
    assert ok(await cache.query(listing, fetch)).hit
    assert not ok(await cache.query(p1, fetch)).hit


@pytest.mark.asyncio
async def test_fetch_errors_are_not_cached():
    cache = C.query_cache().build()
    attempts = []

    def fetch():
        async def _run():
            attempts.append(1)
            return Error("boom") if len(attempts) == 1 else Ok("fine")
        return LazyCoroResult(_run)

    key = QueryKey(Family.PRODUCTS)
    match await cache.query(key, fetch):
        case Error(e):
            assert e == "boom"
        case Ok(_):
            pytest.fail("error should pass through")
    assert ok(await cache.query(key, fetch)).value == "fine"


@pytest.mark.asyncio
async def test_in_flight_fetch_does_not_write_back_after_invalidation():
    cache = C.query_cache().build()
    started = asyncio.Event()
    release = asyncio.Event()
    key = QueryKey(Family.PRODUCT, ("prd_1",))

    def slow_fetch():
        async def _run():
            started.set()
            await release.wait()
            return Ok("before-mutation")
        return LazyCoroResult(_run)

    async def read():
        return await cache.query(key, slow_fetch)

    task = asyncio.create_task(read())
    await started.wait()
    await cache.invalidate(Family.PRODUCT)
    release.set()

    # The in-flight caller still gets its answer...
    assert ok(await task).value == "before-mutation"

    # ...but the next reader re-fetches instead of seeing it.
    fetch, calls = counting_fetch(["after-mutation"])
    again = ok(await cache.query(key, fetch))
    assert again.value == "after-mutation"
    assert not again.hit
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_stale_entries_are_refetched():
    cache = C.query_cache().stale_after(0).build()
    fetch, calls = counting_fetch(["old", "new"])
    key = QueryKey(Family.LIVE_STREAMS)

    ok(await cache.query(key, fetch))
    second = ok(await cache.query(key, fetch))

    assert second.value == "new"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_closed_cache_refuses_reads():
    async with C.query_cache().build() as cache:
        fetch, _ = counting_fetch(["x"])
        ok(await cache.query(QueryKey(Family.PRODUCTS), fetch))

    assert cache.closed
    match await cache.query(QueryKey(Family.PRODUCTS), fetch):
        case Error(e):
            assert e.kind == CacheErrorKind.CLOSED
        case Ok(_):
            pytest.fail("closed cache answered")


def test_every_mutation_declares_families():
    assert set(C.INVALIDATES) == set(Mutation)
    assert all(C.INVALIDATES[m] for m in Mutation)


def test_order_creation_invalidates_stock_views_and_order_listings():
    families = C.INVALIDATES[Mutation.CREATE_ORDER]
    for family in (
        Family.PRODUCT,
        Family.PRODUCTS,
        Family.VERIFIED_PRODUCTS,
        Family.PRODUCTS_BY_PRODUCER,
        Family.PRODUCTS_IN_STOCK,
        Family.PRODUCTS_BY_REGION,
        Family.PRODUCTS_BY_PRICE,
        Family.PRODUCTS_BY_RARITY,
        Family.ORDERS_BY_BUYER,
        Family.ORDERS_BY_PRODUCT,
    ):
        assert family in families


def test_approval_changes_invalidate_product_visibility():
    families = C.INVALIDATES[Mutation.SET_APPROVAL]
    assert Family.VERIFIED_PRODUCTS in families
    assert Family.VERIFIED_PRODUCERS in families


def test_key_rendering_stays_inside_its_family():
    key = QueryKey(Family.PRODUCTS_BY_PRICE, (100, 500))
    assert key.render() == "products_by_price:100/500"
    assert not QueryKey(Family.PRODUCTS_BY_REGION, ("x",)).render().startswith("products:")


@pytest.mark.asyncio
async def test_local_tier_evicts_least_recently_used():
    tier = C.LocalTier[str](max_size=2)
    await tier.set("product:1", "a")
    await tier.set("product:2", "b")
    assert await tier.get("product:1") == "a"

    await tier.set("products:", "c")

    assert await tier.get("product:2") is None
    assert len(tier) == 2
    assert await tier.delete_prefix(C.family_prefix(Family.PRODUCT)) == 1
    assert await tier.get("products:") == "c"


def test_producer_save_invalidates_region_scoped_live_listings():
    # the by-regions listing is joined on the producer's current region
    assert Family.LIVE_STREAMS_BY_REGIONS in C.INVALIDATES[Mutation.SAVE_PRODUCER]


@pytest.mark.asyncio
async def test_callers_cannot_mutate_cached_lists():
    fetch, calls = counting_fetch([["b", "a"]])
    cache = C.query_cache().build()

    first = ok(await cache.query(QueryKey(Family.PRODUCTS), fetch)).value
    first.append("mine")
    hit = ok(await cache.query(QueryKey(Family.PRODUCTS), fetch)).value
    hit.sort()

    again = ok(await cache.query(QueryKey(Family.PRODUCTS), fetch)).value
    assert again == ["b", "a"]
    assert len(calls) == 1
