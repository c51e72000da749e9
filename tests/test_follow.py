# tests/test_follow.py
import pytest

from artisan._errors import ErrorKind

from support import BUYER, OTHER_BUYER, PRODUCER, OTHER_PRODUCER, FlakyStore, err, ok


@pytest.fixture
async def producers(seed):
    return [await seed.producer(PRODUCER), await seed.producer(OTHER_PRODUCER, region="Bagru")]


@pytest.mark.asyncio
async def test_follow_is_idempotent(connect, producers):
    market = await connect(BUYER)

    ok(await market.follows.follow(PRODUCER.id))
    ok(await market.follows.follow(PRODUCER.id))

    assert ok(await market.follows.follower_count(PRODUCER.id)) == 1
    assert ok(await market.follows.is_following(PRODUCER.id)) is True
    assert ok(await market.producers.get(PRODUCER.id)).follower_count == 1


@pytest.mark.asyncio
async def test_count_is_the_number_of_distinct_followers(connect, producers):
    first = await connect(BUYER)
    second = await connect(OTHER_BUYER)

    ok(await first.follows.follow(PRODUCER.id))
    ok(await second.follows.follow(PRODUCER.id))
    ok(await second.follows.unfollow(PRODUCER.id))
    ok(await second.follows.unfollow(PRODUCER.id))

    assert ok(await first.follows.follower_count(PRODUCER.id)) == 1
    assert ok(await second.follows.is_following(PRODUCER.id)) is False


@pytest.mark.asyncio
async def test_unknown_producer(connect):
    market = await connect(BUYER)
    err(await market.follows.follow("ghost"), ErrorKind.NOT_FOUND)
    err(await market.follows.follower_count("ghost"), ErrorKind.NOT_FOUND)


@pytest.mark.asyncio
async def test_followed_producers(connect, producers):
    market = await connect(BUYER)
    assert ok(await market.follows.followed_producers()) == []

    ok(await market.follows.follow(OTHER_PRODUCER.id))

    [followed] = ok(await market.follows.followed_producers())
    assert followed.id == OTHER_PRODUCER.id
    assert followed.follower_count == 1
    assert ok(await market.follows.followed_producers(OTHER_BUYER.id)) == []
    assert ok(await market.follows.is_following(OTHER_PRODUCER.id, buyer=OTHER_BUYER.id)) is False


@pytest.mark.asyncio
async def test_lost_follow_reply_is_retried(connect, store, producers):
    flaky = FlakyStore(store, {"follow": 2})
    market = await connect(BUYER, target=flaky)

    ok(await market.follows.follow(PRODUCER.id))

    assert flaky.calls["follow"] == 3
    assert ok(await store.follower_count(BUYER, PRODUCER.id)) == 1


@pytest.mark.asyncio
async def test_follow_gives_up_after_retry_budget(connect, store, producers):
    flaky = FlakyStore(store, {"follow": 5})
    market = await connect(BUYER, target=flaky)

    err(await market.follows.follow(PRODUCER.id), ErrorKind.REMOTE_UNAVAILABLE)

    assert flaky.calls["follow"] == 3
