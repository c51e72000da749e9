# tests/test_producers.py
import pytest

from artisan._errors import ErrorKind
from artisan.domain import ApprovalStatus, Producer, ProducerProfileDraft
from artisan.producers import approval_counts, filter_by_region, review_queue

from support import ADMIN, BUYER, PRODUCER, OTHER_PRODUCER, err, ok


def _producer(pid: str, approval: ApprovalStatus, region: str = "Kutch") -> Producer:
    return Producer(id=pid, name=pid, region=region, bio="", approval=approval)


class TestProfile:
    @pytest.mark.asyncio
    async def test_first_save_is_pending_and_hidden(self, connect):
        market = await connect(PRODUCER)

        producer = ok(await market.producers.save_profile({"name": "Meera", "region": "Bagru", "bio": "Dabu prints"}))

        assert producer.approval == ApprovalStatus.PENDING
        assert producer.id == PRODUCER.id
        assert ok(await market.producers.list_verified()) == []
        assert [p.id for p in ok(await market.producers.list_all())] == [PRODUCER.id]

    @pytest.mark.asyncio
    async def test_resave_keeps_approval(self, connect, seed):
        await seed.producer(PRODUCER)
        market = await connect(PRODUCER)

        producer = ok(await market.producers.save_profile(
            ProducerProfileDraft(name="Meera Studio", region="Bagru", brand_color="#aa3300")
        ))

        assert producer.approval == ApprovalStatus.APPROVED
        assert producer.display_name == "Meera Studio"

    @pytest.mark.asyncio
    async def test_invalid_profile_never_reaches_store(self, connect):
        market = await connect(PRODUCER)

        e = err(await market.producers.save_profile({"name": "", "region": "Bagru"}), ErrorKind.VALIDATION)

        assert "name" in e.message
        err(await market.producers.get(PRODUCER.id), ErrorKind.NOT_FOUND)

    @pytest.mark.asyncio
    async def test_request_approval_is_idempotent(self, connect, seed):
        await seed.producer(PRODUCER, approve=False)
        market = await connect(PRODUCER)

        first = ok(await market.producers.request_approval())
        second = ok(await market.producers.request_approval())

        assert first == second
        assert first.status == ApprovalStatus.PENDING


class TestApproval:
    @pytest.mark.asyncio
    async def test_approve_makes_producer_and_products_discoverable(self, connect, seed):
        await seed.producer(PRODUCER, approve=False)
        product = await seed.product(PRODUCER)
        buyer = await connect(BUYER)
        admin = await connect(ADMIN)

        assert ok(await buyer.products.list_verified()) == []

        info = ok(await admin.producers.approve(PRODUCER.id))

        assert info.status == ApprovalStatus.APPROVED
        assert [p.id for p in ok(await admin.producers.list_verified())] == [PRODUCER.id]
        # A separate session still holds the earlier answer until it goes stale.
        await buyer.cache.invalidate_all()
        assert [p.id for p in ok(await buyer.products.list_verified())] == [product.id]

    @pytest.mark.asyncio
    async def test_reject_hides_products_from_verified_only(self, connect, seed):
        await seed.producer(PRODUCER)
        product = await seed.product(PRODUCER)
        admin = await connect(ADMIN)
        assert [p.id for p in ok(await admin.products.list_verified())] == [product.id]

        ok(await admin.producers.reject(PRODUCER.id))

        assert ok(await admin.products.list_verified()) == []
        assert [p.id for p in ok(await admin.products.list_all())] == [product.id]
        assert ok(await admin.producers.list_verified()) == []

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, connect, seed):
        await seed.producer(PRODUCER, approve=False)
        market = await connect(OTHER_PRODUCER)

        err(await market.producers.approve(PRODUCER.id), ErrorKind.FORBIDDEN)

        assert ok(await market.producers.get(PRODUCER.id)).approval == ApprovalStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_producer(self, connect):
        admin = await connect(ADMIN)
        err(await admin.producers.approve("nobody"), ErrorKind.NOT_FOUND)

    @pytest.mark.asyncio
    async def test_same_status_is_a_noop(self, connect, store, seed):
        await seed.producer(PRODUCER)
        admin = await connect(ADMIN)
        assert len(ok(await store.approval_history(ADMIN, PRODUCER.id))) == 1

        info = ok(await admin.producers.approve(PRODUCER.id))

        assert info.status == ApprovalStatus.APPROVED
        assert len(ok(await store.approval_history(ADMIN, PRODUCER.id))) == 1

    @pytest.mark.asyncio
    async def test_history_records_each_decision(self, connect, seed):
        await seed.producer(PRODUCER, approve=False)
        admin = await connect(ADMIN)

        ok(await admin.producers.approve(PRODUCER.id))
        ok(await admin.producers.reject(PRODUCER.id))
        ok(await admin.producers.approve(PRODUCER.id))

        history = ok(await admin.producers.approval_history(PRODUCER.id))
        assert [(e.previous, e.status) for e in history] == [
            (ApprovalStatus.PENDING, ApprovalStatus.APPROVED),
            (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED),
            (ApprovalStatus.REJECTED, ApprovalStatus.APPROVED),
        ]
        assert {e.actor for e in history} == {ADMIN.id}

    @pytest.mark.asyncio
    async def test_approvals_listing_is_admin_only(self, connect, seed):
        await seed.producer(PRODUCER, approve=False)
        admin = await connect(ADMIN)
        buyer = await connect(BUYER)

        [info] = ok(await admin.producers.list_approvals())
        assert (info.producer_id, info.status) == (PRODUCER.id, ApprovalStatus.PENDING)
        err(await buyer.producers.list_approvals(), ErrorKind.FORBIDDEN)


class TestViews:
    def test_review_queue_puts_undecided_first(self):
        producers = [
            _producer("a", ApprovalStatus.APPROVED),
            _producer("b", ApprovalStatus.PENDING),
            _producer("c", ApprovalStatus.REJECTED),
            _producer("d", ApprovalStatus.PENDING),
        ]
        assert [p.id for p in review_queue(producers)] == ["b", "d", "c", "a"]

    def test_approval_counts_include_empty_statuses(self):
        counts = approval_counts([_producer("a", ApprovalStatus.PENDING)])
        assert counts == {
            ApprovalStatus.PENDING: 1,
            ApprovalStatus.APPROVED: 0,
            ApprovalStatus.REJECTED: 0,
        }

    @pytest.mark.parametrize(
        "region,expected",
        [(None, ["a", "b"]), ("All", ["a", "b"]), ("kutch", ["a"]), ("JAIPUR", ["b"]), ("Bengal", [])],
    )
    def test_filter_by_region(self, region, expected):
        producers = [
            _producer("a", ApprovalStatus.APPROVED, region="Kutch, Gujarat"),
            _producer("b", ApprovalStatus.APPROVED, region="Jaipur"),
        ]
        assert [p.id for p in filter_by_region(producers, region)] == expected
