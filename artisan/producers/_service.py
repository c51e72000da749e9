"""
Producer profiles and the admin trust workflow.

A producer starts ``pending`` on the first profile save and only an admin
moves it. Discovery surfaces (verified producers, verified products) show
approved producers only; the filter is applied again on whatever the store
returns.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan._errors import MarketError, Errors
from artisan._types import ProducerId
from artisan.cache import Family, Mutation, QueryKey
from artisan.domain import (
    ApprovalEvent,
    ApprovalInfo,
    ApprovalStatus,
    Principal,
    Producer,
    ProducerProfileDraft,
    validate_draft,
)
from artisan.lifecycle import check_approval, discoverable
from artisan.lift import from_result
from artisan.store import EntityStore, StoreResult

if TYPE_CHECKING:
    from artisan.session import MarketSession

logger = logging.getLogger(__name__)

# Admin review order: undecided first.
_REVIEW_ORDER = {
    ApprovalStatus.PENDING: 0,
    ApprovalStatus.REJECTED: 1,
    ApprovalStatus.APPROVED: 2,
}


async def _verified_producers(store: EntityStore, me: Principal) -> StoreResult[list[Producer]]:
    match await store.list_approved_producers(me):
        case Ok(producers):
            return Ok(discoverable(producers))
        case Error(e):
            return Error(e)


class ProducerService:
    def __init__(self, session: MarketSession) -> None:
        self.session = session

    # ─── Profile ────────────────────────────────────────────────────────────

    def save_profile(self, draft: ProducerProfileDraft | Mapping[str, Any]) -> LazyCoroResult[Producer, MarketError]:
        """Create or update the caller's profile. Approval status is never touched here."""
        match validate_draft(ProducerProfileDraft, draft):
            case Error(e):
                return from_result(Error(e))
            case Ok(valid):
                pass

        async def _run() -> Result[Producer, MarketError]:
            result = await self.session.mutate(
                Mutation.SAVE_PRODUCER, lambda store, me: store.save_producer(me, valid)
            )
            match result:
                case Ok(producer):
                    logger.info(f"producer profile {producer.id} saved ({producer.approval})")
            return result

        return LazyCoroResult(_run)

    def get(self, producer_id: ProducerId) -> LazyCoroResult[Producer, MarketError]:
        return self.session.read(
            QueryKey(Family.PRODUCER, (producer_id,)),
            lambda store, me: store.get_producer(me, producer_id),
        )

    def list_all(self) -> LazyCoroResult[list[Producer], MarketError]:
        return self.session.read(QueryKey(Family.PRODUCERS), lambda store, me: store.list_producers(me))

    def list_verified(self) -> LazyCoroResult[list[Producer], MarketError]:
        return self.session.read(QueryKey(Family.VERIFIED_PRODUCERS), _verified_producers)

    # ─── Approval ───────────────────────────────────────────────────────────

    def request_approval(self) -> LazyCoroResult[ApprovalInfo, MarketError]:
        """Ask for review of the caller's own profile. Repeating it changes nothing."""
        return self.session.mutate(Mutation.REQUEST_APPROVAL, lambda store, me: store.request_approval(me))

    def set_approval(self, producer_id: ProducerId, status: ApprovalStatus) -> LazyCoroResult[ApprovalInfo, MarketError]:
        """
        Admin decision. Checked locally against the store's current status
        first; re-applying the current status is a no-op.
        """

        async def _run() -> Result[ApprovalInfo, MarketError]:
            match self.session.caller():
                case Error(e):
                    return Error(e)
                case Ok(me):
                    if not me.is_admin:
                        return Error(Errors.forbidden("only an admin may change producer approval"))
            current = await self.session.call(
                lambda store, caller: store.get_producer(caller, producer_id),
                what="get_producer",
                idempotent=True,
            )
            match current:
                case Error(e):
                    return Error(e)
                case Ok(producer):
                    pass
            match check_approval(me, producer_id, producer.approval, status):
                case Error(e):
                    return Error(e)
                case Ok(False):
                    return Ok(ApprovalInfo(producer_id, producer.approval))

            result = await self.session.mutate(
                Mutation.SET_APPROVAL,
                lambda store, caller: store.set_approval(caller, producer_id, status),
            )
            match result:
                case Ok(info):
                    logger.info(f"producer {producer_id}: {producer.approval} -> {info.status} by {me.id}")
            return result

        return LazyCoroResult(_run)

    def approve(self, producer_id: ProducerId) -> LazyCoroResult[ApprovalInfo, MarketError]:
        return self.set_approval(producer_id, ApprovalStatus.APPROVED)

    def reject(self, producer_id: ProducerId) -> LazyCoroResult[ApprovalInfo, MarketError]:
        return self.set_approval(producer_id, ApprovalStatus.REJECTED)

    def list_approvals(self) -> LazyCoroResult[list[ApprovalInfo], MarketError]:
        return self.session.read(QueryKey(Family.APPROVALS), lambda store, me: store.list_approvals(me))

    def approval_history(self, producer_id: ProducerId) -> LazyCoroResult[list[ApprovalEvent], MarketError]:
        return self.session.read(
            QueryKey(Family.APPROVAL_HISTORY, (producer_id,)),
            lambda store, me: store.approval_history(me, producer_id),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Derived views
# ═══════════════════════════════════════════════════════════════════════════════


def review_queue(producers: Iterable[Producer]) -> list[Producer]:
    """Pending first, then rejected, then approved; stable within each group."""
    return sorted(producers, key=lambda p: _REVIEW_ORDER[p.approval])


def approval_counts(producers: Iterable[Producer]) -> dict[ApprovalStatus, int]:
    counts = Counter(p.approval for p in producers)
    return {status: counts.get(status, 0) for status in ApprovalStatus}


def filter_by_region(producers: Iterable[Producer], region: str | None) -> list[Producer]:
    """Case-insensitive substring match; ``None`` or ``"All"`` keeps everyone."""
    if not region or region.lower() == "all":
        return list(producers)
    needle = region.lower()
    return [p for p in producers if needle in p.region.lower()]


__all__ = ("ProducerService", "review_queue", "approval_counts", "filter_by_region")
