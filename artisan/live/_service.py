"""
Live sessions: scheduling, status moves and the buyer-facing listings.

A session's start time is informational. Only its producer moves it from
``scheduled`` to ``active``; the clock never does.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan._errors import MarketError
from artisan._types import LiveStreamId, ProducerId
from artisan.cache import LIVE_LISTINGS, Family, Mutation, QueryKey
from artisan.domain import LiveStream, LiveStreamDraft, LiveStreamStatus, validate_draft
from artisan.lifecycle import check_live_transition, check_story_edit
from artisan.lift import from_result

if TYPE_CHECKING:
    from artisan.session import MarketSession

logger = logging.getLogger(__name__)

_DISPLAY_ORDER = {
    LiveStreamStatus.ACTIVE: 0,
    LiveStreamStatus.SCHEDULED: 1,
    LiveStreamStatus.ENDED: 2,
}


class LiveService:
    def __init__(self, session: MarketSession) -> None:
        self.session = session

    # ─── Writes ─────────────────────────────────────────────────────────────

    def create(self, draft: LiveStreamDraft | Mapping[str, Any]) -> LazyCoroResult[LiveStream, MarketError]:
        """Schedule a session. It starts ``scheduled`` whatever its start time."""
        match validate_draft(LiveStreamDraft, draft):
            case Error(e):
                return from_result(Error(e))
            case Ok(valid):
                pass

        async def _run() -> Result[LiveStream, MarketError]:
            result = await self.session.mutate(
                Mutation.CREATE_LIVE_STREAM, lambda store, me: store.create_live_stream(me, valid)
            )
            match result:
                case Ok(stream):
                    logger.info(f"live session {stream.id} scheduled by {stream.producer_id} for {stream.start_time}")
            return result

        return LazyCoroResult(_run)

    def _fresh(self, stream_id: LiveStreamId) -> LazyCoroResult[LiveStream, MarketError]:
        return self.session.call(
            lambda store, me: store.get_live_stream(me, stream_id),
            what="get_live_stream",
            idempotent=True,
        )

    def update_status(self, stream_id: LiveStreamId, status: LiveStreamStatus) -> LazyCoroResult[LiveStream, MarketError]:
        async def _run() -> Result[LiveStream, MarketError]:
            match self.session.caller():
                case Error(e):
                    return Error(e)
                case Ok(me):
                    pass
            match await self._fresh(stream_id):
                case Error(e):
                    return Error(e)
                case Ok(stream):
                    match check_live_transition(stream, me, status):
                        case Error(e):
                            return Error(e)

            result = await self.session.mutate(
                Mutation.UPDATE_LIVE_STREAM_STATUS,
                lambda store, caller: store.update_live_stream_status(caller, stream_id, status),
            )
            match result:
                case Ok(updated):
                    logger.info(f"live session {stream_id}: {stream.status} -> {updated.status}")
            return result

        return LazyCoroResult(_run)

    def start(self, stream_id: LiveStreamId) -> LazyCoroResult[LiveStream, MarketError]:
        return self.update_status(stream_id, LiveStreamStatus.ACTIVE)

    def end(self, stream_id: LiveStreamId) -> LazyCoroResult[LiveStream, MarketError]:
        return self.update_status(stream_id, LiveStreamStatus.ENDED)

    def update_story(self, stream_id: LiveStreamId, story: str) -> LazyCoroResult[LiveStream, MarketError]:
        async def _run() -> Result[LiveStream, MarketError]:
            match self.session.caller():
                case Error(e):
                    return Error(e)
                case Ok(me):
                    pass
            match await self._fresh(stream_id):
                case Error(e):
                    return Error(e)
                case Ok(stream):
                    match check_story_edit(stream, me):
                        case Error(e):
                            return Error(e)

            return await self.session.mutate(
                Mutation.UPDATE_LIVE_STREAM_STORY,
                lambda store, caller: store.update_live_stream_story(caller, stream_id, story),
            )

        return LazyCoroResult(_run)

    # ─── Reads ──────────────────────────────────────────────────────────────

    def get(self, stream_id: LiveStreamId) -> LazyCoroResult[LiveStream, MarketError]:
        return self.session.read(
            QueryKey(Family.LIVE_STREAM, (stream_id,)),
            lambda store, me: store.get_live_stream(me, stream_id),
        )

    def list_all(self) -> LazyCoroResult[list[LiveStream], MarketError]:
        return self.session.read(QueryKey(Family.LIVE_STREAMS), lambda store, me: store.list_live_streams(me))

    def list_by_producer(self, producer_id: ProducerId) -> LazyCoroResult[list[LiveStream], MarketError]:
        return self.session.read(
            QueryKey(Family.LIVE_STREAMS_BY_PRODUCER, (producer_id,)),
            lambda store, me: store.list_live_streams_by_producer(me, producer_id),
        )

    def list_by_status(self, status: LiveStreamStatus) -> LazyCoroResult[list[LiveStream], MarketError]:
        return self.session.read(
            QueryKey(Family.LIVE_STREAMS_BY_STATUS, (status.value,)),
            lambda store, me: store.list_live_streams_by_status(me, status),
        )

    def list_by_regions(self, regions: Sequence[str]) -> LazyCoroResult[list[LiveStream], MarketError]:
        wanted = tuple(sorted(set(regions)))
        return self.session.read(
            QueryKey(Family.LIVE_STREAMS_BY_REGIONS, wanted),
            lambda store, me: store.list_live_streams_by_regions(me, wanted),
        )

    async def watch(self, interval: float | None = None) -> AsyncIterator[Result[list[LiveStream], MarketError]]:
        """
        Yield a fresh listing now and then every ``interval`` seconds
        (``LIVE_REFRESH_SECONDS`` by default) until the consumer stops.
        """
        period = interval if interval is not None else self.session.settings.LIVE_REFRESH_SECONDS
        while True:
            await self.session.cache.invalidate(*LIVE_LISTINGS)
            yield await self.list_all()
            await asyncio.sleep(period)


# ═══════════════════════════════════════════════════════════════════════════════
# Derived views
# ═══════════════════════════════════════════════════════════════════════════════


def ordered_for_display(streams: Iterable[LiveStream]) -> list[LiveStream]:
    """Active first, then scheduled, then ended; newest start first within each."""
    by_start = sorted(streams, key=lambda s: s.start_time, reverse=True)
    return sorted(by_start, key=lambda s: _DISPLAY_ORDER[s.status])


def count_by_status(streams: Iterable[LiveStream]) -> dict[LiveStreamStatus, int]:
    counts = Counter(s.status for s in streams)
    return {status: counts.get(status, 0) for status in LiveStreamStatus}


__all__ = ("LiveService", "ordered_for_display", "count_by_status")
