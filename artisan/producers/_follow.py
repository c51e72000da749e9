"""
Follow graph — (buyer, producer) edges.

Follow and unfollow are idempotent, so a lost reply is simply retried.
Follower counts are always the size of the store's edge set, never a
client-side tally.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan._errors import MarketError
from artisan._types import PrincipalId, ProducerId
from artisan.cache import Family, Mutation, QueryKey
from artisan.domain import Producer

if TYPE_CHECKING:
    from artisan.session import MarketSession

logger = logging.getLogger(__name__)


class FollowGraph:
    def __init__(self, session: MarketSession) -> None:
        self.session = session

    def follow(self, producer_id: ProducerId) -> LazyCoroResult[None, MarketError]:
        async def _run() -> Result[None, MarketError]:
            result = await self.session.mutate(
                Mutation.FOLLOW,
                lambda store, me: store.follow(me, producer_id),
                idempotent=True,
            )
            match result:
                case Ok(_):
                    logger.info(f"followed producer {producer_id}")
            return result

        return LazyCoroResult(_run)

    def unfollow(self, producer_id: ProducerId) -> LazyCoroResult[None, MarketError]:
        async def _run() -> Result[None, MarketError]:
            result = await self.session.mutate(
                Mutation.UNFOLLOW,
                lambda store, me: store.unfollow(me, producer_id),
                idempotent=True,
            )
            match result:
                case Ok(_):
                    logger.info(f"unfollowed producer {producer_id}")
            return result

        return LazyCoroResult(_run)

    def _buyer(self, buyer: PrincipalId | None) -> Result[PrincipalId, MarketError]:
        if buyer is not None:
            return Ok(buyer)
        match self.session.caller():
            case Ok(me):
                return Ok(me.id)
            case Error(e):
                return Error(e)

    def is_following(
        self,
        producer_id: ProducerId,
        buyer: PrincipalId | None = None,
    ) -> LazyCoroResult[bool, MarketError]:
        async def _run() -> Result[bool, MarketError]:
            match self._buyer(buyer):
                case Error(e):
                    return Error(e)
                case Ok(who):
                    return await self.session.read(
                        QueryKey(Family.IS_FOLLOWING, (who, producer_id)),
                        lambda store, me: store.is_following(me, who, producer_id),
                    )

        return LazyCoroResult(_run)

    def follower_count(self, producer_id: ProducerId) -> LazyCoroResult[int, MarketError]:
        return self.session.read(
            QueryKey(Family.FOLLOWER_COUNT, (producer_id,)),
            lambda store, me: store.follower_count(me, producer_id),
        )

    def followed_producers(self, buyer: PrincipalId | None = None) -> LazyCoroResult[list[Producer], MarketError]:
        async def _run() -> Result[list[Producer], MarketError]:
            match self._buyer(buyer):
                case Error(e):
                    return Error(e)
                case Ok(who):
                    return await self.session.read(
                        QueryKey(Family.FOLLOWED_PRODUCERS, (who,)),
                        lambda store, me: store.list_followed(me, who),
                    )

        return LazyCoroResult(_run)


__all__ = ("FollowGraph",)
