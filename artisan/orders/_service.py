"""
Order reads and status transitions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan._errors import MarketError
from artisan._types import OrderId, PrincipalId, ProductId
from artisan.cache import Family, Mutation, QueryKey
from artisan.domain import Order, OrderStatus
from artisan.lifecycle import allowed_transitions, check_transition

if TYPE_CHECKING:
    from artisan.session import MarketSession

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, session: MarketSession) -> None:
        self.session = session

    def get(self, order_id: OrderId) -> LazyCoroResult[Order, MarketError]:
        return self.session.read(
            QueryKey(Family.ORDER, (order_id,)),
            lambda store, me: store.get_order(me, order_id),
        )

    def list_by_buyer(self, buyer: PrincipalId | None = None) -> LazyCoroResult[list[Order], MarketError]:
        """Orders placed by ``buyer``; the caller's own orders by default."""

        async def _run() -> Result[list[Order], MarketError]:
            match self.session.caller():
                case Error(e):
                    return Error(e)
                case Ok(me):
                    pass
            who = buyer or me.id
            return await self.session.read(
                QueryKey(Family.ORDERS_BY_BUYER, (who,)),
                lambda store, caller: store.list_orders_by_buyer(caller, who),
            )

        return LazyCoroResult(_run)

    def list_by_product(self, product_id: ProductId) -> LazyCoroResult[list[Order], MarketError]:
        return self.session.read(
            QueryKey(Family.ORDERS_BY_PRODUCT, (product_id,)),
            lambda store, me: store.list_orders_by_product(me, product_id),
        )

    def allowed(self, order: Order) -> frozenset[OrderStatus]:
        """Statuses the current caller may move ``order`` to. Empty when not connected."""
        match self.session.caller():
            case Ok(me):
                return allowed_transitions(order, me)
            case _:
                return frozenset()

    def _transition(
        self,
        order_id: OrderId,
        target: OrderStatus,
        mutation: Mutation,
    ) -> LazyCoroResult[Order, MarketError]:
        async def _run() -> Result[Order, MarketError]:
            # Check against the store's current status, not a cached one.
            current = await self.session.call(
                lambda store, me: store.get_order(me, order_id),
                what="get_order",
                idempotent=True,
            )
            match current:
                case Error(e):
                    return Error(e)
                case Ok(order):
                    pass
            match self.session.caller():
                case Error(e):
                    return Error(e)
                case Ok(me):
                    match check_transition(order, me, target):
                        case Error(e):
                            return Error(e)

            if mutation == Mutation.CANCEL_ORDER:
                result = await self.session.mutate(mutation, lambda store, me: store.cancel_order(me, order_id))
            else:
                result = await self.session.mutate(
                    mutation, lambda store, me: store.update_order_status(me, order_id, target)
                )
            match result:
                case Ok(updated):
                    logger.info(f"order {order_id}: {order.status} -> {updated.status}")
            return result

        return LazyCoroResult(_run)

    def update_status(self, order_id: OrderId, status: OrderStatus) -> LazyCoroResult[Order, MarketError]:
        return self._transition(order_id, status, Mutation.UPDATE_ORDER_STATUS)

    def cancel(self, order_id: OrderId) -> LazyCoroResult[Order, MarketError]:
        return self._transition(order_id, OrderStatus.CANCELLED, Mutation.CANCEL_ORDER)


def filter_by_status(orders: Iterable[Order], status: OrderStatus | None) -> list[Order]:
    """``None`` keeps everything."""
    return [o for o in orders if status is None or o.status == status]


__all__ = ("OrderService", "filter_by_status")
