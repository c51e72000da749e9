"""
Order & inventory reconciler.

Stock is decremented only by the store's atomic decrement-and-create. The
client checks what it can locally (quantity bounds, a fresh stock read,
payment proof policy) so obvious rejections never cost a remote write, but
the store's answer is the one that counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan import saga as S
from artisan._errors import MarketError, Errors
from artisan._types import OrderId, ProductId
from artisan.cache import Mutation
from artisan.domain import Product
from artisan.payment import PaymentAdapter, PaymentGateway
from artisan.store import utcnow

if TYPE_CHECKING:
    from artisan.session import MarketSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OrphanedPayment:
    """A captured payment whose order was never created. Needs a manual refund."""
    payment_id: str
    product_id: ProductId
    quantity: int
    amount: int
    error: MarketError | None
    at: datetime


class OrderReconciler:
    def __init__(self, session: MarketSession) -> None:
        self.session = session
        self.orphaned: list[OrphanedPayment] = []

    def _fresh_product(self, product_id: ProductId) -> LazyCoroResult[Product, MarketError]:
        # Straight from the store: a cached stock count is exactly what must not be trusted here.
        return self.session.call(
            lambda store, me: store.get_product(me, product_id),
            what="get_product",
            idempotent=True,
        )

    async def _precheck(self, product_id: ProductId, quantity: int) -> Result[Product, MarketError]:
        limit = self.session.settings.MAX_ORDER_QUANTITY
        if quantity < 1 or quantity > limit:
            return Error(Errors.validation(f"quantity must be between 1 and {limit}, got {quantity}"))
        match await self._fresh_product(product_id):
            case Error(e):
                return Error(e)
            case Ok(product):
                if quantity > product.stock:
                    return Error(Errors.insufficient_stock(product_id, quantity, product.stock))
                return Ok(product)

    def create_order(
        self,
        product_id: ProductId,
        quantity: int,
        payment_proof: str | None = None,
    ) -> LazyCoroResult[OrderId, MarketError]:
        """
        Create a pending order and decrement stock, or do neither.

        Never retried: a lost reply may still have created the order.
        """

        async def _run() -> Result[OrderId, MarketError]:
            match await self._precheck(product_id, quantity):
                case Error(e):
                    return Error(e)
            if self.session.settings.REQUIRE_PAYMENT_PROOF and not payment_proof:
                return Error(Errors.payment_required(product_id))

            created = await self.session.mutate(
                Mutation.CREATE_ORDER,
                lambda store, me: store.create_order(me, product_id, quantity, payment_proof),
            )
            match created:
                case Ok(order):
                    logger.info(f"order {order.id} created: {quantity} x {product_id} for {order.buyer}")
                    return Ok(order.id)
                case Error(e):
                    logger.info(f"order for {quantity} x {product_id} rejected: {e}")
                    return Error(e)

        return LazyCoroResult(_run)

    def checkout(
        self,
        product_id: ProductId,
        quantity: int,
        gateway: PaymentGateway,
    ) -> LazyCoroResult[OrderId, MarketError]:
        """
        Payment first, then the order, with the payment id as proof.

        A cancelled or failed payment leaves no order and no stock change. If
        the order step fails after the charge went through, the payment is
        recorded in ``orphaned`` for a manual refund.
        """
        adapter = PaymentAdapter(gateway, self.session.settings)

        async def _run() -> Result[OrderId, MarketError]:
            match await self._precheck(product_id, quantity):
                case Error(e):
                    return Error(e)
                case Ok(product):
                    pass

            split = adapter.quote(product.price, quantity)
            metadata = adapter.metadata(
                product.title,
                description=f"{quantity} x {product.title}",
                notes={"product_id": product_id, "quantity": str(quantity)},
            )
            failures: list[MarketError] = []

            async def record_orphan(payment_id: str) -> None:
                orphan = OrphanedPayment(
                    payment_id=payment_id,
                    product_id=product_id,
                    quantity=quantity,
                    amount=split.total,
                    error=failures[-1] if failures else None,
                    at=utcnow(),
                )
                self.orphaned.append(orphan)
                logger.warning(
                    f"payment {payment_id} captured but order for {quantity} x {product_id} "
                    f"failed ({orphan.error}); refund manually"
                )

            def place_order(payment_id: str) -> S.SagaStep[OrderId, MarketError]:
                async def _place() -> Result[OrderId, MarketError]:
                    result = await self.create_order(product_id, quantity, payment_proof=payment_id)
                    match result:
                        case Error(e):
                            failures.append(e)
                    return result
                return S.step(LazyCoroResult(_place))

            checkout = S.step(adapter.charge(split, metadata), compensate=record_orphan).then(place_order)
            match await S.run_chain(checkout):
                case Ok(done):
                    return Ok(done.value)
                case Error(failed):
                    return Error(failed.error)

        return LazyCoroResult(_run)


__all__ = ("OrderReconciler", "OrphanedPayment")
