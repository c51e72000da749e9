"""
Payment Gateway Adapter — turns gateway outcomes into market results.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from decimal import Decimal, ROUND_HALF_UP

from kungfu import Result, Ok, Error, LazyCoroResult
from combinators.lift import catching_async

from artisan._config import Settings, get_settings
from artisan._errors import MarketError, Errors
from artisan.payment._types import (
    FeeSplit,
    GatewayUnavailable,
    Paid,
    PaymentFailed,
    PaymentGateway,
    PaymentMetadata,
    PaymentOutcome,
    UserCancelled,
)

logger = logging.getLogger(__name__)


def split_fee(total: int, fee_percent: int) -> FeeSplit:
    """Producer share is rounded half-up; the platform fee takes the remainder."""
    share = (Decimal(total) * (100 - fee_percent) / 100).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    producer_share = int(share)
    return FeeSplit(total=total, producer_share=producer_share, platform_fee=total - producer_share)


def outcome_to_result(outcome: PaymentOutcome) -> Result[str, MarketError]:
    match outcome:
        case Paid(payment_id):
            return Ok(payment_id)
        case UserCancelled():
            return Error(Errors.payment_cancelled())
        case PaymentFailed(reason):
            return Error(Errors.payment_failed(reason))
        case GatewayUnavailable(reason):
            return Error(Errors.remote_unavailable("payment gateway unavailable", reason))


class PaymentAdapter:
    """
    Example:
        adapter = PaymentAdapter(gateway)
        split = adapter.quote(product.price, quantity)
        payment_id = await adapter.charge(split, PaymentMetadata(name=product.title, currency="INR"))
    """

    def __init__(self, gateway: PaymentGateway, settings: Settings | None = None) -> None:
        self.gateway = gateway
        self.settings = settings or get_settings()

    def quote(self, unit_price: int, quantity: int) -> FeeSplit:
        return split_fee(unit_price * quantity, self.settings.PLATFORM_FEE_PERCENT)

    def metadata(
        self,
        name: str,
        description: str = "Purchase",
        notes: Mapping[str, str] | None = None,
    ) -> PaymentMetadata:
        return PaymentMetadata(
            name=name,
            currency=self.settings.CURRENCY,
            description=description,
            notes=dict(notes or {}),
        )

    def charge(self, split: FeeSplit, metadata: PaymentMetadata) -> LazyCoroResult[str, MarketError]:
        """
        Open the gateway flow for ``split.total``.

        A raising gateway is treated as unavailable. Task cancellation
        (the payer walking away) propagates and records nothing.
        """
        amount_minor = split.total * self.settings.MINOR_UNITS
        if metadata.currency != self.settings.CURRENCY:
            metadata = replace(metadata, currency=self.settings.CURRENCY)

        async def _run() -> Result[str, MarketError]:
            opened = await catching_async(
                lambda: self.gateway.open(amount_minor, metadata),
                on_error=lambda e: GatewayUnavailable(repr(e)),
            )
            match opened:
                case Ok(outcome):
                    result = outcome_to_result(outcome)
                case Error(unavailable):
                    result = outcome_to_result(unavailable)
            match result:
                case Ok(payment_id):
                    logger.info(f"payment {payment_id} captured for {amount_minor} {metadata.currency}")
                case Error(e):
                    logger.warning(f"payment for {amount_minor} {metadata.currency} not captured: {e}")
            return result

        return LazyCoroResult(_run)


__all__ = ("PaymentAdapter", "split_fee", "outcome_to_result")
