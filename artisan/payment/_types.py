"""
Payment gateway contract and outcome variants.

The gateway drives an interactive, user-facing flow (UPI first, then card,
netbanking, wallet). Its answer is exactly one outcome variant; nothing
else is inferred from it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Paid:
    payment_id: str


@dataclass(frozen=True, slots=True)
class UserCancelled:
    pass


@dataclass(frozen=True, slots=True)
class GatewayUnavailable:
    reason: str


@dataclass(frozen=True, slots=True)
class PaymentFailed:
    reason: str


type PaymentOutcome = Paid | UserCancelled | GatewayUnavailable | PaymentFailed


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PaymentMetadata:
    """What the gateway shows the payer."""
    name: str
    currency: str
    description: str = "Purchase"
    prefill_name: str = ""
    prefill_contact: str = ""
    notes: Mapping[str, str] = field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True)
class FeeSplit:
    """Display-only split of a total between producer and platform."""
    total: int
    producer_share: int
    platform_fee: int


class PaymentGateway(Protocol):
    """
    External payment provider.

    Example:
        class RazorpayGateway:
            async def open(self, amount_minor: int, metadata: PaymentMetadata) -> PaymentOutcome:
                response = await self.checkout.open(amount=amount_minor, currency=metadata.currency, ...)
                return Paid(response["razorpay_payment_id"])
    """

    async def open(self, amount_minor: int, metadata: PaymentMetadata) -> PaymentOutcome:
        ...


__all__ = (
    "Paid",
    "UserCancelled",
    "GatewayUnavailable",
    "PaymentFailed",
    "PaymentOutcome",
    "PaymentMetadata",
    "FeeSplit",
    "PaymentGateway",
)
