"""
Payment — gateway contract, outcome variants and the checkout adapter.

    from artisan.payment import PaymentAdapter, Paid, UserCancelled

    adapter = PaymentAdapter(gateway)
    match await adapter.charge(adapter.quote(price, qty), adapter.metadata(title)):
        case Ok(payment_id): ...
        case Error(e): ...   # PAYMENT_CANCELLED / PAYMENT_FAILED / REMOTE_UNAVAILABLE
"""

from artisan.payment._types import (
    Paid,
    UserCancelled,
    GatewayUnavailable,
    PaymentFailed,
    PaymentOutcome,
    PaymentMetadata,
    FeeSplit,
    PaymentGateway,
)
from artisan.payment._adapter import PaymentAdapter, split_fee, outcome_to_result

__all__ = (
    "Paid",
    "UserCancelled",
    "GatewayUnavailable",
    "PaymentFailed",
    "PaymentOutcome",
    "PaymentMetadata",
    "FeeSplit",
    "PaymentGateway",
    "PaymentAdapter",
    "split_fee",
    "outcome_to_result",
)
