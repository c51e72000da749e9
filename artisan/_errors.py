"""
Error taxonomy.

Every public operation returns ``Result[T, MarketError]``. The ``kind`` is
what callers branch on to render a specific message.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class ErrorKind(Enum):
    """Market error kinds."""
    VALIDATION = auto()
    INSUFFICIENT_STOCK = auto()
    INVALID_TRANSITION = auto()
    FORBIDDEN = auto()
    PAYMENT_REQUIRED = auto()
    PAYMENT_CANCELLED = auto()
    PAYMENT_FAILED = auto()
    NOT_FOUND = auto()
    REMOTE_UNAVAILABLE = auto()


@dataclass(frozen=True, slots=True)
class MarketError:
    """Market operation error."""
    kind: ErrorKind
    message: str
    reason: str | None = None

    @property
    def retryable(self) -> bool:
        """Only transport failures may be retried, and only for idempotent calls."""
        return self.kind == ErrorKind.REMOTE_UNAVAILABLE

    def __str__(self) -> str:
        if self.reason:
            return f"{self.kind.name}: {self.message} ({self.reason})"
        return f"{self.kind.name}: {self.message}"


class Errors:
    @staticmethod
    def validation(msg: str) -> MarketError:
        return MarketError(ErrorKind.VALIDATION, msg)

    @staticmethod
    def insufficient_stock(product_id: str, requested: int, available: int) -> MarketError:
        return MarketError(
            ErrorKind.INSUFFICIENT_STOCK,
            f"{product_id}: need {requested}, have {available}",
        )

    @staticmethod
    def invalid_transition(entity: str, current: object, target: object) -> MarketError:
        return MarketError(
            ErrorKind.INVALID_TRANSITION,
            f"{entity}: {_label(current)} -> {_label(target)} is not allowed",
        )

    @staticmethod
    def forbidden(msg: str) -> MarketError:
        return MarketError(ErrorKind.FORBIDDEN, msg)

    @staticmethod
    def payment_required(product_id: str) -> MarketError:
        return MarketError(ErrorKind.PAYMENT_REQUIRED, f"{product_id}: payment proof required")

    @staticmethod
    def payment_cancelled() -> MarketError:
        return MarketError(ErrorKind.PAYMENT_CANCELLED, "Payment cancelled by user")

    @staticmethod
    def payment_failed(reason: str) -> MarketError:
        return MarketError(ErrorKind.PAYMENT_FAILED, "Payment failed", reason)

    @staticmethod
    def not_found(entity: str, id: object) -> MarketError:
        return MarketError(ErrorKind.NOT_FOUND, f"{entity}:{id} not found")

    @staticmethod
    def remote_unavailable(msg: str, reason: str | None = None) -> MarketError:
        return MarketError(ErrorKind.REMOTE_UNAVAILABLE, msg, reason)


def _label(value: object) -> str:
    return str(getattr(value, "value", value))


__all__ = ("ErrorKind", "MarketError", "Errors")
