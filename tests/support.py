# tests/support.py
"""Helpers shared by the test modules."""

from collections import Counter
from typing import Any

import pytest
from kungfu import Result, Ok, Error

from artisan._errors import ErrorKind, MarketError
from artisan.domain import Principal, Role
from artisan.payment import Paid, PaymentMetadata, PaymentOutcome

ADMIN = Principal("admin-1", Role.ADMIN)
BUYER = Principal("buyer-1")
OTHER_BUYER = Principal("buyer-2")
PRODUCER = Principal("producer-1")
OTHER_PRODUCER = Principal("producer-2")


def ok[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"expected Ok, got Error({e})")


def err(result: Result[Any, MarketError], kind: ErrorKind | None = None) -> MarketError:
    match result:
        case Error(e):
            if kind is not None:
                assert e.kind == kind, f"expected {kind.name}, got {e}"
            return e
        case Ok(value):
            pytest.fail(f"expected Error, got Ok({value!r})")


class FlakyStore:
    """
    Wraps a store, counts calls per method and raises ``ConnectionError``
    for the first ``failures[name]`` calls of a method.
    """

    def __init__(self, inner: Any, failures: dict[str, int] | None = None) -> None:
        self.inner = inner
        self.failures = dict(failures or {})
        self.calls: Counter[str] = Counter()

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.calls[name] += 1
            if self.failures.get(name, 0) > 0:
                self.failures[name] -= 1
                raise ConnectionError(f"{name}: connection reset by peer")
            return await attr(*args, **kwargs)

        return wrapper


class FakeGateway:
    """Answers every ``open`` with ``outcome`` (or raises ``raises``), recording requests."""

    def __init__(
        self,
        outcome: PaymentOutcome = Paid("pay_test_1"),
        raises: Exception | None = None,
        before_answer: Any = None,
    ) -> None:
        self.outcome = outcome
        self.raises = raises
        self.before_answer = before_answer
        self.requests: list[tuple[int, PaymentMetadata]] = []
        self.answers: list[PaymentOutcome] = []

    async def open(self, amount_minor: int, metadata: PaymentMetadata) -> PaymentOutcome:
        self.requests.append((amount_minor, metadata))
        if self.before_answer is not None:
            await self.before_answer()
        if self.raises is not None:
            raise self.raises
        self.answers.append(self.outcome)
        return self.outcome
