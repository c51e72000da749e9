"""
Lift — Helpers for lifting remote calls into artisan results.

Re-exports from combinators.lift with artisan-specific additions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Awaitable

from kungfu import LazyCoroResult, Result, Ok, Error
from combinators import flow

# Re-export from combinators.lift
from combinators.lift import catching_async

from artisan._errors import MarketError, Errors

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Artisan-specific helpers
# ═══════════════════════════════════════════════════════════════════════════════

def from_result[T, E](result: Result[T, E]) -> LazyCoroResult[T, E]:
    """Lift a Result into LazyCoroResult."""
    async def _run() -> Result[T, E]:
        return result
    return LazyCoroResult(_run)


def _failed(what: str) -> Callable[[Exception], MarketError]:
    def on_error(e: Exception) -> MarketError:
        logger.warning(f"{what}: remote call failed: {e!r}")
        return Errors.remote_unavailable(f"{what} failed", str(e))
    return on_error


def _timed_out(what: str, timeout: float) -> Callable[[object], MarketError]:
    def on_timeout(e: object) -> MarketError:
        logger.warning(f"{what}: timed out after {timeout}s")
        return Errors.remote_unavailable(f"{what} timed out", repr(e))
    return on_timeout


def remote[T](
    call: Callable[[], Awaitable[Result[T, MarketError]]],
    *,
    what: str,
    timeout: float | None = None,
) -> LazyCoroResult[T, MarketError]:
    """
    Guard a single remote call.

    Domain rejections come back as ``Error`` from the store and pass through
    untouched. Transport failures (exceptions, timeouts) become
    ``REMOTE_UNAVAILABLE``. Cancellation is never intercepted.

    Example:
        result = await remote(lambda: store.get_product(caller, pid), what="get_product")
    """

    async def _attempt() -> Result[T, MarketError]:
        match await catching_async(call, on_error=_failed(what)):
            case Ok(answer):
                return answer
            case Error(e):
                return Error(e)

    if timeout is None:
        return LazyCoroResult(_attempt)

    on_timeout = _timed_out(what, timeout)

    async def _run() -> Result[T, MarketError]:
        bounded = flow(LazyCoroResult(_attempt)).timeout(seconds=timeout).compile()
        # The timeout may surface as an error value or as a raised TimeoutError.
        match await catching_async(lambda: bounded, on_error=on_timeout):
            case Ok(Ok(value)):
                return Ok(value)
            case Ok(Error(MarketError() as e)):
                return Error(e)
            case Ok(Error(other)):
                return Error(on_timeout(other))
            case Error(e):
                return Error(e)

    return LazyCoroResult(_run)


def retrying[T](
    action: LazyCoroResult[T, MarketError],
    *,
    attempts: int,
    delay: float = 0.0,
    what: str = "call",
) -> LazyCoroResult[T, MarketError]:
    """
    Re-run an idempotent computation while it fails with a retryable error,
    ``attempts`` times at most, ``delay`` seconds apart.

    Only use this for reads and idempotent writes (follow/unfollow); order
    creation and status transitions must never be wrapped.
    """

    def retry_on(e: MarketError) -> bool:
        if not e.retryable:
            return False
        logger.info(f"{what}: {e}, retrying")
        return True

    return (
        flow(action)
        .retry(
            times=attempts,
            backoff_initial=delay,
            backoff_factor=1.0,
            backoff_max=delay,
            jitter=False,
            retry_on=retry_on,
        )
        .compile()
    )


__all__ = (
    # From combinators.lift
    "catching_async",
    # Artisan additions
    "from_result",
    "remote",
    "retrying",
)
