"""
Saga — a chain of remote effects with compensation.

    from artisan import saga as S

    checkout = S.step(charge, compensate=record_orphan).then(
        lambda payment_id: S.step(place_order(payment_id))
    )
    result = await S.run_chain(checkout)

When a later step fails, the compensators recorded by earlier steps run in
reverse order. A compensator that raises is logged and counted; it never
masks the error of the step that failed.

Once the first step of a chain has succeeded, the rest of the chain runs to
completion even if the caller is cancelled: the effect already happened and
must end up either followed through or compensated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Awaitable
from dataclasses import dataclass

from kungfu import Result, Ok, Error, LazyCoroResult

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Types
# ═══════════════════════════════════════════════════════════════════════════════

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Receives the value its step produced and undoes (or records) it."""


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """A single remote effect plus its optional compensator."""

    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None = None

    def then[U, E2](self, f: Callable[[T], SagaStep[U, E2]]) -> Then[T, U, E, E2]:
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E, E2]:
    """Sequential composition: the second step is built from the first value."""

    inner: SagaStep[T, E]
    f: Callable[[T], SagaStep[U, E2]]


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    error: E
    step_failed: int
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
) -> SagaStep[T, E]:
    return SagaStep(action=action, compensate=compensate)


# ═══════════════════════════════════════════════════════════════════════════════
# Execution
# ═══════════════════════════════════════════════════════════════════════════════

type _Recorded = tuple[object, Compensator[object]]


async def _run_step[T, E](saga_step: SagaStep[T, E], recorded: list[_Recorded]) -> Result[T, E]:
    match await saga_step.action:
        case Ok(value):
            if saga_step.compensate is not None:
                recorded.append((value, saga_step.compensate))  # type: ignore[arg-type]
            return Ok(value)
        case Error(e):
            return Error(e)


async def run_compensators(recorded: list[_Recorded]) -> tuple[int, int]:
    """Run compensators newest first. Returns (run, failed)."""
    ran = 0
    failed = 0
    for value, compensate in reversed(recorded):
        try:
            await compensate(value)
            ran += 1
        except Exception:
            logger.exception(f"compensator {getattr(compensate, '__name__', compensate)!r} failed")
            failed += 1
    return ran, failed


async def run[T, E](saga_step: SagaStep[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """Run a single step. Its own compensator never fires: nothing after it can fail."""
    recorded: list[_Recorded] = []
    match await _run_step(saga_step, recorded):
        case Ok(value):
            return Ok(SagaResult(value, steps_executed=1, compensators_recorded=len(recorded)))
        case Error(e):
            return Error(SagaError(e, step_failed=1, compensators_run=0, compensators_failed=0))


async def run_chain[T, U, E, E2](chain: Then[T, U, E, E2]) -> Result[SagaResult[U], SagaError[E | E2]]:
    """
    Run ``inner`` then the step built from its value.

    If the second step fails, the first step's compensator runs. Cancelling
    the caller after the first step succeeded does not abandon the second
    step: it settles (including compensation) before ``CancelledError``
    propagates.
    """
    recorded: list[_Recorded] = []

    match await _run_step(chain.inner, recorded):
        case Error(e):
            return Error(SagaError(e, step_failed=1, compensators_run=0, compensators_failed=0))
        case Ok(value):
            pass

    async def finish() -> Result[SagaResult[U], SagaError[E | E2]]:
        match await _run_step(chain.f(value), recorded):
            case Ok(final):
                return Ok(SagaResult(final, steps_executed=2, compensators_recorded=len(recorded)))
            case Error(e2):
                # The failed step recorded nothing; everything in `recorded` precedes it.
                ran, failed = await run_compensators(recorded)
                logger.warning(f"saga failed at step 2: {e2}; compensators run={ran} failed={failed}")
                return Error(SagaError(e2, step_failed=2, compensators_run=ran, compensators_failed=failed))

    settling = asyncio.ensure_future(finish())
    try:
        return await asyncio.shield(settling)
    except asyncio.CancelledError:
        logger.warning("saga cancelled after step 1; settling step 2 before propagating")
        await asyncio.shield(settling)
        raise


__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "SagaResult",
    "SagaError",
    "step",
    "run",
    "run_chain",
    "run_compensators",
)
