"""
Live session machine: scheduled ──► active ──► ended, one step at a time.

Sessions are never activated by the clock; only their producer moves them.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from kungfu import Result, Ok, Error

from artisan._errors import ErrorKind, MarketError, Errors
from artisan.domain import LiveStream, LiveStreamStatus, Principal

LIVE_EDGES: Mapping[LiveStreamStatus, frozenset[LiveStreamStatus]] = MappingProxyType({
    LiveStreamStatus.SCHEDULED: frozenset({LiveStreamStatus.ACTIVE}),
    LiveStreamStatus.ACTIVE: frozenset({LiveStreamStatus.ENDED}),
    LiveStreamStatus.ENDED: frozenset(),
})

INITIAL_LIVE_STATUS = LiveStreamStatus.SCHEDULED


def _owner(stream: LiveStream, caller: Principal) -> Result[None, MarketError]:
    if caller.id != stream.producer_id:
        return Error(Errors.forbidden(f"live:{stream.id} belongs to another producer"))
    return Ok(None)


def check_live_transition(
    stream: LiveStream,
    caller: Principal,
    target: LiveStreamStatus,
) -> Result[LiveStreamStatus, MarketError]:
    match _owner(stream, caller):
        case Error(e):
            return Error(e)
    if target not in LIVE_EDGES[stream.status]:
        return Error(Errors.invalid_transition(f"live:{stream.id}", stream.status, target))
    return Ok(target)


def check_story_edit(stream: LiveStream, caller: Principal) -> Result[None, MarketError]:
    match _owner(stream, caller):
        case Error(e):
            return Error(e)
    if stream.status == LiveStreamStatus.ENDED:
        return Error(MarketError(
            ErrorKind.INVALID_TRANSITION,
            f"live:{stream.id}: story is read-only once the session has ended",
        ))
    return Ok(None)


__all__ = (
    "LIVE_EDGES",
    "INITIAL_LIVE_STATUS",
    "check_live_transition",
    "check_story_edit",
)
