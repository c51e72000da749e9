"""
Producer trust machine.

    pending ──► approved ◄──► rejected
       └───────────────────────▲

Admins may flip approved/rejected in either direction at any time. Nothing
returns to pending. Discovery surfaces show approved producers only.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from kungfu import Result, Ok, Error

from artisan._errors import MarketError, Errors
from artisan.domain import ApprovalStatus, Principal, Producer

APPROVAL_EDGES: Mapping[ApprovalStatus, frozenset[ApprovalStatus]] = MappingProxyType({
    ApprovalStatus.PENDING: frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED}),
    ApprovalStatus.APPROVED: frozenset({ApprovalStatus.REJECTED}),
    ApprovalStatus.REJECTED: frozenset({ApprovalStatus.APPROVED}),
})

INITIAL_APPROVAL = ApprovalStatus.PENDING


def check_approval(
    caller: Principal,
    producer_id: str,
    current: ApprovalStatus,
    target: ApprovalStatus,
) -> Result[bool, MarketError]:
    """
    Validate an admin decision. ``Ok(False)`` means target == current (no-op).
    """
    if not caller.is_admin:
        return Error(Errors.forbidden("only an admin may change producer approval"))
    if target == current:
        return Ok(False)
    if target not in APPROVAL_EDGES[current]:
        return Error(Errors.invalid_transition(f"producer:{producer_id}", current, target))
    return Ok(True)


def is_discoverable(producer: Producer) -> bool:
    return producer.approval == ApprovalStatus.APPROVED


def discoverable(producers: Iterable[Producer]) -> list[Producer]:
    return [p for p in producers if is_discoverable(p)]


__all__ = (
    "APPROVAL_EDGES",
    "INITIAL_APPROVAL",
    "check_approval",
    "is_discoverable",
    "discoverable",
)
