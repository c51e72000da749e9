"""
Order lifecycle machine.

    pending ──► confirmed ──► shipped ──► delivered
       │            │
       └────────────┴──► cancelled

``delivered`` and ``cancelled`` are terminal. Inventory is never touched here:
stock moves exactly once, when the order is created.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from kungfu import Result, Ok, Error

from artisan._errors import MarketError, Errors
from artisan.domain import Order, OrderStatus, Principal

# ═══════════════════════════════════════════════════════════════════════════════
# Edges
# ═══════════════════════════════════════════════════════════════════════════════

ORDER_EDGES: Mapping[OrderStatus, frozenset[OrderStatus]] = MappingProxyType({
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
})

BUYER_EDGES: Mapping[OrderStatus, frozenset[OrderStatus]] = MappingProxyType({
    OrderStatus.PENDING: frozenset({OrderStatus.CANCELLED}),
})


def is_terminal(status: OrderStatus) -> bool:
    return not ORDER_EDGES[status]


def allowed_transitions(order: Order, caller: Principal) -> frozenset[OrderStatus]:
    """Targets ``caller`` may move ``order`` to from its current status."""
    allowed: frozenset[OrderStatus] = frozenset()
    if caller.id == order.producer_id:
        allowed |= ORDER_EDGES[order.status]
    if caller.id == order.buyer:
        allowed |= BUYER_EDGES.get(order.status, frozenset())
    return allowed


def check_transition(
    order: Order,
    caller: Principal,
    target: OrderStatus,
) -> Result[OrderStatus, MarketError]:
    """
    Validate ``order.status -> target`` for ``caller``.

    Strangers are ``FORBIDDEN``; the buyer or owning producer asking for an
    edge they do not hold gets ``INVALID_TRANSITION``.
    """
    if caller.id not in (order.buyer, order.producer_id):
        return Error(Errors.forbidden(f"order:{order.id} belongs to another buyer and producer"))
    if target not in allowed_transitions(order, caller):
        return Error(Errors.invalid_transition(f"order:{order.id}", order.status, target))
    return Ok(target)


def can_view(order: Order, caller: Principal) -> bool:
    return caller.is_admin or caller.id in (order.buyer, order.producer_id)


__all__ = (
    "ORDER_EDGES",
    "BUYER_EDGES",
    "is_terminal",
    "allowed_transitions",
    "check_transition",
    "can_view",
)
