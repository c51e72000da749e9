"""
Lifecycle — pure state machines shared by services and reference stores.

    from artisan import lifecycle as LC

    LC.check_transition(order, caller, OrderStatus.SHIPPED)
"""

from __future__ import annotations

from artisan.lifecycle._orders import (
    ORDER_EDGES,
    BUYER_EDGES,
    is_terminal,
    allowed_transitions,
    check_transition,
    can_view,
)
from artisan.lifecycle._trust import (
    APPROVAL_EDGES,
    INITIAL_APPROVAL,
    check_approval,
    is_discoverable,
    discoverable,
)
from artisan.lifecycle._live import (
    LIVE_EDGES,
    INITIAL_LIVE_STATUS,
    check_live_transition,
    check_story_edit,
)

__all__ = (
    "ORDER_EDGES",
    "BUYER_EDGES",
    "is_terminal",
    "allowed_transitions",
    "check_transition",
    "can_view",
    "APPROVAL_EDGES",
    "INITIAL_APPROVAL",
    "check_approval",
    "is_discoverable",
    "discoverable",
    "LIVE_EDGES",
    "INITIAL_LIVE_STATUS",
    "check_live_transition",
    "check_story_edit",
)
