"""
artisan — client core of a regional artisan marketplace.

    from artisan import MarketSession, connector_for
    from artisan import cache as C    # Query cache + mutation declarations
    from artisan import saga as S     # Payment → order chain
    from artisan import lifecycle     # Order / trust / live state machines
"""

from artisan import cache
from artisan import saga
from artisan import lift
from artisan import lifecycle
from artisan._types import (
    PrincipalId,
    ProducerId,
    ProductId,
    OrderId,
    LiveStreamId,
)
from artisan._errors import ErrorKind, MarketError, Errors
from artisan._config import Settings, get_settings
from artisan._logging import configure_logging
from artisan.session import (
    MarketSession,
    Handle,
    Disconnected,
    Connecting,
    Ready,
    connector_for,
)

__version__ = "0.1.0"

__all__ = (
    "cache",
    "saga",
    "lift",
    "lifecycle",
    "PrincipalId",
    "ProducerId",
    "ProductId",
    "OrderId",
    "LiveStreamId",
    "ErrorKind",
    "MarketError",
    "Errors",
    "Settings",
    "get_settings",
    "configure_logging",
    "MarketSession",
    "Handle",
    "Disconnected",
    "Connecting",
    "Ready",
    "connector_for",
)
