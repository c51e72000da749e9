"""
Orders — creation against live stock, checkout, status transitions.

    match await market.reconciler.create_order(product_id, quantity=2):
        case Ok(order_id): ...
        case Error(e) if e.kind == ErrorKind.INSUFFICIENT_STOCK: ...
"""

from artisan.orders._reconciler import OrderReconciler, OrphanedPayment
from artisan.orders._service import OrderService, filter_by_status

__all__ = ("OrderReconciler", "OrphanedPayment", "OrderService", "filter_by_status")
