from .order import Delivery, Order, OrderQuerySet, OrderStatusUpdate


__all__ = [
    "Order",
    "OrderQuerySet",
    "Delivery",
    "OrderStatusUpdate",
]
