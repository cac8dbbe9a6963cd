from marketplace.catalog.domain.models import Gig, Review
from marketplace.ordering.domain.models import Delivery, Order, OrderStatusUpdate


__all__ = [
    "Gig",
    "Review",
    "Order",
    "Delivery",
    "OrderStatusUpdate",
]
