"""
FulfillmentService - Fulfillment Tracker

Moves an order through pending -> in_progress -> delivered -> completed (or
cancelled) and records deliveries and progress notes.

Every status write is a conditional update filtered on the allowed source
states, so two concurrent requests can never move an order backwards: the
loser updates zero rows and gets InvalidTransitionError.
"""

import logging
from typing import List

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from marketplace.infra.observability.metrics import deliveries_total, fulfillment_transitions_total
from marketplace.ordering.domain.models.order import Delivery, Order, OrderStatusUpdate
from utils.service_base import (
    AlreadyAcceptedError,
    BaseService,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

User = get_user_model()
logger = logging.getLogger(__name__)

# Target status -> states it may be entered from. COMPLETED is set only by
# accept_delivery.
ALLOWED_SOURCES = {
    Order.IN_PROGRESS: (Order.PENDING,),
    Order.DELIVERED: (Order.PENDING, Order.IN_PROGRESS),
    Order.CANCELLED: (Order.PENDING, Order.IN_PROGRESS),
}

SELLER_ONLY_STATUSES = (Order.IN_PROGRESS, Order.DELIVERED)

# States from which accepting a delivery completes the order
ACCEPTABLE_STATES = (Order.PENDING, Order.IN_PROGRESS, Order.DELIVERED)


class FulfillmentService(BaseService):
    def _get_order(self, order_id, user: User) -> Order:
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            raise NotFoundError("Order not found")
        if not order.is_party(user):
            raise ForbiddenError("You are not a party to this order")
        return order

    def _require_payment(self, order: Order):
        if settings.MARKETPLACE.get("REQUIRE_PAYMENT_BEFORE_FULFILLMENT") and not order.is_completed:
            raise ValidationError("Payment has not been captured for this order")

    @BaseService.log_performance
    def update_status(self, order_id, user: User, new_status: str) -> Order:
        """
        Move the order to ``new_status``.

        Raises:
            ValidationError: unknown status
            NotFoundError / ForbiddenError: order missing or caller not allowed
            InvalidTransitionError: the move is not forward from the current state
        """
        valid_statuses = {choice for choice, _ in Order.FULFILLMENT_STATUS_CHOICES}
        if new_status not in valid_statuses:
            raise ValidationError(f"Unknown fulfillment status: {new_status}")

        order = self._get_order(order_id, user)

        if new_status in SELLER_ONLY_STATUSES and order.seller_id != user.pk:
            raise ForbiddenError("Only the seller can change this status")

        if order.fulfillment_status == new_status:
            return order

        if new_status == Order.COMPLETED:
            raise InvalidTransitionError("An order is completed by accepting a delivery")

        sources = ALLOWED_SOURCES.get(new_status, ())
        if order.fulfillment_status not in sources:
            fulfillment_transitions_total.labels(to_status=new_status, outcome="rejected").inc()
            raise InvalidTransitionError(f"Cannot move an order from {order.fulfillment_status} to {new_status}")

        if new_status == Order.DELIVERED and not order.deliveries.exists():
            raise InvalidTransitionError("Submit a delivery before marking the order delivered")

        now = timezone.now()
        changes = {"fulfillment_status": new_status, "updated_at": now}
        if new_status == Order.CANCELLED:
            changes.update(cancelled_at=now, cancelled_by=user)

        updated = Order.objects.filter(pk=order.pk, fulfillment_status__in=sources).update(**changes)
        order.refresh_from_db()

        if not updated and order.fulfillment_status != new_status:
            fulfillment_transitions_total.labels(to_status=new_status, outcome="rejected").inc()
            raise InvalidTransitionError(f"Cannot move an order from {order.fulfillment_status} to {new_status}")

        fulfillment_transitions_total.labels(to_status=new_status, outcome="applied").inc()
        self.logger.info(f"Order {order.id} moved to {new_status} by {user.pk}")
        return order

    @BaseService.log_performance
    def submit_delivery(self, order_id, seller: User, artifact_ref: str, message: str = "") -> Delivery:
        """Record a delivery; the order status is left as it is."""
        if not artifact_ref:
            raise ValidationError("A delivery needs an artifact reference")

        order = self._get_order(order_id, seller)
        if order.seller_id != seller.pk:
            raise ForbiddenError("Only the seller can submit a delivery")

        with transaction.atomic():
            # Lock the order against a concurrent cancellation
            order = Order.objects.select_for_update().get(pk=order.pk)
            if order.fulfillment_status in Order.TERMINAL_STATUSES:
                raise InvalidTransitionError(f"Cannot deliver an order that is {order.fulfillment_status}")
            self._require_payment(order)

            delivery = Delivery.objects.create(
                order=order,
                seller_id=order.seller_id,
                buyer_id=order.buyer_id,
                artifact_ref=artifact_ref,
                message=message or "",
            )

        deliveries_total.labels(event="submitted").inc()
        self.logger.info(f"Delivery {delivery.id} submitted for order {order.id}")
        return delivery

    @BaseService.log_performance
    def accept_delivery(self, delivery_id, buyer: User) -> Order:
        """
        Accept a delivery and complete its order in one transaction.

        Raises:
            NotFoundError: delivery does not exist
            ForbiddenError: caller is not the order's buyer
            AlreadyAcceptedError: the delivery was accepted before
            InvalidTransitionError: the order was cancelled
        """
        with transaction.atomic():
            delivery = Delivery.objects.select_related("order").filter(pk=delivery_id).first()
            if delivery is None:
                raise NotFoundError("Delivery not found")
            order = delivery.order
            if order.buyer_id != buyer.pk:
                raise ForbiddenError("Only the buyer can accept this delivery")
            self._require_payment(order)

            now = timezone.now()
            accepted = Delivery.objects.filter(pk=delivery.pk, is_accepted=False).update(
                is_accepted=True, accepted_at=now
            )
            if not accepted:
                raise AlreadyAcceptedError()

            completed = Order.objects.filter(pk=order.pk, fulfillment_status__in=ACCEPTABLE_STATES).update(
                fulfillment_status=Order.COMPLETED, fulfilled_at=now, updated_at=now
            )
            order.refresh_from_db()
            if not completed and order.fulfillment_status == Order.CANCELLED:
                # Rolls back the acceptance too
                raise InvalidTransitionError("Cannot accept a delivery for a cancelled order")

        deliveries_total.labels(event="accepted").inc()
        fulfillment_transitions_total.labels(to_status=Order.COMPLETED, outcome="applied").inc()
        self.logger.info(f"Delivery {delivery.id} accepted, order {order.id} completed")
        return order

    @BaseService.log_performance
    def post_status_update(self, order_id, seller: User, title: str, body: str = "") -> OrderStatusUpdate:
        if not title:
            raise ValidationError("A status update needs a title")

        order = self._get_order(order_id, seller)
        if order.seller_id != seller.pk:
            raise ForbiddenError("Only the seller can post status updates")

        return OrderStatusUpdate.objects.create(order=order, author=seller, title=title, body=body or "")

    @BaseService.log_performance
    def list_deliveries(self, order_id, user: User) -> List[Delivery]:
        order = self._get_order(order_id, user)
        return list(order.deliveries.order_by("created_at"))

    @BaseService.log_performance
    def list_status_updates(self, order_id, user: User) -> List[OrderStatusUpdate]:
        order = self._get_order(order_id, user)
        return list(order.status_updates.order_by("created_at"))
