"""
OrderService - Order Ledger

Creates purchase records tied to a payment intent and finalizes them exactly
once when the processor confirms capture.

Checkout talks to the processor before anything is written: the intent is
requested on a worker thread bounded by a timeout, and the Order row is only
inserted after the processor answered. A failed or slow processor therefore
leaves no Order behind (an intent opened after the timeout expired is simply
never referenced).
"""

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from infrastructure.payments import PaymentException, PaymentProviderInterface, PaymentStatus
from marketplace.catalog.domain.models.catalog import Gig
from marketplace.infra.observability.metrics import (
    order_value,
    orders_placed_total,
    payment_captures_total,
    payment_intent_duration,
)
from marketplace.ordering.domain.models.order import Order
from utils.logging_utils import mask_value
from utils.service_base import (
    BaseService,
    ForbiddenError,
    NotFoundError,
    PaymentInitiationError,
    ValidationError,
)

User = get_user_model()
logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    order: Order
    client_secret: str


class OrderService(BaseService):
    """
    Service for the order ledger.
    """

    def __init__(self, payment_provider: PaymentProviderInterface = None):
        """
        Initialize OrderService.

        Args:
            payment_provider: Processor used to open intents (injected)
        """
        super().__init__()
        if payment_provider is None:
            from infrastructure.container import container

            payment_provider = container.payment()
        self.payment_provider = payment_provider

    @BaseService.log_performance
    def create_order(self, gig_id, buyer: User, timeout: Optional[float] = None) -> CheckoutResult:
        """
        Open a payment intent for the gig price and record a pending order.

        Raises:
            NotFoundError: gig does not exist
            ValidationError: buyer owns the gig
            PaymentInitiationError: processor failed, rejected the amount or timed out
        """
        gig = Gig.objects.filter(pk=gig_id).first()
        if gig is None:
            raise NotFoundError("Gig not found")
        if gig.owner_id == buyer.pk:
            raise ValidationError("You cannot purchase your own gig")

        config = settings.MARKETPLACE
        if timeout is None:
            timeout = config["PAYMENT_INTENT_TIMEOUT_SECONDS"]

        intent = self._open_intent(gig, buyer, config["PAYMENT_CURRENCY"], timeout)

        with transaction.atomic():
            order = Order.objects.create(
                gig=gig,
                buyer=buyer,
                seller_id=gig.owner_id,
                title=gig.title,
                cover=gig.cover,
                price=gig.price,
                payment_intent_ref=intent.intent_id,
            )

        orders_placed_total.labels(status="pending").inc()
        order_value.observe(float(gig.price))
        self.logger.info(f"Order {order.id} created for gig {gig.id} (intent {mask_value(intent.intent_id)})")

        return CheckoutResult(order=order, client_secret=intent.client_secret)

    def _open_intent(self, gig: Gig, buyer: User, currency: str, timeout: float):
        metadata = {"gig_id": str(gig.id), "buyer_id": str(buyer.pk), "seller_id": str(gig.owner_id)}
        started = time.monotonic()

        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(
            self.payment_provider.create_payment_intent,
            amount=gig.price,
            currency=currency,
            metadata=metadata,
            idempotency_key=f"order-{uuid.uuid4()}",
        )
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            orders_placed_total.labels(status="timeout").inc()
            raise PaymentInitiationError(f"Payment processor did not answer within {timeout}s") from e
        except PaymentException as e:
            orders_placed_total.labels(status="payment_failed").inc()
            raise PaymentInitiationError(str(e)) from e
        finally:
            # Do not wait for a hung processor call
            executor.shutdown(wait=False)
            payment_intent_duration.observe(time.monotonic() - started)

    @BaseService.log_performance
    def confirm_capture(self, payment_intent_ref: str, source: str = "webhook") -> bool:
        """
        Mark the order paid for this intent.

        Safe to call any number of times: only the call that flips
        ``is_completed`` returns True; unknown refs are ignored.
        """
        if not payment_intent_ref:
            return False

        updated = Order.objects.filter(payment_intent_ref=payment_intent_ref, is_completed=False).update(
            is_completed=True, completed_at=timezone.now(), updated_at=timezone.now()
        )

        if updated:
            payment_captures_total.labels(source=source, outcome="completed").inc()
            self.logger.info(f"Payment captured for intent {mask_value(payment_intent_ref)}")
        else:
            payment_captures_total.labels(source=source, outcome="noop").inc()
            self.logger.debug(f"Capture for intent {mask_value(payment_intent_ref)} already applied or unknown")
        return bool(updated)

    @BaseService.log_performance
    def confirm_from_client(self, payment_intent_ref: str, user: User) -> Order:
        """
        Client-side confirmation after the browser finished authorization.

        The processor is asked for the intent status; only a captured intent
        completes the order.
        """
        order = Order.objects.filter(payment_intent_ref=payment_intent_ref).first()
        if order is None:
            raise NotFoundError("Order not found")
        if order.buyer_id != user.pk:
            raise ForbiddenError("Only the buyer can confirm this payment")

        if not order.is_completed:
            try:
                intent = self.payment_provider.retrieve_payment_intent(payment_intent_ref)
            except PaymentException as e:
                raise PaymentInitiationError(str(e)) from e
            if intent.status != PaymentStatus.SUCCEEDED:
                raise ValidationError(f"Payment has not been captured (status: {intent.status.value})")
            self.confirm_capture(payment_intent_ref, source="client")
            order.refresh_from_db()

        return order

    @BaseService.log_performance
    def list_orders(self, user: User, is_seller: Optional[bool] = None) -> List[Order]:
        """Paid orders where the caller is the seller (role flag) or the buyer, newest first."""
        if is_seller is None:
            is_seller = user.is_seller

        orders = Order.objects.completed().select_related("buyer", "seller")
        if is_seller:
            orders = orders.filter(seller=user)
        else:
            orders = orders.filter(buyer=user)
        return list(orders.order_by("-created_at"))

    @BaseService.log_performance
    def get_order(self, order_id, user: User) -> Order:
        order = Order.objects.select_related("buyer", "seller").filter(pk=order_id).first()
        if order is None:
            raise NotFoundError("Order not found")
        if not order.is_party(user):
            raise ForbiddenError("You are not a party to this order")
        return order

    def incomplete_orders(self, older_than=None):
        """Orders still waiting for capture, oldest first."""
        orders = Order.objects.filter(is_completed=False)
        if older_than is not None:
            orders = orders.filter(created_at__lte=older_than)
        return orders.order_by("created_at")

    @BaseService.log_performance
    def reconcile_payment(self, order: Order) -> bool:
        """Ask the processor about an incomplete order and apply a missed capture."""
        try:
            intent = self.payment_provider.retrieve_payment_intent(order.payment_intent_ref)
        except PaymentException as e:
            self.logger.warning(f"Could not reconcile order {order.id}: {e}")
            return False
        if intent.status != PaymentStatus.SUCCEEDED:
            return False
        return self.confirm_capture(order.payment_intent_ref, source="reconcile")
