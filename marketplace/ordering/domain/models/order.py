import uuid

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models.catalog import Gig
from utils.service_base import ForbiddenError

User = get_user_model()


class OrderQuerySet(models.QuerySet):
    def delete(self):
        raise ForbiddenError("Orders are kept for auditing and cannot be deleted")

    def completed(self):
        return self.filter(is_completed=True)


class Order(models.Model):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    FULFILLMENT_STATUS_CHOICES = [
        (PENDING, "Pending"),
        (IN_PROGRESS, "In Progress"),
        (DELIVERED, "Delivered"),  # Seller marker, buyer acceptance still required
        (COMPLETED, "Completed"),  # Only set by accepting a delivery
        (CANCELLED, "Cancelled"),
    ]

    TERMINAL_STATUSES = (COMPLETED, CANCELLED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gig = models.ForeignKey(Gig, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    buyer = models.ForeignKey(User, on_delete=models.PROTECT, related_name="orders")
    seller = models.ForeignKey(User, on_delete=models.PROTECT, related_name="sales")

    # Gig snapshot at time of purchase
    title = models.CharField(max_length=200)
    cover = models.URLField(max_length=2000, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)

    # Payment
    payment_intent_ref = models.CharField(max_length=255, unique=True)
    is_completed = models.BooleanField(default=False)  # Monotonic, set once by capture confirmation
    completed_at = models.DateTimeField(null=True, blank=True)

    # Fulfillment
    fulfillment_status = models.CharField(max_length=20, choices=FULFILLMENT_STATUS_CHOICES, default=PENDING)
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="cancelled_orders"
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        app_label = "marketplace"
        indexes = [
            models.Index(fields=["buyer", "is_completed", "-created_at"], name="order_buyer_paid_idx"),
            models.Index(fields=["seller", "is_completed", "-created_at"], name="order_seller_paid_idx"),
        ]

    def delete(self, *args, **kwargs):
        raise ForbiddenError("Orders are kept for auditing and cannot be deleted")

    def is_party(self, user) -> bool:
        return user.pk in (self.buyer_id, self.seller_id)

    def __str__(self):
        return f"Order {str(self.id)[:8]} for {self.title}"


class Delivery(models.Model):
    """A seller's submitted work for an order; resubmission adds a new row."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="deliveries")
    seller = models.ForeignKey(User, on_delete=models.PROTECT, related_name="submitted_deliveries")
    buyer = models.ForeignKey(User, on_delete=models.PROTECT, related_name="received_deliveries")

    artifact_ref = models.URLField(max_length=2000)
    message = models.TextField(blank=True)

    is_accepted = models.BooleanField(default=False)
    accepted_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        app_label = "marketplace"
        verbose_name_plural = "deliveries"

    def __str__(self):
        return f"Delivery {str(self.id)[:8]} for order {str(self.order_id)[:8]}"


class OrderStatusUpdate(models.Model):
    """Free-text progress note from the seller, visible to the buyer."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="status_updates")
    author = models.ForeignKey(User, on_delete=models.PROTECT, related_name="order_status_updates")
    title = models.CharField(max_length=200)
    body = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        app_label = "marketplace"

    def __str__(self):
        return f"{self.title} ({str(self.order_id)[:8]})"
