from rest_framework import serializers

from marketplace.catalog.api.serializers.user_serializers import UserSerializer
from marketplace.ordering.domain.models.order import Delivery, Order, OrderStatusUpdate


class OrderSerializer(serializers.ModelSerializer):
    buyer = UserSerializer(read_only=True)
    seller = UserSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "gig",
            "buyer",
            "seller",
            "title",
            "cover",
            "price",
            "payment_intent_ref",
            "is_completed",
            "completed_at",
            "fulfillment_status",
            "fulfilled_at",
            "cancelled_by",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DeliverySerializer(serializers.ModelSerializer):
    class Meta:
        model = Delivery
        fields = ["id", "order", "seller", "buyer", "artifact_ref", "message", "is_accepted", "accepted_at", "created_at"]
        read_only_fields = fields


class OrderStatusUpdateSerializer(serializers.ModelSerializer):
    author = UserSerializer(read_only=True)

    class Meta:
        model = OrderStatusUpdate
        fields = ["id", "order", "author", "title", "body", "created_at"]
        read_only_fields = fields


# ===== Request Serializers =====


class CreateOrderRequestSerializer(serializers.Serializer):
    gig_id = serializers.UUIDField(help_text="Gig to purchase")


class CheckoutResponseSerializer(serializers.Serializer):
    order = OrderSerializer()
    client_secret = serializers.CharField(help_text="Token the client needs to finish payment authorization")


class ConfirmPaymentRequestSerializer(serializers.Serializer):
    payment_intent = serializers.CharField(help_text="Payment intent reference returned at checkout")


class UpdateStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.FULFILLMENT_STATUS_CHOICES)


class SubmitDeliveryRequestSerializer(serializers.Serializer):
    artifact_ref = serializers.URLField(max_length=2000, help_text="Where the buyer can fetch the work")
    message = serializers.CharField(required=False, allow_blank=True, default="")


class PostStatusUpdateRequestSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    body = serializers.CharField(required=False, allow_blank=True, default="")
