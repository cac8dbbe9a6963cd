# Marketplace API Serializers

from marketplace.catalog.api.serializers.gig_serializers import GigSerializer
from marketplace.catalog.api.serializers.review_serializers import (
    CreateReviewRequestSerializer,
    ReviewListQuerySerializer,
    ReviewSerializer,
)
from marketplace.catalog.api.serializers.user_serializers import UserSerializer
from marketplace.ordering.api.serializers.order_serializers import (
    CheckoutResponseSerializer,
    ConfirmPaymentRequestSerializer,
    CreateOrderRequestSerializer,
    DeliverySerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
    PostStatusUpdateRequestSerializer,
    SubmitDeliveryRequestSerializer,
    UpdateStatusRequestSerializer,
)

# Import response serializers for API documentation
from .response_serializers import ErrorResponseSerializer, WebhookAckSerializer


__all__ = [
    "ErrorResponseSerializer",
    "WebhookAckSerializer",
    "UserSerializer",
    "GigSerializer",
    "ReviewSerializer",
    "CreateReviewRequestSerializer",
    "ReviewListQuerySerializer",
    "OrderSerializer",
    "DeliverySerializer",
    "OrderStatusUpdateSerializer",
    "CreateOrderRequestSerializer",
    "CheckoutResponseSerializer",
    "ConfirmPaymentRequestSerializer",
    "UpdateStatusRequestSerializer",
    "SubmitDeliveryRequestSerializer",
    "PostStatusUpdateRequestSerializer",
]
