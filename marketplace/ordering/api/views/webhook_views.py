import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from infrastructure.container import container
from infrastructure.payments import PaymentException
from marketplace.api.serializers import ErrorResponseSerializer, WebhookAckSerializer

logger = logging.getLogger(__name__)

CAPTURE_EVENT = "payment_intent.succeeded"


@extend_schema(
    operation_id="payments_webhook",
    summary="Payment processor webhook",
    description="""
    Called by the processor, not by users. The signature header is verified
    before anything is read from the payload. `payment_intent.succeeded`
    completes the matching order; redelivered events are acknowledged without
    side effects and other event types are ignored.
    """,
    request=None,
    responses={
        200: WebhookAckSerializer,
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Bad payload or signature"),
    },
    tags=["Marketplace - Payments"],
)
@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def payment_webhook(request):
    payload = request.body
    signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")

    try:
        event = container.payment().verify_webhook(payload, signature)
    except PaymentException as e:
        logger.warning(f"Rejected payment webhook: {e}")
        return Response({"detail": str(e), "code": "invalid_webhook"}, status=status.HTTP_400_BAD_REQUEST)

    if event.event_type != CAPTURE_EVENT:
        logger.debug(f"Ignoring payment webhook event {event.event_type}")
        return Response({"received": True}, status=status.HTTP_200_OK)

    completed = container.order_service().confirm_capture(event.data.get("id"), source="webhook")
    return Response({"received": True, "completed": completed}, status=status.HTTP_200_OK)
