from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer, OrderSerializer
from utils.api_responses import UUID_LOOKUP_REGEX, service_error_response
from utils.service_base import ServiceError


class DeliveryViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_LOOKUP_REGEX

    @extend_schema(
        operation_id="deliveries_accept",
        summary="Accept a delivery",
        description="""
        **What it receives:**
        - `delivery_id` (UUID in URL)
        - Authentication token (must be the order's buyer)

        **What it returns:**
        - The order, now `completed`
        - 409 `already_accepted` if the delivery was accepted before
        """,
        request=None,
        responses={
            200: OrderSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the buyer"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Delivery not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Already accepted or order cancelled"),
        },
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        try:
            order = container.fulfillment_service().accept_delivery(pk, request.user)
        except ServiceError as e:
            return service_error_response(e)

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)
