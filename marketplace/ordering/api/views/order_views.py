from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import (
    CheckoutResponseSerializer,
    ConfirmPaymentRequestSerializer,
    CreateOrderRequestSerializer,
    DeliverySerializer,
    ErrorResponseSerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
    PostStatusUpdateRequestSerializer,
    SubmitDeliveryRequestSerializer,
    UpdateStatusRequestSerializer,
)
from marketplace.ordering.domain.services.fulfillment_service import FulfillmentService
from marketplace.ordering.domain.services.order_service import OrderService
from utils.api_responses import UUID_LOOKUP_REGEX, service_error_response
from utils.service_base import ServiceError


class OrderViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_LOOKUP_REGEX

    def get_service(self) -> OrderService:
        return container.order_service()

    def get_fulfillment_service(self) -> FulfillmentService:
        return container.fulfillment_service()

    @extend_schema(
        operation_id="orders_list",
        summary="List paid orders",
        description="""
        **What it receives:**
        - Authentication token
        - Optional `as_seller` flag (defaults to the caller's seller role)

        **What it returns:**
        - Orders where the caller is the seller (seller role) or the buyer,
          only those whose payment was captured, newest first
        """,
        parameters=[
            OpenApiParameter(name="as_seller", type=bool, description="List sales instead of purchases"),
        ],
        responses={200: OrderSerializer(many=True)},
        tags=["Marketplace - Orders"],
    )
    def list(self, request):
        as_seller = request.query_params.get("as_seller")
        is_seller = None if as_seller is None else as_seller.lower() in ("1", "true", "yes")

        orders = self.get_service().list_orders(request.user, is_seller=is_seller)
        return Response(OrderSerializer(orders, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_retrieve",
        summary="Get order details",
        responses={
            200: OrderSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a party to the order"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    def retrieve(self, request, pk=None):
        try:
            order = self.get_service().get_order(pk, request.user)
        except ServiceError as e:
            return service_error_response(e)

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_create",
        summary="Start checkout for a gig",
        description="""
        **What it receives:**
        - `gig_id` (UUID): Gig to purchase
        - Authentication token

        **What it returns:**
        - The pending order (price copied from the gig)
        - `client_secret` the client uses to authorize the payment
        """,
        request=CreateOrderRequestSerializer,
        responses={
            201: CheckoutResponseSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Own gig or invalid input"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Gig not found"),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Payment processor failed, retry"),
        },
        tags=["Marketplace - Orders"],
    )
    def create(self, request):
        serializer = CreateOrderRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = self.get_service().create_order(serializer.validated_data["gig_id"], request.user)
        except ServiceError as e:
            return service_error_response(e)

        return Response(
            {"order": OrderSerializer(result.order).data, "client_secret": result.client_secret},
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="orders_confirm_payment",
        summary="Confirm payment from the client",
        description="""
        **What it receives:**
        - `payment_intent` (string): Intent reference from checkout
        - Authentication token (must be the buyer)

        **What it returns:**
        - The order, completed once the processor reports the intent captured
        """,
        request=ConfirmPaymentRequestSerializer,
        responses={
            200: OrderSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Payment not captured yet"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the buyer"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["put"], url_path="confirm")
    def confirm(self, request):
        serializer = ConfirmPaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self.get_service().confirm_from_client(serializer.validated_data["payment_intent"], request.user)
        except ServiceError as e:
            return service_error_response(e)

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_update_status",
        summary="Change fulfillment status",
        description="""
        **What it receives:**
        - `status`: `in_progress` or `delivered` (seller), `cancelled` (either party)

        **What it returns:**
        - The updated order; 409 `invalid_transition` when the move is not forward
        """,
        request=UpdateStatusRequestSerializer,
        responses={
            200: OrderSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Caller may not set this status"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid transition"),
        },
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = UpdateStatusRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self.get_fulfillment_service().update_status(pk, request.user, serializer.validated_data["status"])
        except ServiceError as e:
            return service_error_response(e)

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_deliveries",
        summary="List or submit deliveries",
        request=SubmitDeliveryRequestSerializer,
        responses={
            200: DeliverySerializer(many=True),
            201: DeliverySerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Order completed or cancelled"),
        },
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["get", "post"])
    def deliveries(self, request, pk=None):
        service = self.get_fulfillment_service()

        if request.method == "GET":
            try:
                deliveries = service.list_deliveries(pk, request.user)
            except ServiceError as e:
                return service_error_response(e)
            return Response(DeliverySerializer(deliveries, many=True).data, status=status.HTTP_200_OK)

        serializer = SubmitDeliveryRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            delivery = service.submit_delivery(
                pk,
                request.user,
                serializer.validated_data["artifact_ref"],
                serializer.validated_data["message"],
            )
        except ServiceError as e:
            return service_error_response(e)

        return Response(DeliverySerializer(delivery).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="orders_status_updates",
        summary="List or post progress notes",
        request=PostStatusUpdateRequestSerializer,
        responses={
            200: OrderStatusUpdateSerializer(many=True),
            201: OrderStatusUpdateSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not allowed"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["get", "post"])
    def updates(self, request, pk=None):
        service = self.get_fulfillment_service()

        if request.method == "GET":
            try:
                updates = service.list_status_updates(pk, request.user)
            except ServiceError as e:
                return service_error_response(e)
            return Response(OrderStatusUpdateSerializer(updates, many=True).data, status=status.HTTP_200_OK)

        serializer = PostStatusUpdateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            update = service.post_status_update(
                pk, request.user, serializer.validated_data["title"], serializer.validated_data["body"]
            )
        except ServiceError as e:
            return service_error_response(e)

        return Response(OrderStatusUpdateSerializer(update).data, status=status.HTTP_201_CREATED)
