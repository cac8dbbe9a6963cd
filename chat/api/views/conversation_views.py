from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from chat.api.serializers.conversation_serializers import (
    ConversationSerializer,
    MarkReadSerializer,
    MessageSerializer,
    PostMessageSerializer,
    StartConversationSerializer,
)
from chat.domain.services.conversation_service import ConversationService
from infrastructure.container import container
from marketplace.api.serializers import ErrorResponseSerializer
from utils.api_responses import service_error_response
from utils.service_base import ForbiddenError, ServiceError

# Seller UUID followed by buyer UUID
CONVERSATION_ID_REGEX = "[0-9a-fA-F-]{72}"


class ConversationViewSet(viewsets.ViewSet):
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = CONVERSATION_ID_REGEX

    def get_service(self) -> ConversationService:
        return container.conversation_service()

    def _serialize(self, conversation):
        return ConversationSerializer(conversation, context={"request": self.request}).data

    @extend_schema(
        operation_id="conversations_list",
        summary="List conversations",
        parameters=[
            OpenApiParameter(name="as_seller", type=bool, description="Only conversations on this side"),
        ],
        responses={200: ConversationSerializer(many=True)},
        tags=["Chat"],
    )
    def list(self, request):
        as_seller = request.query_params.get("as_seller")
        is_seller = None if as_seller is None else as_seller.lower() in ("1", "true", "yes")

        conversations = self.get_service().list_conversations(request.user, is_seller=is_seller)
        return Response(
            ConversationSerializer(conversations, many=True, context={"request": request}).data,
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="conversations_create",
        summary="Open (or reuse) the conversation with another user",
        description="""
        **What it receives:**
        - `counterparty_id` (UUID): the other party
        - `as_seller` (bool, optional): defaults to the caller's seller role; only sellers may pass `true`

        **What it returns:**
        - 201 with the new conversation, or 200 with the existing one
        """,
        request=StartConversationSerializer,
        responses={
            200: ConversationSerializer,
            201: ConversationSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Conversation with yourself"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Caller is not a seller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="User not found"),
        },
        tags=["Chat"],
    )
    def create(self, request):
        serializer = StartConversationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        as_seller = serializer.validated_data["as_seller"]
        if as_seller is None:
            as_seller = request.user.is_seller

        try:
            if as_seller and not request.user.is_seller:
                raise ForbiddenError("Only sellers can open a conversation as the seller")
            conversation, created = self.get_service().get_or_create_conversation(
                request.user, as_seller, serializer.validated_data["counterparty_id"]
            )
        except ServiceError as e:
            return service_error_response(e)

        return Response(
            self._serialize(conversation),
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="conversations_retrieve",
        summary="Get a conversation",
        responses={
            200: ConversationSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a participant"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Conversation not found"),
        },
        tags=["Chat"],
    )
    def retrieve(self, request, pk=None):
        try:
            conversation = self.get_service().get_conversation(pk, request.user)
        except ServiceError as e:
            return service_error_response(e)

        return Response(self._serialize(conversation), status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="conversations_mark_read",
        summary="Mark the conversation read for the caller",
        request=MarkReadSerializer,
        responses={
            200: ConversationSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a participant"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Conversation not found"),
        },
        tags=["Chat"],
    )
    def update(self, request, pk=None):
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            conversation = self.get_service().mark_read(pk, request.user, serializer.validated_data["as_seller"])
        except ServiceError as e:
            return service_error_response(e)

        return Response(self._serialize(conversation), status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="conversations_messages",
        summary="List or post messages",
        request=PostMessageSerializer,
        responses={
            200: MessageSerializer(many=True),
            201: MessageSerializer,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a participant"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Conversation not found"),
        },
        tags=["Chat"],
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        service = self.get_service()

        if request.method == "GET":
            try:
                messages = service.list_messages(pk, request.user)
            except ServiceError as e:
                return service_error_response(e)
            return Response(MessageSerializer(messages, many=True).data, status=status.HTTP_200_OK)

        serializer = PostMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            message = service.post_message(pk, request.user, serializer.validated_data["content"])
        except ServiceError as e:
            return service_error_response(e)

        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)
