from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.serializers import (
    CreateReviewRequestSerializer,
    ErrorResponseSerializer,
    ReviewListQuerySerializer,
    ReviewSerializer,
)
from marketplace.catalog.domain.services.review_service import ReviewService
from utils.api_responses import UUID_LOOKUP_REGEX, service_error_response
from utils.service_base import ServiceError


class ReviewViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticatedOrReadOnly]
    lookup_value_regex = UUID_LOOKUP_REGEX

    def get_service(self) -> ReviewService:
        return container.review_service()

    def get_permissions(self):
        if self.action in ["create", "destroy"]:
            return [IsAuthenticated()]
        return super().get_permissions()

    @extend_schema(
        operation_id="reviews_list",
        summary="List reviews of a gig",
        parameters=[OpenApiParameter(name="gig_id", type=str, required=True, description="Gig UUID")],
        responses={
            200: ReviewSerializer(many=True),
            400: OpenApiResponse(description="gig_id missing or not a UUID"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Gig not found"),
        },
        tags=["Marketplace - Reviews"],
    )
    def list(self, request):
        query = ReviewListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        try:
            reviews = self.get_service().get_reviews(query.validated_data["gig_id"])
        except ServiceError as e:
            return service_error_response(e)

        return Response(ReviewSerializer(reviews, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="reviews_create",
        summary="Review a gig",
        description="""
        **What it receives:**
        - `gig_id` (UUID), `star` (1-5), `comment` (optional)

        **What it returns:**
        - The review; the gig aggregate is updated in the same transaction
        - 409 `duplicate_review` if the caller already reviewed the gig
        """,
        request=CreateReviewRequestSerializer,
        responses={
            201: ReviewSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid star or own gig"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Gig not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Already reviewed"),
        },
        tags=["Marketplace - Reviews"],
    )
    def create(self, request):
        serializer = CreateReviewRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            review = self.get_service().create_review(request.user, data["gig_id"], data["star"], data["comment"])
        except ServiceError as e:
            return service_error_response(e)

        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="reviews_destroy",
        summary="Delete own review",
        responses={
            204: None,
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not the author"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Review not found"),
        },
        tags=["Marketplace - Reviews"],
    )
    def destroy(self, request, pk=None):
        try:
            self.get_service().delete_review(pk, request.user)
        except ServiceError as e:
            return service_error_response(e)

        return Response(status=status.HTTP_204_NO_CONTENT)
