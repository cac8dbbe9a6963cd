from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import viewsets
from rest_framework.permissions import AllowAny

from marketplace.api.serializers import GigSerializer
from marketplace.catalog.domain.models.catalog import Gig
from utils.api_responses import UUID_LOOKUP_REGEX


@extend_schema_view(
    list=extend_schema(operation_id="gigs_list", summary="List gigs with their rating", tags=["Marketplace - Gigs"]),
    retrieve=extend_schema(operation_id="gigs_retrieve", summary="Get a gig", tags=["Marketplace - Gigs"]),
)
class GigViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only catalog; gigs are managed through the admin."""

    queryset = Gig.objects.select_related("owner").order_by("-created_at")
    serializer_class = GigSerializer
    permission_classes = [AllowAny]
    lookup_value_regex = UUID_LOOKUP_REGEX
