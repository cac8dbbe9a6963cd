from rest_framework.response import Response

from utils.service_base import ServiceError


def service_error_response(error: ServiceError) -> Response:
    """Translate a service failure into the API error body."""
    return Response(error.to_dict(), status=error.status_code)


# Router lookup for UUID primary keys; other strings never reach the ORM
UUID_LOOKUP_REGEX = "[0-9a-fA-F-]{36}"
