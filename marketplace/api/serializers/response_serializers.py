"""
Response Serializers for Marketplace API Documentation

These serializers define the structure of API responses for OpenAPI schema generation.
They are NOT used for data validation, only for documentation in Swagger/ReDoc.
"""

from rest_framework import serializers


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    detail = serializers.CharField(help_text="Human-readable error message")
    code = serializers.CharField(help_text="Stable error code, e.g. 'already_accepted'")


class WebhookAckSerializer(serializers.Serializer):
    """Acknowledgement returned to the payment processor"""

    received = serializers.BooleanField()
    completed = serializers.BooleanField(help_text="Whether this event completed an order", required=False)
