"""
Stripe Payment Provider
========================

Concrete implementation of PaymentProviderInterface using Stripe PaymentIntents.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils.logging_utils import mask_value

from .interface import PaymentException, PaymentIntent, PaymentProviderInterface, PaymentStatus, WebhookEvent

logger = logging.getLogger(__name__)

# Transient failures worth another attempt; everything else is final
RETRYABLE_STRIPE_ERRORS = (
    stripe.RateLimitError,
    stripe.APIConnectionError,
    stripe.APIError,
)


class StripeProvider(PaymentProviderInterface):
    """
    Stripe payment provider implementation.

    Configuration (in settings.py):
        STRIPE_SECRET_KEY: Stripe secret API key
        STRIPE_WEBHOOK_SECRET: Webhook endpoint secret for signature verification
    """

    def __init__(self):
        stripe.api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        self.webhook_secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")

        if not stripe.api_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RETRYABLE_STRIPE_ERRORS),
        reraise=True,
    )
    def _create_payment_intent_api(self, **kwargs):
        """Internal method to create the intent with retries."""
        return stripe.PaymentIntent.create(**kwargs)

    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Create a Stripe payment intent with automatic payment methods.

        The same ``idempotency_key`` is sent on every retry so a request that
        reached Stripe but lost its response does not open a second intent.
        """
        amount_cents = int(Decimal(amount) * 100)
        if amount_cents <= 0:
            raise PaymentException(f"Invalid payment amount: {amount}")

        params = {
            "amount": amount_cents,
            "currency": currency.lower(),
            "automatic_payment_methods": {"enabled": True},
            "metadata": metadata or {},
        }
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        try:
            intent = self._create_payment_intent_api(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {str(e)}")
            raise PaymentException(f"Failed to create payment intent: {str(e)}") from e

        logger.info(f"Created Stripe payment intent: {mask_value(intent.id)}")

        return PaymentIntent(
            intent_id=intent.id,
            amount=intent.amount,
            currency=intent.currency,
            status=self._map_stripe_payment_status(intent.status),
            client_secret=intent.client_secret,
            metadata=dict(intent.metadata or {}),
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RETRYABLE_STRIPE_ERRORS),
        reraise=True,
    )
    def _retrieve_payment_intent_api(self, intent_id):
        return stripe.PaymentIntent.retrieve(intent_id)

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = self._retrieve_payment_intent_api(intent_id)
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve payment intent {mask_value(intent_id)}: {str(e)}")
            raise PaymentException(f"Payment intent retrieval failed: {str(e)}") from e

        return PaymentIntent(
            intent_id=intent.id,
            amount=intent.amount,
            currency=intent.currency,
            status=self._map_stripe_payment_status(intent.status),
            metadata=dict(intent.metadata or {}),
        )

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify Stripe webhook signature and parse event.

        Raises:
            PaymentException: If the payload is malformed or the signature does not match
        """
        if not self.webhook_secret:
            raise PaymentException("STRIPE_WEBHOOK_SECRET is not configured")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {str(e)}")
            raise PaymentException("Invalid webhook payload") from e
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {str(e)}")
            raise PaymentException("Webhook signature verification failed") from e

        logger.info(f"Verified Stripe webhook event: {event['type']}")

        return WebhookEvent(
            event_id=event["id"],
            event_type=event["type"],
            data=event["data"]["object"],
            created_at=event["created"],
        )

    def _map_stripe_payment_status(self, stripe_status: str) -> PaymentStatus:
        """Map Stripe payment intent status to internal PaymentStatus."""
        status_mapping = {
            "requires_payment_method": PaymentStatus.PENDING,
            "requires_confirmation": PaymentStatus.PENDING,
            "requires_action": PaymentStatus.PROCESSING,
            "processing": PaymentStatus.PROCESSING,
            "requires_capture": PaymentStatus.PROCESSING,
            "succeeded": PaymentStatus.SUCCEEDED,
            "canceled": PaymentStatus.CANCELED,
        }

        return status_mapping.get(stripe_status, PaymentStatus.PENDING)
