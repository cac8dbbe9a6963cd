"""
Payment Provider Interface
===========================

Abstract base class defining the contract the order ledger needs from a
payment processor: open an intent for a gig price, look an intent up again,
and turn a raw confirmation notification into an event.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass
class PaymentIntent:
    """
    Represents an authorized-but-not-yet-captured charge.

    Attributes:
        intent_id: Processor handle, stored on the order as ``payment_intent_ref``
        amount: Payment amount in smallest currency unit
        currency: ISO currency code
        status: Current payment status
        client_secret: Token the browser needs to finish authorization
        metadata: Additional custom data
    """

    intent_id: str
    amount: int
    currency: str
    status: PaymentStatus
    client_secret: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WebhookEvent:
    """
    Represents a webhook event from payment provider.

    Attributes:
        event_id: Unique event identifier
        event_type: Type of event (e.g., 'payment_intent.succeeded')
        data: Event payload data (the event's object)
        created_at: Event creation timestamp
    """

    event_id: str
    event_type: str
    data: Dict[str, Any]
    created_at: int


class PaymentProviderInterface(ABC):
    """
    Abstract interface for payment provider operations.

    Concrete implementations:
        - StripeProvider: Stripe payment processing
        - MockPaymentProvider: in-memory processor for tests and local runs
    """

    @abstractmethod
    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Open a payment intent.

        Args:
            amount: Payment amount in major currency unit (converted to cents)
            currency: ISO currency code
            metadata: Custom data to attach to the intent
            idempotency_key: Key that makes retried creations return the same intent

        Returns:
            PaymentIntent carrying the client secret

        Raises:
            PaymentException: If the processor is unreachable or rejects the amount
        """
        pass

    @abstractmethod
    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        """
        Retrieve payment intent details.

        Raises:
            PaymentException: If retrieval fails
        """
        pass

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify and parse webhook event from payment provider.

        Raises:
            PaymentException: If verification fails or signature is invalid
        """
        pass


class PaymentException(Exception):
    """Base exception for payment operations."""

    pass
