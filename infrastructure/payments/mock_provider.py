"""
Mock Payment Provider
======================

In-memory processor used by the test settings and for local development
without Stripe credentials. Intents live in a dict on the instance; tests can
mark them captured, make the next call fail, or slow calls down to exercise
timeouts.
"""

import json
import logging
import threading
import time
import uuid
from decimal import Decimal
from typing import Any, Dict, Optional

from .interface import PaymentException, PaymentIntent, PaymentProviderInterface, PaymentStatus, WebhookEvent

logger = logging.getLogger(__name__)


class MockPaymentProvider(PaymentProviderInterface):
    def __init__(self, delay: float = 0.0, fail_with: Optional[str] = None):
        self.delay = delay
        self.fail_with = fail_with
        self.intents: Dict[str, PaymentIntent] = {}
        self.idempotency_keys: Dict[str, str] = {}
        self._lock = threading.Lock()

    def create_payment_intent(
        self,
        amount: Decimal,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with:
            raise PaymentException(self.fail_with)

        amount_cents = int(Decimal(amount) * 100)
        if amount_cents <= 0:
            raise PaymentException(f"Invalid payment amount: {amount}")

        with self._lock:
            if idempotency_key and idempotency_key in self.idempotency_keys:
                return self.intents[self.idempotency_keys[idempotency_key]]

            intent_id = f"pi_mock_{uuid.uuid4().hex}"
            intent = PaymentIntent(
                intent_id=intent_id,
                amount=amount_cents,
                currency=currency.lower(),
                status=PaymentStatus.PENDING,
                client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
                metadata=dict(metadata or {}),
            )
            self.intents[intent_id] = intent
            if idempotency_key:
                self.idempotency_keys[idempotency_key] = intent_id

        logger.debug(f"Mock payment intent created: {intent_id}")
        return intent

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentException(f"No such payment intent: {intent_id}")
        return intent

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Parse the payload without checking the signature."""
        try:
            event = json.loads(payload)
            return WebhookEvent(
                event_id=event["id"],
                event_type=event["type"],
                data=event["data"]["object"],
                created_at=event.get("created", int(time.time())),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise PaymentException("Invalid webhook payload") from e

    def mark_succeeded(self, intent_id: str) -> PaymentIntent:
        """Simulate the processor capturing the funds."""
        intent = self.retrieve_payment_intent(intent_id)
        intent.status = PaymentStatus.SUCCEEDED
        return intent
