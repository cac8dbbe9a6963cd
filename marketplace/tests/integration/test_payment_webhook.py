import json

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from infrastructure.payments import MockPaymentProvider
from marketplace.models import Order
from marketplace.tests.factories import OrderFactory


class PaymentWebhookIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        container.set_payment(MockPaymentProvider())
        self.url = reverse("marketplace:payment-webhook")
        self.order = OrderFactory(payment_intent_ref="pi_mock_webhook")

    def _send(self, event_type="payment_intent.succeeded", intent_id="pi_mock_webhook", event_id="evt_1"):
        payload = json.dumps({"id": event_id, "type": event_type, "data": {"object": {"id": intent_id}}})
        return self.client.post(
            self.url, data=payload, content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=mock"
        )

    def test_capture_completes_order(self):
        response = self._send()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"received": True, "completed": True})
        self.order.refresh_from_db()
        self.assertTrue(self.order.is_completed)
        self.assertIsNotNone(self.order.completed_at)

    def test_redelivered_event_has_no_effect(self):
        self._send()
        self.order.refresh_from_db()
        completed_at = self.order.completed_at

        response = self._send()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["completed"])
        self.order.refresh_from_db()
        self.assertEqual(self.order.completed_at, completed_at)

    def test_unknown_intent_acknowledged(self):
        response = self._send(intent_id="pi_mock_other")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["completed"])
        self.assertFalse(Order.objects.filter(is_completed=True).exists())

    def test_other_events_ignored(self):
        response = self._send(event_type="payment_intent.payment_failed")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"received": True})
        self.order.refresh_from_db()
        self.assertFalse(self.order.is_completed)

    def test_invalid_payload_rejected(self):
        response = self.client.post(self.url, data="not json", content_type="application/json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "invalid_webhook")


class MetricsEndpointTest(TestCase):
    def test_metrics_exposed_without_auth(self):
        response = APIClient().get(reverse("marketplace:marketplace-metrics"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(b"marketplace_order_value", response.content)
