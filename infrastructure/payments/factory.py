"""
Payment Provider Factory
=========================

Builds the processor named by ``settings.PAYMENT_PROVIDER``: ``stripe`` in
deployments, ``mock`` for the test settings and for local runs without
Stripe credentials.
"""

import logging
from typing import Dict, Literal, Optional, Type

from django.conf import settings

from .interface import PaymentProviderInterface
from .mock_provider import MockPaymentProvider
from .stripe_provider import StripeProvider

logger = logging.getLogger(__name__)

PaymentBackend = Literal["stripe", "mock"]

BACKENDS: Dict[str, Type[PaymentProviderInterface]] = {
    "stripe": StripeProvider,
    "mock": MockPaymentProvider,
}


class PaymentFactory:
    @staticmethod
    def create(backend: Optional[PaymentBackend] = None) -> PaymentProviderInterface:
        """
        Instantiate a payment provider.

        Args:
            backend: 'stripe' or 'mock'; defaults to settings.PAYMENT_PROVIDER

        Raises:
            ValueError: unknown backend name
        """
        name = backend or getattr(settings, "PAYMENT_PROVIDER", "stripe")

        provider_class = BACKENDS.get(name)
        if provider_class is None:
            raise ValueError(f"Unknown payment provider '{name}', expected one of: {', '.join(sorted(BACKENDS))}")

        logger.info(f"Using payment provider: {name}")
        return provider_class()
