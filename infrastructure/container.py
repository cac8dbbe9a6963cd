"""
Dependency Injection Container
================================

Simple service locator for the payment processor and the domain services
that depend on it.

Usage:
    from infrastructure.container import container

    payment = container.payment()
    orders = container.order_service()
"""

import logging
from typing import Optional

from .payments import PaymentFactory, PaymentProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for infrastructure dependencies.

    Implements lazy initialization and caching of service instances.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._payment: Optional[PaymentProviderInterface] = None

            # Domain Services
            self._order_service = None
            self._fulfillment_service = None
            self._review_service = None
            self._conversation_service = None

            self._initialized = True
            logger.info("Service container initialized")

    def payment(self, backend: Optional[str] = None) -> PaymentProviderInterface:
        """
        Get payment provider instance.

        Args:
            backend: Payment backend type ('stripe' or 'mock')
                    If None, uses configuration from settings

        Returns:
            PaymentProviderInterface implementation (cached)
        """
        if self._payment is None or backend is not None:
            self._payment = PaymentFactory.create(backend)
            self._order_service = None
            logger.debug(f"Created payment service: {type(self._payment).__name__}")

        return self._payment

    def set_payment(self, provider: PaymentProviderInterface):
        """Install a ready-made provider (tests use a configured mock)."""
        self._payment = provider
        self._order_service = None

    def order_service(self):
        """Get OrderService instance."""
        if self._order_service is None:
            from marketplace.ordering.domain.services.order_service import OrderService

            self._order_service = OrderService(payment_provider=self.payment())
            logger.debug("Created OrderService")
        return self._order_service

    def fulfillment_service(self):
        """Get FulfillmentService instance."""
        if self._fulfillment_service is None:
            from marketplace.ordering.domain.services.fulfillment_service import FulfillmentService

            self._fulfillment_service = FulfillmentService()
            logger.debug("Created FulfillmentService")
        return self._fulfillment_service

    def review_service(self):
        """Get ReviewService instance."""
        if self._review_service is None:
            from marketplace.catalog.domain.services.review_service import ReviewService

            self._review_service = ReviewService()
            logger.debug("Created ReviewService")
        return self._review_service

    def conversation_service(self):
        """Get ConversationService instance."""
        if self._conversation_service is None:
            from chat.domain.services.conversation_service import ConversationService

            self._conversation_service = ConversationService()
            logger.debug("Created ConversationService")
        return self._conversation_service

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._payment = None
        self._order_service = None
        self._fulfillment_service = None
        self._review_service = None
        self._conversation_service = None
        logger.info("Service container reset")


# Global singleton instance
container = ServiceContainer()
