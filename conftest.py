import pytest

from infrastructure.container import container
from infrastructure.payments import MockPaymentProvider


@pytest.fixture(autouse=True)
def payment_provider():
    """Fresh in-memory processor and service instances for every test."""
    container.reset()
    provider = MockPaymentProvider()
    container.set_payment(provider)
    yield provider
    container.reset()
