"""
Pytest fixtures for webhook tests.

Provides the provider configuration, a signing helper, and a pending
payment that webhook bodies can refer to.
"""

from decimal import Decimal
from unittest.mock import Mock

import pytest

from payments.services.commissions import create_commission
from payments.tests.factories import PaymentFactory
from payments.webhooks.config import WebhookProviderConfig
from payments.webhooks.signature import compute_signature
from payments.webhooks.tests.payloads import NOTIFICATION_URL, SECRET, SIGNATURE_HEADER


@pytest.fixture
def provider_config():
    return WebhookProviderConfig(
        name="square",
        secret=SECRET,
        notification_url=NOTIFICATION_URL,
        signature_header=SIGNATURE_HEADER,
    )


@pytest.fixture
def square_settings(settings):
    """Configure the square provider the way the view reads it."""
    settings.WEBHOOK_PROVIDERS = {
        "square": {
            "SECRET": SECRET,
            "NOTIFICATION_URL": NOTIFICATION_URL,
            "SIGNATURE_HEADER": SIGNATURE_HEADER,
            "REQUIRE_NOTIFICATION_URL": False,
        }
    }
    return settings


@pytest.fixture
def sign():
    """Sign a body the way the provider does (URL + body)."""

    def _sign(body: bytes, url: str = NOTIFICATION_URL, secret: str = SECRET) -> str:
        return compute_signature(secret, url.encode("utf-8") + body)

    return _sign


@pytest.fixture
def dispatcher():
    """Side-effect dispatcher stand-in; records what would be sent."""
    return Mock()


@pytest.fixture
def pending_payment(db, settings):
    """Pending 450.00 USD payment ``sq_pay_1`` with a 5% commission."""
    settings.COMMISSION_DEFAULT_RATE = "0.05"
    payment = PaymentFactory(
        provider_transaction_id="sq_pay_1",
        amount=Decimal("450.00"),
        currency="USD",
        booking__total_amount=Decimal("450.00"),
    )
    create_commission(payment.booking, payment, payment.amount)
    return payment
