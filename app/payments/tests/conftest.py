"""
Pytest fixtures for payment tests.

This module provides fixtures for creating payment-related test data.
Fixtures are designed to provide objects in various states for testing
state transitions and business logic.

Usage:
    def test_payment_succeeded(pending_payment):
        TransitionEngine.apply(PaymentSucceeded(...))
        ...
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from payments.tests.factories import (
    CommissionFactory,
    EarnedCommissionFactory,
    PaymentFactory,
)


# =============================================================================
# Payment Fixtures
# =============================================================================


@pytest.fixture
def pending_payment(db):
    """
    Pending 450.00 USD payment for a pending booking, with a pending 10%
    commission (45.00).
    """
    payment = PaymentFactory(amount=Decimal("450.00"), currency="USD")
    CommissionFactory(payment=payment)
    return payment


@pytest.fixture
def succeeded_payment(db):
    """
    Succeeded 450.00 USD payment for a confirmed booking, with an earned
    commission of 45.00.
    """
    commission = EarnedCommissionFactory(
        payment__amount=Decimal("450.00"),
        payment__currency="USD",
    )
    return commission.payment


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="finance",
        email="finance@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture
def admin_client(staff_user):
    """APIClient authenticated as a staff user."""
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def api_client():
    return APIClient()
