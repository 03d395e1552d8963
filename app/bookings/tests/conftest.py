"""
Pytest fixtures for booking tests.

Fixtures:
    booking: Pending booking
    confirmed_booking: Booking with a succeeded payment
    admin_client: DRF APIClient authenticated as a staff user
"""

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from bookings.tests.factories import BookingFactory, ConfirmedBookingFactory


@pytest.fixture
def booking(db):
    return BookingFactory()


@pytest.fixture
def confirmed_booking(db):
    return ConfirmedBookingFactory()


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="auditor",
        email="auditor@example.com",
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
    """Unauthenticated APIClient."""
    return APIClient()
