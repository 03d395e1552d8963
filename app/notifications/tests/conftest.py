"""
Test configuration and fixtures for notification tests.

Usage:
    def test_example(booking, mailoutbox):
        NotificationService.send("booking_confirmed", str(booking.id))
        assert len(mailoutbox) == 1
"""

from decimal import Decimal

import pytest

from bookings.tests.factories import ConfirmedBookingFactory


@pytest.fixture
def booking(db):
    """Confirmed booking with a guest email."""
    return ConfirmedBookingFactory(
        confirmation_number="HTL-1001",
        guest_email="ada@example.com",
        guest_first_name="Ada",
        guest_last_name="Lovelace",
        total_amount=Decimal("450.00"),
        currency="USD",
    )


@pytest.fixture
def booking_without_email(db):
    return ConfirmedBookingFactory(confirmation_number="HTL-1002", guest_email="")
