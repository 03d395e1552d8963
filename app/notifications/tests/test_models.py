"""Tests for NotificationDelivery."""

import pytest

from notifications.models import DeliveryStatus, NotificationDelivery
from notifications.tests.factories import NotificationDeliveryFactory


@pytest.mark.django_db
class TestNotificationDelivery:
    def test_str(self):
        delivery = NotificationDeliveryFactory(booking__guest_email="ada@example.com")

        assert str(delivery) == "NotificationDelivery(booking_confirmed, ada@example.com, sent)"

    def test_newest_first(self):
        older = NotificationDeliveryFactory()
        newer = NotificationDeliveryFactory(booking=older.booking, status=DeliveryStatus.FAILED)

        assert list(older.booking.notification_deliveries.all()) == [newer, older]
        assert NotificationDelivery.objects.filter(status=DeliveryStatus.FAILED).get() == newer
