"""
Factory Boy factories for notification models.

Usage:
    from notifications.tests.factories import NotificationDeliveryFactory

    delivery = NotificationDeliveryFactory(status=DeliveryStatus.FAILED)
"""

import factory

from bookings.tests.factories import BookingFactory
from notifications.models import (
    DeliveryChannel,
    DeliveryStatus,
    NotificationDelivery,
    NotificationKind,
)


class NotificationDeliveryFactory(factory.django.DjangoModelFactory):
    """Factory for sent booking notifications."""

    class Meta:
        model = NotificationDelivery
        skip_postgeneration_save = True

    kind = NotificationKind.BOOKING_CONFIRMED
    booking = factory.SubFactory(BookingFactory)
    recipient = factory.SelfAttribute("booking.guest_email")
    subject = factory.LazyAttribute(lambda o: f"Booking confirmed - {o.booking.confirmation_number}")
    channel = DeliveryChannel.IMMEDIATE
    status = DeliveryStatus.SENT
