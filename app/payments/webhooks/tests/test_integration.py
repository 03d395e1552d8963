"""
End-to-end webhook journeys through the HTTP endpoint.

Notifications go through the real dispatcher to the locmem mail backend.
"""

from decimal import Decimal

import pytest
from django.urls import reverse

from bookings.models import Booking
from bookings.states import BookingStatus
from notifications.models import DeliveryStatus, NotificationDelivery
from payments.models import Commission, Payment, WebhookDelivery
from payments.state_machines import CommissionStatus, PaymentStatus
from payments.webhooks.tests.payloads import encode, payment_event, refund_event

pytestmark = pytest.mark.django_db


@pytest.fixture
def deliver(client, sign, square_settings, django_capture_on_commit_callbacks):
    url = reverse("webhooks:provider", kwargs={"provider": "square"})

    def _deliver(payload):
        body = encode(payload)
        with django_capture_on_commit_callbacks(execute=True):
            return client.post(
                url,
                data=body,
                content_type="application/json",
                HTTP_X_SQUARE_HMACSHA256_SIGNATURE=sign(body),
            )

    return _deliver


def test_pay_then_refund_in_two_parts(deliver, pending_payment, mailoutbox):
    booking_id = pending_payment.booking_id

    assert deliver(payment_event("sq_pay_1", event_id="evt_pay")).json()["outcome"] == "applied"
    assert Booking.objects.get(pk=booking_id).status == BookingStatus.CONFIRMED
    assert mailoutbox[-1].subject.startswith("Booking confirmed")

    deliver(refund_event("sq_ref_1", "sq_pay_1", amount=22500, event_id="evt_ref_1"))
    commission = Commission.objects.get(payment=pending_payment)
    assert commission.commission_amount == Decimal("11.25")
    assert commission.hotel_earnings == Decimal("438.75")

    deliver(refund_event("sq_ref_2", "sq_pay_1", amount=22500, event_id="evt_ref_2"))

    booking = Booking.objects.get(pk=booking_id)
    assert booking.status == BookingStatus.REFUNDED
    assert Payment.objects.get(pk=pending_payment.pk).status == PaymentStatus.REFUNDED
    commission = Commission.objects.get(payment=pending_payment)
    assert commission.status == CommissionStatus.REVERSED
    assert commission.commission_amount == Decimal("0.00")
    assert list(booking.status_history.order_by("created_at").values_list("new_status", flat=True)) == [
        BookingStatus.CONFIRMED,
        BookingStatus.CONFIRMED,
        BookingStatus.REFUNDED,
    ]
    assert [m.subject.split(" - ")[0] for m in mailoutbox] == [
        "Booking confirmed",
        "Refund processed",
        "Refund processed",
    ]
    assert NotificationDelivery.objects.filter(status=DeliveryStatus.SENT).count() == 3


def test_redelivery_after_rejection_stays_rejected(deliver, pending_payment, mailoutbox):
    payload = payment_event("sq_pay_1", amount=40000, event_id="evt_short")

    first = deliver(payload).json()
    second = deliver(payload).json()

    assert first["outcome"] == "rejected"
    assert second["outcome"] == "duplicate"
    assert WebhookDelivery.objects.count() == 2
    assert Booking.objects.get(pk=pending_payment.booking_id).status == BookingStatus.PENDING
    assert mailoutbox == []
