"""Tests for notification message rendering."""

import pytest

from notifications.message_templates import MESSAGE_TEMPLATES, render_message
from notifications.models import NotificationKind

CONTEXT = {
    "guest_name": "Ada Lovelace",
    "confirmation_number": "HTL-1001",
    "check_in": "2026-12-01",
    "check_out": "2026-12-04",
    "amount": "450.00",
    "currency": "USD",
    "reason": "Guest cancelled",
    "error_message": "Card was declined",
}


def test_every_kind_has_a_template():
    assert set(MESSAGE_TEMPLATES) == set(NotificationKind.values)


@pytest.mark.parametrize("kind", NotificationKind.values)
def test_templates_render_with_full_context(kind):
    subject, body = render_message(kind, CONTEXT)

    assert subject.endswith("HTL-1001")
    assert body.startswith("Hello Ada Lovelace,")


def test_booking_confirmed():
    subject, body = render_message(NotificationKind.BOOKING_CONFIRMED, CONTEXT)

    assert subject == "Booking confirmed - HTL-1001"
    assert "450.00 USD" in body
    assert "Check-in: 2026-12-01" in body


def test_payment_failed_includes_error():
    _, body = render_message(NotificationKind.PAYMENT_FAILED, CONTEXT)

    assert "Card was declined" in body


def test_missing_placeholder_raises():
    context = dict(CONTEXT)
    del context["amount"]

    with pytest.raises(KeyError):
        render_message(NotificationKind.REFUND_CONFIRMED, context)


def test_unknown_kind_raises():
    with pytest.raises(KeyError):
        render_message("welcome", CONTEXT)
