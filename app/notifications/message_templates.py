"""
Plain-text message templates for booking notifications.

Templates use ``str.format`` placeholders. Rendering raises KeyError on a
missing placeholder so a broken context fails loudly in tests instead of
sending a half-filled email.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from notifications.models import NotificationKind


@dataclass(frozen=True)
class MessageTemplate:
    subject: str
    body: str

    def render(self, context: dict[str, Any]) -> tuple[str, str]:
        return self.subject.format(**context), self.body.format(**context)


MESSAGE_TEMPLATES: dict[str, MessageTemplate] = {
    NotificationKind.BOOKING_CONFIRMED: MessageTemplate(
        subject="Booking confirmed - {confirmation_number}",
        body=(
            "Hello {guest_name},\n\n"
            "Your payment of {amount} {currency} was received and booking "
            "{confirmation_number} is confirmed.\n\n"
            "Check-in: {check_in}\n"
            "Check-out: {check_out}\n"
        ),
    ),
    NotificationKind.PAYMENT_FAILED: MessageTemplate(
        subject="Payment failed - {confirmation_number}",
        body=(
            "Hello {guest_name},\n\n"
            "We could not process the payment for booking "
            "{confirmation_number}: {error_message}.\n\n"
            "Please try again with another payment method.\n"
        ),
    ),
    NotificationKind.REFUND_CONFIRMED: MessageTemplate(
        subject="Refund processed - {confirmation_number}",
        body=(
            "Hello {guest_name},\n\n"
            "A refund of {amount} {currency} for booking "
            "{confirmation_number} has been processed.\n\n"
            "Reason: {reason}\n"
        ),
    ),
}


def render_message(kind: str, context: dict[str, Any]) -> tuple[str, str]:
    """Return (subject, body) for ``kind``. Raises KeyError for unknown kinds."""
    return MESSAGE_TEMPLATES[kind].render(context)
