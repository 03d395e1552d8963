"""
State enums and transition table for bookings.

The same table drives the django-fsm decorators on ``Booking`` and the
pure transition planner in ``payments.services.transitions``, so the model
and the planner cannot disagree about which moves are legal.

Booking States:
    pending → confirmed                 (payment succeeded)
    pending → payment_failed            (payment failed)
    payment_failed → confirmed          (a new payment succeeded)
    payment_failed → payment_failed     (another attempt failed)
    confirmed → refunded                (full refund completed)
    confirmed → checked_in → checked_out
    pending/confirmed → cancelled

Terminal states: cancelled, checked_out, refunded

Payment status (derived, never set directly by callers):
    pending → paid | failed
    failed → paid | failed
    paid → refunded (full refund only)
"""

from __future__ import annotations

from dataclasses import dataclass

from django.db import models


class BookingStatus(models.TextChoices):
    """Lifecycle of a booking."""

    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PAYMENT_FAILED = "payment_failed", "Payment Failed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"
    CHECKED_IN = "checked_in", "Checked In"
    CHECKED_OUT = "checked_out", "Checked Out"


class BookingPaymentStatus(models.TextChoices):
    """Payment position of a booking, derived from its payments and refunds."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


@dataclass(frozen=True)
class BookingTransitionRule:
    """Allowed source states for a named booking transition and its target."""

    sources: tuple[str, ...]
    target: str | None
    """None means the booking status is left unchanged."""

    def allows(self, status: str) -> bool:
        return status in self.sources


CONFIRM_PAYMENT = "confirm_payment"
FAIL_PAYMENT = "fail_payment"
REFUND = "refund"
PARTIAL_REFUND = "partial_refund"
CANCEL = "cancel"
CHECK_IN = "check_in"
CHECK_OUT = "check_out"

BOOKING_TRANSITIONS: dict[str, BookingTransitionRule] = {
    CONFIRM_PAYMENT: BookingTransitionRule(
        sources=(BookingStatus.PENDING, BookingStatus.PAYMENT_FAILED),
        target=BookingStatus.CONFIRMED,
    ),
    FAIL_PAYMENT: BookingTransitionRule(
        sources=(BookingStatus.PENDING, BookingStatus.PAYMENT_FAILED),
        target=BookingStatus.PAYMENT_FAILED,
    ),
    REFUND: BookingTransitionRule(
        sources=(BookingStatus.CONFIRMED,),
        target=BookingStatus.REFUNDED,
    ),
    PARTIAL_REFUND: BookingTransitionRule(
        sources=(BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN),
        target=None,
    ),
    CANCEL: BookingTransitionRule(
        sources=(BookingStatus.PENDING, BookingStatus.CONFIRMED),
        target=BookingStatus.CANCELLED,
    ),
    CHECK_IN: BookingTransitionRule(
        sources=(BookingStatus.CONFIRMED,),
        target=BookingStatus.CHECKED_IN,
    ),
    CHECK_OUT: BookingTransitionRule(
        sources=(BookingStatus.CHECKED_IN,),
        target=BookingStatus.CHECKED_OUT,
    ),
}

TERMINAL_BOOKING_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.CHECKED_OUT, BookingStatus.REFUNDED}
)


def sources_for(name: str) -> list[str]:
    """Source states of a named transition, in the form django-fsm expects."""
    return [str(status) for status in BOOKING_TRANSITIONS[name].sources]


__all__ = [
    "BOOKING_TRANSITIONS",
    "BookingPaymentStatus",
    "BookingStatus",
    "BookingTransitionRule",
    "CANCEL",
    "CHECK_IN",
    "CHECK_OUT",
    "CONFIRM_PAYMENT",
    "FAIL_PAYMENT",
    "PARTIAL_REFUND",
    "REFUND",
    "TERMINAL_BOOKING_STATUSES",
    "sources_for",
]
