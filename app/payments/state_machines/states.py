"""
State enums for payment models.

These are Django TextChoices used by django-fsm fields and by the webhook
ledger. Booking states live in ``bookings.states``.

State Machines Overview:

Payment States:
    pending → succeeded
    pending → failed
    succeeded → refunded (succeeded refunds cover the full amount)
    A failed payment is never reopened; a retry creates a new Payment.

Refund States (only against a succeeded payment):
    pending → succeeded
    pending → failed

Commission States:
    pending → earned (payment succeeded)
    earned → reversed (full refund, or partial refunds reaching zero)
    earned → paid (included in a payout batch)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal states: FAILED, REFUNDED
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class RefundStatus(models.TextChoices):
    """
    States for the Refund model lifecycle.

    Terminal states: SUCCEEDED, FAILED
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


class CommissionStatus(models.TextChoices):
    """
    States for the Commission model lifecycle.

    A partial reversal keeps the commission EARNED with a smaller residual.
    Terminal states: REVERSED, PAID
    """

    PENDING = "pending", "Pending"
    EARNED = "earned", "Earned"
    REVERSED = "reversed", "Reversed"
    PAID = "paid", "Paid"


class WebhookOutcome(models.TextChoices):
    """
    Terminal outcome recorded on a WebhookEvent ledger entry.

    RECEIVED only exists between the ledger insert and the end of the same
    transaction; a committed entry always carries one of the others.
    """

    RECEIVED = "received", "Received"
    APPLIED = "applied", "Applied"
    REJECTED = "rejected", "Rejected (no-op)"
    IGNORED = "ignored", "Ignored (unhandled)"


class DeliveryOutcome(models.TextChoices):
    """Outcome of one HTTP delivery of a webhook event."""

    APPLIED = "applied", "Applied"
    DUPLICATE = "duplicate", "Duplicate (skipped)"
    REJECTED = "rejected", "Rejected (no-op)"
    IGNORED = "ignored", "Ignored (unhandled)"


__all__ = [
    "CommissionStatus",
    "DeliveryOutcome",
    "PaymentStatus",
    "RefundStatus",
    "WebhookOutcome",
]
