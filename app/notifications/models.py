"""
Notification delivery records.

One NotificationDelivery row per send attempt that reached a final state,
so support staff can see which booking emails went out and by which path.

Usage:
    from notifications.models import NotificationDelivery

    NotificationDelivery.objects.filter(booking_id=booking.id, kind="booking_confirmed")
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


# =============================================================================
# Enums
# =============================================================================


class NotificationKind(models.TextChoices):
    """Booking notifications sent after a payment event."""

    BOOKING_CONFIRMED = "booking_confirmed", "Booking Confirmed"
    PAYMENT_FAILED = "payment_failed", "Payment Failed"
    REFUND_CONFIRMED = "refund_confirmed", "Refund Confirmed"


class DeliveryChannel(models.TextChoices):
    """How the notification was delivered."""

    IMMEDIATE = "immediate", "Immediate"
    QUEUED = "queued", "Queued (Celery)"


class DeliveryStatus(models.TextChoices):
    SENT = "sent", "Sent"
    SKIPPED = "skipped", "Skipped"
    FAILED = "failed", "Failed"


# =============================================================================
# Models
# =============================================================================


class NotificationDelivery(UUIDPrimaryKeyMixin, BaseModel):
    """
    Result of sending one notification.

    Fields:
        kind: Which notification was sent
        booking: Booking it was about
        recipient: Email address used
        subject: Rendered subject line
        channel: Immediate send or Celery fallback
        status: Sent, skipped or failed
        failure_reason: Error message when failed or skipped
    """

    kind = models.CharField(
        max_length=32,
        choices=NotificationKind.choices,
        db_index=True,
        help_text="Notification kind",
    )

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="notification_deliveries",
        help_text="Booking the notification is about",
    )

    recipient = models.EmailField(
        blank=True,
        default="",
        help_text="Recipient email address",
    )

    subject = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Rendered subject line",
    )

    channel = models.CharField(
        max_length=20,
        choices=DeliveryChannel.choices,
        default=DeliveryChannel.IMMEDIATE,
        help_text="Delivery path",
    )

    status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        db_index=True,
        help_text="Delivery status",
    )

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Error details when the delivery failed or was skipped",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Notification Delivery"
        verbose_name_plural = "Notification Deliveries"
        indexes = [
            models.Index(fields=["booking", "kind"]),
        ]

    def __str__(self) -> str:
        return f"NotificationDelivery({self.kind}, {self.recipient}, {self.status})"
