"""
Notification service layer.

Sends booking notification emails. Used by the payment side-effect
dispatcher as the immediate delivery path and by the Celery task as the
fallback path.

Design Principles:
    - Services are stateless (use class methods)
    - Transport errors propagate so the caller's retry/fallback can act
    - Template rendering raises KeyError on missing placeholders
    - Every final result is recorded as a NotificationDelivery

Usage:
    from notifications.services import NotificationService

    NotificationService.send("booking_confirmed", str(booking.id), {"amount": "450.00"})
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.mail import get_connection, send_mail

from core.exceptions import NotFoundError
from core.services import BaseService

from bookings.models import Booking
from notifications.models import DeliveryChannel, DeliveryStatus, NotificationDelivery
from notifications.message_templates import render_message

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """
    Service for sending booking notifications.

    Methods:
        send: Render and email a notification for a booking
        build_context: Booking fields available to every template
    """

    @classmethod
    def build_context(cls, booking: Booking, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        context = {
            "guest_name": booking.guest_name,
            "confirmation_number": booking.confirmation_number,
            "check_in": booking.check_in.isoformat(),
            "check_out": booking.check_out.isoformat(),
            "amount": str(booking.total_amount),
            "currency": booking.currency,
            "reason": "",
            "error_message": "",
        }
        context.update(extra or {})
        return context

    @classmethod
    def send(
        cls,
        kind: str,
        booking_id: str,
        context: dict[str, Any] | None = None,
        *,
        channel: str = DeliveryChannel.IMMEDIATE,
    ) -> NotificationDelivery:
        """
        Email notification ``kind`` to the booking's guest.

        Returns:
            The NotificationDelivery record (SENT or SKIPPED)

        Raises:
            NotFoundError: The booking does not exist
            OSError: SMTP/connection failure (transient, retried by callers)
        """
        try:
            booking = Booking.objects.get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFoundError(
                f"Booking {booking_id} not found",
                details={"booking_id": str(booking_id), "kind": kind},
            ) from None

        if not booking.guest_email:
            logger.info(
                f"Notification {kind} skipped: booking has no guest email",
                extra={"booking_id": str(booking.id)},
            )
            return NotificationDelivery.objects.create(
                kind=kind,
                booking=booking,
                channel=channel,
                status=DeliveryStatus.SKIPPED,
                failure_reason="no guest email",
            )

        subject, body = render_message(kind, cls.build_context(booking, context))
        connection = get_connection(timeout=settings.EMAIL_TIMEOUT)
        send_mail(
            subject,
            body,
            settings.DEFAULT_FROM_EMAIL,
            [booking.guest_email],
            connection=connection,
        )

        logger.info(
            f"Notification {kind} sent",
            extra={
                "booking_id": str(booking.id),
                "recipient": booking.guest_email,
                "channel": channel,
            },
        )
        return NotificationDelivery.objects.create(
            kind=kind,
            booking=booking,
            recipient=booking.guest_email,
            subject=subject,
            channel=channel,
            status=DeliveryStatus.SENT,
        )

    @classmethod
    def record_failure(
        cls,
        kind: str,
        booking_id: str,
        error: Exception,
        *,
        channel: str = DeliveryChannel.QUEUED,
    ) -> NotificationDelivery | None:
        """Record a delivery that failed for good (retries exhausted)."""
        booking = Booking.objects.filter(pk=booking_id).first()
        if booking is None:
            return None
        cls.handle_exception(error, f"notification {kind} for booking {booking_id}")
        return NotificationDelivery.objects.create(
            kind=kind,
            booking=booking,
            recipient=booking.guest_email,
            channel=channel,
            status=DeliveryStatus.FAILED,
            failure_reason=str(error),
        )
