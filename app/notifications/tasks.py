"""
Celery tasks for notification delivery.

Tasks:
    send_notification: Deferred delivery of a booking notification

Design:
    - Enqueued by payments.side_effects when the immediate send fails
    - Transient errors (SMTP, connection, timeout) are retried with backoff
    - A missing booking is permanent: logged and not retried
    - When retries are exhausted the failure is recorded as a delivery

Usage:
    from notifications.tasks import send_notification

    send_notification.delay("booking_confirmed", str(booking.id), {"amount": "450.00"})
"""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task

from core.exceptions import NotFoundError, is_transient_error

from notifications.models import DeliveryChannel
from notifications.services import NotificationService

logger = logging.getLogger(__name__)

MAX_RETRIES = 5


@shared_task(
    bind=True,
    max_retries=MAX_RETRIES,
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
)
def send_notification(
    self,
    kind: str,
    booking_id: str,
    context: dict[str, Any] | None = None,
) -> bool:
    """
    Send a booking notification from a worker.

    Args:
        kind: Notification kind (e.g. "booking_confirmed")
        booking_id: UUID string of the booking
        context: Extra template context (JSON-serializable)

    Returns:
        True if sent or skipped, False if the booking no longer exists
    """
    try:
        NotificationService.send(kind, booking_id, context, channel=DeliveryChannel.QUEUED)
        return True

    except NotFoundError as e:
        logger.warning(
            f"Notification {kind} dropped: {e.message}",
            extra={"booking_id": booking_id},
        )
        return False

    except Exception as e:
        if not is_transient_error(e):
            NotificationService.record_failure(kind, booking_id, e)
            raise
        if self.request.retries >= self.max_retries:
            NotificationService.record_failure(kind, booking_id, e)
            raise
        logger.warning(
            f"Notification {kind} transiently failed, will retry: {e}",
            extra={"booking_id": booking_id, "attempt": self.request.retries + 1},
        )
        raise self.retry(exc=e, countdown=2 ** self.request.retries * 30)
