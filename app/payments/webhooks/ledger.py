"""
Event ledger: exactly-once processing over at-least-once delivery.

``record_if_new`` is a single INSERT guarded by the unique ``event_id``
index, run in a savepoint so a duplicate does not poison the caller's
transaction. Callers run it inside the same ``transaction.atomic()`` block
as the state transition: if the transition crashes, the ledger row rolls
back with it and the provider's retry is processed normally. A concurrent
duplicate blocks on the unique index until the first transaction commits
and then sees ``is_new=False``.

Usage:
    with transaction.atomic():
        record = EventLedger.record_if_new("square", event_id, event_type, summary)
        if not record.is_new:
            ...  # already handled
        ...  # apply the transition
        EventLedger.attach_outcome(record.event, WebhookOutcome.APPLIED)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from payments.exceptions import DuplicateEventError
from payments.models import WebhookDelivery, WebhookEvent
from payments.state_machines import DeliveryOutcome, WebhookOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerRecord:
    """Result of ``record_if_new``; ``event`` is the existing row on duplicates."""

    is_new: bool
    event: WebhookEvent


class EventLedger:
    """Idempotency store keyed by provider event id."""

    @staticmethod
    def record_if_new(
        provider: str,
        event_id: str,
        event_type: str,
        payload_summary: dict[str, Any] | None = None,
    ) -> LedgerRecord:
        try:
            with transaction.atomic():
                event = WebhookEvent.objects.create(
                    provider=provider,
                    event_id=event_id,
                    event_type=event_type,
                    payload_summary=payload_summary or {},
                )
        except IntegrityError:
            existing = WebhookEvent.objects.get(event_id=event_id)
            logger.info(
                "Duplicate webhook event",
                extra={
                    "event_id": event_id,
                    "event_type": event_type,
                    "outcome": existing.outcome,
                },
            )
            return LedgerRecord(is_new=False, event=existing)
        return LedgerRecord(is_new=True, event=event)

    @classmethod
    def record(
        cls,
        provider: str,
        event_id: str,
        event_type: str,
        payload_summary: dict[str, Any] | None = None,
    ) -> WebhookEvent:
        """Like ``record_if_new`` but raises DuplicateEventError on duplicates."""
        result = cls.record_if_new(provider, event_id, event_type, payload_summary)
        if not result.is_new:
            raise DuplicateEventError(
                f"Webhook event {event_id} was already recorded",
                details={"event_id": event_id, "outcome": result.event.outcome},
            )
        return result.event

    @staticmethod
    def attach_outcome(
        event: WebhookEvent,
        outcome: str,
        detail: str = "",
        *,
        routed_as: str = "",
    ) -> bool:
        """
        Set the terminal outcome of a ledger entry.

        Only a ``received`` entry is updated, so an outcome is attached at
        most once. Returns False when the entry already had one.
        """
        if outcome == WebhookOutcome.RECEIVED:
            raise ValueError("received is not a terminal outcome")

        processed_at = timezone.now()
        updated = WebhookEvent.objects.filter(
            pk=event.pk,
            outcome=WebhookOutcome.RECEIVED,
        ).update(
            outcome=outcome,
            outcome_detail=detail,
            routed_as=routed_as,
            processed_at=processed_at,
            updated_at=processed_at,
        )
        if updated:
            event.outcome = outcome
            event.outcome_detail = detail
            event.routed_as = routed_as
            event.processed_at = processed_at
        else:
            logger.warning(
                "Webhook event already has an outcome",
                extra={"event_id": event.event_id, "outcome": outcome},
            )
        return bool(updated)

    @staticmethod
    def log_delivery(
        event: WebhookEvent,
        outcome: DeliveryOutcome | str,
        latency_ms: int = 0,
    ) -> WebhookDelivery:
        return WebhookDelivery.objects.create(
            event=event,
            outcome=outcome,
            latency_ms=max(int(latency_ms), 0),
        )
