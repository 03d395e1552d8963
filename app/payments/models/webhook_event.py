"""
WebhookEvent and WebhookDelivery models: the idempotency ledger.

A WebhookEvent row is inserted once per provider event id. The unique
constraint on ``event_id`` is the only dedup mechanism: a second insert
for the same id fails, which callers read as "already handled". Only the
outcome fields are written after the insert.

Every HTTP delivery, the duplicates included, appends a WebhookDelivery
row, so the audit trail shows each retry without touching the ledger entry.

Usage:
    from payments.webhooks.ledger import EventLedger

    record = EventLedger.record_if_new("square", "evt_1", "payment.updated", {})
    if not record.is_new:
        EventLedger.log_delivery(record.event, DeliveryOutcome.DUPLICATE)
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import AppendOnlyMixin, UUIDPrimaryKeyMixin

from payments.state_machines import DeliveryOutcome, WebhookOutcome


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Ledger entry for one provider event id.

    Fields:
        provider: Provider key the event came from
        event_id: Provider event id (unique across providers)
        event_type: Provider event type ("payment.updated")
        payload_summary: Identifiers and amounts extracted from the payload
        outcome: received until the same transaction attaches a terminal one
        outcome_detail: Error code or reason behind the outcome
        routed_as: Routed event variant ("PaymentSucceeded")
        processed_at: When the outcome was attached

    Note:
        ``created_at`` is the received-at timestamp.
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    provider = models.CharField(
        max_length=32,
        db_index=True,
        help_text="Provider key (e.g. 'square')",
    )

    event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider event id - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Provider event type (e.g. 'payment.updated')",
    )

    payload_summary = models.JSONField(
        default=dict,
        blank=True,
        help_text="Identifiers and amounts extracted from the payload",
    )

    # ==========================================================================
    # Outcome
    # ==========================================================================

    outcome = models.CharField(
        max_length=20,
        choices=WebhookOutcome.choices,
        default=WebhookOutcome.RECEIVED,
        db_index=True,
        help_text="Terminal processing outcome",
    )

    outcome_detail = models.TextField(
        blank=True,
        default="",
        help_text="Error code or reason behind the outcome",
    )

    routed_as = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Routed event variant",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the outcome was attached",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["outcome", "created_at"]),
            models.Index(fields=["event_type", "created_at"]),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.event_id}, {self.event_type}, {self.outcome})"

    @property
    def received_at(self):
        return self.created_at


class WebhookDelivery(UUIDPrimaryKeyMixin, AppendOnlyMixin, BaseModel):
    """One HTTP delivery of a webhook event and what happened to it."""

    event = models.ForeignKey(
        WebhookEvent,
        on_delete=models.PROTECT,
        related_name="deliveries",
        help_text="Ledger entry the delivery belongs to",
    )

    outcome = models.CharField(
        max_length=20,
        choices=DeliveryOutcome.choices,
        db_index=True,
        help_text="Outcome of this delivery",
    )

    latency_ms = models.PositiveIntegerField(
        default=0,
        help_text="Processing time for this delivery in milliseconds",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Webhook Delivery"
        verbose_name_plural = "Webhook Deliveries"

    def __str__(self) -> str:
        return f"WebhookDelivery({self.event_id}, {self.outcome})"
