"""Tests for the webhook event idempotency ledger."""

import pytest
from django.db import transaction

from payments.exceptions import DuplicateEventError
from payments.models import WebhookDelivery, WebhookEvent
from payments.state_machines import DeliveryOutcome, WebhookOutcome
from payments.webhooks.ledger import EventLedger


@pytest.mark.django_db
class TestRecordIfNew:
    def test_first_delivery_is_new(self):
        record = EventLedger.record_if_new("square", "evt_1", "payment.updated", {"amount": "450.00"})

        assert record.is_new is True
        assert record.event.outcome == WebhookOutcome.RECEIVED
        assert record.event.payload_summary == {"amount": "450.00"}

    def test_second_delivery_returns_existing_entry(self):
        first = EventLedger.record_if_new("square", "evt_1", "payment.updated")
        EventLedger.attach_outcome(first.event, WebhookOutcome.APPLIED)

        second = EventLedger.record_if_new("square", "evt_1", "payment.updated")

        assert second.is_new is False
        assert second.event.pk == first.event.pk
        assert second.event.outcome == WebhookOutcome.APPLIED
        assert WebhookEvent.objects.count() == 1

    def test_duplicate_leaves_outer_transaction_usable(self):
        """Should keep the caller's transaction alive after a duplicate."""
        EventLedger.record_if_new("square", "evt_1", "payment.updated")

        with transaction.atomic():
            EventLedger.record_if_new("square", "evt_1", "payment.updated")
            EventLedger.record_if_new("square", "evt_2", "payment.updated")

        assert WebhookEvent.objects.count() == 2

    def test_rollback_forgets_the_event(self):
        """Should process a retry normally when the first attempt rolled back."""
        with pytest.raises(RuntimeError):
            with transaction.atomic():
                EventLedger.record_if_new("square", "evt_1", "payment.updated")
                raise RuntimeError("transition crashed")

        assert EventLedger.record_if_new("square", "evt_1", "payment.updated").is_new is True

    def test_record_raises_on_duplicate(self):
        EventLedger.record("square", "evt_1", "payment.updated")

        with pytest.raises(DuplicateEventError) as exc_info:
            EventLedger.record("square", "evt_1", "payment.updated")

        assert exc_info.value.details["outcome"] == WebhookOutcome.RECEIVED


@pytest.mark.django_db
class TestAttachOutcome:
    @pytest.fixture
    def event(self):
        return EventLedger.record("square", "evt_1", "payment.updated")

    def test_sets_outcome_once(self, event):
        assert EventLedger.attach_outcome(event, WebhookOutcome.REJECTED, "AMOUNT_MISMATCH", routed_as="PaymentSucceeded")

        stored = WebhookEvent.objects.get(pk=event.pk)
        assert stored.outcome == WebhookOutcome.REJECTED
        assert stored.outcome_detail == "AMOUNT_MISMATCH"
        assert stored.routed_as == "PaymentSucceeded"
        assert stored.processed_at is not None

    def test_second_outcome_is_ignored(self, event):
        EventLedger.attach_outcome(event, WebhookOutcome.APPLIED)

        assert EventLedger.attach_outcome(event, WebhookOutcome.REJECTED) is False
        assert WebhookEvent.objects.get(pk=event.pk).outcome == WebhookOutcome.APPLIED

    def test_received_is_not_terminal(self, event):
        with pytest.raises(ValueError):
            EventLedger.attach_outcome(event, WebhookOutcome.RECEIVED)


@pytest.mark.django_db
class TestLogDelivery:
    def test_logs_each_delivery(self):
        event = EventLedger.record("square", "evt_1", "payment.updated")

        EventLedger.log_delivery(event, DeliveryOutcome.APPLIED, 12)
        EventLedger.log_delivery(event, DeliveryOutcome.DUPLICATE, 3)

        assert sorted(event.deliveries.values_list("outcome", flat=True)) == [
            DeliveryOutcome.APPLIED,
            DeliveryOutcome.DUPLICATE,
        ]

    def test_negative_latency_is_clamped(self):
        event = EventLedger.record("square", "evt_1", "payment.updated")

        delivery = EventLedger.log_delivery(event, DeliveryOutcome.APPLIED, -5)

        assert WebhookDelivery.objects.get(pk=delivery.pk).latency_ms == 0
