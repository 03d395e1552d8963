"""
DRF serializers for the payments audit API.

This module provides serializers for:
- Webhook ledger entries and their deliveries
- Commissions and the commission summary
- Payments with their refunds (booking payments audit)

Usage:
    serializer = WebhookEventSerializer(event)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import Commission, Payment, Refund, WebhookDelivery, WebhookEvent


class WebhookDeliverySerializer(serializers.ModelSerializer):
    """One delivery of a webhook event."""

    class Meta:
        model = WebhookDelivery
        fields = ["id", "outcome", "latency_ms", "created_at"]
        read_only_fields = fields


class WebhookEventSerializer(serializers.ModelSerializer):
    """
    Ledger entry for a provider event id.

    Fields:
        received_at: When the event was first recorded
        delivery_count: Number of HTTP deliveries seen, duplicates included
    """

    received_at = serializers.DateTimeField(source="created_at", read_only=True)
    delivery_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = WebhookEvent
        fields = [
            "id",
            "provider",
            "event_id",
            "event_type",
            "routed_as",
            "outcome",
            "outcome_detail",
            "payload_summary",
            "received_at",
            "processed_at",
            "delivery_count",
        ]
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = Refund
        fields = [
            "id",
            "payment",
            "amount",
            "currency",
            "status",
            "reason",
            "provider_transaction_id",
            "processed_at",
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    """Payment with every refund recorded against it."""

    refunds = RefundSerializer(many=True, read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "amount",
            "currency",
            "status",
            "provider",
            "provider_transaction_id",
            "error_code",
            "processed_at",
            "refunds",
        ]
        read_only_fields = fields


class CommissionSerializer(serializers.ModelSerializer):
    """Commission with its amounts; hotel_earnings = base - commission."""

    provider_transaction_id = serializers.CharField(
        source="payment.provider_transaction_id", read_only=True
    )

    class Meta:
        model = Commission
        fields = [
            "id",
            "booking",
            "payment",
            "provider_transaction_id",
            "base_amount",
            "rate",
            "commission_amount",
            "earned_amount",
            "reversed_amount",
            "hotel_earnings",
            "currency",
            "status",
            "earned_at",
            "reversed_at",
            "payout_reference",
            "paid_at",
        ]
        read_only_fields = fields


class CommissionSummarySerializer(serializers.Serializer):
    """Totals returned by ``payments.services.commissions.summarize``."""

    currency = serializers.CharField(allow_null=True)
    pending = serializers.DecimalField(max_digits=14, decimal_places=2)
    earned = serializers.DecimalField(max_digits=14, decimal_places=2)
    paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    reversed = serializers.DecimalField(max_digits=14, decimal_places=2)
    count = serializers.IntegerField()


class MarkCommissionsPaidSerializer(serializers.Serializer):
    """Request body for marking a payout batch."""

    commission_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
    )
    payout_reference = serializers.CharField(max_length=255)
