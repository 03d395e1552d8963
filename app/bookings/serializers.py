"""
Serializers for the booking audit API.

Serializers:
    BookingSerializer: Booking with its current status and payment status
    BookingStatusHistorySerializer: One history row
"""

from __future__ import annotations

from rest_framework import serializers

from bookings.models import Booking, BookingStatusHistory


class BookingStatusHistorySerializer(serializers.ModelSerializer):
    """Read-only serializer for status history rows."""

    class Meta:
        model = BookingStatusHistory
        fields = [
            "id",
            "previous_status",
            "new_status",
            "reason",
            "actor",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    """Read-only serializer for bookings as seen by the audit UI."""

    guest_name = serializers.CharField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "confirmation_number",
            "guest_email",
            "guest_name",
            "hotel_id",
            "room_id",
            "check_in",
            "check_out",
            "total_amount",
            "currency",
            "status",
            "payment_status",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
        ]
        read_only_fields = fields
