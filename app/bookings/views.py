"""
Views for the booking audit API.

Endpoints:
    GET /api/v1/bookings/ - List bookings (filter by ?status=, ?payment_status=)
    GET /api/v1/bookings/{id}/ - Booking detail
    GET /api/v1/bookings/{id}/history/ - Status history, oldest first
    GET /api/v1/bookings/{id}/payments/ - Payments with their refunds
"""

from __future__ import annotations

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from drf_spectacular.utils import extend_schema, extend_schema_view

from bookings.models import Booking
from bookings.serializers import BookingSerializer, BookingStatusHistorySerializer
from payments.serializers import PaymentSerializer


@extend_schema_view(
    list=extend_schema(
        operation_id="list_bookings",
        summary="List bookings",
        tags=["Bookings - Audit"],
    ),
    retrieve=extend_schema(
        operation_id="get_booking",
        summary="Get booking",
        tags=["Bookings - Audit"],
    ),
)
class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only bookings for staff.

    Filtering:
    - ?status=confirmed
    - ?payment_status=paid
    """

    serializer_class = BookingSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = Booking.objects.all()
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        payment_status = self.request.query_params.get("payment_status")
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)
        return queryset

    @extend_schema(
        operation_id="get_booking_history",
        summary="Booking status history",
        responses=BookingStatusHistorySerializer(many=True),
        tags=["Bookings - Audit"],
    )
    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        booking = self.get_object()
        rows = booking.status_history.order_by("created_at")
        return Response(BookingStatusHistorySerializer(rows, many=True).data)

    @extend_schema(
        operation_id="list_booking_payments",
        summary="Payments and refunds of a booking",
        responses=PaymentSerializer(many=True),
        tags=["Bookings - Audit"],
    )
    @action(detail=True, methods=["get"])
    def payments(self, request, pk=None):
        booking = self.get_object()
        payments = booking.payments.prefetch_related("refunds").order_by("created_at")
        return Response(PaymentSerializer(payments, many=True).data)
