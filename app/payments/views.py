"""
Views for the payments audit API (staff only).

Endpoints:
    GET  /api/v1/payments/webhook-events/                  - Ledger entries
    GET  /api/v1/payments/webhook-events/{id}/             - Ledger entry
    GET  /api/v1/payments/webhook-events/{id}/deliveries/  - Delivery log
    GET  /api/v1/payments/commissions/                     - Commissions
    GET  /api/v1/payments/commissions/{id}/                - Commission
    GET  /api/v1/payments/commissions/summary/?currency=   - Totals
    POST /api/v1/payments/commissions/mark-paid/           - Payout batch
"""

from __future__ import annotations

import logging

from django.db.models import Count
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view

from payments.exceptions import PaymentValidationError
from payments.models import Commission, WebhookEvent
from payments.serializers import (
    CommissionSerializer,
    CommissionSummarySerializer,
    MarkCommissionsPaidSerializer,
    WebhookDeliverySerializer,
    WebhookEventSerializer,
)
from payments.services.commissions import mark_commissions_paid, summarize

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_webhook_events",
        summary="List webhook ledger entries",
        tags=["Payments - Audit"],
    ),
    retrieve=extend_schema(
        operation_id="get_webhook_event",
        summary="Get webhook ledger entry",
        tags=["Payments - Audit"],
    ),
)
class WebhookEventViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Idempotency ledger entries.

    Filtering:
    - ?outcome=rejected
    - ?event_type=payment.updated
    - ?provider=square
    """

    serializer_class = WebhookEventSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = WebhookEvent.objects.annotate(delivery_count=Count("deliveries")).order_by(
            "-created_at"
        )
        for param in ("outcome", "event_type", "provider"):
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})
        return queryset

    @extend_schema(
        operation_id="list_webhook_event_deliveries",
        summary="Deliveries of a webhook event",
        responses=WebhookDeliverySerializer(many=True),
        tags=["Payments - Audit"],
    )
    @action(detail=True, methods=["get"])
    def deliveries(self, request, pk=None):
        event = self.get_object()
        return Response(
            WebhookDeliverySerializer(event.deliveries.order_by("created_at"), many=True).data
        )


@extend_schema_view(
    list=extend_schema(
        operation_id="list_commissions",
        summary="List commissions",
        tags=["Payments - Commissions"],
    ),
    retrieve=extend_schema(
        operation_id="get_commission",
        summary="Get commission",
        tags=["Payments - Commissions"],
    ),
)
class CommissionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Commission ledger.

    Filtering:
    - ?status=earned
    - ?currency=USD
    - ?booking=<uuid>
    """

    serializer_class = CommissionSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = Commission.objects.select_related("payment")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        currency = self.request.query_params.get("currency")
        if currency:
            queryset = queryset.filter(currency=currency.upper())
        booking = self.request.query_params.get("booking")
        if booking:
            queryset = queryset.filter(booking_id=booking)
        return queryset

    @extend_schema(
        operation_id="get_commission_summary",
        summary="Commission totals",
        parameters=[OpenApiParameter("currency", str, required=False)],
        responses=CommissionSummarySerializer,
        tags=["Payments - Commissions"],
    )
    @action(detail=False, methods=["get"])
    def summary(self, request):
        totals = summarize(request.query_params.get("currency"))
        return Response(CommissionSummarySerializer(totals).data)

    @extend_schema(
        operation_id="mark_commissions_paid",
        summary="Mark commissions paid",
        request=MarkCommissionsPaidSerializer,
        tags=["Payments - Commissions"],
    )
    @action(detail=False, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request):
        serializer = MarkCommissionsPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            updated = mark_commissions_paid(
                serializer.validated_data["commission_ids"],
                serializer.validated_data["payout_reference"],
            )
        except PaymentValidationError as e:
            return Response(e.to_dict(), status=status.HTTP_400_BAD_REQUEST)
        return Response({"updated": updated})
