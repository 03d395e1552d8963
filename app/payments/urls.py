"""
URL configuration for the payments audit API.

Routes:
    webhook-events/                  - Idempotency ledger (GET)
    webhook-events/{id}/deliveries/  - Delivery log (GET)
    commissions/                     - Commission ledger (GET)
    commissions/summary/             - Totals (GET)
    commissions/mark-paid/           - Payout batch (POST)

All routes are prefixed with /api/v1/payments/ when included in the main
URLconf. Provider webhooks are routed separately by payments.webhooks.urls.
"""

from rest_framework.routers import DefaultRouter

from payments.views import CommissionViewSet, WebhookEventViewSet

router = DefaultRouter()
router.register(r"webhook-events", WebhookEventViewSet, basename="webhook-event")
router.register(r"commissions", CommissionViewSet, basename="commission")

app_name = "payments"
urlpatterns = router.urls
