"""
URL configuration for the Django application.

URL Structure:
    /admin/                               - Django admin interface
    /health/                              - Health check endpoint (load balancers, Docker)
    /schema/                              - OpenAPI schema (YAML)
    /payments/webhook/health/             - Webhook provider and circuit status
    /payments/webhook/<provider>/         - Provider webhook endpoint (POST)
    /api/v1/payments/                     - Payment audit endpoints (admin only)
        webhook-events/                   - Idempotency ledger entries
        webhook-events/{id}/deliveries/   - Delivery log for one event
        commissions/                      - Commission ledger
        commissions/summary/              - Commission totals per currency
    /api/v1/bookings/                     - Booking audit endpoints (admin only)
        {id}/history/                     - Status history for one booking
        {id}/payments/                    - Payments and refunds for one booking

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("payments/", include("payments.urls")),
    path("bookings/", include("bookings.urls")),
]

urlpatterns = [
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    # Provider webhooks live outside the versioned API
    path("payments/webhook/", include("payments.webhooks.urls")),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Booking Payments Admin"
admin.site.site_title = "Booking Payments"
admin.site.index_title = "Reconciliation"
