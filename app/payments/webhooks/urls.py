"""
URL configuration for provider webhooks.

Routes (prefixed with /payments/webhook/):
    health/      - GET, provider and circuit status
    <provider>/  - POST, webhook delivery
"""

from django.urls import path

from payments.webhooks.views import provider_webhook, webhook_health

app_name = "webhooks"

urlpatterns = [
    path("health/", webhook_health, name="health"),
    path("<slug:provider>/", provider_webhook, name="provider"),
]
