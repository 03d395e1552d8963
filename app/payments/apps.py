"""
Payments app configuration.

This app provides the payment reconciliation core:
- Payment, Refund and Commission models
- Webhook verification, idempotency ledger and routing
- State transition engine and commission ledger
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
