"""
Payment domain models.

This module contains all payment-related models:
- Payment: One charge attempt for a booking
- Refund: Money returned against a succeeded payment
- Commission: Platform revenue share of a payment
- WebhookEvent: Idempotency ledger entry per provider event id
- WebhookDelivery: Append-only log of each webhook delivery
- ProviderCustomer: Customer records mirrored from the provider
"""

from payments.models.commission import Commission
from payments.models.customer import ProviderCustomer
from payments.models.payment import Payment
from payments.models.refund import Refund
from payments.models.webhook_event import WebhookDelivery, WebhookEvent

__all__ = [
    "Commission",
    "Payment",
    "ProviderCustomer",
    "Refund",
    "WebhookDelivery",
    "WebhookEvent",
]
