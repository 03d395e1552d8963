"""
State machine enums for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    CommissionStatus,
    DeliveryOutcome,
    PaymentStatus,
    RefundStatus,
    WebhookOutcome,
)

__all__ = [
    "CommissionStatus",
    "DeliveryOutcome",
    "PaymentStatus",
    "RefundStatus",
    "WebhookOutcome",
]
