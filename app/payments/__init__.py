"""
Payments app: webhook-driven payment reconciliation.

This app handles:
- Webhook signature verification and idempotent processing
- Booking, payment, refund and commission state transitions
- Commission ledger and payout batches
- Post-commit notifications through the resilience layer

Related apps:
    - bookings: Booking and status history models
    - notifications: Email delivery for side effects

Usage:
    from payments.services import TransitionEngine
    from payments.webhooks.router import route

    TransitionEngine.apply(route(event_type, data), event_id=event_id)
"""
