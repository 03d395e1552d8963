"""
Webhook handling for payment provider events.

Modules:
    config     - Per-provider signing configuration
    signature  - HMAC signature verification
    envelope   - Body parsing and replay-window checks
    router     - Typed routed events
    ledger     - Idempotency ledger over WebhookEvent
    handlers   - Routed event -> transition engine
    processor  - Pipeline for one delivery
    views/urls - HTTP endpoints

Usage:
    # In config/urls.py
    path("payments/webhook/", include("payments.webhooks.urls")),
"""
