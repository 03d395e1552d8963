"""
Webhook endpoint views.

    POST /payments/webhook/<provider>/   Receive a provider notification
    GET  /payments/webhook/health/       Provider configuration and circuit status

The body is handed to the processor as raw bytes; it is never parsed
before the signature is checked.

Responses (JSON ``{"success", "event_id", "outcome"}``):
    200 - processed, duplicate, ignored, rejected, malformed or stale
    401 - signature verification failed
    404 - unknown provider
    500 - unexpected failure; nothing was committed, the provider retries
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from core.resilience import ResilienceConfig, ResilientExecutor

from payments.exceptions import UnknownProviderError
from payments.side_effects import NOTIFICATION_OPERATION
from payments.webhooks.config import configured_providers, get_provider_config
from payments.webhooks.processor import WebhookProcessor

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def provider_webhook(request: HttpRequest, provider: str) -> JsonResponse:
    """
    Receive and process a webhook delivery synchronously.

    Processing happens in the request so the provider's retry policy is
    the only redelivery mechanism: a 500 means nothing was committed.
    """
    try:
        config = get_provider_config(provider)
    except UnknownProviderError as e:
        logger.warning("Webhook for unknown provider", extra={"provider": provider})
        return JsonResponse(
            {"success": False, "event_id": None, "outcome": "unknown_provider", "error": e.message},
            status=404,
        )

    signature = request.headers.get(config.signature_header)

    try:
        result = WebhookProcessor(config).process(request.body, signature)
    except Exception as e:
        logger.error(
            f"Unexpected error processing webhook: {type(e).__name__}",
            extra={"provider": provider},
            exc_info=True,
        )
        return JsonResponse(
            {"success": False, "event_id": None, "outcome": "error"},
            status=500,
        )

    return JsonResponse(result.to_response(), status=result.status_code)


@require_GET
def webhook_health(request: HttpRequest) -> JsonResponse:
    """Report configured providers and the notification circuit state."""
    providers = []
    for name in configured_providers():
        config = get_provider_config(name)
        providers.append(
            {
                "name": name,
                "secret_configured": bool(config.secret),
                "notification_url_configured": bool(config.notification_url),
                "signature_header": config.signature_header,
                "require_notification_url": config.require_notification_url,
            }
        )

    executor = ResilientExecutor(ResilienceConfig.from_settings())
    circuit = executor.breaker(NOTIFICATION_OPERATION).get_status()

    return JsonResponse(
        {
            "status": "healthy" if all(p["secret_configured"] for p in providers) else "degraded",
            "timestamp": timezone.now().isoformat(),
            "providers": providers,
            "circuits": [circuit],
        }
    )
