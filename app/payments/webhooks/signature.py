"""
Webhook signature verification.

The provider signs each notification with
``base64(HMAC-SHA256(signature_key, notification_url + body))``. Several
canonical forms are tried in order of strength:

1. URL_AND_BODY - notification URL followed by the raw body bytes
2. RAW_BODY - the raw body bytes alone
3. RESERIALIZED_JSON - compact JSON re-serialization of the parsed body

Methods 2 and 3 exist because proxies in front of the service can alter
the URL the provider signed. They are skipped when a notification URL is
configured and ``require_notification_url`` is set.

Verification fails closed: no secret or no signature is always invalid.

Usage:
    from payments.webhooks.signature import verify_signature

    result = verify_signature(request.body, signature, secret, url)
    if not result.valid:
        return JsonResponse({"success": False}, status=401)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from enum import Enum

from payments.exceptions import WebhookAuthenticationError
from payments.webhooks.config import WebhookProviderConfig

logger = logging.getLogger(__name__)


class VerificationMethod(str, Enum):
    """Canonical form that produced a matching signature."""

    URL_AND_BODY = "url_and_body"
    RAW_BODY = "raw_body"
    RESERIALIZED_JSON = "reserialized_json"
    UNSIGNED_BYPASS = "unsigned_bypass"


SECRET_NOT_CONFIGURED = "SECRET_NOT_CONFIGURED"
SIGNATURE_MISSING = "SIGNATURE_MISSING"
SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a signature check. ``method`` is None when invalid."""

    valid: bool
    method: VerificationMethod | None = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.valid


def compute_signature(secret: str, message: bytes) -> str:
    """Return ``base64(HMAC-SHA256(secret, message))``."""
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _matches(secret: str, message: bytes, provided: str) -> bool:
    expected = compute_signature(secret, message)
    return hmac.compare_digest(expected.encode("ascii"), provided.encode("utf-8"))


def _reserialize(raw_body: bytes) -> bytes | None:
    try:
        parsed = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return None
    return json.dumps(parsed, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


def verify_signature(
    raw_body: bytes,
    provided_signature: str | None,
    secret: str | None,
    notification_url: str | None = None,
    *,
    require_notification_url: bool = False,
) -> VerificationResult:
    """
    Check a webhook signature against every accepted canonical form.

    Args:
        raw_body: Request body exactly as received
        provided_signature: Value of the provider's signature header
        secret: Provider signature key
        notification_url: URL registered with the provider, if known
        require_notification_url: Only accept the URL + body form when a
            URL is configured

    Returns:
        VerificationResult with the matching method, or invalid with a reason
    """
    if not secret:
        logger.error("Webhook signature key is not configured")
        return VerificationResult(valid=False, reason=SECRET_NOT_CONFIGURED)

    if not provided_signature:
        logger.warning("Webhook received without a signature")
        return VerificationResult(valid=False, reason=SIGNATURE_MISSING)

    if notification_url:
        message = notification_url.encode("utf-8") + raw_body
        if _matches(secret, message, provided_signature):
            logger.info(
                "Webhook signature verified",
                extra={"method": VerificationMethod.URL_AND_BODY.value},
            )
            return VerificationResult(
                valid=True, method=VerificationMethod.URL_AND_BODY
            )
        if require_notification_url:
            logger.warning(
                "Webhook signature mismatch with notification URL required",
                extra={"notification_url": notification_url},
            )
            return VerificationResult(valid=False, reason=SIGNATURE_MISMATCH)

    if _matches(secret, raw_body, provided_signature):
        logger.info(
            "Webhook signature verified",
            extra={"method": VerificationMethod.RAW_BODY.value},
        )
        return VerificationResult(valid=True, method=VerificationMethod.RAW_BODY)

    reserialized = _reserialize(raw_body)
    if reserialized is not None and _matches(secret, reserialized, provided_signature):
        logger.warning(
            "Webhook signature verified only against re-serialized JSON",
            extra={"method": VerificationMethod.RESERIALIZED_JSON.value},
        )
        return VerificationResult(
            valid=True, method=VerificationMethod.RESERIALIZED_JSON
        )

    logger.warning("Webhook signature mismatch")
    return VerificationResult(valid=False, reason=SIGNATURE_MISMATCH)


class WebhookVerifier:
    """
    Verifies deliveries for one provider.

    Example:
        verifier = WebhookVerifier(get_provider_config("square"))
        verifier.verify(request.body, request.headers.get(verifier.header))
    """

    def __init__(self, config: WebhookProviderConfig):
        self.config = config

    @property
    def header(self) -> str:
        return self.config.signature_header

    def check(self, raw_body: bytes, provided_signature: str | None) -> VerificationResult:
        if self.config.allow_unsigned and not provided_signature:
            logger.warning(
                "Accepting unsigned webhook (WEBHOOK_ALLOW_UNSIGNED is set)",
                extra={"provider": self.config.name},
            )
            return VerificationResult(
                valid=True, method=VerificationMethod.UNSIGNED_BYPASS
            )
        return verify_signature(
            raw_body,
            provided_signature,
            self.config.secret,
            self.config.notification_url or None,
            require_notification_url=self.config.require_notification_url,
        )

    def verify(self, raw_body: bytes, provided_signature: str | None) -> VerificationResult:
        """Like ``check`` but raises WebhookAuthenticationError when invalid."""
        result = self.check(raw_body, provided_signature)
        if not result.valid:
            raise WebhookAuthenticationError(
                "Webhook signature verification failed",
                error_code=result.reason,
                details={"provider": self.config.name},
            )
        return result
