"""
Per-provider webhook configuration.

Built from the ``WEBHOOK_PROVIDERS`` setting and passed explicitly to the
verifier and processor, so tests construct their own configs instead of
patching module state.

Usage:
    from payments.webhooks.config import get_provider_config

    config = get_provider_config("square")
    signature = request.headers.get(config.signature_header, "")
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings

from payments.exceptions import UnknownProviderError


@dataclass(frozen=True)
class WebhookProviderConfig:
    """Signing and header configuration for one webhook provider."""

    name: str
    secret: str
    notification_url: str = ""
    signature_header: str = "X-Square-HmacSha256-Signature"
    require_notification_url: bool = False
    allow_unsigned: bool = False

    @classmethod
    def from_settings(cls, name: str) -> WebhookProviderConfig:
        providers = getattr(settings, "WEBHOOK_PROVIDERS", {})
        if name not in providers:
            raise UnknownProviderError(
                f"No webhook configuration for provider '{name}'",
                details={"provider": name},
            )
        entry = providers[name]

        # The unsigned bypass never applies in production.
        allow_unsigned = bool(getattr(settings, "WEBHOOK_ALLOW_UNSIGNED", False))
        if getattr(settings, "DEPLOYMENT_ENV", "production") == "production":
            allow_unsigned = False

        return cls(
            name=name,
            secret=entry.get("SECRET", "") or "",
            notification_url=entry.get("NOTIFICATION_URL", "") or "",
            signature_header=entry.get(
                "SIGNATURE_HEADER", "X-Square-HmacSha256-Signature"
            ),
            require_notification_url=bool(
                entry.get("REQUIRE_NOTIFICATION_URL", False)
            ),
            allow_unsigned=allow_unsigned,
        )


def get_provider_config(name: str) -> WebhookProviderConfig:
    """Shortcut for ``WebhookProviderConfig.from_settings``."""
    return WebhookProviderConfig.from_settings(name)


def configured_providers() -> list[str]:
    return sorted(getattr(settings, "WEBHOOK_PROVIDERS", {}).keys())
