"""
ProviderCustomer model: the provider's view of a guest.

Kept in sync by ``customer.created``/``customer.updated`` webhooks so that
support staff can match provider customer ids to guest emails.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class ProviderCustomer(UUIDPrimaryKeyMixin, BaseModel):
    """Customer record mirrored from a payment provider."""

    provider = models.CharField(
        max_length=32,
        help_text="Provider key (e.g. 'square')",
    )

    provider_customer_id = models.CharField(
        max_length=255,
        help_text="Customer id at the provider",
    )

    email = models.EmailField(
        blank=True,
        default="",
        db_index=True,
        help_text="Customer email address",
    )

    given_name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Customer given name",
    )

    family_name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Customer family name",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Provider Customer"
        verbose_name_plural = "Provider Customers"
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "provider_customer_id"],
                name="unique_provider_customer",
            ),
        ]

    def __str__(self) -> str:
        return f"ProviderCustomer({self.provider}, {self.provider_customer_id})"
