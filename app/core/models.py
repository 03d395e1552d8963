"""
Abstract base model shared by every domain table.

Usage:
    from core.model_mixins import UUIDPrimaryKeyMixin
    from core.models import BaseModel

    class Refund(UUIDPrimaryKeyMixin, BaseModel):
        amount = models.DecimalField(max_digits=12, decimal_places=2)

List mixins before BaseModel.
"""

from __future__ import annotations

from django.db import models


class BaseModel(models.Model):
    """Insert and last-update timestamps, newest rows first."""

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the row was inserted",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the row was last saved",
    )

    class Meta:
        abstract = True
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{type(self).__name__}({self.pk})"
