"""
Abstract model mixins.

    UUIDPrimaryKeyMixin: UUID primary key
    AppendOnlyMixin: rows are inserted once and never changed or deleted

Usage:
    class BookingStatusHistory(UUIDPrimaryKeyMixin, AppendOnlyMixin, BaseModel):
        reason = models.TextField()
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.db import models

from core.exceptions import ConflictError

if TYPE_CHECKING:
    from typing import Any


class UUIDPrimaryKeyMixin(models.Model):
    """UUID primary key; ids appear in audit URLs and provider metadata."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Record id",
    )

    class Meta:
        abstract = True


class AppendOnlyMixin(models.Model):
    """
    Audit rows that are written once and never changed.

    ``save()`` on an already persisted instance and ``delete()`` both raise
    ConflictError. Queryset-level ``update()``/``delete()`` bypass model
    methods, so audit tables must only be written through ``create()``.
    """

    class Meta:
        abstract = True

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ConflictError(
                f"{self.__class__.__name__} rows are append-only",
                error_code="APPEND_ONLY",
                details={"pk": str(self.pk)},
            )
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any):
        raise ConflictError(
            f"{self.__class__.__name__} rows are append-only",
            error_code="APPEND_ONLY",
            details={"pk": str(self.pk)},
        )
