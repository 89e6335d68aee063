"""Fleet domain models."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Boat(models.Model):
    """Barque de la flotte."""

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", _("En service")
        MAINTENANCE = "MAINTENANCE", _("En maintenance")
        RETIRED = "RETIRED", _("Hors flotte")

    name = models.CharField(max_length=100)
    capacity = models.PositiveSmallIntegerField(default=12)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Barque")
        verbose_name_plural = _("Barques")
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(capacity__gt=0),
                name="boat_positive_capacity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.capacity}p)"

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE
