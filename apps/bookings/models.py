"""Booking domain models for the barque tours."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class BookingAlreadyCancelledError(Exception):
    """Raised when trying to cancel an already cancelled booking."""


class Customer(models.Model):
    """Client identified by email (connect-or-create on booking)."""

    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=32, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Client")
        verbose_name_plural = _("Clients")

    def __str__(self) -> str:
        return f"{self.last_name} {self.first_name} <{self.email}>".strip()


class BookingQuerySet(models.QuerySet):
    def active(self) -> "BookingQuerySet":
        """Bookings that still occupy a barque."""
        return self.exclude(status=Booking.Status.CANCELLED)

    def intersecting(self, start, end) -> "BookingQuerySet":
        """Raw (unbuffered) intersection with ``[start, end)``."""
        return self.filter(start_time__lt=end, end_time__gt=start)


class Booking(models.Model):
    """Réservation d'un tour en barque."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("En attente")
        CONFIRMED = "CONFIRMED", _("Confirmée")
        CANCELLED = "CANCELLED", _("Annulée")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    public_reference = models.CharField(max_length=32, unique=True, editable=False)
    boat = models.ForeignKey(
        "fleet.Boat",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    date = models.DateField(help_text=_("Jour de départ (heure de Paris)."))
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    adults = models.PositiveSmallIntegerField(default=0)
    children = models.PositiveSmallIntegerField(default=0)
    babies = models.PositiveSmallIntegerField(default=0)
    number_of_people = models.PositiveSmallIntegerField(default=0)
    language = models.CharField(max_length=8)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )
    is_paid = models.BooleanField(default=False)
    total_price = models.DecimalField(max_digits=8, decimal_places=2)
    message = models.TextField(blank=True)
    invoice_email = models.EmailField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = _("Réservation")
        verbose_name_plural = _("Réservations")
        ordering = ["start_time", "created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_window",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    number_of_people=models.F("adults") + models.F("children") + models.F("babies")
                ),
                name="booking_people_breakdown",
            ),
        ]
        indexes = [
            models.Index(fields=["boat", "start_time"], name="booking_boat_start_idx"),
            models.Index(fields=["date"], name="booking_date_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.public_reference} on {self.boat_id} at {self.start_time:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):  # type: ignore
        self.number_of_people = self.adults + self.children + self.babies
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and {"adults", "children", "babies"} & set(update_fields):
            kwargs["update_fields"] = set(update_fields) | {"number_of_people"}
        super().save(*args, **kwargs)

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.Status.CANCELLED

    def mark_cancelled(self, reason: str = "") -> None:
        if self.is_cancelled:
            raise BookingAlreadyCancelledError(f"Booking {self.public_reference} already cancelled")
        self.status = self.Status.CANCELLED
        self.cancellation_reason = (reason or "")[:255]
        self.cancelled_at = timezone.now()
        self.save(update_fields=["status", "cancellation_reason", "cancelled_at", "updated_at"])

    def mark_paid(self) -> None:
        self.is_paid = True
        self.status = self.Status.CONFIRMED
        self.save(update_fields=["is_paid", "status", "updated_at"])


class BookingSequence(models.Model):
    """Per-season counter behind the public references."""

    name = models.CharField(max_length=64, unique=True)
    current = models.PositiveIntegerField(default=0)

    def __str__(self) -> str:
        return f"{self.name}={self.current}"
