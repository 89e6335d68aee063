"""Seasonal public references (``SN-26-0042``)."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore

from shared.time import PARIS

from .models import Booking, BookingSequence

MAX_ATTEMPTS = 50


class ReferenceAllocationError(RuntimeError):
    """No free reference could be allocated for the season."""


def sequence_name_for(season: int) -> str:
    return f"booking_ref_{season}"


def format_reference(prefix: str, season: int, counter: int) -> str:
    return f"{prefix}-{season % 100:02d}-{counter:04d}"


def generate_seasonal_reference(
    departure: datetime,
    prefix: str = "SN",
    tz: ZoneInfo = PARIS,
) -> str:
    """
    Allocate the next public reference for the departure's season.

    The season is the departure year in local time. The sequence row is
    locked for the rest of the caller's transaction, so two concurrent
    bookings never receive the same counter. References already held by a
    booking (imported data, manual edits) are skipped.
    """
    season = departure.astimezone(tz).year
    name = sequence_name_for(season)

    with transaction.atomic():
        BookingSequence.objects.get_or_create(name=name)
        for _ in range(MAX_ATTEMPTS):
            BookingSequence.objects.filter(name=name).update(current=F("current") + 1)
            current = (
                BookingSequence.objects.select_for_update()
                .values_list("current", flat=True)
                .get(name=name)
            )
            reference = format_reference(prefix, season, current)
            if not Booking.objects.filter(public_reference=reference).exists():
                return reference

    raise ReferenceAllocationError(f"Could not allocate a reference for season {season}")
