"""Conflict policy for a barque departure.

``find_overlapping_bookings`` reads the bookings a new departure would run
into; ``evaluate_conflicts`` decides, without touching the database, whether
the departure may still be booked. Both the pre-flight check and the
authoritative check inside the creation transaction go through them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from shared.domain.value_objects import TimeWindow
from shared.infrastructure.locking import lock_queryset_if_possible

from .models import Booking


@dataclass(frozen=True)
class ConflictingBooking:
    booking_id: str
    start_time: datetime
    end_time: datetime
    language: str
    people: int


@dataclass(frozen=True)
class ConflictCheckResult:
    has_conflict: bool
    can_book: bool
    reason: str | None = None
    conflicts: list[ConflictingBooking] = field(default_factory=list)


def find_overlapping_bookings(boat_id: int, window: TimeWindow, buffer: timedelta) -> list[ConflictingBooking]:
    """
    Non-cancelled bookings on the barque whose buffered window meets ``window``.

    Each window is padded by ``buffer`` after its end before comparing, on
    both sides. Inside ``transaction.atomic()`` the rows are locked.
    """
    requested = window.padded(buffer)
    queryset = (
        Booking.objects.active()
        .filter(boat_id=boat_id)
        .intersecting(window.start - buffer, requested.end)
        .order_by("start_time")
    )
    queryset = lock_queryset_if_possible(queryset)

    conflicts = []
    for booking in queryset:
        existing = TimeWindow(booking.start_time, booking.end_time).padded(buffer)
        if not existing.overlaps_with(requested):
            continue
        conflicts.append(
            ConflictingBooking(
                booking_id=str(booking.pk),
                start_time=booking.start_time,
                end_time=booking.end_time,
                language=booking.language,
                people=booking.number_of_people,
            )
        )
    return conflicts


def _same_minute(left: datetime, right: datetime) -> bool:
    return left.replace(second=0, microsecond=0) == right.replace(second=0, microsecond=0)


def evaluate_conflicts(
    conflicts: list[ConflictingBooking],
    start_time: datetime,
    language: str,
    people: int,
    capacity: int,
    is_staff_override: bool = False,
) -> ConflictCheckResult:
    """
    Decide whether a departure can be booked despite ``conflicts``.

    A departure can share a barque only with bookings leaving at the same
    minute in the same language, and only while the combined party fits
    the barque. Staff overrides are always let through, flagged.
    """
    if not conflicts:
        return ConflictCheckResult(has_conflict=False, can_book=True)

    if is_staff_override:
        return ConflictCheckResult(
            has_conflict=True,
            can_book=True,
            reason="Staff override",
            conflicts=conflicts,
        )

    if not all(_same_minute(c.start_time, start_time) for c in conflicts):
        return ConflictCheckResult(
            has_conflict=True,
            can_book=False,
            reason="Créneau déjà occupé",
            conflicts=conflicts,
        )

    if any(c.language != language for c in conflicts):
        return ConflictCheckResult(
            has_conflict=True,
            can_book=False,
            reason="Langue différente sur ce départ",
            conflicts=conflicts,
        )

    if sum(c.people for c in conflicts) + people > capacity:
        return ConflictCheckResult(
            has_conflict=True,
            can_book=False,
            reason="Capacité de la barque dépassée",
            conflicts=conflicts,
        )

    return ConflictCheckResult(
        has_conflict=True,
        can_book=True,
        reason="Partage du départ",
        conflicts=conflicts,
    )
