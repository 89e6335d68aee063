"""Fleet services: barque rotation, selection and slot occupancy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from django.core.cache import cache  # type: ignore

from apps.bookings.models import Booking
from apps.bookings.rules import BookingRules

from .models import Boat

logger = logging.getLogger(__name__)

ACTIVE_BOATS_CACHE_KEY = "boats:active"


@dataclass(frozen=True)
class BoatSelection:
    boat: Boat
    index: int
    reason: str  # "rotation" | "forced"


@dataclass(frozen=True)
class SlotOccupant:
    booking_id: str
    people: int
    language: str


@dataclass(frozen=True)
class SlotCapacity:
    boat_id: int
    boat_name: str
    capacity: int
    current_occupancy: int
    remaining_capacity: int
    can_accommodate: bool
    bookings: list[SlotOccupant] = field(default_factory=list)


@dataclass(frozen=True)
class BoatOccupancy:
    id: int
    name: str
    capacity: int
    current_occupancy: int


@dataclass(frozen=True)
class FleetCapacity:
    total_capacity: int
    available_capacity: int
    boats: list[BoatOccupancy] = field(default_factory=list)


class FleetService:
    """Read side of the fleet used by the booking engine."""

    def __init__(self, rules: BookingRules | None = None):
        self.rules = rules or BookingRules.from_settings()

    def get_active_boats(self) -> list[Boat]:
        """Active barques ordered by id, read through a short-lived cache."""
        boats: list[Boat] | None = cache.get(ACTIVE_BOATS_CACHE_KEY)
        if boats is not None:
            return boats

        boats = list(Boat.objects.filter(status=Boat.Status.ACTIVE).order_by("id"))
        cache.set(ACTIVE_BOATS_CACHE_KEY, boats, self.rules.boats_cache_ttl)
        return boats

    def calculate_boat_rotation_index(self, wall_hour: int, wall_minute: int, total_boats: int) -> int:
        """
        Index of the barque serving a departure.

        Counts whole departure intervals elapsed since opening and takes it
        modulo the fleet size. Departures before opening wrap backwards
        through the fleet, so the result is always in ``[0, total_boats)``.
        """
        if total_boats <= 0:
            raise ValueError("total_boats must be positive")
        elapsed = wall_hour * 60 + wall_minute - self.rules.opening_minutes
        slots_elapsed = elapsed // self.rules.departure_interval
        return slots_elapsed % total_boats

    def select_boat_for_slot(
        self,
        wall_hour: int,
        wall_minute: int,
        forced_boat_id: int | None = None,
    ) -> BoatSelection | None:
        """
        Pick the barque for a departure.

        A forced barque (staff override) wins when it is active; otherwise
        the rotation decides. Returns None when no barque is active.
        """
        boats = self.get_active_boats()
        if not boats:
            return None

        if forced_boat_id is not None:
            for index, boat in enumerate(boats):
                if boat.id == forced_boat_id:
                    return BoatSelection(boat=boat, index=index, reason="forced")
            logger.warning("Forced boat %s is not active, falling back to rotation", forced_boat_id)

        index = self.calculate_boat_rotation_index(wall_hour, wall_minute, len(boats))
        return BoatSelection(boat=boats[index], index=index, reason="rotation")

    def get_slot_capacity(self, boat_id: int, start_time: datetime, end_time: datetime) -> SlotCapacity | None:
        """Raw occupancy of a barque over ``[start_time, end_time)``, no buffer."""
        boat = Boat.objects.filter(pk=boat_id).first()
        if boat is None:
            return None

        occupants = [
            SlotOccupant(booking_id=str(pk), people=people, language=language)
            for pk, people, language in (
                Booking.objects.active()
                .filter(boat_id=boat.id)
                .intersecting(start_time, end_time)
                .values_list("id", "number_of_people", "language")
            )
        ]
        occupancy = sum(o.people for o in occupants)
        remaining = boat.capacity - occupancy
        return SlotCapacity(
            boat_id=boat.id,
            boat_name=boat.name,
            capacity=boat.capacity,
            current_occupancy=occupancy,
            remaining_capacity=remaining,
            can_accommodate=remaining > 0,
            bookings=occupants,
        )

    def get_fleet_capacity_for_slot(self, start_time: datetime, end_time: datetime) -> FleetCapacity:
        boats = []
        for boat in self.get_active_boats():
            slot = self.get_slot_capacity(boat.id, start_time, end_time)
            boats.append(
                BoatOccupancy(
                    id=boat.id,
                    name=boat.name,
                    capacity=boat.capacity,
                    current_occupancy=slot.current_occupancy if slot else 0,
                )
            )

        total_capacity = sum(b.capacity for b in boats)
        total_occupancy = sum(b.current_occupancy for b in boats)
        return FleetCapacity(
            total_capacity=total_capacity,
            available_capacity=total_capacity - total_occupancy,
            boats=boats,
        )

    def find_available_boat(
        self,
        people_needed: int,
        start_time: datetime,
        end_time: datetime,
        preferred_boat_id: int | None = None,
        language: str | None = None,
    ) -> tuple[Boat, int] | None:
        """
        First barque able to seat ``people_needed`` over the window.

        The preferred barque is tried first and only accepted when its
        current occupants all speak ``language``; the rest of the fleet is
        then scanned in order on remaining capacity alone.

        Returns:
            (boat, remaining_capacity) or None
        """
        boats = self.get_active_boats()

        if preferred_boat_id is not None:
            preferred = next((b for b in boats if b.id == preferred_boat_id), None)
            if preferred is not None:
                slot = self.get_slot_capacity(preferred.id, start_time, end_time)
                if slot and slot.remaining_capacity >= people_needed:
                    same_language = all(o.language == language for o in slot.bookings)
                    if not language or not slot.bookings or same_language:
                        return preferred, slot.remaining_capacity

        for boat in boats:
            if boat.id == preferred_boat_id:
                continue
            slot = self.get_slot_capacity(boat.id, start_time, end_time)
            if slot and slot.remaining_capacity >= people_needed:
                return boat, slot.remaining_capacity

        return None
