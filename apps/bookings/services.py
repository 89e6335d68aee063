"""Domain services for booking workflows."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date as date_cls, datetime
from decimal import Decimal
from typing import Callable

from django.db import DatabaseError, transaction  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.crypto import get_random_string  # type: ignore

from apps.audit import services as audit
from apps.fleet.models import Boat
from apps.fleet.services import FleetService
from apps.payments.services import PaymentService
from shared.domain.value_objects import TimeWindow
from shared.infrastructure.locking import lock_queryset_if_possible
from shared.time import WallDate, paris_now, parse_paris_wall_date

from .cache import invalidate_date
from .conflicts import ConflictCheckResult, evaluate_conflicts, find_overlapping_bookings
from .models import Booking, Customer
from .references import ReferenceAllocationError, generate_seasonal_reference
from .rules import BookingRules
from .types import (
    BookingErrorCode,
    BookingResult,
    CancellationResult,
    ChainedBooking,
    ChainOverlap,
    CreateBookingInput,
    CustomerDetails,
    SlotValidationResult,
)

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class BookingService:
    """
    Slot allocation and conflict resolution for barque tours.

    ``create_booking`` is the entry point. It places the requested departure
    through ``_place_slot`` (one departure, one barque, no chaining) and,
    for staff group requests larger than a barque, places the rest of the
    group on the following departures through ``create_group_chain``.

    Business failures come back as ``BookingResult`` with a French message
    and an error code; nothing is raised to the caller.
    """

    def __init__(
        self,
        rules: BookingRules | None = None,
        fleet: FleetService | None = None,
        payments: PaymentService | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.rules = rules or BookingRules.from_settings()
        self.fleet = fleet or FleetService(self.rules)
        self.payments = payments or PaymentService()
        self.clock = clock or timezone.now

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------
    def validate_slot_time(
        self,
        wall_hour: int,
        wall_minute: int,
        day: str | date_cls,
        is_staff_override: bool = False,
    ) -> SlotValidationResult:
        """
        Check the departure against the operating windows and the lead time.

        Staff overrides skip the lead time only; the windows always apply.
        """
        minutes = wall_hour * 60 + wall_minute
        if not self.rules.is_within_operating_hours(minutes):
            return SlotValidationResult(
                valid=False,
                error=(
                    f"Horaire {wall_hour:02d}:{wall_minute:02d} impossible. "
                    f"({self.rules.describe_windows()})"
                ),
                error_code=BookingErrorCode.INVALID_TIME,
            )

        if is_staff_override:
            return SlotValidationResult(valid=True)

        tz = self.rules.tzinfo
        now = paris_now(self.clock(), tz)
        requested = parse_paris_wall_date(day, f"{wall_hour:02d}:{wall_minute:02d}", tz)
        too_late = requested.day < now.date() or (
            requested.day == now.date()
            and (requested.instant - now).total_seconds() < self.rules.min_booking_delay * 60
        )
        if too_late:
            return SlotValidationResult(
                valid=False,
                error=(
                    f"Réservation trop tardive: moins de {self.rules.min_booking_delay} "
                    "minutes avant le départ."
                ),
                error_code=BookingErrorCode.TOO_LATE,
            )
        return SlotValidationResult(valid=True)

    def check_conflicts(
        self,
        boat_id: int,
        start_time: datetime,
        end_time: datetime,
        language: str,
        people: int,
        is_staff_override: bool = False,
        capacity: int | None = None,
    ) -> ConflictCheckResult:
        """Apply the sharing policy to a departure on one barque."""
        if capacity is None:
            capacity = Boat.objects.values_list("capacity", flat=True).get(pk=boat_id)
        conflicts = find_overlapping_bookings(
            boat_id,
            TimeWindow(start_time, end_time),
            self.rules.buffer,
        )
        return evaluate_conflicts(conflicts, start_time, language, people, capacity, is_staff_override)

    def calculate_price(self, adults: int, children: int, babies: int) -> Decimal:
        return (
            adults * self.rules.price_adult
            + children * self.rules.price_child
            + babies * self.rules.price_baby
        )

    def generate_local_email(self, first_name: str, last_name: str) -> str:
        """Pseudo-address for counter customers who gave no email."""
        safe_last = "".join((last_name or "").split()).lower() or "inconnu"
        safe_first = "".join((first_name or "").split()).lower() or "client"
        return f"guichet.{safe_last}.{safe_first}.{get_random_string(6)}@local.com"

    def resolve_customer_email(self, customer: CustomerDetails, is_staff_override: bool) -> str:
        """Email the customer is upserted on; empty string when none is usable."""
        email = (customer.email or "").strip()
        placeholders = {p.lower() for p in self.rules.placeholder_emails}
        if is_staff_override and (not email or email.lower() in placeholders):
            return self.generate_local_email(customer.first_name, customer.last_name)
        return email

    def should_mark_paid(self, data: CreateBookingInput) -> bool:
        if data.pending_only or not data.mark_as_paid:
            return False
        return self.payments.is_instant_capture(data.payment_method)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_booking(self, data: CreateBookingInput) -> BookingResult:
        """Create a booking and, for staff group requests, its chained departures."""
        try:
            slot = parse_paris_wall_date(data.date, data.time, self.rules.tzinfo)
        except ValueError:
            return BookingResult.failure(BookingErrorCode.VALIDATION, "Date ou heure invalide")

        if min(data.adults, data.children, data.babies) < 0:
            return BookingResult.failure(BookingErrorCode.VALIDATION, "Nombre de passagers invalide")
        if data.people == 0 and not data.is_private:
            return BookingResult.failure(BookingErrorCode.VALIDATION, "Nombre de passagers invalide")

        result = self._place_slot(data, slot)
        if not result.success:
            return result

        primary = result.booking
        if data.is_staff_override and data.group_chain and data.group_chain > primary.boat.capacity:
            result.chained_bookings, result.overlaps = self.create_group_chain(
                data, primary, data.group_chain, slot
            )
        return result

    def _place_slot(self, data: CreateBookingInput, slot: WallDate, chain_link: bool = False) -> BookingResult:
        """Book one departure on one barque. Never chains."""
        validation = self.validate_slot_time(
            slot.wall_hour, slot.wall_minute, slot.day, data.is_staff_override
        )
        if not validation.valid:
            return BookingResult.failure(validation.error_code, validation.error)

        selection = self.fleet.select_boat_for_slot(slot.wall_hour, slot.wall_minute, data.forced_boat_id)
        if selection is None:
            return BookingResult.failure(BookingErrorCode.NO_BOATS, "Aucune barque active")

        email = self.resolve_customer_email(data.customer, data.is_staff_override)
        if not email:
            return BookingResult.failure(BookingErrorCode.VALIDATION, "Adresse email manquante")

        mark_paid = self.should_mark_paid(data)
        start_time = slot.instant
        end_time = start_time + self.rules.tour_length

        try:
            with transaction.atomic():
                boat = lock_queryset_if_possible(Boat.objects.filter(pk=selection.boat.pk)).first()
                if boat is None:
                    return BookingResult.failure(BookingErrorCode.NO_BOATS, "Aucune barque active")

                # A privatised departure seats the whole barque
                if data.is_private:
                    adults, children, babies = boat.capacity, 0, 0
                else:
                    adults, children, babies = data.adults, data.children, data.babies

                check = self.check_conflicts(
                    boat.id,
                    start_time,
                    end_time,
                    data.language,
                    adults + children + babies,
                    data.is_staff_override,
                    capacity=boat.capacity,
                )
                if not check.can_book:
                    logger.info(
                        "booking.conflict boat=%s start=%s reason=%s conflicts=%s",
                        boat.id,
                        start_time.isoformat(),
                        check.reason,
                        len(check.conflicts),
                    )
                    return BookingResult.failure(BookingErrorCode.CONFLICT, f"Conflit sur {boat.name}")

                customer, _ = Customer.objects.get_or_create(
                    email=email,
                    defaults={
                        "first_name": data.customer.first_name or "",
                        "last_name": data.customer.last_name or "",
                        "phone": data.customer.phone or "",
                    },
                )

                booking = Booking.objects.create(
                    public_reference=generate_seasonal_reference(
                        start_time, self.rules.reference_prefix, self.rules.tzinfo
                    ),
                    boat=boat,
                    customer=customer,
                    date=slot.day,
                    start_time=start_time,
                    end_time=end_time,
                    adults=adults,
                    children=children,
                    babies=babies,
                    language=data.language,
                    status=Booking.Status.PENDING if data.pending_only else Booking.Status.CONFIRMED,
                    is_paid=mark_paid,
                    total_price=self.calculate_price(adults, children, babies),
                    message=data.message or "",
                    invoice_email=data.invoice_email or "",
                )

                if mark_paid:
                    self.payments.record_instant_payment(booking, data.payment_method)
                elif chain_link and data.payment_method is not None:
                    self.payments.record_pending_payment(booking, data.payment_method)
        except (DatabaseError, ReferenceAllocationError) as exc:
            logger.exception(
                "booking.transaction_failed boat=%s start=%s",
                selection.boat.pk,
                start_time.isoformat(),
            )
            return BookingResult.failure(
                BookingErrorCode.TRANSACTION, f"Erreur technique (transaction): {exc}"
            )

        logger.info(
            "booking.created %s boat=%s start=%s people=%s staff_override=%s shared=%s",
            booking.public_reference,
            boat.id,
            start_time.isoformat(),
            booking.number_of_people,
            data.is_staff_override,
            check.has_conflict,
        )

        prefix = "[STAFF OVERRIDE] " if data.is_staff_override else ""
        marker = " PRIVATISATION" if data.is_private else ""
        self._audit(
            "NEW_BOOKING",
            f"{prefix}Réservation de {data.customer.last_name} "
            f"({booking.number_of_people}p{marker}) sur {boat.name}",
            booking,
        )
        self._invalidate(slot.day.isoformat())

        return BookingResult(success=True, booking=booking)

    def create_group_chain(
        self,
        data: CreateBookingInput,
        primary: Booking,
        total: int,
        base: WallDate,
    ) -> tuple[list[ChainedBooking], list[ChainOverlap]]:
        """
        Spread the rest of a large group over the following departures.

        Link ``i`` (from 1) leaves ``i`` departure intervals after the
        primary booking and seats up to the capacity of its barque. The
        rotation picks the barque; when that barque is still busy with the
        group itself, the first barque free over the link's window is used
        instead. Links that cannot be placed are reported as overlaps and
        the chain carries on with the next one.
        """
        tz = self.rules.tzinfo
        inherit = data.inherit_payment_for_chain
        remaining = total - primary.number_of_people
        group_ids = {primary.pk}

        chained: list[ChainedBooking] = []
        overlaps: list[ChainOverlap] = []

        index = 0
        while remaining > 0:
            index += 1
            minutes = base.minutes_of_day + index * self.rules.departure_interval
            if minutes >= MINUTES_PER_DAY:
                remaining -= min(primary.boat.capacity, remaining)
                overlaps.append(ChainOverlap(index=index, start=None, end=None, reason="Horaire invalide"))
                continue

            label = f"{minutes // 60:02d}:{minutes % 60:02d}"
            link = parse_paris_wall_date(base.day, label, tz)
            start_time = link.instant
            end_time = start_time + self.rules.tour_length

            selection = self.fleet.select_boat_for_slot(link.wall_hour, link.wall_minute)
            if selection is None:
                remaining -= min(primary.boat.capacity, remaining)
                overlaps.append(ChainOverlap(index, start_time, end_time, "Aucune barque active"))
                continue

            boat, reason = self._boat_for_link(selection.boat, start_time, end_time, group_ids)
            size = min((boat or selection.boat).capacity, remaining)
            remaining -= size
            if boat is None:
                overlaps.append(ChainOverlap(index, start_time, end_time, reason))
                continue

            link_input = replace(
                data,
                time=label,
                adults=size,
                children=0,
                babies=0,
                is_staff_override=True,
                is_private=False,
                group_chain=None,
                forced_boat_id=boat.id,
                customer=replace(data.customer, email=primary.customer.email),
                mark_as_paid=data.mark_as_paid if inherit else False,
                payment_method=data.payment_method if inherit else None,
            )
            result = self._place_slot(link_input, link, chain_link=True)
            if result.success:
                group_ids.add(result.booking.pk)
                chained.append(
                    ChainedBooking(
                        index=index,
                        boat_id=result.booking.boat_id,
                        start=start_time,
                        end=end_time,
                        people=size,
                        booking_id=str(result.booking.pk),
                    )
                )
            else:
                overlaps.append(ChainOverlap(index, start_time, end_time, result.error or "Échec création"))

        if overlaps:
            self._audit(
                "GROUP_CHAIN_OVERLAPS",
                "Chaînage incomplet: "
                + ", ".join(
                    f"#{o.index} {o.start.isoformat() if o.start else '?'} {o.reason}" for o in overlaps
                ),
                primary,
            )
        return chained, overlaps

    def _boat_for_link(
        self,
        rotation_boat: Boat,
        start_time: datetime,
        end_time: datetime,
        group_ids: set,
    ) -> tuple[Boat | None, str]:
        """
        Barque for one chain link, or ``(None, reason)``.

        Any booking outside the group on the rotation barque blocks the
        link. When only the group's own departures occupy it, the first
        active barque with nothing over the window takes the link.
        """
        overlapping = Booking.objects.active().intersecting(start_time, end_time)
        occupants = set(overlapping.filter(boat_id=rotation_boat.id).values_list("pk", flat=True))
        if not occupants:
            return rotation_boat, ""
        if not occupants <= group_ids:
            return None, "Conflit avec réservation existante"

        busy = set(overlapping.values_list("boat_id", flat=True))
        for boat in self.fleet.get_active_boats():
            if boat.id not in busy:
                return boat, ""
        return None, "Aucune barque libre"

    # ------------------------------------------------------------------
    # Cancellation and lookup
    # ------------------------------------------------------------------
    def cancel_booking(self, key, reason: str | None = None) -> CancellationResult:
        """Soft-delete a booking by id or public reference."""
        with transaction.atomic():
            booking = self._find(lock_queryset_if_possible(Booking.objects.all()), key)
            if booking is None:
                return CancellationResult(success=False, error="Réservation introuvable")
            if booking.is_cancelled:
                return CancellationResult(success=False, booking=booking, error="Réservation déjà annulée")
            booking.mark_cancelled(reason or "")

        logger.info("booking.cancelled %s reason=%s", booking.public_reference, reason or "")
        self._invalidate(booking.date.isoformat())
        self._audit(
            "BOOKING_CANCELLED",
            f"Annulation réservation {booking.public_reference} "
            f"({booking.customer.last_name}) - {reason or 'Pas de raison'}",
            booking,
        )
        return CancellationResult(success=True, booking=booking)

    def get_booking(self, key) -> Booking | None:
        queryset = Booking.objects.select_related("boat", "customer").prefetch_related("payments")
        return self._find(queryset, key)

    @staticmethod
    def _find(queryset, key) -> Booking | None:
        """Look a booking up by primary key, then by public reference."""
        try:
            pk = uuid.UUID(str(key))
        except ValueError:
            pk = None
        if pk is not None:
            booking = queryset.filter(pk=pk).first()
            if booking is not None:
                return booking
        return queryset.filter(public_reference=str(key)).first()

    # ------------------------------------------------------------------
    # After-commit side effects
    # ------------------------------------------------------------------
    def _audit(self, event_type: str, message: str, booking: Booking) -> None:
        try:
            audit.append(event_type, message, booking, reference=booking.public_reference)
        except Exception:
            logger.exception("audit.append_failed %s for booking %s", event_type, booking.pk)

    def _invalidate(self, date_key: str) -> None:
        try:
            invalidate_date(date_key)
        except Exception:
            logger.exception("cache.invalidate_failed for %s", date_key)
