"""Tests for the booking engine: slot rules, sharing, chaining and cancellation."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from apps.audit.models import AuditLog
from apps.bookings import services as booking_services
from apps.bookings.models import Booking, Customer
from apps.bookings.types import BookingErrorCode, CustomerDetails
from apps.fleet.models import Boat
from apps.payments.methods import Card, Cash
from apps.payments.models import Payment

TODAY = "2026-07-15"
TOMORROW = "2026-07-16"

pytestmark = pytest.mark.django_db

STAFF_CUSTOMER = CustomerDetails(first_name="Jean Paul", last_name="Le Goff", email="override@sweetnarcisse.local")


def _utc(hour: int, minute: int, day: int = 16) -> datetime:
    # Paris is UTC+2 in July
    return datetime(2026, 7, day, hour - 2, minute, tzinfo=dt_timezone.utc)


class TestSlotRules:
    @pytest.mark.parametrize("hour,minute", [(9, 59), (11, 46), (13, 29), (17, 46)])
    def test_outside_windows_is_invalid(self, service, hour, minute):
        result = service.validate_slot_time(hour, minute, TOMORROW)

        assert result.valid is False
        assert result.error_code == BookingErrorCode.INVALID_TIME
        assert result.error == f"Horaire {hour:02d}:{minute:02d} impossible. (10h-11h45 / 13h30-17h45)"

    @pytest.mark.parametrize("hour,minute", [(10, 0), (11, 45), (13, 30), (17, 45)])
    def test_window_bounds_are_valid(self, service, hour, minute):
        assert service.validate_slot_time(hour, minute, TOMORROW).valid is True

    def test_staff_override_does_not_bypass_windows(self, service):
        result = service.validate_slot_time(12, 30, TOMORROW, is_staff_override=True)

        assert result.error_code == BookingErrorCode.INVALID_TIME

    def test_lead_time_today(self, service):
        too_late = service.validate_slot_time(10, 29, TODAY)
        assert too_late.error_code == BookingErrorCode.TOO_LATE
        assert too_late.error == "Réservation trop tardive: moins de 30 minutes avant le départ."

        assert service.validate_slot_time(10, 30, TODAY).valid is True

    def test_staff_override_skips_lead_time(self, service):
        assert service.validate_slot_time(10, 1, TODAY, is_staff_override=True).valid is True

    def test_past_day_is_too_late_for_public(self, service):
        result = service.validate_slot_time(15, 0, "2026-07-14")

        assert result.error_code == BookingErrorCode.TOO_LATE

    @pytest.mark.parametrize("adults,children,babies", [(0, 0, 0), (1, 0, 0), (2, 3, 1), (7, 0, 4), (0, 5, 0)])
    def test_price(self, service, adults, children, babies):
        expected = Decimal(9 * adults + 4 * children)
        assert service.calculate_price(adults, children, babies) == expected

    def test_local_email(self, service):
        email = service.generate_local_email("Jean Paul", "Le Goff")
        assert re.fullmatch(r"guichet\.legoff\.jeanpaul\.[A-Za-z0-9]{6}@local\.com", email)

    def test_local_email_fallbacks(self, service):
        email = service.generate_local_email("", "")
        assert email.startswith("guichet.inconnu.client.")


class TestCreateBooking:
    def test_simple_booking(self, service, boats, make_input):
        result = service.create_booking(make_input())

        assert result.success is True, result.error
        booking = result.booking
        assert booking.boat == boats[0]
        assert booking.number_of_people == 2
        assert booking.total_price == Decimal("18")
        assert booking.status == Booking.Status.CONFIRMED
        assert booking.start_time == _utc(10, 0)
        assert booking.end_time == _utc(10, 25)
        assert re.fullmatch(r"SN-26-\d{4}", booking.public_reference)
        assert result.chained_bookings == []
        assert result.overlaps == []

    def test_rotation_assigns_next_boat(self, service, boats, make_input):
        result = service.create_booking(make_input(time="10:20"))

        assert result.booking.boat == boats[2]

    def test_pending_only(self, service, boats, make_input):
        result = service.create_booking(make_input(pending_only=True))

        assert result.booking.status == Booking.Status.PENDING
        assert result.booking.is_paid is False

    def test_shared_departure_same_language(self, service, boats, make_input):
        first = service.create_booking(make_input())
        second = service.create_booking(make_input(customer=CustomerDetails(email="paul@example.com")))

        assert first.success and second.success
        assert second.booking.boat == first.booking.boat
        assert second.booking.start_time == first.booking.start_time
        occupied = sum(
            Booking.objects.active().filter(boat=boats[0]).values_list("number_of_people", flat=True)
        )
        assert occupied == 4

    def test_language_mismatch_conflicts(self, service, boats, make_input):
        service.create_booking(make_input())
        service.create_booking(make_input())

        result = service.create_booking(make_input(language="en"))

        assert result.success is False
        assert result.error_code == BookingErrorCode.CONFLICT
        assert result.error == "Conflit sur Barque 1"
        assert Booking.objects.count() == 2

    def test_capacity_overflow_conflicts(self, service, boats, make_input):
        service.create_booking(make_input(adults=10))

        result = service.create_booking(make_input(adults=3))

        assert result.error_code == BookingErrorCode.CONFLICT

    def test_overlapping_departure_on_same_boat_conflicts(self, service, boats, make_input):
        service.create_booking(make_input())

        check = service.check_conflicts(boats[0].id, _utc(10, 20), _utc(10, 45), "fr", 2)

        assert check.has_conflict is True
        assert check.can_book is False

    def test_buffer_frees_boat_after_tour(self, service, boats, make_input):
        service.create_booking(make_input())

        result = service.create_booking(make_input(time="10:30", language="en"))

        assert result.success is True
        assert result.booking.boat == boats[0]

    def test_staff_override_bypasses_conflict(self, service, boats, make_input):
        service.create_booking(make_input(adults=12))

        result = service.create_booking(
            make_input(language="en", is_staff_override=True, customer=STAFF_CUSTOMER)
        )

        assert result.success is True
        assert result.booking.boat == boats[0]

    def test_cancelled_booking_frees_slot(self, service, boats, make_input):
        first = service.create_booking(make_input(adults=12))
        service.cancel_booking(first.booking.id)

        result = service.create_booking(make_input(language="en"))

        assert result.success is True

    def test_forced_boat(self, service, boats, make_input):
        result = service.create_booking(
            make_input(is_staff_override=True, forced_boat_id=boats[1].id, customer=STAFF_CUSTOMER)
        )

        assert result.booking.boat == boats[1]

    def test_invalid_time_is_rejected(self, service, boats, make_input):
        result = service.create_booking(make_input(time="12:00"))

        assert result.error_code == BookingErrorCode.INVALID_TIME
        assert Booking.objects.count() == 0

    def test_too_late_today(self, service, boats, make_input):
        result = service.create_booking(make_input(date=TODAY, time="10:20"))

        assert result.error_code == BookingErrorCode.TOO_LATE

    @pytest.mark.parametrize("day,time", [("2026-13-01", "10:00"), ("demain", "10:00"), (TOMORROW, "10h00")])
    def test_malformed_date_or_time(self, service, boats, make_input, day, time):
        result = service.create_booking(make_input(date=day, time=time))

        assert result.error_code == BookingErrorCode.VALIDATION
        assert result.error == "Date ou heure invalide"

    def test_negative_headcount(self, service, boats, make_input):
        result = service.create_booking(make_input(children=-1))

        assert result.error_code == BookingErrorCode.VALIDATION

    def test_empty_party(self, service, boats, make_input):
        result = service.create_booking(make_input(adults=0))

        assert result.error_code == BookingErrorCode.VALIDATION

    def test_no_active_boats(self, service, make_input):
        result = service.create_booking(make_input())

        assert result.error_code == BookingErrorCode.NO_BOATS
        assert result.error == "Aucune barque active"

    def test_boat_in_maintenance_is_skipped(self, service, boats, make_input):
        Boat.objects.filter(pk=boats[0].pk).update(status=Boat.Status.MAINTENANCE)

        result = service.create_booking(make_input())

        assert result.booking.boat == boats[1]

    def test_missing_email_for_public_booking(self, service, boats, make_input):
        result = service.create_booking(make_input(customer=CustomerDetails(first_name="Marie")))

        assert result.error_code == BookingErrorCode.VALIDATION
        assert result.error == "Adresse email manquante"

    def test_staff_placeholder_email_gets_local_address(self, service, boats, make_input):
        result = service.create_booking(make_input(is_staff_override=True, customer=STAFF_CUSTOMER))

        email = result.booking.customer.email
        assert email.startswith("guichet.legoff.jeanpaul.")
        assert email.endswith("@local.com")

    def test_customer_is_reused_by_email(self, service, boats, make_input):
        service.create_booking(make_input())
        service.create_booking(make_input(time="13:30"))

        assert Customer.objects.count() == 1
        assert Booking.objects.count() == 2

    def test_private_booking_fills_boat(self, service, boats, make_input):
        result = service.create_booking(make_input(adults=2, children=3, babies=1, is_private=True))

        booking = result.booking
        assert booking.number_of_people == 12
        assert (booking.adults, booking.children, booking.babies) == (12, 0, 0)
        assert booking.total_price == Decimal("108")

    def test_private_booking_cannot_join_occupied_departure(self, service, boats, make_input):
        service.create_booking(make_input())

        result = service.create_booking(make_input(adults=2, is_private=True))

        assert result.success is False
        assert result.error_code == BookingErrorCode.CONFLICT
        assert Booking.objects.count() == 1
        assert sum(b.number_of_people for b in Booking.objects.filter(boat=boats[0])) == 2

    def test_references_increment(self, service, boats, make_input):
        first = service.create_booking(make_input())
        second = service.create_booking(make_input(time="13:30"))

        first_counter = int(first.booking.public_reference.rsplit("-", 1)[1])
        second_counter = int(second.booking.public_reference.rsplit("-", 1)[1])
        assert second_counter == first_counter + 1

    def test_audit_entry(self, service, boats, make_input):
        service.create_booking(make_input())
        service.create_booking(make_input(time="13:30", is_private=True, is_staff_override=True))

        messages = list(AuditLog.objects.filter(action="NEW_BOOKING").order_by("id").values_list("details", flat=True))
        assert messages == [
            "Réservation de Dupont (2p) sur Barque 1",
            "[STAFF OVERRIDE] Réservation de Dupont (12p PRIVATISATION) sur Barque 1",
        ]

    def test_creation_invalidates_day_cache(self, service, boats, make_input):
        with patch("apps.bookings.services.invalidate_date") as invalidate:
            service.create_booking(make_input())

        invalidate.assert_called_once_with(TOMORROW)

    def test_creation_is_logged(self, service, boats, make_input):
        assert isinstance(booking_services.logger, logging.Logger)

        with patch.object(booking_services, "logger") as log:
            result = service.create_booking(make_input())

        message, reference, *_ = log.info.call_args.args
        assert message.startswith("booking.created")
        assert reference == result.booking.public_reference

    def test_audit_failure_does_not_fail_booking(self, service, boats, make_input):
        with patch("apps.audit.services.append", side_effect=RuntimeError("journal down")):
            result = service.create_booking(make_input())

        assert result.success is True
        assert Booking.objects.count() == 1

    def test_cache_failure_does_not_fail_booking(self, service, boats, make_input):
        with patch("apps.bookings.services.invalidate_date", side_effect=ConnectionError("redis down")):
            result = service.create_booking(make_input())

        assert result.success is True

    def test_transaction_failure_rolls_back(self, service, boats, make_input):
        with patch("apps.bookings.services.generate_seasonal_reference", side_effect=DatabaseError("disk I/O error")):
            result = service.create_booking(make_input())

        assert result.success is False
        assert result.error_code == BookingErrorCode.TRANSACTION
        assert result.error == "Erreur technique (transaction): disk I/O error"
        assert Booking.objects.count() == 0
        assert Customer.objects.count() == 0


class TestPaymentMarking:
    def test_instant_capture_marks_paid(self, service, boats, make_input):
        result = service.create_booking(
            make_input(is_staff_override=True, mark_as_paid=True, payment_method=Cash(), customer=STAFF_CUSTOMER)
        )

        booking = result.booking
        assert booking.is_paid is True
        payment = Payment.objects.get(booking=booking)
        assert payment.provider == "cash"
        assert payment.status == Payment.Status.SUCCEEDED
        assert payment.amount == Decimal("18")

    def test_card_is_not_marked_paid(self, service, boats, make_input):
        result = service.create_booking(make_input(mark_as_paid=True, payment_method=Card()))

        assert result.booking.is_paid is False
        assert not Payment.objects.exists()

    def test_pending_only_never_paid(self, service, boats, make_input):
        result = service.create_booking(
            make_input(pending_only=True, mark_as_paid=True, payment_method=Cash())
        )

        assert result.booking.is_paid is False
        assert result.booking.status == Booking.Status.PENDING


class TestGroupChain:
    def _chain_input(self, make_input, **overrides):
        values = {
            "adults": 12,
            "is_staff_override": True,
            "group_chain": 30,
            "customer": STAFF_CUSTOMER,
        }
        values.update(overrides)
        return make_input(**values)

    def test_chain_covers_group(self, service, boats, make_input):
        result = service.create_booking(self._chain_input(make_input))

        assert result.success is True
        assert result.overlaps == []
        assert [c.index for c in result.chained_bookings] == [1, 2]
        assert [c.people for c in result.chained_bookings] == [12, 6]
        assert [c.start for c in result.chained_bookings] == [_utc(10, 10), _utc(10, 20)]
        assert [c.boat_id for c in result.chained_bookings] == [boats[1].id, boats[2].id]

        bookings = Booking.objects.order_by("start_time")
        assert bookings.count() == 3
        assert sum(b.number_of_people for b in bookings) == 30
        assert len({b.customer_id for b in bookings}) == 1

    def test_small_group_is_not_chained(self, service, boats, make_input):
        result = service.create_booking(self._chain_input(make_input, group_chain=12))

        assert result.chained_bookings == []
        assert Booking.objects.count() == 1

    def test_chain_requires_staff(self, service, boats, make_input):
        result = service.create_booking(make_input(adults=12, group_chain=30))

        assert result.chained_bookings == []
        assert Booking.objects.count() == 1

    def test_occupied_link_is_reported_and_chain_continues(self, service, boats, make_input):
        service.create_booking(make_input(time="10:10", language="en"))

        result = service.create_booking(self._chain_input(make_input))

        assert [o.index for o in result.overlaps] == [1]
        assert result.overlaps[0].reason == "Conflit avec réservation existante"
        assert [c.index for c in result.chained_bookings] == [2]
        assert AuditLog.objects.filter(action="GROUP_CHAIN_OVERLAPS").count() == 1

    def test_forced_boat_chain_skips_group_boat(self, service, boats, make_input):
        result = service.create_booking(self._chain_input(make_input, forced_boat_id=boats[2].id))

        assert result.booking.boat_id == boats[2].id
        assert result.overlaps == []
        assert [c.boat_id for c in result.chained_bookings] == [boats[1].id, boats[0].id]
        assert sum(b.number_of_people for b in Booking.objects.all()) == 30

    def test_two_boat_fleet_chain(self, service, boats, make_input):
        boats[2].delete()

        result = service.create_booking(
            self._chain_input(make_input, group_chain=24, forced_boat_id=boats[1].id)
        )

        assert result.overlaps == []
        assert [(c.boat_id, c.people) for c in result.chained_bookings] == [(boats[0].id, 12)]

    def test_two_boat_fleet_reports_missing_boat(self, service, boats, make_input):
        boats[2].delete()

        result = service.create_booking(self._chain_input(make_input))

        assert [c.index for c in result.chained_bookings] == [1]
        assert [(o.index, o.reason) for o in result.overlaps] == [(2, "Aucune barque libre")]

    def test_links_are_sized_by_their_boat(self, service, boats, make_input):
        Boat.objects.filter(pk=boats[1].pk).update(capacity=8)

        result = service.create_booking(self._chain_input(make_input))

        assert result.overlaps == []
        assert [c.people for c in result.chained_bookings] == [8, 10]
        assert sum(b.number_of_people for b in Booking.objects.all()) == 30

    def test_link_outside_windows_is_reported(self, service, boats, make_input):
        result = service.create_booking(self._chain_input(make_input, time="11:40"))

        assert result.success is True
        assert [o.index for o in result.overlaps] == [1, 2]
        assert result.overlaps[0].reason == "Horaire 11:50 impossible. (10h-11h45 / 13h30-17h45)"

    def test_links_are_unpaid_without_inheritance(self, service, boats, make_input):
        result = service.create_booking(
            self._chain_input(make_input, mark_as_paid=True, payment_method=Cash())
        )

        assert result.booking.is_paid is True
        links = Booking.objects.exclude(pk=result.booking.pk)
        assert all(not b.is_paid for b in links)
        assert Payment.objects.count() == 1

    def test_links_inherit_payment(self, service, boats, make_input):
        result = service.create_booking(
            self._chain_input(
                make_input, mark_as_paid=True, payment_method=Cash(), inherit_payment_for_chain=True
            )
        )

        links = Booking.objects.exclude(pk=result.booking.pk)
        assert all(b.is_paid for b in links)
        assert Payment.objects.filter(status=Payment.Status.SUCCEEDED).count() == 3

    def test_deferred_method_is_carried_as_pending(self, service, boats, make_input):
        result = service.create_booking(
            self._chain_input(make_input, payment_method=Card(), inherit_payment_for_chain=True)
        )

        links = Booking.objects.exclude(pk=result.booking.pk)
        assert all(not b.is_paid for b in links)
        pending = Payment.objects.filter(status=Payment.Status.PENDING)
        assert pending.count() == 2
        assert {p.provider for p in pending} == {"stripe"}


class TestCancellation:
    def test_cancel_confirmed_booking(self, service, boats, make_input):
        booking = service.create_booking(make_input()).booking

        with patch("apps.bookings.services.invalidate_date") as invalidate:
            result = service.cancel_booking(booking.id, "Météo")

        assert result.success is True
        invalidate.assert_called_once_with(TOMORROW)
        booking.refresh_from_db()
        assert booking.status == Booking.Status.CANCELLED
        assert booking.cancellation_reason == "Météo"
        assert booking.cancelled_at is not None
        entry = AuditLog.objects.get(action="BOOKING_CANCELLED")
        assert entry.details == f"Annulation réservation {booking.public_reference} (Dupont) - Météo"

    def test_cancel_twice_fails(self, service, boats, make_input):
        booking = service.create_booking(make_input()).booking
        service.cancel_booking(booking.id)

        with patch("apps.bookings.services.invalidate_date") as invalidate:
            result = service.cancel_booking(booking.id)

        assert result.success is False
        assert result.error == "Réservation déjà annulée"
        invalidate.assert_not_called()
        booking.refresh_from_db()
        assert booking.status == Booking.Status.CANCELLED

    def test_cancel_by_reference_without_reason(self, service, boats, make_input):
        booking = service.create_booking(make_input()).booking

        result = service.cancel_booking(booking.public_reference)

        assert result.success is True
        entry = AuditLog.objects.get(action="BOOKING_CANCELLED")
        assert entry.details.endswith("(Dupont) - Pas de raison")

    def test_cancel_unknown_booking(self, service, boats):
        result = service.cancel_booking("SN-26-0000")

        assert result.success is False
        assert result.error == "Réservation introuvable"


class TestGetBooking:
    def test_by_id_and_reference(self, service, boats, make_input):
        booking = service.create_booking(make_input()).booking

        assert service.get_booking(booking.id) == booking
        assert service.get_booking(str(booking.id)) == booking
        assert service.get_booking(booking.public_reference) == booking

    def test_unknown(self, service, boats):
        assert service.get_booking("SN-26-4242") is None
        assert service.get_booking("00000000-0000-0000-0000-000000000000") is None


def test_sharing_window_uses_start_minute(service, boats, make_input):
    first = service.create_booking(make_input()).booking
    Booking.objects.filter(pk=first.pk).update(start_time=first.start_time + timedelta(seconds=30))

    result = service.create_booking(make_input(customer=CustomerDetails(email="autre@example.com")))

    assert result.success is True
