"""Tests for the slot sharing decision table."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from apps.bookings.conflicts import ConflictingBooking, evaluate_conflicts, find_overlapping_bookings
from apps.bookings.models import Booking, Customer
from shared.domain.value_objects import TimeWindow

START = datetime(2026, 7, 16, 8, 0, tzinfo=dt_timezone.utc)
BUFFER = timedelta(minutes=5)


def _conflict(start=START, language="fr", people=2, booking_id="a"):
    return ConflictingBooking(
        booking_id=booking_id,
        start_time=start,
        end_time=start + timedelta(minutes=25),
        language=language,
        people=people,
    )


def test_no_conflicts_can_book():
    result = evaluate_conflicts([], START, "fr", 2, 12)

    assert result.has_conflict is False
    assert result.can_book is True


def test_same_minute_same_language_within_capacity_shares():
    result = evaluate_conflicts([_conflict(people=4), _conflict(people=4, booking_id="b")], START, "fr", 4, 12)

    assert result.has_conflict is True
    assert result.can_book is True


def test_capacity_is_inclusive():
    assert evaluate_conflicts([_conflict(people=10)], START, "fr", 2, 12).can_book is True
    assert evaluate_conflicts([_conflict(people=10)], START, "fr", 3, 12).can_book is False


def test_seconds_do_not_break_exact_minute():
    conflict = _conflict(start=START + timedelta(seconds=42))

    assert evaluate_conflicts([conflict], START, "fr", 2, 12).can_book is True


@pytest.mark.parametrize(
    "conflict",
    [
        _conflict(language="en"),
        _conflict(start=START + timedelta(minutes=10)),
        _conflict(start=START - timedelta(minutes=20)),
    ],
)
def test_unshareable_conflicts_reject(conflict):
    result = evaluate_conflicts([conflict], START, "fr", 2, 12)

    assert result.has_conflict is True
    assert result.can_book is False
    assert result.reason


def test_one_unshareable_conflict_rejects_all():
    conflicts = [_conflict(), _conflict(language="de", booking_id="b")]

    assert evaluate_conflicts(conflicts, START, "fr", 2, 12).can_book is False


def test_staff_override_always_books():
    result = evaluate_conflicts([_conflict(language="en", people=12)], START, "fr", 12, 12, is_staff_override=True)

    assert result.has_conflict is True
    assert result.can_book is True


@pytest.mark.django_db
def test_find_overlapping_pads_both_windows(boats):
    customer = Customer.objects.create(email="pad@example.com")

    def book(minutes, reference, status=Booking.Status.CONFIRMED):
        start = START + timedelta(minutes=minutes)
        return Booking.objects.create(
            public_reference=reference,
            boat=boats[0],
            customer=customer,
            date=start.date(),
            start_time=start,
            end_time=start + timedelta(minutes=25),
            adults=2,
            language="fr",
            status=status,
            total_price=18,
        )

    # Ends 3 minutes before the requested start, inside its own buffer
    before = book(-28, "SN-26-0101")
    # Ends 10 minutes before: clear
    book(-35, "SN-26-0102")
    # Starts right after the requested tour, within the requested buffer
    after = book(27, "SN-26-0103")
    # Starts once the requested buffer is over
    book(30, "SN-26-0104")
    book(0, "SN-26-0105", status=Booking.Status.CANCELLED)

    window = TimeWindow(START, START + timedelta(minutes=25))
    found = find_overlapping_bookings(boats[0].id, window, BUFFER)

    assert [c.booking_id for c in found] == [str(before.pk), str(after.pk)]
