"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime, timezone as dt_timezone

import pytest
from django.core.cache import cache

from apps.bookings.rules import BookingRules
from apps.bookings.services import BookingService
from apps.bookings.types import CreateBookingInput, CustomerDetails
from apps.fleet.models import Boat

# 10:00 in Paris (summer time)
FIXED_NOW = datetime(2026, 7, 15, 8, 0, tzinfo=dt_timezone.utc)
TODAY = "2026-07-15"
TOMORROW = "2026-07-16"


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def rules() -> BookingRules:
    return BookingRules()


@pytest.fixture
def boats(db) -> list[Boat]:
    return [
        Boat.objects.create(name="Barque 1", capacity=12),
        Boat.objects.create(name="Barque 2", capacity=12),
        Boat.objects.create(name="Barque 3", capacity=12),
    ]


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def service(rules, clock) -> BookingService:
    return BookingService(rules=rules, clock=clock)


@pytest.fixture
def make_input():
    def _make(**overrides) -> CreateBookingInput:
        values = {
            "date": TOMORROW,
            "time": "10:00",
            "adults": 2,
            "language": "fr",
            "customer": CustomerDetails(first_name="Marie", last_name="Dupont", email="marie@example.com"),
        }
        values.update(overrides)
        return CreateBookingInput(**values)

    return _make
