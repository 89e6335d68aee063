"""Operating rules of the booking engine.

The rules are an immutable value injected into ``FleetService`` and
``BookingService``. ``BookingRules.from_settings()`` reads the
``BOOKING_RULES`` dict from Django settings, so alternate durations or
prices can be tried without touching the services.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.conf import settings  # type: ignore

from shared.time import parse_wall_time

_DECIMAL_FIELDS = {"price_adult", "price_child", "price_baby"}
_WINDOW_FIELDS = {"morning_window", "afternoon_window"}


def _format_minutes(minutes: int) -> str:
    hour, minute = divmod(minutes, 60)
    return f"{hour}h{minute:02d}" if minute else f"{hour}h"


@dataclass(frozen=True)
class BookingRules:
    tour_duration: int = 25
    buffer_time: int = 5
    departure_interval: int = 10
    opening_time: str = "10:00"
    price_adult: Decimal = Decimal("9")
    price_child: Decimal = Decimal("4")
    price_baby: Decimal = Decimal("0")
    # Inclusive minutes-of-day bounds
    morning_window: tuple[int, int] = (600, 705)
    afternoon_window: tuple[int, int] = (810, 1065)
    min_booking_delay: int = 30
    timezone: str = "Europe/Paris"
    reference_prefix: str = "SN"
    boats_cache_ttl: int = 300
    placeholder_emails: tuple[str, ...] = ("override@sweetnarcisse.local",)

    def __post_init__(self):
        if self.tour_duration <= 0:
            raise ValueError("tour_duration must be positive")
        if self.departure_interval <= 0:
            raise ValueError("departure_interval must be positive")
        if self.buffer_time < 0:
            raise ValueError("buffer_time cannot be negative")

    @classmethod
    def from_settings(cls) -> "BookingRules":
        overrides = dict(getattr(settings, "BOOKING_RULES", {}) or {})
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown booking rules: {', '.join(sorted(unknown))}")
        for name in _DECIMAL_FIELDS & set(overrides):
            overrides[name] = Decimal(str(overrides[name]))
        for name in _WINDOW_FIELDS & set(overrides):
            overrides[name] = tuple(overrides[name])
        if "placeholder_emails" in overrides:
            overrides["placeholder_emails"] = tuple(overrides["placeholder_emails"])
        return replace(cls(), **overrides)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def opening_minutes(self) -> int:
        hour, minute = parse_wall_time(self.opening_time)
        return hour * 60 + minute

    @property
    def tour_length(self) -> timedelta:
        return timedelta(minutes=self.tour_duration)

    @property
    def buffer(self) -> timedelta:
        return timedelta(minutes=self.buffer_time)

    def is_within_operating_hours(self, minutes_of_day: int) -> bool:
        return any(
            start <= minutes_of_day <= end
            for start, end in (self.morning_window, self.afternoon_window)
        )

    def describe_windows(self) -> str:
        """Human label of the windows, e.g. ``10h-11h45 / 13h30-17h45``."""
        return " / ".join(
            f"{_format_minutes(start)}-{_format_minutes(end)}"
            for start, end in (self.morning_window, self.afternoon_window)
        )
