"""Paris wall-clock helpers.

Departures are requested as local calendar strings (``YYYY-MM-DD`` and
``HH:MM``) and stored as absolute UTC instants. Converting between the two
is done here and nowhere else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone as dt_timezone
from zoneinfo import ZoneInfo

from django.utils import timezone  # type: ignore

PARIS = ZoneInfo("Europe/Paris")

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(frozen=True)
class WallDate:
    """A wall-clock departure together with the instant it denotes."""

    instant: datetime
    day: date
    wall_hour: int
    wall_minute: int

    @property
    def minutes_of_day(self) -> int:
        return self.wall_hour * 60 + self.wall_minute

    @property
    def time_label(self) -> str:
        return f"{self.wall_hour:02d}:{self.wall_minute:02d}"


def parse_wall_time(value: str) -> tuple[int, int]:
    """Split ``HH:MM`` into hour and minute, rejecting out-of-range parts."""
    match = _TIME_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid wall time: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid wall time: {value!r}")
    return hour, minute


def parse_paris_wall_date(day: str | date, wall_time: str, tz: ZoneInfo = PARIS) -> WallDate:
    """
    Interpret a local date and time in the given zone (Paris by default).

    Raises:
        ValueError: if the date or the time cannot be parsed
    """
    if isinstance(day, str):
        day = date.fromisoformat(day.strip())
    hour, minute = parse_wall_time(wall_time)
    local = datetime.combine(day, time(hour, minute), tzinfo=tz)
    return WallDate(
        instant=local.astimezone(dt_timezone.utc),
        day=day,
        wall_hour=hour,
        wall_minute=minute,
    )


def paris_now(now: datetime | None = None, tz: ZoneInfo = PARIS) -> datetime:
    """Current wall-clock time in the zone, truncated to the minute."""
    current = now or timezone.now()
    return current.astimezone(tz).replace(second=0, microsecond=0)
