"""
Common Value Objects

- TimeWindow: a half-open range of instants a vessel is occupied
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Time window value object

    Represents the range from start (inclusive) to end (exclusive).
    Used for tour departures, buffered occupations and capacity queries.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Window start ({self.start}) must be before its end ({self.end})")

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        """
        Check if this window overlaps with another

        End is exclusive, so touching windows don't overlap:
            - [10:00, 10:30) overlaps [10:20, 10:50) -> True
            - [10:00, 10:30) overlaps [10:30, 11:00) -> False
        """
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")

        return self.start < other.end and self.end > other.start

    def padded(self, after: timedelta) -> 'TimeWindow':
        """Return the window extended by `after` past its end."""
        return TimeWindow(self.start, self.end + after)

    def __str__(self):
        return f"[{self.start.isoformat()} -> {self.end.isoformat()})"
