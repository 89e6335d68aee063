"""Input and result shapes of the booking engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from apps.payments.methods import PaymentMethod

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from .models import Booking


class BookingErrorCode(str, Enum):
    CONFLICT = "CONFLICT"
    INVALID_TIME = "INVALID_TIME"
    TOO_LATE = "TOO_LATE"
    NO_BOATS = "NO_BOATS"
    VALIDATION = "VALIDATION"
    TRANSACTION = "TRANSACTION"


@dataclass(frozen=True)
class CustomerDetails:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


@dataclass
class CreateBookingInput:
    """
    A booking request as the engine sees it.

    ``date`` is the Paris calendar day (``YYYY-MM-DD``) and ``time`` the Paris
    wall-clock departure (``HH:MM``). Staff-only knobs (``forced_boat_id``,
    ``group_chain``, ``mark_as_paid``...) are only honoured together with
    ``is_staff_override``; the HTTP layer refuses them for other callers.
    """

    date: str
    time: str
    adults: int = 0
    children: int = 0
    babies: int = 0
    language: str = "fr"
    customer: CustomerDetails = field(default_factory=CustomerDetails)
    message: str = ""
    is_staff_override: bool = False
    pending_only: bool = False
    mark_as_paid: bool = False
    payment_method: PaymentMethod | None = None
    invoice_email: str = ""
    forced_boat_id: int | None = None
    is_private: bool = False
    group_chain: int | None = None
    inherit_payment_for_chain: bool = False

    @property
    def people(self) -> int:
        return self.adults + self.children + self.babies


@dataclass(frozen=True)
class ChainedBooking:
    index: int
    boat_id: int
    start: datetime
    end: datetime
    people: int
    booking_id: str | None = None


@dataclass(frozen=True)
class ChainOverlap:
    index: int
    start: datetime | None
    end: datetime | None
    reason: str


@dataclass
class BookingResult:
    success: bool
    booking: "Booking | None" = None
    chained_bookings: list[ChainedBooking] = field(default_factory=list)
    overlaps: list[ChainOverlap] = field(default_factory=list)
    error: str | None = None
    error_code: BookingErrorCode | None = None

    @classmethod
    def failure(cls, code: BookingErrorCode, message: str) -> "BookingResult":
        return cls(success=False, error=message, error_code=code)


@dataclass(frozen=True)
class SlotValidationResult:
    valid: bool
    error: str | None = None
    error_code: BookingErrorCode | None = None


@dataclass(frozen=True)
class CancellationResult:
    success: bool
    booking: "Booking | None" = None
    error: str | None = None
