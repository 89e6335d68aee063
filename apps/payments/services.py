"""Payment recording for bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import transaction  # type: ignore

from shared.infrastructure.locking import lock_queryset_if_possible

from .methods import INSTANT_CAPTURE_CODES, PaymentMethod, parse_payment_method
from .models import Payment

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from apps.bookings.models import Booking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment: Payment | None = None
    error: str | None = None
    already_recorded: bool = False


class PaymentService:
    """Collaborator boundary between bookings and payment capture."""

    def is_instant_capture(self, method: PaymentMethod | str | None) -> bool:
        """True when the money is collected at the counter with the booking."""
        if method is None:
            return False
        if isinstance(method, PaymentMethod):
            return method.code in INSTANT_CAPTURE_CODES
        return method in INSTANT_CAPTURE_CODES

    def record_instant_payment(self, booking: "Booking", method: PaymentMethod) -> Payment:
        """Succeeded payment row for a counter sale; runs in the caller's transaction."""
        return self._record(booking, method, Payment.Status.SUCCEEDED)

    def record_pending_payment(self, booking: "Booking", method: PaymentMethod) -> Payment:
        """Payment intent carried over to a chained booking, not captured."""
        return self._record(booking, method, Payment.Status.PENDING)

    def _record(self, booking: "Booking", method: PaymentMethod, status: str, intent_id: str | None = None) -> Payment:
        return Payment.objects.create(
            booking=booking,
            provider=method.provider,
            method_type=method.method_type or "",
            amount=booking.total_price or Decimal("0"),
            currency="EUR",
            status=status,
            intent_id=intent_id,
            metadata=method.metadata(),
        )

    def mark_paid(
        self,
        booking_id,
        method: PaymentMethod | str | dict,
        intent_id: str | None = None,
    ) -> PaymentResult:
        """
        Record a captured payment and confirm the booking.

        Calling twice with the same ``intent_id`` returns the first payment
        without touching the booking again. Cancelled bookings are refused.
        """
        from apps.bookings.models import Booking  # Local import to prevent circular dependency

        try:
            parsed = parse_payment_method(method)
        except ValueError as exc:
            return PaymentResult(success=False, error=str(exc))
        if parsed is None:
            return PaymentResult(success=False, error="Moyen de paiement manquant")

        with transaction.atomic():
            if intent_id:
                existing = Payment.objects.filter(intent_id=intent_id).first()
                if existing is not None:
                    return PaymentResult(success=True, payment=existing, already_recorded=True)

            booking = lock_queryset_if_possible(Booking.objects.filter(pk=booking_id)).first()
            if booking is None:
                return PaymentResult(success=False, error="Réservation introuvable")
            if booking.is_cancelled:
                return PaymentResult(success=False, error="Réservation annulée")

            payment = self._record(booking, parsed, Payment.Status.SUCCEEDED, intent_id=intent_id)
            booking.mark_paid()

        logger.info("Booking %s marked paid via %s", booking.public_reference, parsed.provider)
        return PaymentResult(success=True, payment=payment)
