"""Payment method variants accepted at booking time.

Each variant is a small frozen dataclass. ``code`` is the value the counter
sends (``cash``, ``ANCV``...), ``provider`` is what ends up on the
``Payment`` row, and ``instant_capture`` says whether the money is already
in hand when the booking is created.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Mapping

INSTANT_CAPTURE_CODES = frozenset(
    {"cash", "paypal", "applepay", "googlepay", "voucher", "check", "ANCV", "CityPass"}
)


@dataclass(frozen=True)
class PaymentMethod:
    code: ClassVar[str] = ""
    provider: ClassVar[str] = ""
    instant_capture: ClassVar[bool] = False

    method_type: str | None = None

    def metadata(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class Cash(PaymentMethod):
    code: ClassVar[str] = "cash"
    provider: ClassVar[str] = "cash"
    instant_capture: ClassVar[bool] = True


@dataclass(frozen=True)
class Card(PaymentMethod):
    """Online card payment, captured later by the Stripe webhook."""

    code: ClassVar[str] = "card"
    provider: ClassVar[str] = "stripe"
    instant_capture: ClassVar[bool] = False


@dataclass(frozen=True)
class Paypal(PaymentMethod):
    code: ClassVar[str] = "paypal"
    provider: ClassVar[str] = "paypal"
    instant_capture: ClassVar[bool] = True


@dataclass(frozen=True)
class ApplePay(PaymentMethod):
    code: ClassVar[str] = "applepay"
    provider: ClassVar[str] = "applepay"
    instant_capture: ClassVar[bool] = True


@dataclass(frozen=True)
class GooglePay(PaymentMethod):
    code: ClassVar[str] = "googlepay"
    provider: ClassVar[str] = "googlepay"
    instant_capture: ClassVar[bool] = True


@dataclass(frozen=True)
class Voucher(PaymentMethod):
    """Partner voucher (hotel, tourist office...) handed over at the counter."""

    code: ClassVar[str] = "voucher"
    provider: ClassVar[str] = "voucher"
    instant_capture: ClassVar[bool] = True

    partner_id: str = ""
    partner_label: str = ""
    reference: str = ""
    quantity: int = 1
    total_amount: Decimal | None = None

    def metadata(self) -> dict[str, Any]:
        return {
            "voucher": {
                "partnerId": self.partner_id,
                "partnerLabel": self.partner_label,
                "reference": self.reference,
                "quantity": self.quantity,
                "totalAmount": str(self.total_amount) if self.total_amount is not None else None,
            }
        }


@dataclass(frozen=True)
class Check(PaymentMethod):
    code: ClassVar[str] = "check"
    provider: ClassVar[str] = "check"
    instant_capture: ClassVar[bool] = True

    number: str = ""
    bank: str = ""
    quantity: int = 1
    amount: Decimal | None = None

    def metadata(self) -> dict[str, Any]:
        return {
            "check": {
                "number": self.number,
                "bank": self.bank,
                "quantity": self.quantity,
                "amount": str(self.amount) if self.amount is not None else None,
            }
        }


@dataclass(frozen=True)
class Ancv(PaymentMethod):
    """Chèques-vacances, booked as a voucher."""

    code: ClassVar[str] = "ANCV"
    provider: ClassVar[str] = "voucher"
    instant_capture: ClassVar[bool] = True

    method_type: str | None = "ANCV"


@dataclass(frozen=True)
class CityPass(PaymentMethod):
    code: ClassVar[str] = "CityPass"
    provider: ClassVar[str] = "voucher"
    instant_capture: ClassVar[bool] = True

    method_type: str | None = "CityPass"


PAYMENT_METHODS: dict[str, type[PaymentMethod]] = {
    cls.code: cls
    for cls in (Cash, Card, Paypal, ApplePay, GooglePay, Voucher, Check, Ancv, CityPass)
}
# Aliases sent by older clients
PAYMENT_METHODS["stripe"] = Card


def _to_decimal(value: Any) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def _to_quantity(value: Any) -> int:
    try:
        quantity = int(value if value not in (None, "") else 1)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid quantity: {value!r}") from exc
    return max(1, quantity)


def parse_payment_method(payload: str | Mapping[str, Any] | PaymentMethod | None) -> PaymentMethod | None:
    """
    Turn an API payload into a payment method variant.

    Accepts a bare provider code (``"cash"``) or an object
    ``{"provider": ..., "methodType": ..., "metadata": {"voucher": {...}}}``.

    Raises:
        ValueError: unknown provider or malformed voucher/check details
    """
    if payload is None or isinstance(payload, PaymentMethod):
        return payload

    if isinstance(payload, str):
        code, method_type, metadata = payload.strip(), None, {}
    else:
        code = str(payload.get("provider") or "").strip()
        method_type = payload.get("methodType") or payload.get("method_type")
        metadata = payload.get("metadata") or {}

    if not code:
        return None

    # ANCV and CityPass also arrive as {"provider": "voucher", "methodType": "ANCV"}
    if code == "voucher" and method_type in ("ANCV", "CityPass"):
        code = method_type

    cls = PAYMENT_METHODS.get(code)
    if cls is None:
        raise ValueError(f"Unknown payment provider: {code!r}")

    if cls is Voucher:
        details = metadata.get("voucher") or {}
        return Voucher(
            method_type=method_type,
            partner_id=str(details.get("partnerId") or ""),
            partner_label=str(details.get("partnerLabel") or ""),
            reference=str(details.get("reference") or ""),
            quantity=_to_quantity(details.get("quantity")),
            total_amount=_to_decimal(details.get("totalAmount")),
        )
    if cls is Check:
        details = metadata.get("check") or {}
        return Check(
            method_type=method_type,
            number=str(details.get("number") or ""),
            bank=str(details.get("bank") or ""),
            quantity=_to_quantity(details.get("quantity")),
            amount=_to_decimal(details.get("amount")),
        )
    if cls in (Ancv, CityPass):
        return cls()
    return cls(method_type=method_type)
