"""Tests for payment method parsing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from apps.payments.methods import (
    Ancv,
    Card,
    Cash,
    Check,
    CityPass,
    Voucher,
    parse_payment_method,
)


@pytest.mark.parametrize(
    "payload,expected",
    [
        ("cash", Cash),
        ("card", Card),
        ("stripe", Card),
        ("ANCV", Ancv),
        ("CityPass", CityPass),
        ({"provider": "voucher", "methodType": "ANCV"}, Ancv),
    ],
)
def test_parse_provider(payload, expected):
    assert isinstance(parse_payment_method(payload), expected)


def test_parse_voucher_details():
    method = parse_payment_method(
        {
            "provider": "voucher",
            "methodType": "hotel",
            "metadata": {
                "voucher": {
                    "partnerId": "hotel_bristol",
                    "partnerLabel": "Hôtel Bristol",
                    "reference": "B-778",
                    "quantity": 2,
                    "totalAmount": "100.00",
                }
            },
        }
    )

    assert method == Voucher(
        method_type="hotel",
        partner_id="hotel_bristol",
        partner_label="Hôtel Bristol",
        reference="B-778",
        quantity=2,
        total_amount=Decimal("100.00"),
    )
    assert method.metadata()["voucher"]["totalAmount"] == "100.00"


def test_parse_check_details():
    method = parse_payment_method(
        {"provider": "check", "metadata": {"check": {"number": "0012", "bank": "CIC", "amount": "27"}}}
    )

    assert isinstance(method, Check)
    assert method.number == "0012"
    assert method.quantity == 1
    assert method.amount == Decimal("27")


def test_ancv_is_recorded_as_voucher():
    method = Ancv()

    assert method.provider == "voucher"
    assert method.method_type == "ANCV"


@pytest.mark.parametrize("payload", [None, "", {"provider": ""}])
def test_empty_payload(payload):
    assert parse_payment_method(payload) is None


@pytest.mark.parametrize(
    "payload",
    ["bitcoin", {"provider": "check", "metadata": {"check": {"amount": "douze"}}}],
)
def test_invalid_payload(payload):
    with pytest.raises(ValueError):
        parse_payment_method(payload)
