"""Serializers for the booking domain."""

from __future__ import annotations

from dataclasses import asdict

from rest_framework import serializers  # type: ignore

from apps.payments.methods import parse_payment_method
from apps.payments.models import Payment

from .models import Booking
from .types import BookingResult, CreateBookingInput, CustomerDetails

STAFF_ONLY_FIELDS = ("is_staff_override", "forced_boat_id", "group_chain", "mark_as_paid")


class PaymentMethodField(serializers.Field):
    """Provider code or ``{provider, methodType, metadata}`` object."""

    def to_internal_value(self, data):  # type: ignore
        if not isinstance(data, (str, dict)):
            raise serializers.ValidationError("Moyen de paiement invalide.")
        try:
            return parse_payment_method(data)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))

    def to_representation(self, value):  # type: ignore
        if value is None:
            return None
        return {"provider": value.provider, "methodType": value.method_type, "metadata": value.metadata()}


class CustomerDetailsSerializer(serializers.Serializer):
    firstName = serializers.CharField(source="first_name", max_length=100, required=False, allow_blank=True, default="")
    lastName = serializers.CharField(source="last_name", max_length=100, required=False, allow_blank=True, default="")
    email = serializers.EmailField(max_length=254, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")


class CreateBookingSerializer(serializers.Serializer):
    """Booking request, field names as sent by the booking widget and the counter app."""

    date = serializers.RegexField(r"^\d{4}-\d{2}-\d{2}$")
    time = serializers.RegexField(r"^\d{1,2}:\d{2}$")
    adults = serializers.IntegerField(min_value=0, max_value=100, default=0)
    children = serializers.IntegerField(min_value=0, max_value=100, default=0)
    babies = serializers.IntegerField(min_value=0, max_value=100, default=0)
    language = serializers.CharField(min_length=2, max_length=8, default="fr")
    userDetails = CustomerDetailsSerializer(source="customer", required=False, default=dict)
    message = serializers.CharField(max_length=1000, required=False, allow_blank=True, default="")
    isStaffOverride = serializers.BooleanField(source="is_staff_override", default=False)
    pendingOnly = serializers.BooleanField(source="pending_only", default=False)
    markAsPaid = serializers.BooleanField(source="mark_as_paid", default=False)
    paymentMethod = PaymentMethodField(source="payment_method", required=False, allow_null=True, default=None)
    invoiceEmail = serializers.EmailField(source="invoice_email", required=False, allow_blank=True, default="")
    forcedBoatId = serializers.IntegerField(source="forced_boat_id", required=False, allow_null=True, default=None)
    private = serializers.BooleanField(source="is_private", default=False)
    groupChain = serializers.IntegerField(
        source="group_chain", min_value=1, required=False, allow_null=True, default=None
    )
    inheritPaymentForChain = serializers.BooleanField(source="inherit_payment_for_chain", default=False)

    def uses_staff_only_fields(self) -> bool:
        return any(self.validated_data.get(name) for name in STAFF_ONLY_FIELDS)

    def to_input(self) -> CreateBookingInput:
        data = dict(self.validated_data)
        data["customer"] = CustomerDetails(**data.get("customer", {}))
        return CreateBookingInput(**data)


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ["id", "provider", "method_type", "amount", "currency", "status", "intent_id", "created_at"]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    """Détail d'une réservation."""

    boat_id = serializers.ReadOnlyField(source="boat.id")
    boat_name = serializers.ReadOnlyField(source="boat.name")
    customer_name = serializers.SerializerMethodField()
    customer_email = serializers.ReadOnlyField(source="customer.email")
    payments = PaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "public_reference",
            "boat_id",
            "boat_name",
            "customer_name",
            "customer_email",
            "date",
            "start_time",
            "end_time",
            "adults",
            "children",
            "babies",
            "number_of_people",
            "language",
            "status",
            "is_paid",
            "total_price",
            "message",
            "invoice_email",
            "cancelled_at",
            "cancellation_reason",
            "payments",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_customer_name(self, obj: Booking) -> str:
        return f"{obj.customer.first_name} {obj.customer.last_name}".strip()


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


def serialize_booking_result(result: BookingResult, context=None) -> dict:
    return {
        "booking": BookingSerializer(result.booking, context=context or {}).data,
        "chainedBookings": [asdict(c) for c in result.chained_bookings],
        "overlaps": [asdict(o) for o in result.overlaps],
    }
