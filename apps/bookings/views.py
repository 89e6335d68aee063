"""API views for the booking domain."""

from __future__ import annotations

from urllib.parse import urlencode

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import NotFound, PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore

from .cache import remember
from .filters import BookingFilter
from .models import Booking
from .serializers import (
    BookingCancelSerializer,
    BookingSerializer,
    CreateBookingSerializer,
    serialize_booking_result,
)
from .services import BookingService
from .types import BookingErrorCode

ERROR_STATUS = {
    BookingErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    BookingErrorCode.NO_BOATS: status.HTTP_503_SERVICE_UNAVAILABLE,
    BookingErrorCode.TRANSACTION: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_status_for(code: BookingErrorCode | None) -> int:
    return ERROR_STATUS.get(code, status.HTTP_400_BAD_REQUEST)


class BookingViewSet(viewsets.ViewSet):
    """Création, consultation et annulation des réservations."""

    lookup_field = "key"
    service_class = BookingService

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [permissions.AllowAny()]
        if self.action in ("list", "cancel"):
            return [permissions.IsAdminUser()]
        return [permissions.IsAuthenticated()]

    def get_service(self) -> BookingService:
        return self.service_class()

    def list(self, request):  # type: ignore
        """Planning of the day, filtered by ``date``, ``boat``, ``status`` or ``language``."""
        queryset = Booking.objects.select_related("boat", "customer").prefetch_related("payments")
        filterset = BookingFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        def build():
            return list(BookingSerializer(filterset.qs, many=True, context={"request": request}).data)

        day = filterset.form.cleaned_data.get("date")
        if day is None:
            return Response(build())
        suffix = urlencode(sorted(request.query_params.items()))
        return Response(remember(day.isoformat(), f"list:{suffix}", build, prefix="bookings"))

    def create(self, request):  # type: ignore
        serializer = CreateBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if serializer.uses_staff_only_fields() and not getattr(request.user, "is_staff", False):
            raise PermissionDenied("Réservé au personnel.")

        result = self.get_service().create_booking(serializer.to_input())
        if not result.success:
            return Response(
                {"error": result.error, "errorCode": result.error_code.value if result.error_code else None},
                status=error_status_for(result.error_code),
            )
        return Response(
            serialize_booking_result(result, {"request": request}),
            status=status.HTTP_201_CREATED,
        )

    def retrieve(self, request, key=None):  # type: ignore
        booking = self.get_service().get_booking(key)
        if booking is None:
            raise NotFound("Réservation introuvable")
        return Response(BookingSerializer(booking, context={"request": request}).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, key=None):  # type: ignore
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().cancel_booking(key, serializer.validated_data["reason"] or None)
        if not result.success:
            code = status.HTTP_404_NOT_FOUND if result.booking is None else status.HTTP_400_BAD_REQUEST
            return Response({"error": result.error}, status=code)
        return Response({"status": result.booking.status, "reference": result.booking.public_reference})
