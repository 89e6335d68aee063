"""API views for the fleet domain."""

from __future__ import annotations

from dataclasses import asdict

from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.cache import remember
from apps.bookings.rules import BookingRules
from shared.time import parse_paris_wall_date

from .services import FleetService


class SlotCapacityView(APIView):
    """Occupation d'un départ, pour une barque ou pour toute la flotte."""

    permission_classes = [permissions.IsAdminUser]

    def get(self, request):  # type: ignore
        day = request.query_params.get("date", "")
        wall_time = request.query_params.get("time", "")
        boat_param = request.query_params.get("boat")

        rules = BookingRules.from_settings()
        try:
            slot = parse_paris_wall_date(day, wall_time, rules.tzinfo)
            boat_id = int(boat_param) if boat_param else None
        except ValueError:
            return Response({"error": "Paramètres invalides"}, status=status.HTTP_400_BAD_REQUEST)

        fleet = FleetService(rules)
        start_time = slot.instant
        end_time = start_time + rules.tour_length

        if boat_id is None:
            payload = remember(
                slot.day.isoformat(),
                f"fleet:{slot.time_label}",
                lambda: asdict(fleet.get_fleet_capacity_for_slot(start_time, end_time)),
            )
            return Response(payload)

        def build():
            capacity = fleet.get_slot_capacity(boat_id, start_time, end_time)
            return asdict(capacity) if capacity else {}

        payload = remember(slot.day.isoformat(), f"boat:{boat_id}:{slot.time_label}", build)
        if not payload:
            return Response({"error": "Barque introuvable"}, status=status.HTTP_404_NOT_FOUND)
        return Response(payload)
