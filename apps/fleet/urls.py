"""URL routing for the fleet domain."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import SlotCapacityView

urlpatterns = [
    path("capacity/", SlotCapacityView.as_view(), name="fleet-slot-capacity"),
]
