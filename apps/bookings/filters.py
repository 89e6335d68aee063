import django_filters

from .models import Booking


class BookingFilter(django_filters.FilterSet):
    date = django_filters.DateFilter(field_name="date")
    boat = django_filters.NumberFilter(field_name="boat_id")
    status = django_filters.ChoiceFilter(choices=Booking.Status.choices)
    language = django_filters.CharFilter(field_name="language", lookup_expr="iexact")

    class Meta:
        model = Booking
        fields = ["date", "boat", "status", "language"]
