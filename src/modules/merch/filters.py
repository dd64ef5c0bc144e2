import django_filters

from modules.merch.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    user = django_filters.UUIDFilter(field_name="user_id")
    pickup_event = django_filters.UUIDFilter(field_name="pickup_event_id")
    start_date = django_filters.DateFilter(field_name="ordered_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="ordered_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status", "user", "pickup_event", "start_date", "end_date"]
