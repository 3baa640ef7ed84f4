"""Admin order list filters.

``status`` is an exact match (stored value or display label); ``q`` is a
case-insensitive substring match against the order id, order number,
customer name and phone.  Both apply together (AND).
"""

import django_filters
from django.db.models import Q

from modules.orders.constants import parse_status
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(method="filter_status")
    q = django_filters.CharFilter(method="filter_query")

    class Meta:
        model = Order
        fields = ["status", "q"]

    def filter_status(self, queryset, name, value):
        if not value:
            return queryset
        try:
            status = parse_status(value)
        except ValueError:
            return queryset.none()
        return queryset.filter(status=status)

    def filter_query(self, queryset, name, value):
        term = value.strip()
        if not term:
            return queryset
        return queryset.filter(
            Q(id__icontains=term)
            | Q(order_number__icontains=term)
            | Q(full_name__icontains=term)
            | Q(phone__icontains=term)
        )
