import django_filters
from django.db.models import Q

from .models import BILL_TYPE_CHOICES, Bill, Transaction


class TransactionFilter(django_filters.FilterSet):
    """Filters for the completed-sales list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    bill_type = django_filters.ChoiceFilter(choices=BILL_TYPE_CHOICES)
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    min_amount = django_filters.NumberFilter(field_name='total_amount', lookup_expr='gte')
    max_amount = django_filters.NumberFilter(field_name='total_amount', lookup_expr='lte')

    class Meta:
        model = Transaction
        fields = ['search', 'bill_type', 'date_from', 'date_to', 'min_amount', 'max_amount']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(customer__icontains=value) | Q(order_id__icontains=value))


class BillFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    bill_type = django_filters.ChoiceFilter(choices=BILL_TYPE_CHOICES)

    class Meta:
        model = Bill
        fields = ['search', 'bill_type']

    def filter_search(self, queryset, name, value):
        """Match customer name or bill number"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(customer_name__icontains=value) | Q(bill_number__icontains=value))
