import django_filters
from django.db.models import F, Q

from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for the product list using django-filter"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    material = django_filters.CharFilter(field_name='material', lookup_expr='iexact')
    supplier = django_filters.CharFilter(field_name='supplier', lookup_expr='icontains')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock', label='Low Stock')
    long_set = django_filters.BooleanFilter(method='filter_long_set', label='Long Set')

    class Meta:
        model = Product
        fields = ['search', 'category', 'material', 'supplier', 'min_price', 'max_price', 'low_stock', 'long_set']

    def filter_search(self, queryset, name, value):
        """
        Multi-word search: every word must appear in the name, SKU or
        description, in any order.
        """
        words = [word for word in (value or '').split() if word]
        for word in words:
            queryset = queryset.filter(
                Q(name__icontains=word) | Q(sku__icontains=word) | Q(description__icontains=word)
            )
        return queryset

    def filter_low_stock(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.filter(stock__lte=F('low_stock_threshold'))
        return queryset.filter(stock__gt=F('low_stock_threshold'))

    def filter_long_set(self, queryset, name, value):
        if value is None:
            return queryset
        return queryset.filter(long_set__isnull=not value)
