import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filters for the product list"""

    # Name or description contains the text (case-insensitive)
    search = django_filters.CharFilter(method='filter_search', label='Search')
    type = django_filters.ChoiceFilter(choices=Product.TYPE_CHOICES)
    # Products with stock_full at or below the given value
    max_stock = django_filters.NumberFilter(field_name='stock_full', lookup_expr='lte')

    class Meta:
        model = Product
        fields = ['search', 'type', 'max_stock']

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(Q(name__icontains=search) | Q(description__icontains=search))
