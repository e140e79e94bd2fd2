import django_filters
from .models import StockMovement


class StockMovementFilter(django_filters.FilterSet):
    product_id = django_filters.NumberFilter(field_name='product_id', lookup_expr='exact')
    movement_type = django_filters.ChoiceFilter(choices=StockMovement.MOVEMENT_TYPE_CHOICES)

    class Meta:
        model = StockMovement
        fields = ['product_id', 'movement_type']
