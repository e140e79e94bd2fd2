from rest_framework import serializers
from decimal import Decimal
from distribuidora.parties.models import Customer
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'quantity', 'returned_container', 'unit_price', 'subtotal']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(read_only=True, allow_null=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = ['id', 'customer', 'customer_name', 'total', 'created_at', 'created_by', 'created_by_username']
        read_only_fields = fields


class OrderDetailSerializer(OrderSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ['items']
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    returned_container = serializers.BooleanField(default=False)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))


class OrderCreateSerializer(serializers.Serializer):
    """Order creation body: ``{customer_id?, items: [...]}``"""
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    items = OrderItemInputSerializer(many=True, allow_empty=False)

    def validate_customer_id(self, value):
        if value is not None and not Customer.objects.filter(pk=value).exists():
            raise serializers.ValidationError(f'Customer {value} does not exist')
        return value


class OrderUpdateSerializer(serializers.Serializer):
    """Administrative correction: only the timestamp may change"""
    created_at = serializers.DateTimeField()

    def to_internal_value(self, data):
        unknown = set(data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(
                {field: 'This field cannot be changed' for field in sorted(unknown)}
            )
        return super().to_internal_value(data)
