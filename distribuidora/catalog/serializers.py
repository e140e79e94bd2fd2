from rest_framework import serializers
from decimal import Decimal
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    price_full = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    price_refill = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    stock_full = serializers.IntegerField(min_value=0, required=False)
    stock_empty = serializers.IntegerField(min_value=0, required=False)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'type', 'price_full', 'price_refill',
            'stock_full', 'stock_empty', 'expiry_month', 'expiry_year',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError('Product name cannot be empty')
        return value.strip()

    def update(self, instance, validated_data):
        # Stock counters move through F() updates elsewhere; write only what was sent
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save(update_fields=[*validated_data, 'updated_at'])
        return instance
