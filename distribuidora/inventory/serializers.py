from rest_framework import serializers
from .models import StockMovement


class StockMovementSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'product', 'product_name', 'movement_type', 'quantity',
            'created_by', 'created_by_username', 'created_at'
        ]
        read_only_fields = fields


class StockOperationSerializer(serializers.Serializer):
    """Input for stock in / out / adjust"""
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField()
