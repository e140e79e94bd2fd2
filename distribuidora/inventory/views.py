from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from distribuidora.catalog.models import Product
from distribuidora.core.utils import create_audit_log
from .exceptions import InsufficientStock, InvalidQuantity
from .filters import StockMovementFilter
from .models import StockMovement
from .serializers import StockMovementSerializer, StockOperationSerializer
from . import services


def _run_stock_operation(request, operation, action):
    serializer = StockOperationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    product = get_object_or_404(Product, pk=serializer.validated_data['product_id'])
    quantity = serializer.validated_data['quantity']
    try:
        movement = operation(product, quantity, user=request.user)
    except InvalidQuantity as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except InsufficientStock as e:
        return Response(
            {'error': 'Insufficient stock', 'insufficient': e.as_payload()},
            status=status.HTTP_409_CONFLICT
        )

    create_audit_log(
        request=request,
        action=action,
        model_name='Product',
        object_id=product.id,
        object_name=product.name,
        changes={'movement_id': movement.id, 'quantity': movement.quantity},
    )
    return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_in_view(request):
    """Add full containers to a product"""
    return _run_stock_operation(request, services.stock_in, 'stock_in')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_out_view(request):
    """Remove full containers from a product"""
    return _run_stock_operation(request, services.stock_out, 'stock_out')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_adjust_view(request):
    """Apply a signed correction to a product's full stock"""
    return _run_stock_operation(request, services.stock_adjust, 'stock_adjust')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def movement_list(request):
    """List stock movements, newest first"""
    queryset = StockMovement.objects.select_related('product', 'created_by')
    filterset = StockMovementFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer = StockMovementSerializer(filterset.qs, many=True)
    return Response(serializer.data)
