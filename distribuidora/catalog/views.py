import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404

from .cache import get_cached_product_list, cache_product_list
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer
from distribuidora.core.utils import create_audit_log

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List all products (optionally filtered) or create a new product"""
    if request.method == 'GET':
        filters = {name: request.query_params.get(name, '') for name in ProductFilter.base_filters}

        cached_data = get_cached_product_list(filters)
        if cached_data is not None:
            return Response(cached_data)

        filterset = ProductFilter(request.query_params, queryset=Product.objects.all())
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProductSerializer(filterset.qs, many=True)
        response_data = serializer.data
        cache_product_list(response_data, filters)
        return Response(response_data)
    else:
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Product',
                object_id=product.id,
                object_name=product.name,
                changes={'price_full': str(product.price_full), 'price_refill': str(product.price_refill),
                         'stock_full': product.stock_full, 'stock_empty': product.stock_empty},
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        with transaction.atomic():
            # re-read under lock so a concurrent sale is not overwritten
            product = get_object_or_404(Product.objects.select_for_update(), pk=pk)
            serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
            is_valid = serializer.is_valid()
            if is_valid:
                serializer.save()
        if is_valid:
            create_audit_log(
                request=request,
                action='update',
                model_name='Product',
                object_id=product.id,
                object_name=product.name,
                changes={k: str(v) for k, v in serializer.validated_data.items()},
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product_id, product_name = product.id, product.name
        try:
            product.delete()
        except ProtectedError:
            logger.warning(f"Refusing to delete product {product_id}: it is referenced by orders")
            return Response(
                {'error': 'Product has orders and cannot be deleted'},
                status=status.HTTP_409_CONFLICT
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=product_id,
            object_name=product_name,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
