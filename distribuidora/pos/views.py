import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.http import HttpResponse
from django.shortcuts import get_object_or_404

from distribuidora.core.permissions import is_admin_user
from distribuidora.core.utils import create_audit_log
from distribuidora.parties.models import Customer
from .exceptions import DuplicateProduct, EmptyOrder, InsufficientStock, InvalidQuantity, UnknownProduct
from .models import Order
from .receipts import render_receipt
from .serializers import OrderSerializer, OrderDetailSerializer, OrderCreateSerializer, OrderUpdateSerializer
from .services import place_order

logger = logging.getLogger(__name__)


def _order_queryset():
    return Order.objects.select_related('customer', 'created_by')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders (newest first) or place a new order"""
    if request.method == 'GET':
        serializer = OrderSerializer(_order_queryset(), many=True)
        return Response(serializer.data)

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    customer_id = serializer.validated_data.get('customer_id')
    customer = Customer.objects.filter(pk=customer_id).first() if customer_id else None
    try:
        order = place_order(serializer.validated_data['items'], customer=customer, user=request.user)
    except InsufficientStock as e:
        return Response(
            {'error': 'Insufficient stock', 'insufficient': e.as_payload()},
            status=status.HTTP_409_CONFLICT
        )
    except (EmptyOrder, InvalidQuantity, DuplicateProduct, UnknownProduct) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='order_create',
        model_name='Order',
        object_id=order.id,
        object_name=f"Order #{order.id}",
        changes={
            'total': str(order.total),
            'customer_id': customer.id if customer else None,
            'items': [
                {'product_id': item['product_id'], 'quantity': item['quantity'],
                 'returned_container': item['returned_container'], 'unit_price': str(item['unit_price'])}
                for item in serializer.validated_data['items']
            ],
        },
    )
    order = _order_queryset().prefetch_related('items__product').get(pk=order.pk)
    return Response(OrderDetailSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """
    Retrieve an order with its items.

    PATCH corrects the timestamp and DELETE removes the order without
    returning stock; both are admin-only.
    """
    order = get_object_or_404(_order_queryset().prefetch_related('items__product'), pk=pk)

    if request.method == 'GET':
        return Response(OrderDetailSerializer(order).data)

    if not is_admin_user(request.user):
        return Response({'error': 'Only administrators can modify orders'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'PATCH':
        serializer = OrderUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        old_created_at = order.created_at
        order.created_at = serializer.validated_data['created_at']
        order.save(update_fields=['created_at'])
        create_audit_log(
            request=request,
            action='order_update',
            model_name='Order',
            object_id=order.id,
            object_name=f"Order #{order.id}",
            changes={'created_at': {'old': old_created_at.isoformat(), 'new': order.created_at.isoformat()}},
        )
        return Response(OrderDetailSerializer(order).data)

    # DELETE
    order_id, total = order.id, order.total
    order.delete()
    logger.info(f"Order {order_id} deleted by {request.user.username}")
    create_audit_log(
        request=request,
        action='order_delete',
        model_name='Order',
        object_id=order_id,
        object_name=f"Order #{order_id}",
        changes={'total': str(total)},
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_orders(request, customer_id):
    """List the orders of one customer"""
    customer = get_object_or_404(Customer, pk=customer_id)
    serializer = OrderSerializer(_order_queryset().filter(customer=customer), many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_receipt(request, pk):
    """Printable HTML receipt"""
    order = get_object_or_404(_order_queryset(), pk=pk)
    return HttpResponse(render_receipt(order), content_type='text/html; charset=utf-8')
