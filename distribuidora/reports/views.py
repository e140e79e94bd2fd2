import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.db.models import Sum, F, DecimalField, ExpressionWrapper
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal

from distribuidora.catalog.models import Product
from distribuidora.catalog.serializers import ProductSerializer
from distribuidora.core.models import Setting
from distribuidora.pos.models import Order, OrderItem
from distribuidora.pos.pricing import to_money

logger = logging.getLogger(__name__)

CRITICAL_STOCK_SETTING_KEY = 'critical_stock_threshold'
TOP_PRODUCTS_LIMIT = 5
TOP_PRODUCTS_DAYS = 30


def get_critical_stock_threshold():
    """Threshold from the settings table, falling back to the Django setting"""
    value = Setting.get_value(CRITICAL_STOCK_SETTING_KEY)
    if value in (None, ''):
        return settings.CRITICAL_STOCK_THRESHOLD
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {CRITICAL_STOCK_SETTING_KEY} setting {value!r}, using default")
        return settings.CRITICAL_STOCK_THRESHOLD


def _sum_total(orders):
    return to_money(orders.aggregate(total=Sum('total'))['total'] or Decimal('0.00'))


def top_products(since, limit=TOP_PRODUCTS_LIMIT):
    revenue = ExpressionWrapper(F('quantity') * F('unit_price'), output_field=DecimalField(max_digits=14, decimal_places=2))
    rows = OrderItem.objects.filter(
        order__created_at__gte=since
    ).values(
        'product_id', 'product__name'
    ).annotate(
        total_quantity=Sum('quantity'),
        total_revenue=Sum(revenue)
    ).order_by('-total_quantity', 'product__name')[:limit]
    return [
        {
            'product_id': row['product_id'],
            'product_name': row['product__name'],
            'total_quantity': row['total_quantity'],
            'total_revenue': str(to_money(row['total_revenue'] or Decimal('0'))),
        }
        for row in rows
    ]


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Sales today and this month, critical stock, top products and active customers"""
    now = timezone.localtime()
    today = now.date()
    month_orders = Order.objects.filter(created_at__year=today.year, created_at__month=today.month)

    threshold = get_critical_stock_threshold()
    critical = Product.objects.filter(stock_full__lte=threshold).order_by('stock_full', 'name')

    active_customers = month_orders.filter(
        customer__isnull=False
    ).order_by().values('customer_id').distinct().count()

    return Response({
        'sales_today': str(_sum_total(Order.objects.filter(created_at__date=today))),
        'sales_month': str(_sum_total(month_orders)),
        'critical_stock_threshold': threshold,
        'critical_stock': ProductSerializer(critical, many=True).data,
        'top_products': top_products(now - timedelta(days=TOP_PRODUCTS_DAYS)),
        'active_customers': active_customers,
    }, status=status.HTTP_200_OK)
