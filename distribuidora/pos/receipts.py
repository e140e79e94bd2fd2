"""Printable HTML receipts for orders"""
from django.conf import settings
from django.template.loader import render_to_string

from distribuidora.core.models import Setting

ANONYMOUS_CUSTOMER = 'Consumidor Final'

COMPANY_SETTING_KEYS = {
    'name': 'company_name',
    'address': 'company_address',
    'phone': 'company_phone',
    'email': 'company_email',
}


def company_details():
    rows = dict(Setting.objects.filter(key__in=COMPANY_SETTING_KEYS.values()).values_list('key', 'value'))
    return {field: rows.get(key, '') for field, key in COMPANY_SETTING_KEYS.items()}


def build_receipt_context(order):
    items = [
        {
            'product_name': item.product.name,
            'returned_container': item.returned_container,
            'quantity': item.quantity,
            'unit_price': item.unit_price,
            'subtotal': item.subtotal,
        }
        for item in order.items.select_related('product')
    ]
    return {
        'order': order,
        'company': company_details(),
        'customer_name': order.customer_name or ANONYMOUS_CUSTOMER,
        'items': items,
        'currency': settings.RECEIPT_CURRENCY,
    }


def render_receipt(order):
    return render_to_string('pos/receipt.html', build_receipt_context(order))
