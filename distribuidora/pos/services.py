"""
Order placement.

``place_order`` is the server half of checkout. The client validates stock
against its own snapshot first, but that snapshot can be stale when several
terminals sell at once, so stock is checked again here with the product
rows locked, and either everything is written or nothing is.
"""
from collections import Counter, namedtuple
from decimal import Decimal
import logging

from django.db import transaction

from distribuidora.catalog.cache import invalidate_product_cache_on_commit
from distribuidora.inventory.services import apply_sale, lock_products
from .exceptions import DuplicateProduct, EmptyOrder, InsufficientStock, InvalidQuantity, UnknownProduct
from .models import Order, OrderItem
from .pricing import to_money
from .reconciliation import validate_for_checkout

logger = logging.getLogger(__name__)

# Shape expected by validate_for_checkout: line.product.id and line.quantity
_ProductRef = namedtuple('_ProductRef', ['id'])
_CheckedLine = namedtuple('_CheckedLine', ['product', 'quantity'])


def _normalize_items(items):
    lines = []
    for item in items:
        quantity = item['quantity']
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantity(f"Quantity must be a positive integer, got {quantity!r}")
        unit_price = to_money(item['unit_price'])
        if unit_price < 0:
            raise InvalidQuantity(f"Unit price cannot be negative, got {unit_price}")
        lines.append({
            'product_id': int(item['product_id']),
            'quantity': quantity,
            'returned_container': bool(item.get('returned_container', False)),
            'unit_price': unit_price,
        })
    return lines


def place_order(items, customer=None, user=None):
    """
    Create an order and take its items out of stock.

    items: iterable of dicts with ``product_id``, ``quantity``,
    ``returned_container`` and ``unit_price`` (the price the cart resolved
    when the operator confirmed the sale; it is stored as is).

    Each product may appear on one line only.

    Raises EmptyOrder, InvalidQuantity, DuplicateProduct, UnknownProduct or
    InsufficientStock.
    Nothing is written when any of them is raised.
    """
    lines = _normalize_items(items)
    if not lines:
        raise EmptyOrder('Order must contain at least one item')
    counts = Counter(line['product_id'] for line in lines)
    duplicates = [pk for pk, count in counts.items() if count > 1]
    if duplicates:
        raise DuplicateProduct(duplicates)

    with transaction.atomic():
        products = lock_products(line['product_id'] for line in lines)
        missing = {line['product_id'] for line in lines} - set(products)
        if missing:
            raise UnknownProduct(missing)

        report = validate_for_checkout(
            [_CheckedLine(_ProductRef(line['product_id']), line['quantity']) for line in lines],
            {pk: product.stock_full for pk, product in products.items()},
        )
        if not report.ok:
            logger.warning(f"Order refused, insufficient stock: {report.as_payload()}")
            raise InsufficientStock(report.insufficient)

        total = sum((line['unit_price'] * line['quantity'] for line in lines), Decimal('0.00'))
        order = Order.objects.create(
            customer=customer,
            total=total,
            created_by=user if user is not None and user.is_authenticated else None,
        )
        for line in lines:
            product = products[line['product_id']]
            OrderItem.objects.create(
                order=order,
                product=product,
                quantity=line['quantity'],
                returned_container=line['returned_container'],
                unit_price=line['unit_price'],
            )
            apply_sale(product, line['quantity'], line['returned_container'], user=user)
        invalidate_product_cache_on_commit()

    logger.info(f"Order {order.id} placed: {len(lines)} item(s), total {order.total}")
    return order
