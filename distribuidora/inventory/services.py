"""
Stock mutations.

Every operation locks the product row, changes ``stock_full`` with an F()
expression and writes exactly one StockMovement, all inside one
transaction. Counter updates go through ``QuerySet.update`` so they bypass
model signals; the product list cache is therefore invalidated here.
"""
import logging

from django.db import transaction
from django.db.models import F

from distribuidora.catalog.cache import invalidate_product_cache_on_commit
from distribuidora.catalog.models import Product
from distribuidora.pos.reconciliation import Shortage
from .exceptions import InsufficientStock, InvalidQuantity
from .models import StockMovement

logger = logging.getLogger(__name__)


def _as_quantity(quantity, allow_negative=False):
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity(f"Quantity must be an integer, got {quantity!r}")
    if allow_negative:
        if quantity == 0:
            raise InvalidQuantity('Adjustment quantity cannot be zero')
    elif quantity <= 0:
        raise InvalidQuantity('Quantity must be positive')
    return quantity


def lock_products(product_ids):
    """
    Lock product rows for update and return them keyed by id.

    Must run inside ``transaction.atomic()``. Rows are locked in id order so
    concurrent checkouts touching the same products cannot deadlock.
    """
    products = Product.objects.select_for_update().filter(pk__in=set(product_ids)).order_by('pk')
    return {product.pk: product for product in products}


def _lock_one(product):
    product_id = getattr(product, 'pk', product)
    locked = lock_products([product_id])
    if product_id not in locked:
        raise Product.DoesNotExist(f"Product {product_id} not found")
    return locked[product_id]


def record_movement(product, movement_type, quantity, user=None):
    return StockMovement.objects.create(
        product=product,
        movement_type=movement_type,
        quantity=quantity,
        created_by=user if user is not None and user.is_authenticated else None,
    )


def apply_sale(product, quantity, returned_container=False, user=None):
    """
    Take ``quantity`` full containers out for a sale.

    Caller holds the row lock and has already checked availability. A
    returned container adds the same number of empties.
    """
    updates = {'stock_full': F('stock_full') - quantity}
    if returned_container:
        updates['stock_empty'] = F('stock_empty') + quantity
    Product.objects.filter(pk=product.pk).update(**updates)
    return record_movement(product, StockMovement.OUT, quantity, user)


def stock_in(product, quantity, user=None):
    """Receive ``quantity`` full containers"""
    quantity = _as_quantity(quantity)
    with transaction.atomic():
        locked = _lock_one(product)
        Product.objects.filter(pk=locked.pk).update(stock_full=F('stock_full') + quantity)
        movement = record_movement(locked, StockMovement.IN, quantity, user)
        invalidate_product_cache_on_commit()
    logger.info(f"Stock in: product {locked.pk} +{quantity}")
    return movement


def stock_out(product, quantity, user=None):
    """Remove ``quantity`` full containers outside of a sale"""
    quantity = _as_quantity(quantity)
    with transaction.atomic():
        locked = _lock_one(product)
        if quantity > locked.stock_full:
            logger.warning(
                f"Stock out refused for product {locked.pk}: "
                f"requested {quantity}, available {locked.stock_full}"
            )
            raise InsufficientStock([Shortage(locked.pk, quantity, locked.stock_full)])
        Product.objects.filter(pk=locked.pk).update(stock_full=F('stock_full') - quantity)
        movement = record_movement(locked, StockMovement.OUT, quantity, user)
        invalidate_product_cache_on_commit()
    logger.info(f"Stock out: product {locked.pk} -{quantity}")
    return movement


def stock_adjust(product, delta, user=None):
    """Correct ``stock_full`` by a signed, non-zero ``delta``"""
    delta = _as_quantity(delta, allow_negative=True)
    with transaction.atomic():
        locked = _lock_one(product)
        if locked.stock_full + delta < 0:
            logger.warning(
                f"Stock adjust refused for product {locked.pk}: "
                f"delta {delta} would leave {locked.stock_full + delta}"
            )
            raise InsufficientStock([Shortage(locked.pk, -delta, locked.stock_full)])
        Product.objects.filter(pk=locked.pk).update(stock_full=F('stock_full') + delta)
        movement = record_movement(locked, StockMovement.ADJUST, delta, user)
        invalidate_product_cache_on_commit()
    logger.info(f"Stock adjust: product {locked.pk} {delta:+d}")
    return movement
