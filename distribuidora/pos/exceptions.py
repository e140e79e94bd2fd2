"""Errors raised while placing orders"""
from distribuidora.inventory.exceptions import InsufficientStock, InvalidQuantity, StockError


class OrderError(Exception):
    """Base class for order placement failures other than stock"""


class EmptyOrder(OrderError):
    """Order has no line with a product and a positive quantity"""


class DuplicateProduct(OrderError):
    def __init__(self, product_ids):
        self.product_ids = sorted(product_ids)
        super().__init__(f"Product(s) listed more than once: {', '.join(str(pk) for pk in self.product_ids)}")


class UnknownProduct(OrderError):
    def __init__(self, product_ids):
        self.product_ids = sorted(product_ids)
        super().__init__(f"Unknown product(s): {', '.join(str(pk) for pk in self.product_ids)}")


__all__ = ['DuplicateProduct', 'EmptyOrder', 'InsufficientStock', 'InvalidQuantity', 'OrderError', 'StockError', 'UnknownProduct']
