"""Errors raised by stock operations"""


class StockError(Exception):
    """Base class for stock operation failures"""


class InvalidQuantity(StockError):
    """Quantity is not a usable integer for the requested operation"""


class InsufficientStock(StockError):
    """One or more products do not have enough full containers"""

    def __init__(self, shortages):
        self.shortages = list(shortages)
        ids = ', '.join(str(s.product_id) for s in self.shortages)
        super().__init__(f"Insufficient stock for product(s): {ids}")

    def as_payload(self):
        return [shortage.as_dict() for shortage in self.shortages]
