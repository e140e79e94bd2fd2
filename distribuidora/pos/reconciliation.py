"""
Stock reconciliation: checks a set of lines against available full stock.

The result is a value, never an exception. Callers that must refuse the
sale (the order service) turn a failed report into ``InsufficientStock``.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List


@dataclass(frozen=True)
class Shortage:
    product_id: int
    requested: int
    available: int

    def as_dict(self):
        return {
            'product_id': self.product_id,
            'requested': self.requested,
            'available': self.available,
        }


@dataclass(frozen=True)
class StockReport:
    insufficient: List[Shortage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.insufficient

    def as_payload(self):
        return [shortage.as_dict() for shortage in self.insufficient]


def requested_quantities(lines: Iterable) -> Dict[int, int]:
    """
    Total quantity requested per product id, in first-seen order.

    Placeholder lines (no product) and lines with a non-positive quantity
    are ignored.
    """
    totals = OrderedDict()
    for line in lines:
        if line.product is None or line.quantity <= 0:
            continue
        product_id = line.product.id
        totals[product_id] = totals.get(product_id, 0) + line.quantity
    return totals


def validate_for_checkout(lines: Iterable, stock_snapshot: Dict[int, int]) -> StockReport:
    """
    Compare requested quantities with ``stock_snapshot`` (product id -> stock_full).

    Requesting exactly the available amount passes. Products absent from the
    snapshot count as having no stock.
    """
    insufficient = []
    for product_id, requested in requested_quantities(lines).items():
        available = stock_snapshot.get(product_id, 0)
        if requested > available:
            insufficient.append(Shortage(product_id=product_id, requested=requested, available=available))
    return StockReport(insufficient=insufficient)
