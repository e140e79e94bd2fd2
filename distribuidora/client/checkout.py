"""
Checkout driven from the client side.

The local cart only changes after the server confirms the order: a stock
shortage or a failed request leaves every line in place so the operator
can fix quantities and try again.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
import logging

from distribuidora.pos.cart import Cart, ProductSnapshot
from distribuidora.pos.reconciliation import Shortage, validate_for_checkout
from .api import ApiError, InsufficientStockError

logger = logging.getLogger(__name__)

REASON_EMPTY = 'empty'
REASON_INSUFFICIENT_STOCK = 'insufficient_stock'
REASON_IN_PROGRESS = 'in_progress'


@dataclass
class CheckoutResult:
    ok: bool
    reason: Optional[str] = None
    insufficient: List[Shortage] = field(default_factory=list)
    order_id: Optional[int] = None
    total: Optional[Decimal] = None


class CheckoutSession:
    """One cart, the selected customer and the API used to commit them"""

    def __init__(self, api, cart=None, customer_id=None):
        self.api = api
        self.cart = cart if cart is not None else Cart()
        self.customer_id = customer_id
        self.submitting = False

    def select_customer(self, customer_id):
        self.customer_id = customer_id

    def load_products(self, product_type=None, search=None):
        """Catalogue as snapshots, ready to be added to the cart"""
        return [ProductSnapshot.from_dict(row) for row in self.api.list_products(product_type, search)]

    def stock_snapshot(self):
        """Current ``stock_full`` per product id"""
        return {int(row['id']): int(row['stock_full']) for row in self.api.list_products()}

    def reset(self):
        self.cart.clear()
        self.customer_id = None

    def checkout(self) -> CheckoutResult:
        """
        Validate the cart against fresh stock and place the order.

        Shortages (found locally or reported by the server) come back as a
        failed result. Any other ``ApiError`` propagates and the cart is
        left untouched.
        """
        if self.submitting:
            return CheckoutResult(ok=False, reason=REASON_IN_PROGRESS)

        lines = self.cart.checkout_lines()
        if not lines:
            return CheckoutResult(ok=False, reason=REASON_EMPTY)

        self.submitting = True
        try:
            report = validate_for_checkout(lines, self.stock_snapshot())
            if not report.ok:
                logger.info(f"Checkout blocked, insufficient stock: {report.as_payload()}")
                return CheckoutResult(ok=False, reason=REASON_INSUFFICIENT_STOCK, insufficient=report.insufficient)

            try:
                order = self.api.create_order(self.cart.to_order_payload(self.customer_id))
            except InsufficientStockError as e:
                logger.info(f"Checkout refused by server, insufficient stock: {e.payload}")
                return CheckoutResult(ok=False, reason=REASON_INSUFFICIENT_STOCK, insufficient=e.shortages)
            except ApiError as e:
                logger.error(f"Checkout failed, cart kept: status={e.status}", exc_info=True)
                raise
        finally:
            self.submitting = False

        self.reset()
        logger.info(f"Order {order['id']} placed, total {order['total']}")
        return CheckoutResult(ok=True, order_id=order['id'], total=Decimal(str(order['total'])))
