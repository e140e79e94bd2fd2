"""
In-memory cart for one checkout session.

The cart keeps at most one line per product: adding a product already in
the cart increases that line's quantity. Setting a quantity to zero or less
removes the line. Totals are recomputed from the lines on every read.

Lines without a product are placeholders (an empty row waiting for the
operator to pick a product). They are kept in order but never priced,
validated or sent to the server.

No Django imports here; the client package and the server share this module.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
import logging

from .pricing import ZERO, line_subtotal, resolve_unit_price, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    """Prices and stock of a product as read from the catalogue"""
    id: int
    name: str
    price_full: Decimal
    price_refill: Decimal
    stock_full: int = 0
    stock_empty: int = 0
    type: str = 'other'

    @classmethod
    def from_dict(cls, data):
        """Build from an API payload (prices arrive as decimal strings)"""
        return cls(
            id=int(data['id']),
            name=data['name'],
            price_full=to_money(data['price_full']),
            price_refill=to_money(data['price_refill']),
            stock_full=int(data.get('stock_full', 0)),
            stock_empty=int(data.get('stock_empty', 0)),
            type=data.get('type', 'other'),
        )

    @classmethod
    def from_model(cls, product):
        return cls(
            id=product.id,
            name=product.name,
            price_full=to_money(product.price_full),
            price_refill=to_money(product.price_refill),
            stock_full=product.stock_full,
            stock_empty=product.stock_empty,
            type=product.type,
        )


@dataclass
class LineItem:
    product: Optional[ProductSnapshot] = None
    quantity: int = 1
    returned_container: bool = False
    custom_price: Optional[Decimal] = None

    @property
    def product_id(self):
        return self.product.id if self.product is not None else None

    @property
    def is_placeholder(self):
        return self.product is None


class Cart:
    """Ordered collection of line items with merge-on-add semantics"""

    def __init__(self):
        self._lines: List[LineItem] = []

    @property
    def items(self):
        """Lines in insertion order (a snapshot; mutate through the cart)"""
        return tuple(self._lines)

    @property
    def is_empty(self):
        return not any(not line.is_placeholder for line in self._lines)

    def __len__(self):
        return len(self._lines)

    def __iter__(self):
        return iter(tuple(self._lines))

    def get_line(self, product_id) -> Optional[LineItem]:
        for line in self._lines:
            if line.product_id == product_id and product_id is not None:
                return line
        return None

    def add_item(self, product, quantity=1, returned_container=False):
        """
        Add ``quantity`` units of ``product``.

        If the product already has a line, its quantity grows and its
        returned-container flag is left as it was. Otherwise the first
        placeholder row is filled, or a new line is appended.
        """
        existing = self.get_line(product.id)
        if existing is not None:
            self.update_quantity(product.id, existing.quantity + quantity)
            return self.get_line(product.id)

        if quantity <= 0:
            logger.debug(f"Ignoring add of product {product.id} with quantity {quantity}")
            return None

        for line in self._lines:
            if line.is_placeholder:
                line.product = product
                line.quantity = quantity
                line.returned_container = returned_container
                line.custom_price = None
                return line

        line = LineItem(product=product, quantity=quantity, returned_container=returned_container)
        self._lines.append(line)
        return line

    def add_placeholder(self) -> LineItem:
        line = LineItem()
        self._lines.append(line)
        return line

    def assign_product(self, index, product):
        """
        Put ``product`` on the placeholder at ``index``.

        When another line already holds the product, the placeholder's
        quantity is merged into it and the placeholder is dropped.
        """
        line = self._lines[index]
        if not line.is_placeholder:
            raise ValueError(f"Line {index} already holds product {line.product_id}")
        existing = self.get_line(product.id)
        if existing is not None:
            del self._lines[index]
            self.update_quantity(product.id, existing.quantity + line.quantity)
            return self.get_line(product.id)
        line.product = product
        line.custom_price = None
        return line

    def remove_item(self, product_id):
        self._lines = [line for line in self._lines if line.product_id != product_id or product_id is None]

    def update_quantity(self, product_id, quantity):
        if quantity <= 0:
            self.remove_item(product_id)
            return
        line = self.get_line(product_id)
        if line is None:
            logger.debug(f"update_quantity: product {product_id} is not in the cart")
            return
        line.quantity = quantity

    def update_custom_price(self, product_id, price):
        """Set a per-unit override, or clear it with ``None``"""
        line = self.get_line(product_id)
        if line is None:
            logger.debug(f"update_custom_price: product {product_id} is not in the cart")
            return
        line.custom_price = to_money(price) if price is not None else None

    def toggle_returned_container(self, product_id):
        line = self.get_line(product_id)
        if line is None:
            logger.debug(f"toggle_returned_container: product {product_id} is not in the cart")
            return
        line.returned_container = not line.returned_container

    def get_item_price(self, item) -> Decimal:
        return resolve_unit_price(item)

    def get_total(self) -> Decimal:
        total = ZERO
        for line in self._lines:
            if line.is_placeholder:
                continue
            total += line_subtotal(line)
        return total

    def total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines if not line.is_placeholder)

    def checkout_lines(self) -> List[LineItem]:
        """Lines that would be sent to the server"""
        return [line for line in self._lines if not line.is_placeholder and line.quantity > 0]

    def to_order_payload(self, customer_id=None):
        """Order creation body with unit prices captured now"""
        return {
            'customer_id': customer_id,
            'items': [
                {
                    'product_id': line.product.id,
                    'quantity': line.quantity,
                    'returned_container': line.returned_container,
                    'unit_price': str(resolve_unit_price(line)),
                }
                for line in self.checkout_lines()
            ],
        }

    def clear(self):
        self._lines = []
