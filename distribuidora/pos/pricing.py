"""
Unit price resolution for cart lines.

A line sells either a full container (the customer keeps it, ``price_full``)
or a refill against an empty the customer hands back (``price_refill``).
An operator may override both with a custom price, which then wins as is,
zero included.

Works on anything exposing ``product``, ``quantity``, ``returned_container``
and ``custom_price`` attributes, so cart lines and order payload lines share
the same rules. No Django imports here.
"""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_money(value) -> Decimal:
    """Coerce a number or numeric string to a Decimal rounded to cents"""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        amount = Decimal(str(value))
    else:
        amount = Decimal(value)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_unit_price(line) -> Decimal:
    """
    Price charged per unit for a line.

    A custom price is returned untouched; Cart.update_custom_price already
    stores it rounded to cents.
    """
    if line.custom_price is not None:
        return line.custom_price
    if line.returned_container:
        return to_money(line.product.price_refill)
    return to_money(line.product.price_full)


def line_subtotal(line) -> Decimal:
    return resolve_unit_price(line) * line.quantity
