from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from .models import CartLineItem, Totals

DEFAULT_FREE_SHIPPING_THRESHOLD = Decimal("2000")
DEFAULT_FLAT_SHIPPING_FEE = Decimal("70")


def compute_totals(
    items: Iterable[CartLineItem],
    *,
    free_shipping_threshold: Decimal = DEFAULT_FREE_SHIPPING_THRESHOLD,
    flat_shipping_fee: Decimal = DEFAULT_FLAT_SHIPPING_FEE,
) -> Totals:
    subtotal = sum((item.line_total for item in items), Decimal("0"))
    # Strictly greater: a subtotal equal to the threshold still pays shipping.
    shipping = Decimal("0") if subtotal > free_shipping_threshold else flat_shipping_fee
    return Totals(subtotal=subtotal, shipping=shipping, total=subtotal + shipping)
