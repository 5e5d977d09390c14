from .manager import GUEST_CART_KEY, CartStateManager, cart_storage_key, merge_line_items
from .models import CartLineItem, OrderSnapshot, Product, Totals, Variant
from .totals import compute_totals

__all__ = [
    "GUEST_CART_KEY",
    "CartLineItem",
    "CartStateManager",
    "OrderSnapshot",
    "Product",
    "Totals",
    "Variant",
    "cart_storage_key",
    "compute_totals",
    "merge_line_items",
]
