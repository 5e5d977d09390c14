from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Iterable

from storefront.core.persistence import KeyValueStore
from storefront.identity import IdentityProvider

from .models import CartLineItem, Product, Totals, Variant
from .totals import DEFAULT_FLAT_SHIPPING_FEE, DEFAULT_FREE_SHIPPING_THRESHOLD, compute_totals

logger = logging.getLogger(__name__)

GUEST_CART_KEY = "guestCart"
CART_KEY_PREFIX = "cart_"


def cart_storage_key(identity_key: str | None) -> str:
    if identity_key is None:
        return GUEST_CART_KEY
    return f"{CART_KEY_PREFIX}{identity_key}"


def merge_line_items(
    base: Iterable[CartLineItem],
    incoming: Iterable[CartLineItem],
) -> list[CartLineItem]:
    """Union two carts by (product, variant), summing quantities.

    Lines from ``base`` come first and keep their price and presentation fields;
    lines only present in ``incoming`` are appended in their original order.
    """
    merged: list[CartLineItem] = []
    positions: dict[tuple[str, str], int] = {}
    for item in [*base, *incoming]:
        if item.quantity < 1:
            continue
        index = positions.get(item.key)
        if index is None:
            positions[item.key] = len(merged)
            merged.append(item)
        else:
            existing = merged[index]
            merged[index] = replace(existing, quantity=existing.quantity + item.quantity)
    return merged


class CartStateManager:
    def __init__(
        self,
        persistence: KeyValueStore,
        *,
        free_shipping_threshold: Decimal = DEFAULT_FREE_SHIPPING_THRESHOLD,
        flat_shipping_fee: Decimal = DEFAULT_FLAT_SHIPPING_FEE,
    ):
        self.persistence = persistence
        self.free_shipping_threshold = free_shipping_threshold
        self.flat_shipping_fee = flat_shipping_fee
        self._identity_key: str | None = None
        self._items: list[CartLineItem] = []

    @property
    def identity_key(self) -> str | None:
        return self._identity_key

    @property
    def is_guest(self) -> bool:
        return self._identity_key is None

    @property
    def storage_key(self) -> str:
        return cart_storage_key(self._identity_key)

    @property
    def items(self) -> tuple[CartLineItem, ...]:
        return tuple(self._items)

    @property
    def item_count(self) -> int:
        return len(self._items)

    @property
    def unit_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def find(self, product_id: str, variant_key: str) -> CartLineItem | None:
        index = self._index_of(product_id, variant_key)
        return None if index is None else self._items[index]

    def totals(self) -> Totals:
        return compute_totals(
            self._items,
            free_shipping_threshold=self.free_shipping_threshold,
            flat_shipping_fee=self.flat_shipping_fee,
        )

    def bind_identity(self, identity: IdentityProvider) -> None:
        """Load the cart for the stored identity and follow later sign-ins and sign-outs."""
        self.load(identity.get_current_identity())
        identity.on_identity_change(self.handle_identity_change)

    def load(self, identity_key: str | None) -> None:
        self._identity_key = identity_key
        self._items = self._read(cart_storage_key(identity_key))
        logger.debug("Loaded %s cart lines for %s", len(self._items), identity_key or "guest")

    def add_item(self, product: Product, variant: Variant) -> CartLineItem:
        index = self._index_of(product.product_id, variant.size)
        if index is not None:
            existing = self._items[index]
            item = replace(existing, quantity=existing.quantity + 1)
            self._items[index] = item
        else:
            item = CartLineItem(
                product_id=product.product_id,
                variant_key=variant.size,
                unit_price=variant.price,
                quantity=1,
                image_ref=product.primary_image,
                display_name=product.name,
            )
            self._items.append(item)
        self._persist()
        return item

    def increment_quantity(self, product_id: str, variant_key: str) -> None:
        index = self._index_of(product_id, variant_key)
        if index is None:
            return
        existing = self._items[index]
        self._items[index] = replace(existing, quantity=existing.quantity + 1)
        self._persist()

    def decrement_quantity(self, product_id: str, variant_key: str) -> None:
        index = self._index_of(product_id, variant_key)
        if index is None:
            return
        existing = self._items[index]
        if existing.quantity > 1:
            self._items[index] = replace(existing, quantity=existing.quantity - 1)
        else:
            del self._items[index]
        self._persist()

    def remove_item(self, product_id: str, variant_key: str) -> None:
        index = self._index_of(product_id, variant_key)
        if index is None:
            return
        del self._items[index]
        self._persist()

    def clear_cart(self) -> None:
        self._items = []
        self._persist()

    def handle_identity_change(self, previous: str | None, current: str | None) -> None:
        if previous is None and current is not None:
            self.migrate_guest_cart(current)
        else:
            # Sign-out reloads the guest slot; switching accounts loads the other account's cart.
            self.load(current)

    def migrate_guest_cart(self, user_id: str) -> None:
        guest_items = self._read(GUEST_CART_KEY)
        user_items = self._read(cart_storage_key(user_id))
        merged = merge_line_items(user_items, guest_items)

        self._identity_key = user_id
        self._items = merged
        self.persistence.set(cart_storage_key(user_id), self._serialize())
        self.persistence.remove(GUEST_CART_KEY)
        logger.info(
            "Migrated guest cart to %s: %s guest lines, %s existing lines, %s merged",
            user_id,
            len(guest_items),
            len(user_items),
            len(merged),
        )

    def _index_of(self, product_id: str, variant_key: str) -> int | None:
        for index, item in enumerate(self._items):
            if item.product_id == product_id and item.variant_key == variant_key:
                return index
        return None

    def _serialize(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self._items]

    def _persist(self) -> None:
        self.persistence.set(self.storage_key, self._serialize())

    def _read(self, key: str) -> list[CartLineItem]:
        raw = self.persistence.get(key)
        if not raw:
            return []
        if not isinstance(raw, list):
            logger.warning("Discarding unreadable cart under %s: %r", key, type(raw).__name__)
            return []
        items: list[CartLineItem] = []
        for entry in raw:
            try:
                items.append(CartLineItem.from_dict(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Dropping unreadable cart line under %s: %s", key, exc)
        # Older data may hold duplicates or zero rows; fold them back into the invariant.
        return merge_line_items([], items)
