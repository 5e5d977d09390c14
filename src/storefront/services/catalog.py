from __future__ import annotations

import logging

from storefront.api import StorefrontApiClient
from storefront.cart import CartLineItem, CartStateManager, Product, Variant
from storefront.errors import NotFoundError, ValidationError
from storefront.models import SavedItem


class Catalog:
    """Product lookups against ``GET /products``, loaded once per instance."""

    def __init__(self, client: StorefrontApiClient, logger: logging.Logger | logging.LoggerAdapter):
        self.client = client
        self.logger = logger
        self._products: list[Product] | None = None

    def products(self) -> list[Product]:
        if self._products is None:
            self._products = self.client.list_products()
            self.logger.info("Loaded %s catalog products", len(self._products))
        return self._products

    def find_product(self, product_id: str) -> Product:
        for product in self.products():
            if product.product_id == product_id:
                return product
        raise NotFoundError(f"Unknown product {product_id}", user_message=f"Product {product_id} was not found.")

    def resolve(self, product_id: str, size: str | None = None) -> tuple[Product, Variant]:
        """Product and variant to add; without a size the first variant is used."""
        product = self.find_product(product_id)
        variant = product.variant(size)
        if variant is None:
            sizes = ", ".join(v.size for v in product.variants) or "none"
            raise ValidationError(
                f"Product {product_id} has no variant {size!r}",
                user_message=f"Size {size or '-'} is not available for {product.name}. Sizes: {sizes}.",
            )
        return product, variant

    def add_to_cart(self, cart: CartStateManager, product_id: str, size: str | None = None) -> CartLineItem:
        product, variant = self.resolve(product_id, size)
        return cart.add_item(product, variant)

    def saved_item(self, product_id: str, size: str | None = None) -> SavedItem:
        product, variant = self.resolve(product_id, size)
        return SavedItem(
            product_id=product.product_id,
            name=product.name,
            price=variant.price,
            size=variant.size,
            image=product.primary_image or None,
        )
