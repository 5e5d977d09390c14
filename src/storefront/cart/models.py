from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() first so that floats such as 19.99 do not carry binary noise.
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Invalid amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def to_price(value: Any) -> Decimal:
    """Like ``to_decimal`` but a price must also be non-negative."""
    price = to_decimal(value)
    if price < 0:
        raise ValueError(f"Negative price: {value!r}")
    return price


@dataclass(slots=True, frozen=True)
class Variant:
    size: str
    price: Decimal

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Variant:
        return cls(size=str(payload.get("size") or "N/A"), price=to_price(payload.get("price")))


@dataclass(slots=True, frozen=True)
class Product:
    product_id: str
    name: str
    images: tuple[str, ...] = ()
    variants: tuple[Variant, ...] = ()

    @property
    def primary_image(self) -> str:
        return self.images[0] if self.images else ""

    def variant(self, size: str | None = None) -> Variant | None:
        """The variant for ``size``; the first variant when no size is given."""
        if size is None:
            return self.variants[0] if self.variants else None
        for variant in self.variants:
            if variant.size == size:
                return variant
        return None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Product:
        product_id = payload.get("id") or payload.get("_id") or payload.get("productId")
        if not product_id:
            raise ValueError("Product without an id")
        return cls(
            product_id=str(product_id),
            name=str(payload.get("name") or ""),
            images=tuple(str(image) for image in payload.get("images") or () if image),
            variants=tuple(Variant.from_api(entry) for entry in payload.get("variants") or ()),
        )


@dataclass(slots=True, frozen=True)
class CartLineItem:
    product_id: str
    variant_key: str
    unit_price: Decimal
    quantity: int = 1
    image_ref: str = ""
    display_name: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.product_id, self.variant_key)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "variant_key": self.variant_key,
            "unit_price": format(self.unit_price, "f"),
            "quantity": self.quantity,
            "image_ref": self.image_ref,
            "display_name": self.display_name,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CartLineItem:
        return cls(
            product_id=str(payload["product_id"]),
            variant_key=str(payload.get("variant_key") or ""),
            unit_price=to_price(payload.get("unit_price")),
            quantity=int(payload.get("quantity", 1)),
            image_ref=str(payload.get("image_ref") or ""),
            display_name=str(payload.get("display_name") or ""),
        )

    def to_order_product(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.display_name,
            "size": self.variant_key,
            "quantity": self.quantity,
            "price": float(self.unit_price),
            "image": self.image_ref,
        }


@dataclass(slots=True, frozen=True)
class Totals:
    subtotal: Decimal
    shipping: Decimal
    total: Decimal

    @property
    def free_shipping(self) -> bool:
        return self.shipping == 0


@dataclass(slots=True, frozen=True)
class OrderSnapshot:
    identity_key: str
    items: tuple[CartLineItem, ...]
    address: dict[str, Any]
    totals: Totals
    payment_method: str = "cash_on_delivery"

    def to_payload(self) -> dict[str, Any]:
        return {
            "userId": self.identity_key,
            "products": [item.to_order_product() for item in self.items],
            "totalPrice": float(self.totals.total),
            "shippingAddress": self.address,
            "paymentMethod": self.payment_method,
        }
