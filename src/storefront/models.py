from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from dateutil import parser as dt_parser

from storefront.cart.models import Totals, to_decimal


@dataclass(slots=True)
class AddressRecord:
    name: str = ""
    email: str = ""
    mobile_no: str = ""
    house_no: str = ""
    street: str = ""
    city: str = ""
    postal_code: str | None = None
    country: str = ""
    is_default: bool = False
    address_id: str | None = None

    @property
    def duplicate_key(self) -> tuple[str, str, str, str]:
        """Fields the Address Service compares when it answers 409."""
        return (
            self.house_no.strip().lower(),
            self.street.strip().lower(),
            self.city.strip().lower(),
            (self.postal_code or "").strip().lower(),
        )

    def to_api(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "email": self.email,
            "mobileNo": self.mobile_no,
            "houseNo": self.house_no,
            "street": self.street,
            "city": self.city,
            "postalCode": self.postal_code or "",
            "country": self.country,
            "isDefault": self.is_default,
        }
        if self.address_id:
            payload["_id"] = self.address_id
        return payload

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> AddressRecord:
        address_id = payload.get("_id") or payload.get("id")
        postal_code = payload.get("postalCode")
        return cls(
            name=str(payload.get("name") or ""),
            email=str(payload.get("email") or ""),
            mobile_no=str(payload.get("mobileNo") or ""),
            house_no=str(payload.get("houseNo") or ""),
            street=str(payload.get("street") or ""),
            city=str(payload.get("city") or ""),
            postal_code=str(postal_code) if postal_code not in (None, "") else None,
            country=str(payload.get("country") or ""),
            is_default=bool(payload.get("isDefault", False)),
            address_id=str(address_id) if address_id else None,
        )

    def as_default(self, is_default: bool = True) -> AddressRecord:
        return replace(self, is_default=is_default)


@dataclass(slots=True)
class OrderProduct:
    product_id: str
    name: str
    size: str | None
    quantity: int
    price: Decimal
    image: str | None = None


@dataclass(slots=True)
class OrderRecord:
    order_id: str
    total_price: Decimal
    created_at: datetime | None = None
    order_status: str | None = None
    payment_status: str | None = None
    payment_method: str | None = None
    products: list[OrderProduct] = field(default_factory=list)
    shipping_address: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> OrderRecord:
        created_raw = payload.get("createdAt")
        created_at = None
        if created_raw:
            created_at = dt_parser.parse(str(created_raw))
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)

        products = [
            OrderProduct(
                product_id=str(item.get("productId") or ""),
                name=str(item.get("name") or ""),
                size=item.get("size"),
                quantity=int(item.get("quantity") or 0),
                price=to_decimal(item.get("price")),
                image=item.get("image"),
            )
            for item in payload.get("products") or []
        ]
        return cls(
            order_id=str(payload.get("orderId") or payload.get("_id") or ""),
            total_price=to_decimal(payload.get("totalPrice")),
            created_at=created_at,
            order_status=payload.get("orderStatus"),
            payment_status=payload.get("paymentStatus"),
            payment_method=payload.get("paymentMethod"),
            products=products,
            shipping_address=dict(payload.get("shippingAddress") or {}),
        )


@dataclass(slots=True)
class SavedItem:
    product_id: str
    name: str
    price: Decimal
    size: str | None = None
    image: str | None = None

    def to_api(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "size": self.size or "N/A",
            "price": float(self.price),
            "image": self.image or "",
        }

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> SavedItem:
        return cls(
            product_id=str(payload.get("productId") or ""),
            name=str(payload.get("name") or ""),
            price=to_decimal(payload.get("price")),
            size=payload.get("size"),
            image=payload.get("image"),
        )


@dataclass(slots=True)
class OrderConfirmation:
    order_id: str
    totals: Totals
    item_count: int


@dataclass(slots=True)
class UserProfile:
    user_id: str
    name: str = ""
    email: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> UserProfile:
        return cls(
            user_id=str(payload.get("_id") or payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            email=str(payload.get("email") or ""),
        )
