from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

import requests

from storefront.cart.models import Product
from storefront.errors import StorefrontError, error_from_exception, error_from_response
from storefront.models import AddressRecord, OrderRecord, SavedItem, UserProfile

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _parse_each(entries: Any, parse: Callable[[dict[str, Any]], T], what: str) -> list[T]:
    """Parse a JSON list, skipping (and logging) entries that do not hold up."""
    parsed: list[T] = []
    for entry in entries or []:
        try:
            parsed.append(parse(entry))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed %s: %s", what, exc)
    return parsed


class StorefrontApiClient:
    """Thin wrapper over the storefront REST API.

    Every call is a single attempt. HTTP failures and ``requests`` exceptions are
    converted into the storefront error taxonomy here, so callers only deal with
    ``StorefrontError`` subclasses.
    """

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 15.0,
        session: requests.Session | None = None,
        token: str | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.session = session or requests.Session()
        self.token = token

    def authorize(self, token: str | None) -> None:
        self.token = token

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, *, action: str, **kwargs: Any) -> Any:
        headers = dict(kwargs.pop("headers", None) or {})
        if self.token:
            headers.setdefault("Authorization", f"Bearer {self.token}")

        url = self._url(path)
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout_sec, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s: %s %s unreachable: %s", action, method, url, exc)
            raise error_from_exception(exc, action) from exc

        if not response.ok:
            error = error_from_response(response, action)
            logger.warning("%s: HTTP %s from %s %s", action, response.status_code, method, url)
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StorefrontError(f"{action}: response is not JSON") from exc

    def place_order(self, payload: dict[str, Any]) -> str:
        data = self._request("POST", "/orders", action="Order placement", json=payload)
        order = (data or {}).get("order") or {}
        order_id = order.get("orderId") or (data or {}).get("orderId")
        if not order_id:
            raise StorefrontError(
                "Order placement: response carried no orderId",
                user_message="Failed to place the order. Please try again.",
            )
        return str(order_id)

    def list_orders(self, user_id: str) -> list[OrderRecord]:
        data = self._request("GET", f"/orders/{user_id}", action="Loading orders")
        return _parse_each(data, OrderRecord.from_api, "order")

    def list_addresses(self, user_id: str) -> list[AddressRecord]:
        data = self._request("GET", f"/addresses/{user_id}", action="Loading addresses")
        return _parse_each(data, AddressRecord.from_api, "address")

    def create_address(self, user_id: str, address: AddressRecord) -> AddressRecord | None:
        data = self._request(
            "POST",
            f"/addresses/{user_id}",
            action="Saving address",
            json={"address": address.to_api()},
        )
        if isinstance(data, dict):
            created = data.get("address") if isinstance(data.get("address"), dict) else data
            if created.get("_id") or created.get("id"):
                return AddressRecord.from_api(created)
        return None

    def delete_address(self, user_id: str, address_id: str) -> None:
        self._request("DELETE", f"/addresses/{user_id}/{address_id}", action="Deleting address")

    def set_default_address(self, user_id: str, address_id: str) -> None:
        self._request("PUT", f"/addresses/{user_id}/{address_id}/default", action="Setting default address")

    def login(self, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/login",
            action="Login",
            json={"email": email, "password": password},
        ) or {}

    def register(self, name: str, email: str, password: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/register",
            action="Registration",
            json={"name": name, "email": email, "password": password},
        ) or {}

    def get_user(self, user_id: str) -> UserProfile:
        data = self._request("GET", f"/users/{user_id}", action="Loading profile") or {}
        profile = UserProfile.from_api(data)
        profile.user_id = profile.user_id or user_id
        return profile

    def change_password(self, email: str, old_password: str, new_password: str) -> str | None:
        data = self._request(
            "POST",
            "/change-password",
            action="Changing password",
            json={"email": email, "oldPassword": old_password, "newPassword": new_password},
        )
        return data.get("message") if isinstance(data, dict) else None

    def request_password_reset(self, email: str) -> str | None:
        data = self._request(
            "POST",
            "/request-password-reset",
            action="Requesting password reset",
            json={"email": email},
        )
        return data.get("message") if isinstance(data, dict) else None

    def list_products(self) -> list[Product]:
        data = self._request("GET", "/products", action="Loading products")
        return _parse_each(data, Product.from_api, "product")

    def list_saved_items(self, user_id: str) -> list[SavedItem]:
        data = self._request("GET", f"/saved-items/{user_id}", action="Loading saved items")
        return _parse_each(data, SavedItem.from_api, "saved item")

    def save_for_later(self, user_id: str, item: SavedItem) -> None:
        self._request(
            "POST",
            f"/save-for-later/{user_id}",
            action="Saving item for later",
            json={"product": item.to_api()},
        )

    def remove_saved_item(self, user_id: str, product_id: str) -> None:
        self._request("DELETE", f"/saved-items/{user_id}/{product_id}", action="Removing saved item")
