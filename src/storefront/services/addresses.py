from __future__ import annotations

import logging

from storefront.api import StorefrontApiClient
from storefront.core.db import LocalStore
from storefront.errors import DuplicateResourceError, NotFoundError, ValidationError
from storefront.identity import IdentityProvider
from storefront.models import AddressRecord

from .auth import is_valid_email

REQUIRED_ADDRESS_FIELDS = {
    "name": "Full name",
    "email": "Email",
    "mobile_no": "Mobile number",
    "house_no": "House no, building",
    "street": "Street, area",
    "city": "City",
}


def validate_address(address: AddressRecord) -> None:
    missing = [label for attr, label in REQUIRED_ADDRESS_FIELDS.items() if not getattr(address, attr).strip()]
    if missing:
        raise ValidationError(f"Address is missing: {', '.join(missing)}")
    if not is_valid_email(address.email.strip()):
        raise ValidationError(
            f"Invalid address email: {address.email}",
            user_message=f"{address.email} is not a valid email address!",
        )


def promote_sole_default(addresses: list[AddressRecord]) -> list[AddressRecord]:
    if len(addresses) == 1 and not addresses[0].is_default:
        return [addresses[0].as_default()]
    return addresses


def pick_checkout_address(addresses: list[AddressRecord]) -> AddressRecord | None:
    """Default address, else the most recently added one, else nothing."""
    for address in addresses:
        if address.is_default:
            return address
    return addresses[-1] if addresses else None


def shipping_address_payload(address: AddressRecord) -> dict[str, str]:
    return {
        "name": address.name,
        "email": address.email,
        "mobileNo": address.mobile_no,
        "houseNo": address.house_no,
        "street": address.street,
        "city": address.city,
        "postalCode": address.postal_code or "",
        "country": address.country,
    }


class AddressBook:
    def __init__(
        self,
        client: StorefrontApiClient,
        store: LocalStore,
        identity: IdentityProvider,
        logger: logging.Logger | logging.LoggerAdapter,
        country: str = "Egypt",
    ):
        self.client = client
        self.store = store
        self.identity = identity
        self.logger = logger
        self.country = country

    def _user_id(self) -> str:
        user_id = self.identity.get_current_identity()
        if not user_id:
            raise ValidationError("Address book needs a signed-in user", user_message="Please sign in first.")
        return user_id

    def cached(self) -> list[AddressRecord]:
        user_id = self.identity.get_current_identity()
        if not user_id:
            return []
        return promote_sole_default(self.store.list_addresses(user_id))

    def refresh(self) -> list[AddressRecord]:
        user_id = self._user_id()
        addresses = promote_sole_default(self.client.list_addresses(user_id))
        self.store.replace_addresses(user_id, addresses)
        self.logger.info("Loaded %s addresses for %s", len(addresses), user_id)
        return addresses

    def prefill(self) -> AddressRecord | None:
        return pick_checkout_address(self.cached())

    def new_address(self, **fields: str | None) -> AddressRecord:
        address = AddressRecord(**{key: value for key, value in fields.items() if value is not None})
        address.country = self.country
        return address

    def save_address(self, address: AddressRecord) -> AddressRecord:
        """Validate and, for a signed-in user, persist an address typed at checkout.

        A duplicate (same house no, street, city and postal code) is a soft success:
        the already saved record is returned.
        """
        if not address.country:
            address.country = self.country
        validate_address(address)

        user_id = self.identity.get_current_identity()
        if not user_id:
            return address

        try:
            self.client.create_address(user_id, address)
        except DuplicateResourceError:
            self.logger.info("Duplicate address for %s, using the saved one", user_id)
            for existing in self.cached():
                if existing.duplicate_key == address.duplicate_key:
                    return existing
            return address

        for saved in self.refresh():
            if saved.duplicate_key == address.duplicate_key:
                return saved
        return address

    def set_default_address(self, address_id: str) -> AddressRecord:
        user_id = self._user_id()
        if not any(address.address_id == address_id for address in self.cached()):
            raise NotFoundError(f"Address {address_id} not found for {user_id}")

        self.client.set_default_address(user_id, address_id)
        marked = self.store.set_default_address(user_id, address_id)
        self.logger.info("Default address for %s set to %s (%s marked)", user_id, address_id, marked)
        return next(address for address in self.cached() if address.address_id == address_id)

    def delete_address(self, address_id: str) -> list[AddressRecord]:
        user_id = self._user_id()
        self.client.delete_address(user_id, address_id)
        self.store.delete_address(user_id, address_id)
        remaining = promote_sole_default(self.store.list_addresses(user_id))
        self.store.replace_addresses(user_id, remaining)
        return remaining
