from __future__ import annotations

import logging
import threading

from storefront.api import StorefrontApiClient
from storefront.cart import CartStateManager, OrderSnapshot
from storefront.errors import ValidationError
from storefront.models import AddressRecord, OrderConfirmation

from .addresses import AddressBook, shipping_address_payload, validate_address

GUEST_USER_ID = "guest"


class CheckoutService:
    def __init__(
        self,
        cart: CartStateManager,
        client: StorefrontApiClient,
        address_book: AddressBook,
        logger: logging.Logger | logging.LoggerAdapter,
        payment_method: str = "cash_on_delivery",
    ):
        self.cart = cart
        self.client = client
        self.address_book = address_book
        self.logger = logger
        self.payment_method = payment_method
        self._submitting = threading.Lock()

    @property
    def is_submitting(self) -> bool:
        return self._submitting.locked()

    def prefill_address(self) -> AddressRecord | None:
        return self.address_book.prefill()

    def build_snapshot(self, address: AddressRecord) -> OrderSnapshot:
        items = self.cart.items
        if not items:
            raise ValidationError("Checkout with an empty cart", user_message="Your cart is empty.")
        return OrderSnapshot(
            identity_key=self.cart.identity_key or GUEST_USER_ID,
            items=items,
            address=shipping_address_payload(address),
            totals=self.cart.totals(),
            payment_method=self.payment_method,
        )

    def submit_order(self, address: AddressRecord, save_address: bool = True) -> OrderConfirmation | None:
        """Place the order once; returns None when a submission is already in flight.

        On failure the error propagates and the cart is left exactly as it was.
        """
        if not self._submitting.acquire(blocking=False):
            self.logger.warning("Order submission ignored: another submission is in flight")
            return None
        try:
            if save_address:
                address = self.address_book.save_address(address)
            else:
                validate_address(address)

            snapshot = self.build_snapshot(address)
            self.logger.info(
                "Submitting order for %s: %s lines, total %s",
                snapshot.identity_key,
                len(snapshot.items),
                snapshot.totals.total,
            )
            order_id = self.client.place_order(snapshot.to_payload())
            self.cart.clear_cart()
            self.logger.info("Order %s placed", order_id)
            return OrderConfirmation(order_id=order_id, totals=snapshot.totals, item_count=len(snapshot.items))
        finally:
            self._submitting.release()
