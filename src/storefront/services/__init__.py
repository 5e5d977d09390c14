from .addresses import AddressBook, pick_checkout_address, validate_address
from .auth import AuthService
from .catalog import Catalog
from .checkout import CheckoutService
from .doctor import run_doctor_checks
from .exporter import export_orders

__all__ = [
    "AddressBook",
    "AuthService",
    "Catalog",
    "CheckoutService",
    "export_orders",
    "pick_checkout_address",
    "run_doctor_checks",
    "validate_address",
]
