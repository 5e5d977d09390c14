from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterator

import typer
from rich import print
from rich.markup import escape
from rich.table import Table

from storefront.api import StorefrontApiClient
from storefront.cart import CartStateManager, Totals
from storefront.config import Settings
from storefront.core.db import LocalStore
from storefront.core.logging import configure_logging, get_logger
from storefront.core.persistence import WriteQueue
from storefront.errors import StorefrontError
from storefront.identity import IdentityProvider
from storefront.models import AddressRecord
from storefront.services import (
    AddressBook,
    AuthService,
    Catalog,
    CheckoutService,
    export_orders,
    run_doctor_checks,
)

app = typer.Typer(no_args_is_help=True, help="Storefront CLI: cart, checkout and account")
cart_app = typer.Typer(no_args_is_help=True, help="Shopping cart")
address_app = typer.Typer(no_args_is_help=True, help="Saved addresses")
saved_app = typer.Typer(no_args_is_help=True, help="Items saved for later")
app.add_typer(cart_app, name="cart")
app.add_typer(address_app, name="address")
app.add_typer(saved_app, name="saved")


@dataclass
class Runtime:
    settings: Settings
    store: LocalStore
    queue: WriteQueue
    identity: IdentityProvider
    cart: CartStateManager
    client: StorefrontApiClient
    auth: AuthService
    catalog: Catalog
    addresses: AddressBook
    checkout: CheckoutService


def _load_settings(base_dir: Path | None = None) -> Settings:
    settings = Settings.load(base_dir=base_dir)
    settings.ensure_directories()
    return settings


@contextmanager
def _runtime() -> Iterator[Runtime]:
    settings = _load_settings()
    correlation_id = uuid.uuid4().hex
    configure_logging(settings.logs_dir, correlation_id=correlation_id)
    logger = get_logger("storefront.cli", correlation_id)

    store = LocalStore(settings.db_path)
    store.migrate()
    queue = WriteQueue(store)
    try:
        identity = IdentityProvider(store)
        cart = CartStateManager(
            queue,
            free_shipping_threshold=settings.free_shipping_threshold,
            flat_shipping_fee=settings.flat_shipping_fee,
        )
        cart.bind_identity(identity)
        client = StorefrontApiClient(settings.api_base_url, timeout_sec=settings.api_timeout_sec, token=identity.token)
        addresses = AddressBook(client, store, identity, logger, country=settings.country)
        runtime = Runtime(
            settings=settings,
            store=store,
            queue=queue,
            identity=identity,
            cart=cart,
            client=client,
            auth=AuthService(client, identity, logger),
            catalog=Catalog(client, logger),
            addresses=addresses,
            checkout=CheckoutService(cart, client, addresses, logger, payment_method=settings.payment_method),
        )
        try:
            yield runtime
        except StorefrontError as exc:
            logger.warning("%s: %s", exc.__class__.__name__, exc)
            print(f"[red]Error[/red]: {exc.user_message}")
            raise typer.Exit(1) from exc
    finally:
        queue.close()
        store.close()


def _money(value: Decimal, currency: str) -> str:
    return f"{value:.2f} {currency}"


def _print_totals(totals: Totals, currency: str) -> None:
    print(f"Subtotal: {_money(totals.subtotal, currency)}")
    print(f"Shipping: {'Free' if totals.free_shipping else _money(totals.shipping, currency)}")
    print(f"[bold]Total: {_money(totals.total, currency)}[/bold]")


def _print_cart(runtime: Runtime) -> None:
    cart = runtime.cart
    currency = runtime.settings.currency
    owner = cart.identity_key or "guest"
    if not cart.items:
        print(f"Your cart is empty. ({owner})")
        return

    table = Table(title=f"Shopping Cart ({owner})")
    table.add_column("Product")
    table.add_column("Name")
    table.add_column("Size")
    table.add_column("Price", justify="right")
    table.add_column("Qty", justify="right")
    table.add_column("Line total", justify="right")
    for item in cart.items:
        table.add_row(
            item.product_id,
            item.display_name,
            item.variant_key,
            _money(item.unit_price, currency),
            str(item.quantity),
            _money(item.line_total, currency),
        )
    print(table)
    _print_totals(cart.totals(), currency)


def _print_address(address: AddressRecord) -> None:
    marker = " [green](default)[/green]" if address.is_default else ""
    print(f"- {address.address_id or '-'}{marker}: {address.name}, {address.mobile_no}")
    print(f"  {address.house_no}, {address.street}, {address.city} {address.postal_code or ''} {address.country}")


def _require_user(runtime: Runtime) -> str:
    user_id = runtime.identity.get_current_identity()
    if not user_id:
        print("[yellow]Please sign in first[/yellow]")
        raise typer.Exit(1)
    return user_id


@app.command("init")
def init_command(
    base_dir: Path | None = typer.Option(None, help="Project root (defaults to the current directory)"),
) -> None:
    settings = _load_settings(base_dir=base_dir)
    with LocalStore(settings.db_path) as store:
        executed = store.migrate()
    print(f"[green]Initialized[/green]. DB: {settings.db_path}")
    print(f"Migrations: {executed if executed else 'none pending'}")


@cart_app.command("show")
def cart_show_command() -> None:
    with _runtime() as runtime:
        _print_cart(runtime)


@app.command("products")
def products_command() -> None:
    with _runtime() as runtime:
        products = runtime.catalog.products()
        if not products:
            print("No products available.")
            return
        table = Table(title="Products")
        table.add_column("Product")
        table.add_column("Name")
        table.add_column("Sizes")
        for product in products:
            sizes = ", ".join(
                f"{variant.size} {_money(variant.price, runtime.settings.currency)}" for variant in product.variants
            )
            table.add_row(product.product_id, product.name, sizes or "-")
        print(table)


@cart_app.command("add")
def cart_add_command(
    product_id: str,
    size: str | None = typer.Option(None, help="Variant size (defaults to the first one)"),
) -> None:
    with _runtime() as runtime:
        item = runtime.catalog.add_to_cart(runtime.cart, product_id, size)
        print(f"[green]Added[/green] {item.display_name} ({item.variant_key}) x{item.quantity}")
        _print_cart(runtime)


@cart_app.command("inc")
def cart_inc_command(product_id: str, size: str) -> None:
    with _runtime() as runtime:
        runtime.cart.increment_quantity(product_id, size)
        _print_cart(runtime)


@cart_app.command("dec")
def cart_dec_command(product_id: str, size: str) -> None:
    with _runtime() as runtime:
        runtime.cart.decrement_quantity(product_id, size)
        _print_cart(runtime)


@cart_app.command("remove")
def cart_remove_command(product_id: str, size: str) -> None:
    with _runtime() as runtime:
        runtime.cart.remove_item(product_id, size)
        _print_cart(runtime)


@cart_app.command("clear")
def cart_clear_command() -> None:
    with _runtime() as runtime:
        runtime.cart.clear_cart()
        print("[green]Cart cleared[/green]")


@app.command("login")
def login_command(
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True),
) -> None:
    with _runtime() as runtime:
        user_id = runtime.auth.login(email, password)
        print(f"[green]Signed in[/green] as {user_id}. Cart lines: {runtime.cart.item_count}")


@app.command("register")
def register_command(
    name: str = typer.Option(..., prompt=True),
    email: str = typer.Option(..., prompt=True),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    with _runtime() as runtime:
        user_id = runtime.auth.register(name, email, password)
        print(f"[green]Registration successful[/green]: {user_id}. Cart lines: {runtime.cart.item_count}")


@app.command("logout")
def logout_command() -> None:
    with _runtime() as runtime:
        runtime.auth.logout()
        print("[green]Signed out[/green]")


@app.command("profile")
def profile_command() -> None:
    with _runtime() as runtime:
        _require_user(runtime)
        profile = runtime.auth.profile()
        print(f"[bold]{profile.name or runtime.identity.user_name or 'User'}[/bold] ({profile.user_id})")
        print(f"Email: {profile.email or runtime.identity.email or '-'}")
        print(f"Cart lines: {runtime.cart.item_count}")


@app.command("change-password")
def change_password_command(
    old_password: str = typer.Option(..., prompt=True, hide_input=True),
    new_password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    with _runtime() as runtime:
        _require_user(runtime)
        message = runtime.auth.change_password(old_password, new_password)
        print(f"[green]{escape(message)}[/green]")


@app.command("reset-password")
def reset_password_command(email: str = typer.Option(..., prompt=True)) -> None:
    with _runtime() as runtime:
        message = runtime.auth.request_password_reset(email)
        print(f"[green]{escape(message)}[/green]")


@address_app.command("list")
def address_list_command(
    refresh: bool = typer.Option(True, "--refresh/--cached", help="Reload from the server"),
) -> None:
    with _runtime() as runtime:
        addresses = runtime.addresses.refresh() if refresh else runtime.addresses.cached()
        if not addresses:
            print("No saved addresses.")
        for address in addresses:
            _print_address(address)


@address_app.command("add")
def address_add_command(
    name: str = typer.Option(...),
    email: str = typer.Option(...),
    mobile_no: str = typer.Option(...),
    house_no: str = typer.Option(...),
    street: str = typer.Option(...),
    city: str = typer.Option(...),
    postal_code: str | None = typer.Option(None),
) -> None:
    with _runtime() as runtime:
        address = runtime.addresses.new_address(
            name=name,
            email=email,
            mobile_no=mobile_no,
            house_no=house_no,
            street=street,
            city=city,
            postal_code=postal_code,
        )
        saved = runtime.addresses.save_address(address)
        print("[green]Address saved[/green]")
        _print_address(saved)


@address_app.command("default")
def address_default_command(address_id: str) -> None:
    with _runtime() as runtime:
        runtime.addresses.refresh()
        address = runtime.addresses.set_default_address(address_id)
        print("[green]Default address updated[/green]")
        _print_address(address)


@address_app.command("delete")
def address_delete_command(address_id: str) -> None:
    with _runtime() as runtime:
        runtime.addresses.refresh()
        remaining = runtime.addresses.delete_address(address_id)
        print(f"[green]Address deleted[/green]. Remaining: {len(remaining)}")


@app.command("checkout")
def checkout_command(
    name: str | None = typer.Option(None),
    email: str | None = typer.Option(None),
    mobile_no: str | None = typer.Option(None),
    house_no: str | None = typer.Option(None),
    street: str | None = typer.Option(None),
    city: str | None = typer.Option(None),
    postal_code: str | None = typer.Option(None),
    save_address: bool = typer.Option(True, "--save-address/--no-save-address"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Place the order without confirmation"),
) -> None:
    with _runtime() as runtime:
        if not runtime.cart.is_guest:
            runtime.addresses.refresh()
        prefill = runtime.checkout.prefill_address() or runtime.addresses.new_address()
        typed = {
            "name": name,
            "email": email,
            "mobile_no": mobile_no,
            "house_no": house_no,
            "street": street,
            "city": city,
            "postal_code": postal_code,
        }
        address = runtime.addresses.new_address(
            **{field: value if value is not None else getattr(prefill, field) for field, value in typed.items()}
        )

        _print_cart(runtime)
        print("Shipping address:")
        _print_address(address)
        if not yes and not typer.confirm("Place order?"):
            raise typer.Exit(0)

        confirmation = runtime.checkout.submit_order(address, save_address=save_address)
        if confirmation is None:
            print("[yellow]An order is already being submitted[/yellow]")
            raise typer.Exit(1)
        print(f"[green]Your order has been received![/green] Order number: {confirmation.order_id}")
        _print_totals(confirmation.totals, runtime.settings.currency)
        print(f"Items: {confirmation.item_count}")


@app.command("orders")
def orders_command() -> None:
    with _runtime() as runtime:
        orders = runtime.client.list_orders(_require_user(runtime))
        if not orders:
            print("No orders yet.")
        for order in orders:
            created = order.created_at.strftime("%Y-%m-%d") if order.created_at else "-"
            print(
                f"- {order.order_id} {created} [{order.order_status or 'pending'}] "
                f"{_money(order.total_price, runtime.settings.currency)}"
            )
            for product in order.products:
                print(f"    {product.name} ({product.size or '-'}) x{product.quantity} @ {product.price}")


@app.command("export")
def export_command(
    format: str = typer.Option("xlsx,csv", help="Comma-separated formats: xlsx,csv"),
    out: Path | None = typer.Option(None, help="Export directory"),
) -> None:
    formats = [item.strip().lower() for item in format.split(",") if item.strip()]
    supported = {"xlsx", "csv"}
    unknown = [item for item in formats if item not in supported]
    if unknown:
        raise typer.BadParameter(f"Unsupported formats: {unknown}")

    with _runtime() as runtime:
        orders = runtime.client.list_orders(_require_user(runtime))
        out_dir = (out or runtime.settings.exports_dir).resolve()
        files = export_orders(orders=orders, formats=formats, out_dir=out_dir)

    print("[green]Export finished[/green]")
    for file_path in files:
        print(f"- {file_path}")


@saved_app.command("list")
def saved_list_command() -> None:
    with _runtime() as runtime:
        items = runtime.client.list_saved_items(_require_user(runtime))
        if not items:
            print("No saved items.")
        for item in items:
            print(f"- {item.product_id}: {item.name} ({item.size or '-'}) {_money(item.price, runtime.settings.currency)}")


@saved_app.command("add")
def saved_add_command(
    product_id: str,
    size: str | None = typer.Option(None, help="Variant size (defaults to the first one)"),
) -> None:
    with _runtime() as runtime:
        user_id = _require_user(runtime)
        item = runtime.catalog.saved_item(product_id, size)
        runtime.client.save_for_later(user_id, item)
        print(f"[green]Saved for later[/green]: {item.name} ({item.size})")


@saved_app.command("remove")
def saved_remove_command(product_id: str) -> None:
    with _runtime() as runtime:
        runtime.client.remove_saved_item(_require_user(runtime), product_id)
        print(f"[green]Removed from saved items[/green]: {product_id}")


@app.command("doctor")
def doctor_command() -> None:
    settings = _load_settings()
    checks = run_doctor_checks(settings)

    print("Doctor results:")
    for check in checks:
        status = check["status"].upper()
        print(f"- {escape(f'[{status}]')} {check['check']}: {escape(check['detail'])}")


if __name__ == "__main__":
    app()
