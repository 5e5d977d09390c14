from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

import pytest
import requests

from storefront.api import StorefrontApiClient
from storefront.cart import CartStateManager, Product, Variant
from storefront.config import Settings
from storefront.core.db import LocalStore
from storefront.core.persistence import WriteQueue
from storefront.identity import IdentityProvider
from storefront.models import AddressRecord
from storefront.services import AddressBook, CheckoutService

API_URL = "https://api.test"


def make_response(status_code: int, payload: Any = None, url: str = API_URL) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response._content = b"" if payload is None else json.dumps(payload).encode("utf-8")  # noqa: SLF001
    response.headers["Content-Type"] = "application/json"
    return response


class FakeSession:
    """Stands in for requests.Session; routes are keyed by (method, path)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[dict[str, Any]] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        payload: Any = None,
        exc: Exception | None = None,
        hook: Callable[[], None] | None = None,
    ) -> None:
        self.routes[(method, path)] = {"status": status, "payload": payload, "exc": exc, "hook": hook}

    def request(self, method: str, url: str, headers=None, timeout=None, **kwargs):  # noqa: ANN001
        path = url[len(API_URL):]
        self.calls.append({"method": method, "path": path, "json": kwargs.get("json"), "headers": headers or {}})
        route = self.routes.get((method, path))
        if route is None:
            return make_response(404, {"message": "Not found"}, url)
        if route["hook"] is not None:
            route["hook"]()
        if route["exc"] is not None:
            raise route["exc"]
        return make_response(route["status"], route["payload"], url)

    def calls_to(self, method: str, path: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["method"] == method and call["path"] == path]


@pytest.fixture()
def store(tmp_path: Path):
    repo = LocalStore(tmp_path / "storefront.sqlite3")
    repo.migrate()
    try:
        yield repo
    finally:
        repo.close()


@pytest.fixture()
def queue(store: LocalStore):
    write_queue = WriteQueue(store)
    try:
        yield write_queue
    finally:
        write_queue.close()


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch) -> Settings:  # noqa: ANN001
    root = tmp_path / "project"
    root.mkdir(parents=True, exist_ok=True)
    monkeypatch.delenv("STOREFRONT_HOME", raising=False)
    s = Settings.load(base_dir=root)
    s.ensure_directories()
    return s


@pytest.fixture()
def test_logger() -> logging.Logger:
    logger = logging.getLogger("storefront-test")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.INFO)
    return logger


@pytest.fixture()
def identity(store: LocalStore) -> IdentityProvider:
    return IdentityProvider(store)


@pytest.fixture()
def cart(queue: WriteQueue, identity: IdentityProvider) -> CartStateManager:
    manager = CartStateManager(queue)
    manager.bind_identity(identity)
    return manager


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def client(session: FakeSession) -> StorefrontApiClient:
    return StorefrontApiClient(API_URL, timeout_sec=1, session=session)


@pytest.fixture()
def address_book(client, store, identity, test_logger) -> AddressBook:  # noqa: ANN001
    return AddressBook(client, store, identity, test_logger)


@pytest.fixture()
def checkout(cart, client, address_book, test_logger) -> CheckoutService:  # noqa: ANN001
    return CheckoutService(cart, client, address_book, test_logger)


@pytest.fixture()
def shirt() -> Product:
    return Product(
        product_id="p-shirt",
        name="Linen shirt",
        images=("https://cdn.test/shirt-1.jpg", "https://cdn.test/shirt-2.jpg"),
        variants=(Variant("M", Decimal("450")), Variant("L", Decimal("500"))),
    )


@pytest.fixture()
def poster() -> Product:
    return Product(
        product_id="p-poster",
        name="Wall poster",
        images=("https://cdn.test/poster.jpg",),
        variants=(Variant("50x70", Decimal("999.50")),),
    )


@pytest.fixture()
def home_address() -> AddressRecord:
    return AddressRecord(
        name="Mona Adel",
        email="mona@example.com",
        mobile_no="01000000000",
        house_no="12, Building B",
        street="Tahrir St",
        city="Cairo",
        postal_code="11511",
        country="Egypt",
    )
