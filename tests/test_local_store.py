from __future__ import annotations

from storefront.core.db import Migration, apply_migrations, bundled_migrations
from storefront.models import AddressRecord


def _addresses(count: int) -> list[AddressRecord]:
    return [
        AddressRecord(
            address_id=f"a{index}",
            name="Mona",
            house_no=str(index),
            street="Tahrir St",
            city="Cairo",
            is_default=index == 0,
        )
        for index in range(count)
    ]


def test_migrate_is_idempotent(store) -> None:  # noqa: ANN001
    assert store.migrate() == []


def test_bundled_migrations_are_loaded_from_package_data() -> None:
    names = [migration.name for migration in bundled_migrations()]

    assert names[0] == "001_init.sql"
    assert names == sorted(names)
    assert "CREATE TABLE IF NOT EXISTS kv_store" in bundled_migrations()[0].script


def test_only_unrecorded_migrations_run(store) -> None:  # noqa: ANN001
    extra = Migration(name="900_saved_flags.sql", script="ALTER TABLE kv_store ADD COLUMN flags TEXT;")

    assert apply_migrations(store.connection, [*bundled_migrations(), extra]) == ["900_saved_flags.sql"]
    assert apply_migrations(store.connection, [*bundled_migrations(), extra]) == []

    columns = {row["name"] for row in store.connection.execute("PRAGMA table_info(kv_store)")}
    assert "flags" in columns


def test_key_value_roundtrip(store) -> None:  # noqa: ANN001
    store.set("cart_u1", [{"product_id": "a", "quantity": 2}])
    store.set("cart_u1", [{"product_id": "a", "quantity": 3}])
    store.set("authToken", "tok")

    assert store.get("cart_u1") == [{"product_id": "a", "quantity": 3}]

    store.remove("cart_u1")
    assert store.get("cart_u1") is None
    assert store.get("missing") is None


def test_set_default_leaves_exactly_one_default(store) -> None:  # noqa: ANN001
    store.replace_addresses("u1", _addresses(5))
    store.replace_addresses("u2", _addresses(2))

    assert store.set_default_address("u1", "a3") == 1

    defaults = [address.address_id for address in store.list_addresses("u1") if address.is_default]
    assert defaults == ["a3"]
    other_defaults = [address.address_id for address in store.list_addresses("u2") if address.is_default]
    assert other_defaults == ["a0"]


def test_set_default_unknown_address_changes_nothing(store) -> None:  # noqa: ANN001
    store.replace_addresses("u1", _addresses(3))

    assert store.set_default_address("u1", "missing") == 0
    assert [a.address_id for a in store.list_addresses("u1") if a.is_default] == ["a0"]


def test_addresses_keep_insertion_order(store) -> None:  # noqa: ANN001
    store.replace_addresses("u1", _addresses(3))
    store.delete_address("u1", "a1")

    assert [address.address_id for address in store.list_addresses("u1")] == ["a0", "a2"]
