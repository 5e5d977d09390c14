from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any

from storefront.models import AddressRecord

from .migrations import apply_migrations, connect_db


class LocalStore:
    """On-device key-value store plus the per-identity address cache."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.connection = connect_db(db_path)
        self._lock = threading.RLock()

    def close(self) -> None:
        with self._lock:
            self.connection.close()

    def __enter__(self) -> LocalStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def migrate(self) -> list[str]:
        with self._lock:
            return apply_migrations(self.connection)

    @staticmethod
    def _to_json(payload: Any) -> str:
        return json.dumps(payload, ensure_ascii=False)

    def get(self, key: str) -> Any | None:
        with self._lock:
            row = self.connection.execute(
                "SELECT value_json FROM kv_store WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["value_json"])

    def set(self, key: str, value: Any) -> None:
        with self._lock, self.connection:
            self.connection.execute(
                """
                INSERT INTO kv_store (key, value_json)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value_json = excluded.value_json,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, self._to_json(value)),
            )

    def remove(self, key: str) -> None:
        with self._lock, self.connection:
            self.connection.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    @staticmethod
    def _row_to_address(row: Any) -> AddressRecord:
        return AddressRecord(
            address_id=row["address_id"],
            name=row["name"],
            email=row["email"],
            mobile_no=row["mobile_no"],
            house_no=row["house_no"],
            street=row["street"],
            city=row["city"],
            postal_code=row["postal_code"],
            country=row["country"],
            is_default=bool(row["is_default"]),
        )

    def list_addresses(self, identity_key: str) -> list[AddressRecord]:
        """Addresses in the order they were added (oldest first)."""
        with self._lock:
            rows = self.connection.execute(
                "SELECT * FROM addresses WHERE identity_key = ? ORDER BY position",
                (identity_key,),
            ).fetchall()
        return [self._row_to_address(row) for row in rows]

    def replace_addresses(self, identity_key: str, addresses: list[AddressRecord]) -> None:
        with self._lock, self.connection:
            self.connection.execute("DELETE FROM addresses WHERE identity_key = ?", (identity_key,))
            self.connection.executemany(
                """
                INSERT INTO addresses (
                    identity_key, address_id, name, email, mobile_no, house_no,
                    street, city, postal_code, country, is_default, position
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        identity_key,
                        address.address_id or f"local-{position}",
                        address.name,
                        address.email,
                        address.mobile_no,
                        address.house_no,
                        address.street,
                        address.city,
                        address.postal_code,
                        address.country,
                        int(address.is_default),
                        position,
                    )
                    for position, address in enumerate(addresses)
                ],
            )

    def set_default_address(self, identity_key: str, address_id: str) -> int:
        """Flip the default flag for one identity in a single statement.

        Returns the number of rows now marked default (1 when ``address_id`` exists, else 0,
        in which case nothing is changed).
        """
        with self._lock, self.connection:
            exists = self.connection.execute(
                "SELECT 1 FROM addresses WHERE identity_key = ? AND address_id = ?",
                (identity_key, address_id),
            ).fetchone()
            if exists is None:
                return 0
            self.connection.execute(
                "UPDATE addresses SET is_default = (address_id = ?) WHERE identity_key = ?",
                (address_id, identity_key),
            )
            row = self.connection.execute(
                "SELECT COUNT(*) AS cnt FROM addresses WHERE identity_key = ? AND is_default = 1",
                (identity_key,),
            ).fetchone()
        return int(row["cnt"])

    def delete_address(self, identity_key: str, address_id: str) -> None:
        with self._lock, self.connection:
            self.connection.execute(
                "DELETE FROM addresses WHERE identity_key = ? AND address_id = ?",
                (identity_key, address_id),
            )
