from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

logger = logging.getLogger(__name__)

# The .sql scripts ship as package data next to this module.
SCRIPTS_PACKAGE = "storefront.core.db"
SCRIPTS_DIR = "migrations"


@dataclass(slots=True, frozen=True)
class Migration:
    name: str
    script: str


def connect_db(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    # The persistence worker writes through this connection too; LocalStore holds a lock around it.
    connection = sqlite3.connect(str(db_path), check_same_thread=False)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA busy_timeout = 5000")
    return connection


def bundled_migrations() -> list[Migration]:
    scripts = resources.files(SCRIPTS_PACKAGE).joinpath(SCRIPTS_DIR)
    found = [
        Migration(name=entry.name, script=entry.read_text(encoding="utf-8"))
        for entry in scripts.iterdir()
        if entry.name.endswith(".sql")
    ]
    return sorted(found, key=lambda migration: migration.name)


def applied_migrations(connection: sqlite3.Connection) -> set[str]:
    with connection:
        connection.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            " filename TEXT PRIMARY KEY,"
            " applied_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP)"
        )
    return {row["filename"] for row in connection.execute("SELECT filename FROM schema_migrations")}


def apply_migrations(
    connection: sqlite3.Connection,
    migrations: list[Migration] | None = None,
) -> list[str]:
    """Run every migration not yet recorded, in name order. Returns the names that ran."""
    done = applied_migrations(connection)
    candidates = bundled_migrations() if migrations is None else sorted(migrations, key=lambda m: m.name)
    pending = [migration for migration in candidates if migration.name not in done]

    for migration in pending:
        with connection:
            connection.executescript(migration.script)
            connection.execute("INSERT INTO schema_migrations (filename) VALUES (?)", (migration.name,))
        logger.info("Applied migration %s", migration.name)

    return [migration.name for migration in pending]
