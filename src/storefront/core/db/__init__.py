from .migrations import Migration, apply_migrations, bundled_migrations, connect_db
from .repository import LocalStore

__all__ = ["connect_db", "apply_migrations", "bundled_migrations", "Migration", "LocalStore"]
