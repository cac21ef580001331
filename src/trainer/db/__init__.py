"""Database module for SQLite persistence.

Provides:
- Connection management and schema initialization
- The storage gateway used by the scheduling core
- Catalog loading and seeding
"""

from trainer.db.database import DEFAULT_DB_PATH, open_connection
from trainer.db.storage import Storage, StorageError

__all__ = ["DEFAULT_DB_PATH", "open_connection", "Storage", "StorageError"]
