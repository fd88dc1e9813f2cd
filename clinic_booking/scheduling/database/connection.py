"""Database connection manager for SQLite.

The database lives in memory while the application runs and is persisted as
a serialized blob (see store.py).
"""

import base64
import sqlite3

from .schema import SCHEMA

STORAGE_KEY_PREFIX = "sqlite_db_store_"


def get_connection(data: bytes | None = None) -> sqlite3.Connection:
    """Get an in-memory connection with row factory enabled.

    When ``data`` is given the connection is restored from that serialized
    database image.
    """
    conn = sqlite3.connect(":memory:")
    if data:
        conn.deserialize(data)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_database(conn: sqlite3.Connection) -> None:
    """Initialize the database with schema."""
    conn.executescript(SCHEMA)
    conn.commit()


def storage_key(db_path: str) -> str:
    """Derive the storage name used to persist the database at ``db_path``."""
    encoded = base64.urlsafe_b64encode(db_path.encode()).decode()
    return f"{STORAGE_KEY_PREFIX}{encoded[:20]}"
