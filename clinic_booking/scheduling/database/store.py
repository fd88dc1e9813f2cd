"""The schedule store: owns the one database connection and its persistence."""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from clinic_booking import config

from .connection import get_connection, storage_key
from .migrations import migrate

logger = logging.getLogger(__name__)


class StoreClosedError(Exception):
    """Raised when the store is used before open() or after close()."""
    pass


class ScheduleStore:
    """Single owner of the clinic database.

    Lifecycle is open -> use -> close. The database runs in memory and every
    mutation is followed by persist(), which writes the serialized image to
    ``<storage_dir>/<storage key>.db`` and, when linked, to a mirror file.

    Usage:
        with ScheduleStore().open() as store:
            ScheduleRepository(store).get_schedules("2025-03-04")
    """

    def __init__(
        self,
        storage_dir: str | Path | None = None,
        db_path: str | None = None,
        mirror_path: str | Path | None = None,
    ):
        self.db_path = db_path or config.SQLITE_DB_PATH
        self.storage_dir = Path(storage_dir if storage_dir is not None else config.STORAGE_DIR)
        self.mirror_path = Path(mirror_path) if mirror_path else None
        self._conn: sqlite3.Connection | None = None

    # Lifecycle

    @property
    def storage_key(self) -> str:
        return storage_key(self.db_path)

    @property
    def blob_path(self) -> Path:
        return self.storage_dir / f"{self.storage_key}.db"

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError("Schedule store is not open")
        return self._conn

    def open(self) -> "ScheduleStore":
        """Load the persisted database (or start a fresh one) and migrate it."""
        if self._conn is not None:
            return self

        data = self._read_blob(self.blob_path)
        if data:
            try:
                self._conn = self._prepare(data)
                logger.info("Loaded database from %s", self.blob_path)
            except sqlite3.DatabaseError:
                logger.warning("Stored database at %s is unreadable, starting fresh", self.blob_path)
                self._conn = None

        if self._conn is None:
            self._conn = self._prepare(None)
            logger.info("Created new database for %s", self.db_path)

        self.persist()
        return self

    def close(self) -> None:
        if self._conn is None:
            return
        self.persist()
        self._conn.close()
        self._conn = None

    def __enter__(self) -> "ScheduleStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Writes

    @contextmanager
    def transaction(self):
        """Run statements atomically; rolls back if the block raises."""
        conn = self.connection
        with conn:
            yield conn.cursor()

    def persist(self) -> bool:
        """Write the database image to stable storage.

        Returns False (and logs) when the write fails; the in-memory database
        keeps its state either way.
        """
        if self._conn is None:
            return False
        try:
            data = self._conn.serialize()
            self._write_blob(self.blob_path, data)
            if self.mirror_path:
                self._write_blob(self.mirror_path, data)
        except (OSError, sqlite3.Error):
            logger.exception("Failed to persist database %s", self.db_path)
            return False
        return True

    # Import / export

    def export_database(self) -> bytes:
        """Raw SQLite file contents of the current database."""
        return self.connection.serialize()

    def load_from_bytes(self, data: bytes) -> bool:
        """Replace the current database with an uploaded SQLite file."""
        if not data:
            return False
        try:
            conn = self._prepare(data)
        except sqlite3.DatabaseError:
            logger.warning("Rejected uploaded database: not a valid SQLite file")
            return False

        if self._conn is not None:
            self._conn.close()
        self._conn = conn
        return self.persist()

    def link_mirror(self, path: str | Path) -> bool:
        """Mirror the database to a local file.

        A non-empty file is loaded and becomes the current database; an empty
        or missing file receives a copy of the current one.
        """
        path = Path(path)
        try:
            data = self._read_blob(path)
        except OSError:
            logger.exception("Cannot read mirror file %s", path)
            return False

        if data:
            try:
                conn = self._prepare(data)
            except sqlite3.DatabaseError:
                logger.warning("Mirror file %s is not a valid SQLite database", path)
                return False
            if self._conn is not None:
                self._conn.close()
            self._conn = conn

        self.mirror_path = path
        return self.persist()

    # Private helpers

    def _prepare(self, data: bytes | None) -> sqlite3.Connection:
        conn = get_connection(data)
        try:
            migrate(conn)
        except sqlite3.DatabaseError:
            conn.close()
            raise
        return conn

    @staticmethod
    def _read_blob(path: Path) -> bytes | None:
        if not path.exists():
            return None
        return path.read_bytes()

    @staticmethod
    def _write_blob(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
