"""Tests for the ScheduleStore lifecycle, persistence and migrations."""

import sqlite3

import pytest

from clinic_booking.scheduling.database import ScheduleStore, StoreClosedError
from clinic_booking.scheduling.database.connection import get_connection, storage_key
from clinic_booking.scheduling.database.migrations import SCHEMA_VERSION, migrate
from clinic_booking.scheduling.database.schedule_repository import ScheduleRepository

TUESDAY = "2025-03-04"


def open_store(storage_dir, **kwargs):
    return ScheduleStore(storage_dir=storage_dir, db_path="test.db", **kwargs).open()


class TestLifecycle:
    """Tests for open/close."""

    def test_closed_store_raises(self, storage_dir):
        store = ScheduleStore(storage_dir=storage_dir, db_path="test.db")
        with pytest.raises(StoreClosedError):
            store.connection

    def test_open_writes_blob(self, store):
        assert store.blob_path.exists()
        assert store.blob_path.name == f"{storage_key('test.db')}.db"

    def test_context_manager(self, storage_dir):
        with ScheduleStore(storage_dir=storage_dir, db_path="test.db") as store:
            assert store.is_open
        assert not store.is_open

    def test_storage_key(self):
        key = storage_key("db/Clinical_database.db")
        assert key.startswith("sqlite_db_store_")
        assert len(key) == len("sqlite_db_store_") + 20


class TestPersistence:
    """Tests for reopening a persisted store."""

    def test_booking_survives_reopen(self, storage_dir):
        with open_store(storage_dir) as store:
            result = ScheduleRepository(store).book_slot(
                "dr_smith", "09:00 AM", "Jane Doe", "555-1234", "1990-01-01", TUESDAY
            )

        with open_store(storage_dir) as store:
            slot = ScheduleRepository(store).get_slot(result.slot_id)
            assert slot.is_booked
            assert slot.booked_by == "Jane Doe"

    def test_separate_db_paths_are_isolated(self, storage_dir):
        with open_store(storage_dir) as store:
            ScheduleRepository(store).ensure_slots_for_date("dr_smith", TUESDAY)

        with ScheduleStore(storage_dir=storage_dir, db_path="other.db") as other:
            assert ScheduleRepository(other).get_slots("dr_smith", TUESDAY) == []

    def test_corrupt_blob_starts_fresh(self, storage_dir):
        store = ScheduleStore(storage_dir=storage_dir, db_path="test.db")
        store.blob_path.parent.mkdir(parents=True, exist_ok=True)
        store.blob_path.write_bytes(b"definitely not sqlite" * 100)

        with store:
            assert len(store.connection.execute("SELECT * FROM doctors").fetchall()) == 3

    def test_persist_failure_returns_false(self, store, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store.storage_dir = blocker / "nested"

        assert store.persist() is False
        # The in-memory database still works
        assert store.connection.execute("SELECT COUNT(*) FROM doctors").fetchone()[0] == 3


class TestMigrations:
    """Tests for schema setup and seeding."""

    def test_fresh_database_is_seeded(self, store):
        version = store.connection.execute("PRAGMA user_version").fetchone()[0]
        assert version == SCHEMA_VERSION
        assert store.connection.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 2

    def test_migrate_is_idempotent(self):
        conn = get_connection()
        assert migrate(conn) == SCHEMA_VERSION
        assert migrate(conn) == 0
        assert conn.execute("SELECT COUNT(*) FROM doctors").fetchone()[0] == 3
        conn.close()

    def test_reopen_does_not_reseed_deleted_doctor(self, storage_dir):
        with open_store(storage_dir) as store:
            store.connection.execute("DELETE FROM doctors WHERE id = 'dr_chen'")
            store.connection.commit()

        with open_store(storage_dir) as store:
            ids = [r["id"] for r in store.connection.execute("SELECT id FROM doctors")]
            assert "dr_chen" not in ids


class TestImportExport:
    """Tests for export_database, load_from_bytes and link_mirror."""

    def test_export_is_sqlite_file(self, store):
        assert store.export_database().startswith(b"SQLite format 3\x00")

    def test_load_from_bytes(self, storage_dir, tmp_path):
        with open_store(tmp_path / "source") as source:
            ScheduleRepository(source).book_slot("dr_smith", "09:00 AM", "Jane Doe", "555-1234", "1990-01-01", TUESDAY)
            data = source.export_database()

        with open_store(storage_dir) as store:
            assert store.load_from_bytes(data)
            assert len(ScheduleRepository(store).get_booked_appointments(TUESDAY)) == 1

        # The import was persisted
        with open_store(storage_dir) as store:
            assert len(ScheduleRepository(store).get_booked_appointments(TUESDAY)) == 1

    def test_load_rejects_garbage(self, store):
        assert not store.load_from_bytes(b"")
        assert not store.load_from_bytes(b"not a database" * 100)
        assert store.connection.execute("SELECT COUNT(*) FROM doctors").fetchone()[0] == 3

    def test_link_empty_mirror_receives_database(self, store, tmp_path):
        mirror = tmp_path / "mirror.db"
        assert store.link_mirror(mirror)
        assert mirror.read_bytes().startswith(b"SQLite format 3\x00")

        ScheduleRepository(store).ensure_slots_for_date("dr_smith", TUESDAY)
        conn = get_connection(mirror.read_bytes())
        assert conn.execute("SELECT COUNT(*) FROM slots").fetchone()[0] == 14
        conn.close()

    def test_link_existing_mirror_loads_it(self, store, tmp_path):
        mirror = tmp_path / "mirror.db"
        with open_store(tmp_path / "other") as other:
            ScheduleRepository(other).book_slot("dr_patel", "09:00 AM", "Jane Doe", "555-1234", "1990-01-01", TUESDAY)
            mirror.write_bytes(other.export_database())

        assert store.link_mirror(mirror)
        assert len(ScheduleRepository(store).get_booked_appointments(TUESDAY)) == 1

    def test_link_invalid_mirror(self, store, tmp_path):
        mirror = tmp_path / "mirror.db"
        mirror.write_bytes(b"garbage" * 100)
        assert not store.link_mirror(mirror)
        assert store.mirror_path is None

    def test_transaction_rolls_back(self, store):
        with pytest.raises(sqlite3.IntegrityError):
            with store.transaction() as cursor:
                cursor.execute("DELETE FROM users")
                cursor.execute("INSERT INTO doctors (id, name) VALUES ('dr_smith', 'Dup')")
        assert store.connection.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 2
