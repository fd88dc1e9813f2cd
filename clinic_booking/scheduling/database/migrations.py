"""One-time schema setup and seeding, run when the store is opened."""

import logging
import sqlite3

from .connection import init_database
from .models import AccessLevel, Doctor
from .user_repository import hash_password

logger = logging.getLogger(__name__)

# Bump when a new migration step is appended to MIGRATIONS
SCHEMA_VERSION = 1

DEFAULT_USERS = [
    ("Admin", "Admin@123", AccessLevel.ADMIN),
    ("Demo", "Welcome@123", AccessLevel.STAFF),
]

DEFAULT_DOCTORS = [
    Doctor(
        id="dr_smith",
        name="Dr. Sarah Smith",
        specialty="Cardiologist",
        availability="Mon-Fri",
        room_no="Room 101",
        address="123 Medical Plaza, Health City",
    ),
    Doctor(
        id="dr_patel",
        name="Dr. Raj Patel",
        specialty="Dermatologist",
        availability="Tue-Sat",
        room_no="Room 205",
        address="123 Medical Plaza, Health City",
    ),
    Doctor(
        id="dr_chen",
        name="Dr. Emily Chen",
        specialty="Pediatrician",
        availability="Mon-Thu",
        room_no="Room 304",
        address="123 Medical Plaza, Health City",
    ),
]


def seed_defaults(conn: sqlite3.Connection) -> None:
    """Insert the default logins and doctors unless they already exist."""
    for username, password, access in DEFAULT_USERS:
        conn.execute(
            "INSERT OR IGNORE INTO users (username, password_hash, access) VALUES (?, ?, ?)",
            (username, hash_password(password), int(access)),
        )
    for doctor in DEFAULT_DOCTORS:
        conn.execute(
            """INSERT OR IGNORE INTO doctors (id, name, specialty, availability, room_no, address)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (doctor.id, doctor.name, doctor.specialty, doctor.availability, doctor.room_no, doctor.address),
        )


MIGRATIONS = {
    1: seed_defaults,
}


def migrate(conn: sqlite3.Connection) -> int:
    """Bring a database up to SCHEMA_VERSION. Returns the number of steps applied.

    Safe to call on every open: the schema uses IF NOT EXISTS and steps that
    already ran (tracked in PRAGMA user_version) are skipped.
    """
    init_database(conn)
    current = conn.execute("PRAGMA user_version").fetchone()[0]

    applied = 0
    for version in range(current + 1, SCHEMA_VERSION + 1):
        logger.info("Applying database migration %d", version)
        with conn:
            MIGRATIONS[version](conn)
            conn.execute(f"PRAGMA user_version = {version}")
        applied += 1
    return applied
