"""User repository for console logins."""

import logging
import sqlite3

import bcrypt

from clinic_booking import config

from .models import AccessLevel, User

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Salted bcrypt hash, stored as text."""
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode(), salt).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


class UserRepository:
    """Repository for login users."""

    def __init__(self, store):
        self.store = store

    def authenticate(self, username: str, password: str) -> User | None:
        """Return the user when the credentials match, otherwise None."""
        cursor = self.store.connection.execute(
            "SELECT username, password_hash, access FROM users WHERE username = ?",
            (username,),
        )
        row = cursor.fetchone()
        if not row or not verify_password(password, row["password_hash"] or ""):
            logger.info("Failed login for %r", username)
            return None
        return self._row_to_user(row)

    def add_user(self, username: str, password: str, access: AccessLevel | int) -> bool:
        """Create a login. Returns False if the username is taken or invalid."""
        if not username or not password:
            return False
        try:
            with self.store.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO users (username, password_hash, access) VALUES (?, ?, ?)",
                    (username, hash_password(password), int(AccessLevel(access))),
                )
        except (sqlite3.IntegrityError, ValueError):
            return False
        self.store.persist()
        return True

    def get_all_users(self) -> list[User]:
        cursor = self.store.connection.execute("SELECT username, access FROM users ORDER BY username")
        return [self._row_to_user(row) for row in cursor.fetchall()]

    def _row_to_user(self, row) -> User:
        return User(username=row["username"], access=AccessLevel(row["access"]))
