"""Holiday repository: full-day unavailability per doctor."""

import logging
import sqlite3

from clinic_booking.date_utils import parse_date

from .models import Holiday

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Vacation"


class HolidayRepository:
    """Repository for doctor holidays."""

    def __init__(self, store):
        self.store = store

    def add_holiday(self, doctor_id: str, holiday_date: str, reason: str = DEFAULT_REASON) -> Holiday:
        """Mark a doctor off for a whole day.

        Unbooked slots on that day are removed; booked ones stay so confirmed
        appointments are never cancelled silently. Adding a holiday that
        already exists updates its reason.
        """
        parse_date(holiday_date)
        reason = reason or DEFAULT_REASON
        with self.store.transaction() as cursor:
            self._clear_unbooked_slots(cursor, doctor_id, holiday_date)
            cursor.execute(
                """INSERT INTO holidays (doctor_id, holiday_date, reason) VALUES (?, ?, ?)
                   ON CONFLICT(doctor_id, holiday_date) DO UPDATE SET reason = excluded.reason""",
                (doctor_id, holiday_date, reason),
            )
            cursor.execute(
                "SELECT id FROM holidays WHERE doctor_id = ? AND holiday_date = ?",
                (doctor_id, holiday_date),
            )
            holiday_id = cursor.fetchone()["id"]
        self.store.persist()
        return Holiday(id=holiday_id, doctor_id=doctor_id, holiday_date=holiday_date, reason=reason)

    def update_holiday(self, holiday_id: int, holiday_date: str, reason: str) -> bool:
        """Move a holiday and/or change its reason.

        Returns False if the holiday doesn't exist or the doctor already has
        another holiday on the new date.
        """
        parse_date(holiday_date)
        try:
            with self.store.transaction() as cursor:
                cursor.execute("SELECT doctor_id FROM holidays WHERE id = ?", (holiday_id,))
                row = cursor.fetchone()
                if not row:
                    return False
                self._clear_unbooked_slots(cursor, row["doctor_id"], holiday_date)
                cursor.execute(
                    "UPDATE holidays SET holiday_date = ?, reason = ? WHERE id = ?",
                    (holiday_date, reason or DEFAULT_REASON, holiday_id),
                )
        except sqlite3.IntegrityError:
            return False
        self.store.persist()
        return True

    def remove_holiday(self, holiday_id: int) -> bool:
        with self.store.transaction() as cursor:
            cursor.execute("DELETE FROM holidays WHERE id = ?", (holiday_id,))
            removed = cursor.rowcount > 0
        self.store.persist()
        return removed

    def get_holidays(self) -> list[Holiday]:
        """All holidays with the doctor's name, latest date first."""
        cursor = self.store.connection.execute(
            """SELECT h.*, d.name AS doctor_name
               FROM holidays h
               JOIN doctors d ON h.doctor_id = d.id
               ORDER BY h.holiday_date DESC"""
        )
        return [
            Holiday(
                id=row["id"],
                doctor_id=row["doctor_id"],
                holiday_date=row["holiday_date"],
                reason=row["reason"],
                doctor_name=row["doctor_name"],
            )
            for row in cursor.fetchall()
        ]

    def _clear_unbooked_slots(self, cursor, doctor_id: str, holiday_date: str) -> None:
        cursor.execute(
            "DELETE FROM slots WHERE doctor_id = ? AND date = ? AND is_booked = 0",
            (doctor_id, holiday_date),
        )
        if cursor.rowcount:
            logger.info("Removed %d open slots for %s on %s", cursor.rowcount, doctor_id, holiday_date)
