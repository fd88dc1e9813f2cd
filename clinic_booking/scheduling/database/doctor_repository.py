"""Doctor repository with admin CRUD operations."""

import logging

from clinic_booking.availability import WeeklyPattern

from .models import Doctor

logger = logging.getLogger(__name__)


class DoctorRepository:
    """Repository for doctor records."""

    def __init__(self, store):
        self.store = store

    def get_doctors(self) -> list[Doctor]:
        cursor = self.store.connection.execute("SELECT * FROM doctors ORDER BY name")
        return [self._row_to_doctor(row) for row in cursor.fetchall()]

    def get_by_id(self, doctor_id: str) -> Doctor | None:
        cursor = self.store.connection.execute("SELECT * FROM doctors WHERE id = ?", (doctor_id,))
        row = cursor.fetchone()
        return self._row_to_doctor(row) if row else None

    def find_by_specialty(self, specialty: str | None = None) -> list[Doctor]:
        """Case-insensitive substring match on specialty; all doctors when empty."""
        doctors = self.get_doctors()
        if not specialty:
            return doctors
        needle = specialty.lower()
        return [d for d in doctors if needle in (d.specialty or "").lower()]

    def add_or_update(self, doctor: Doctor) -> Doctor:
        """Insert a doctor, or overwrite every field of the one with the same id."""
        if doctor.weekly_pattern is WeeklyPattern.UNRESTRICTED:
            logger.warning(
                "Availability %r for %s is not a known pattern; doctor will be bookable every day",
                doctor.availability, doctor.id,
            )

        with self.store.transaction() as cursor:
            cursor.execute(
                """INSERT INTO doctors (id, name, specialty, availability, room_no, address)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                       name = excluded.name,
                       specialty = excluded.specialty,
                       availability = excluded.availability,
                       room_no = excluded.room_no,
                       address = excluded.address""",
                (doctor.id, doctor.name, doctor.specialty, doctor.availability, doctor.room_no, doctor.address),
            )
        self.store.persist()
        return doctor

    def delete(self, doctor_id: str) -> bool:
        """Delete a doctor together with their slots and holidays.

        Transcripts that pointed at the removed slots are kept but unlinked.
        """
        with self.store.transaction() as cursor:
            cursor.execute(
                """UPDATE transcripts SET slot_id = NULL
                   WHERE slot_id IN (SELECT id FROM slots WHERE doctor_id = ?)""",
                (doctor_id,),
            )
            cursor.execute("DELETE FROM slots WHERE doctor_id = ?", (doctor_id,))
            cursor.execute("DELETE FROM holidays WHERE doctor_id = ?", (doctor_id,))
            cursor.execute("DELETE FROM doctors WHERE id = ?", (doctor_id,))
            deleted = cursor.rowcount > 0
        self.store.persist()
        return deleted

    def _row_to_doctor(self, row) -> Doctor:
        """Convert a database row to a Doctor object."""
        return Doctor(
            id=row["id"],
            name=row["name"],
            specialty=row["specialty"] or "",
            availability=row["availability"] or "",
            room_no=row["room_no"] or "",
            address=row["address"] or "",
        )
