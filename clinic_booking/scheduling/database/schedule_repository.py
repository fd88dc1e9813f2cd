"""Slot materialization, schedules and the booking transaction."""

import logging
from dataclasses import dataclass

from clinic_booking.availability import DOCTOR_NOT_FOUND_REASON, Availability, check_availability
from clinic_booking.date_utils import parse_date, today
from clinic_booking.slot_generator import generate_daily_slots, slot_sort_key

from .doctor_repository import DoctorRepository
from .models import BookedAppointment, DoctorSchedule, Slot
from .patient_repository import PatientRepository

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE_MESSAGE = "Slot unavailable or already booked."
BOOKED_MESSAGE = "Booked"


class SlotConflictError(Exception):
    """The slot was taken between the lookup and the update."""
    pass


@dataclass
class BookingResult:
    success: bool
    message: str
    slot_id: int | None = None

    def to_dict(self) -> dict:
        result = {"success": self.success, "message": self.message}
        if self.slot_id is not None:
            result["slotId"] = self.slot_id
        return result


class ScheduleRepository:
    """Repository for slots: availability, schedules, booking and admin overrides."""

    def __init__(self, store):
        self.store = store
        self.doctors = DoctorRepository(store)
        self.patients = PatientRepository(store)

    # Availability and materialization

    def is_available(self, doctor_id: str, date: str) -> Availability:
        """Check a doctor's availability on a date (holiday first, then weekly pattern)."""
        parse_date(date)
        conn = self.store.connection

        holiday = conn.execute(
            "SELECT reason FROM holidays WHERE doctor_id = ? AND holiday_date = ?",
            (doctor_id, date),
        ).fetchone()
        if holiday:
            return check_availability("", date, holiday_reason=holiday["reason"], is_holiday=True)

        doctor = self.doctors.get_by_id(doctor_id)
        if doctor is None:
            return Availability(False, DOCTOR_NOT_FOUND_REASON)
        return check_availability(doctor.weekly_pattern, date)

    def ensure_slots_for_date(self, doctor_id: str, date: str) -> Availability:
        """Create the day's slots the first time an available doctor/date is accessed.

        Only a day with no slot rows at all is filled; once any row exists
        (even a single booking left behind by a holiday) the day is left as is.
        """
        availability = self.is_available(doctor_id, date)
        if not availability.available:
            return availability

        count = self.store.connection.execute(
            "SELECT COUNT(*) FROM slots WHERE doctor_id = ? AND date = ?", (doctor_id, date)
        ).fetchone()[0]
        if count == 0:
            slots = generate_daily_slots(doctor_id, date)
            with self.store.transaction() as cursor:
                cursor.executemany(
                    """INSERT INTO slots (doctor_id, date, time, is_booked, is_blocked)
                       VALUES (?, ?, ?, 0, 0)""",
                    [(s.doctor_id, s.date, s.time) for s in slots],
                )
            logger.debug("Materialized %d slots for %s on %s", len(slots), doctor_id, date)
            self.store.persist()
        return availability

    # Schedules

    def get_schedule(self, doctor_id: str, date: str | None = None) -> DoctorSchedule:
        """One doctor's day: either the slots in time order or the holiday reason."""
        target_date = date or today()
        availability = self.ensure_slots_for_date(doctor_id, target_date)
        if not availability.available:
            return DoctorSchedule(
                doctor_id=doctor_id,
                date=target_date,
                slots=[],
                is_holiday=True,
                holiday_reason=availability.reason,
            )
        return DoctorSchedule(
            doctor_id=doctor_id,
            date=target_date,
            slots=self.get_slots(doctor_id, target_date),
        )

    def get_schedules(self, date: str | None = None) -> dict[str, DoctorSchedule]:
        """Every doctor's schedule for a date (default today), keyed by doctor id."""
        target_date = date or today()
        return {
            doctor.id: self.get_schedule(doctor.id, target_date)
            for doctor in self.doctors.get_doctors()
        }

    def get_slots(self, doctor_id: str, date: str) -> list[Slot]:
        """Stored slots for a doctor/date with booking patient details, in time order."""
        cursor = self.store.connection.execute(
            """SELECT s.*, p.name AS booked_by, p.phone AS contact, p.dob AS patient_dob
               FROM slots s
               LEFT JOIN patients p ON s.patient_id = p.id
               WHERE s.doctor_id = ? AND s.date = ?""",
            (doctor_id, date),
        )
        slots = [self._row_to_slot(row) for row in cursor.fetchall()]
        return sorted(slots, key=lambda s: slot_sort_key(s.time))

    def get_slot(self, slot_id: int) -> Slot | None:
        cursor = self.store.connection.execute(
            """SELECT s.*, p.name AS booked_by, p.phone AS contact, p.dob AS patient_dob
               FROM slots s
               LEFT JOIN patients p ON s.patient_id = p.id
               WHERE s.id = ?""",
            (slot_id,),
        )
        row = cursor.fetchone()
        return self._row_to_slot(row) if row else None

    # Booking

    def book_slot(
        self,
        doctor_id: str,
        slot_time: str,
        patient_name: str,
        patient_phone: str,
        patient_dob: str,
        date: str | None = None,
    ) -> BookingResult:
        """Book a free slot for a patient, creating or refreshing the patient by phone.

        All writes happen in one transaction: a failed booking changes nothing.
        """
        target_date = date or today()
        availability = self.ensure_slots_for_date(doctor_id, target_date)
        if not availability.available:
            return BookingResult(False, f"Unavailable: {availability.reason}")

        try:
            with self.store.transaction() as cursor:
                cursor.execute(
                    """SELECT id FROM slots
                       WHERE doctor_id = ? AND date = ? AND time = ?
                         AND is_booked = 0 AND is_blocked = 0""",
                    (doctor_id, target_date, slot_time),
                )
                row = cursor.fetchone()
                if not row:
                    raise SlotConflictError(slot_time)
                slot_id = row["id"]

                patient_id = self.patients.upsert_by_phone(cursor, patient_name, patient_dob, patient_phone)

                # Only take the slot if it is still free
                cursor.execute(
                    """UPDATE slots SET is_booked = 1, patient_id = ?
                       WHERE id = ? AND is_booked = 0 AND is_blocked = 0""",
                    (patient_id, slot_id),
                )
                if cursor.rowcount != 1:
                    raise SlotConflictError(slot_time)
        except SlotConflictError:
            logger.info("Booking rejected for %s at %s on %s", doctor_id, slot_time, target_date)
            return BookingResult(False, SLOT_UNAVAILABLE_MESSAGE)

        logger.info("Booked slot %s (%s %s %s) for %s", slot_id, doctor_id, target_date, slot_time, patient_phone)
        self.store.persist()
        return BookingResult(True, BOOKED_MESSAGE, slot_id)

    def get_booked_appointments(self, date: str) -> list[BookedAppointment]:
        """Booked slots on a date with doctor and patient details."""
        cursor = self.store.connection.execute(
            """SELECT s.id AS slot_id, s.date, s.time, s.doctor_id,
                      d.name AS doctor_name, d.specialty, d.room_no, d.address,
                      p.name AS patient_name, p.phone AS patient_phone, p.dob AS patient_dob
               FROM slots s
               JOIN doctors d ON s.doctor_id = d.id
               LEFT JOIN patients p ON s.patient_id = p.id
               WHERE s.date = ? AND s.is_booked = 1
               ORDER BY d.name""",
            (date,),
        )
        appointments = [
            BookedAppointment(
                slot_id=row["slot_id"],
                date=row["date"],
                time=row["time"],
                doctor_id=row["doctor_id"],
                doctor_name=row["doctor_name"],
                specialty=row["specialty"] or "",
                room_no=row["room_no"] or "",
                address=row["address"] or "",
                patient_name=row["patient_name"] or "Unknown",
                patient_phone=row["patient_phone"] or "N/A",
                patient_dob=row["patient_dob"] or "N/A",
            )
            for row in cursor.fetchall()
        ]
        return sorted(appointments, key=lambda a: (a.doctor_name, slot_sort_key(a.time)))

    # Admin overrides

    def block_slot(self, slot_id: int, reason: str) -> bool:
        """Block a slot unless it is booked. Returns True if a slot was blocked."""
        with self.store.transaction() as cursor:
            cursor.execute(
                "UPDATE slots SET is_blocked = 1, blocked_reason = ? WHERE id = ? AND is_booked = 0",
                (reason, slot_id),
            )
            changed = cursor.rowcount > 0
        self.store.persist()
        return changed

    def unblock_slot(self, slot_id: int) -> bool:
        with self.store.transaction() as cursor:
            cursor.execute(
                "UPDATE slots SET is_blocked = 0, blocked_reason = NULL WHERE id = ?",
                (slot_id,),
            )
            changed = cursor.rowcount > 0
        self.store.persist()
        return changed

    def reset_slots(self, doctor_id: str) -> int:
        """Clear every booking and block for a doctor. Returns the number of slots touched."""
        with self.store.transaction() as cursor:
            cursor.execute(
                """UPDATE slots
                   SET is_booked = 0, is_blocked = 0, patient_id = NULL, blocked_reason = NULL
                   WHERE doctor_id = ?""",
                (doctor_id,),
            )
            count = cursor.rowcount
        logger.warning("Reset %d slots for %s", count, doctor_id)
        self.store.persist()
        return count

    def _row_to_slot(self, row) -> Slot:
        """Convert a database row to a Slot object."""
        keys = row.keys()
        return Slot(
            id=row["id"],
            doctor_id=row["doctor_id"],
            date=row["date"],
            time=row["time"],
            is_booked=bool(row["is_booked"]),
            is_blocked=bool(row["is_blocked"]),
            blocked_reason=row["blocked_reason"],
            patient_id=row["patient_id"],
            booked_by=row["booked_by"] if "booked_by" in keys else None,
            contact=row["contact"] if "contact" in keys else None,
            patient_dob=row["patient_dob"] if "patient_dob" in keys else None,
        )
