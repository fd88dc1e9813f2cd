"""Records held by the schedule store."""

from dataclasses import dataclass, field
from enum import IntEnum

from clinic_booking.availability import WeeklyPattern


class AccessLevel(IntEnum):
    ADMIN = 1
    STAFF = 2


@dataclass
class Doctor:
    id: str
    name: str
    specialty: str = ""
    availability: str = "Mon-Fri"
    room_no: str = "Room 101"
    address: str = "Medical Center"

    @property
    def weekly_pattern(self) -> WeeklyPattern:
        return WeeklyPattern.from_label(self.availability)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "specialty": self.specialty,
            "availability": self.availability,
            "room_no": self.room_no,
            "address": self.address,
        }


@dataclass
class Patient:
    id: int | None
    name: str
    dob: str
    phone: str


@dataclass
class Slot:
    id: int | None
    doctor_id: str
    date: str
    time: str
    is_booked: bool = False
    is_blocked: bool = False
    blocked_reason: str | None = None
    patient_id: int | None = None
    # Joined from patients for booked slots
    booked_by: str | None = None
    contact: str | None = None
    patient_dob: str | None = None

    @property
    def is_available(self) -> bool:
        return not self.is_booked and not self.is_blocked


@dataclass
class Holiday:
    id: int
    doctor_id: str
    holiday_date: str
    reason: str | None = None
    doctor_name: str | None = None


@dataclass
class DoctorSchedule:
    doctor_id: str
    date: str
    slots: list[Slot] = field(default_factory=list)
    is_holiday: bool = False
    holiday_reason: str | None = None


@dataclass
class BookedAppointment:
    """A booked slot with everything needed for exports and confirmations."""
    slot_id: int
    date: str
    time: str
    doctor_id: str
    doctor_name: str
    specialty: str
    room_no: str
    address: str
    patient_name: str
    patient_phone: str
    patient_dob: str


@dataclass
class Transcript:
    id: int
    slot_id: int | None
    patient_name: str
    file_name: str
    file_path: str
    created_at: str | None = None


@dataclass
class User:
    username: str
    access: AccessLevel

    @property
    def is_admin(self) -> bool:
        return self.access == AccessLevel.ADMIN
