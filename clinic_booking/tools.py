"""Tool definitions and execution for the booking agent."""

import json
import logging
from dataclasses import dataclass, field
from typing import Callable

from pydantic import BaseModel, Field, ValidationError, field_validator

from clinic_booking.date_utils import format_display_date, is_iso_date, today
from clinic_booking.notifications import NotificationError, SmsNotifier
from clinic_booking.scheduling.database.doctor_repository import DoctorRepository
from clinic_booking.scheduling.database.schedule_repository import ScheduleRepository
from clinic_booking.scheduling.database.transcript_repository import TranscriptRepository
from clinic_booking.slot_generator import normalize_slot_time

logger = logging.getLogger(__name__)

# Tool definitions for OpenAI API
TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "get_doctors",
            "description": "Query for medical staff based on specialty. Omit specialty to list every doctor.",
            "parameters": {
                "type": "object",
                "properties": {
                    "specialty": {
                        "type": "string",
                        "description": "Specialty to search for, e.g. 'Cardiologist'"
                    }
                },
                "required": [],
                "additionalProperties": False
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": "get_slots",
            "description": "Query availability for a specific doctor on a specific date (YYYY-MM-DD).",
            "parameters": {
                "type": "object",
                "properties": {
                    "doctor_id": {"type": "string"},
                    "date": {
                        "type": "string",
                        "description": "Format: YYYY-MM-DD. Calculate the date from relative terms like 'next Friday'."
                    }
                },
                "required": ["doctor_id"],
                "additionalProperties": False
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": "book_slot",
            "description": "Commit an appointment booking. Requires date and full patient profile.",
            "parameters": {
                "type": "object",
                "properties": {
                    "doctor_id": {"type": "string"},
                    "slot_time": {"type": "string", "description": "Slot time exactly as listed, e.g. '09:00 AM'"},
                    "date": {"type": "string", "description": "Format: YYYY-MM-DD"},
                    "patient_name": {"type": "string"},
                    "patient_phone": {"type": "string"},
                    "patient_dob": {"type": "string", "description": "Date of Birth in YYYY-MM-DD"}
                },
                "required": ["doctor_id", "slot_time", "date", "patient_name", "patient_phone", "patient_dob"],
                "additionalProperties": False
            }
        }
    }
]


def _check_date(v):
    """Blank means "use the displayed date"; anything else must be YYYY-MM-DD."""
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    v = str(v).strip()
    if not is_iso_date(v):
        raise ValueError("date must be YYYY-MM-DD")
    return v


class GetDoctorsArgs(BaseModel):
    specialty: str | None = Field(None, description="Specialty substring to filter on")

    @field_validator("specialty", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class GetSlotsArgs(BaseModel):
    doctor_id: str = Field(..., min_length=1)
    date: str | None = Field(None, description="YYYY-MM-DD")

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, v):
        return _check_date(v)


class BookSlotArgs(BaseModel):
    doctor_id: str = Field(..., min_length=1)
    slot_time: str = Field(..., min_length=1)
    date: str | None = Field(None, description="YYYY-MM-DD")
    patient_name: str = Field(..., min_length=1)
    patient_phone: str = Field(..., min_length=1)
    patient_dob: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, v):
        return _check_date(v)

    @field_validator("slot_time", mode="before")
    @classmethod
    def normalize_time(cls, v):
        """Accept '9am' or '9:00 a.m.' for '09:00 AM'."""
        return normalize_slot_time(str(v).strip()) if v is not None else v

    @field_validator("patient_name", "patient_phone", "patient_dob", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


@dataclass
class DisplayState:
    """The date the console is showing. Tool calls keep it in step with the agent."""
    selected_date: str = field(default_factory=today)
    listeners: list[Callable[[str], None]] = field(default_factory=list)

    def set_date(self, date: str) -> None:
        if date == self.selected_date:
            return
        self.selected_date = date
        for listener in self.listeners:
            listener(date)


class AgentToolBridge:
    """Executes the agent's tool calls against the schedule store."""

    def __init__(self, store, display: DisplayState | None = None, session=None, notifier: SmsNotifier | None = None):
        self.store = store
        self.display = display or DisplayState()
        self.session = session
        self.notifier = notifier or SmsNotifier()
        self.doctors = DoctorRepository(store)
        self.schedules = ScheduleRepository(store)
        self.transcripts = TranscriptRepository(store)
        self.handlers = {
            "get_doctors": (GetDoctorsArgs, self.get_doctors),
            "get_slots": (GetSlotsArgs, self.get_slots),
            "book_slot": (BookSlotArgs, self.book_slot),
        }

    def handle_tool_call(self, name: str, args: dict | str | None) -> dict | list:
        """Run one tool call and return a JSON-serializable result.

        Failures come back as {"error": ...} so the agent can relay them.
        """
        logger.info("Executing tool: %s", name)
        if name not in self.handlers:
            return {"error": "Unknown tool call"}

        if isinstance(args, str):
            try:
                args = json.loads(args) if args.strip() else {}
            except json.JSONDecodeError:
                return {"error": "Tool arguments are not valid JSON"}
        args = args or {}

        model, handler = self.handlers[name]
        try:
            parsed = model.model_validate(args)
        except ValidationError as e:
            return {"error": f"Invalid arguments for {name}: {e.errors()[0]['msg']}"}

        self._sync_side_effects(parsed)
        return handler(parsed)

    def get_doctors(self, args: GetDoctorsArgs) -> list[dict]:
        return [d.to_dict() for d in self.doctors.find_by_specialty(args.specialty)]

    def get_slots(self, args: GetSlotsArgs) -> list[dict] | dict:
        target_date = args.date or self.display.selected_date
        availability = self.schedules.ensure_slots_for_date(args.doctor_id, target_date)
        if not availability.available:
            return {"error": f"Doctor unavailable on {format_display_date(target_date)}: {availability.reason}"}

        return [
            {"time": s.time, "is_available": s.is_available}
            for s in self.schedules.get_slots(args.doctor_id, target_date)
        ]

    def book_slot(self, args: BookSlotArgs) -> dict:
        target_date = args.date or self.display.selected_date
        result = self.schedules.book_slot(
            args.doctor_id,
            args.slot_time,
            args.patient_name,
            args.patient_phone,
            args.patient_dob,
            target_date,
        )
        if result.success and result.slot_id is not None:
            self._commit_transcript(result.slot_id, args.patient_name)
            self._notify(args, target_date)
        return result.to_dict()

    # Private helpers

    def _sync_side_effects(self, args: BaseModel) -> None:
        """Follow the agent's date and remember who we're talking to."""
        date = getattr(args, "date", None)
        if date and date != self.display.selected_date:
            logger.info("Syncing display to requested date: %s", format_display_date(date))
            self.display.set_date(date)

        patient_name = getattr(args, "patient_name", None)
        if patient_name and self.session is not None:
            self.session.patient_name = patient_name

    def _commit_transcript(self, slot_id: int, patient_name: str) -> None:
        if self.session is None:
            return
        file_name = self.transcripts.save_transcript(
            slot_id,
            patient_name,
            self.session.full_transcript(),
            self.session.transcript_file_name,
        )
        self.session.transcript_file_name = file_name
        logger.info("Transcript committed: %s", file_name)

    def _notify(self, args: BookSlotArgs, date: str) -> None:
        doctor = self.doctors.get_by_id(args.doctor_id)
        if doctor is None:
            return
        try:
            self.notifier.send_confirmation(doctor, args.patient_name, args.patient_phone, args.slot_time, date)
        except NotificationError as e:
            logger.error("Confirmation SMS to %s failed: %s", args.patient_phone, e)


def execute_tool(bridge: AgentToolBridge, name: str, arguments: str) -> str:
    """Execute a tool call and return results as JSON."""
    return json.dumps(bridge.handle_tool_call(name, arguments))
