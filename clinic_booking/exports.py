"""Exports: booked appointments as CSV, transcript reports, raw database file."""

import csv
import io
from datetime import datetime
from pathlib import Path

from clinic_booking.date_utils import format_display_date
from clinic_booking.scheduling.database.models import BookedAppointment

CSV_HEADERS = ["Patient Name", "Phone", "DOB", "Doctor", "Specialty", "Date", "Time", "Room", "Address"]

REPORT_RULE = "=" * 48


def bookings_csv(appointments: list[BookedAppointment]) -> str:
    """CSV text with one quoted row per booked appointment."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for appt in appointments:
        writer.writerow([
            appt.patient_name,
            appt.patient_phone,
            appt.patient_dob,
            appt.doctor_name,
            appt.specialty,
            format_display_date(appt.date),
            appt.time,
            appt.room_no,
            appt.address,
        ])
    return buffer.getvalue()


def bookings_file_name(date: str) -> str:
    return f"Clinical_Bookings_{format_display_date(date)}.csv"


def write_bookings_csv(directory: str | Path, date: str, appointments: list[BookedAppointment]) -> Path | None:
    """Write the day's bookings. Returns None when there is nothing to export."""
    if not appointments:
        return None
    path = Path(directory) / bookings_file_name(date)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(bookings_csv(appointments), encoding="utf-8")
    return path


def transcript_report(transcript: str, session_date: datetime | None = None) -> str:
    """Plain-text transcript with a header block."""
    return (
        "CLINICAL APPOINTMENT TRANSCRIPT\n"
        f"{REPORT_RULE}\n"
        f"Session Date: {format_display_date(session_date or datetime.now())}\n"
        f"{REPORT_RULE}\n\n"
        f"{transcript}"
    )


def write_transcript_report(directory: str | Path, transcript: str, patient_name: str = "") -> Path:
    stamp = int(datetime.now().timestamp() * 1000)
    path = Path(directory) / f"{stamp}_{patient_name or 'Transcript'}.txt"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(transcript_report(transcript), encoding="utf-8")
    return path


def write_database_export(store, path: str | Path) -> Path:
    """Save the raw SQLite file for the current database."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(store.export_database())
    return path
