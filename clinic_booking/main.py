"""Clinic booking console: schedule view, admin commands and the booking agent."""

import logging
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.status import Status
from rich.table import Table

from clinic_booking import config
from clinic_booking.conversation import BookingAgent, ConversationSession
from clinic_booking.date_utils import format_display_date, format_display_datetime, is_iso_date
from clinic_booking.exports import write_bookings_csv, write_database_export, write_transcript_report
from clinic_booking.scheduling.database.doctor_repository import DoctorRepository
from clinic_booking.scheduling.database.holiday_repository import HolidayRepository
from clinic_booking.scheduling.database.models import AccessLevel, Doctor, User
from clinic_booking.scheduling.database.schedule_repository import ScheduleRepository
from clinic_booking.scheduling.database.store import ScheduleStore
from clinic_booking.scheduling.database.transcript_repository import TranscriptRepository
from clinic_booking.scheduling.database.user_repository import UserRepository
from clinic_booking.slot_generator import generate_daily_slots
from clinic_booking.tools import AgentToolBridge, DisplayState

console = Console()
logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 3

HELP_TEXT = """**Commands**

- `/schedule` - show the schedule for the selected date
- `/date YYYY-MM-DD` - change the selected date
- `/doctors` - list doctors
- `/book DOCTOR_ID "TIME" "NAME" PHONE DOB` - book a slot on the selected date
- `/export-csv [DIR]` - export the day's bookings
- `/export-transcript [DIR]` - save the current conversation
- `/transcripts`, `/transcript FILE_NAME` - list / show saved transcripts
- `/end` - end the agent conversation and save its transcript
- `/help`, `quit`

**Admin**

- `/block SLOT_ID REASON`, `/unblock SLOT_ID`, `/reset DOCTOR_ID`
- `/holiday DOCTOR_ID DATE [REASON]`, `/holidays`, `/holiday-edit ID DATE REASON`, `/holiday-remove ID`
- `/add-doctor ID "NAME" "SPECIALTY" "AVAILABILITY" "ROOM" "ADDRESS"`, `/delete-doctor ID`
- `/users`, `/add-user USERNAME PASSWORD ACCESS(1=Admin,2=Staff)`
- `/export-db [PATH]`, `/import-db PATH`, `/link PATH`

Anything else is sent to the booking agent."""


@dataclass
class ConsoleContext:
    """Everything a command handler needs."""
    store: ScheduleStore
    user: User
    display: DisplayState = field(default_factory=DisplayState)
    session: ConversationSession = field(default_factory=ConversationSession)
    agent: BookingAgent | None = None

    @property
    def schedules(self) -> ScheduleRepository:
        return ScheduleRepository(self.store)

    def get_agent(self) -> BookingAgent:
        if self.agent is None:
            bridge = AgentToolBridge(self.store, self.display, self.session)
            self.agent = BookingAgent(bridge, self.session)
        return self.agent


class CommandError(Exception):
    """Raised for bad command usage; shown to the user as-is."""
    pass


def _require(args: list[str], count: int, usage: str) -> None:
    if len(args) < count:
        raise CommandError(f"Usage: {usage}")


def _slot_cell(slot) -> str:
    if slot.is_booked:
        return f"[red]Booked[/red] {slot.booked_by or ''} (#{slot.id})"
    if slot.is_blocked:
        return f"[yellow]Blocked[/yellow] {slot.blocked_reason or ''} (#{slot.id})"
    return f"[green]Open[/green] (#{slot.id})"


def render_schedule(ctx: ConsoleContext) -> Table:
    """Grid of slot times (rows) by doctor (columns) for the selected date."""
    date = ctx.display.selected_date
    doctors = DoctorRepository(ctx.store).get_doctors()
    schedules = ctx.schedules.get_schedules(date)

    table = Table(title=f"Schedule for {format_display_date(date)}")
    table.add_column("Time", style="bold")
    for doctor in doctors:
        table.add_column(f"{doctor.name}\n{doctor.specialty}")

    for template in generate_daily_slots():
        row = [template.time]
        for doctor in doctors:
            schedule = schedules[doctor.id]
            if schedule.is_holiday:
                row.append(f"[dim]{schedule.holiday_reason}[/dim]")
                continue
            slot = next((s for s in schedule.slots if s.time == template.time), None)
            row.append(_slot_cell(slot) if slot else "-")
        table.add_row(*row)
    return table


# Staff commands

def handle_help(ctx: ConsoleContext, args: list[str]) -> str:
    return HELP_TEXT


def handle_schedule(ctx: ConsoleContext, args: list[str]) -> str:
    console.print(render_schedule(ctx))
    return ""


def handle_date(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/date YYYY-MM-DD")
    if not is_iso_date(args[0]):
        raise CommandError("Date must be YYYY-MM-DD")
    ctx.display.set_date(args[0])
    return handle_schedule(ctx, [])


def handle_doctors(ctx: ConsoleContext, args: list[str]) -> str:
    table = Table(title="Doctors")
    for column in ("ID", "Name", "Specialty", "Availability", "Room", "Address"):
        table.add_column(column)
    for d in DoctorRepository(ctx.store).get_doctors():
        table.add_row(d.id, d.name, d.specialty, d.availability, d.room_no, d.address)
    console.print(table)
    return ""


def handle_book(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 5, '/book DOCTOR_ID "TIME" "NAME" PHONE DOB')
    doctor_id, time, name, phone, dob = args[:5]
    result = ctx.schedules.book_slot(doctor_id, time, name, phone, dob, ctx.display.selected_date)
    if not result.success:
        raise CommandError(result.message)
    return f"Booked slot #{result.slot_id} for {name}."


def handle_export_csv(ctx: ConsoleContext, args: list[str]) -> str:
    date = ctx.display.selected_date
    appointments = ctx.schedules.get_booked_appointments(date)
    path = write_bookings_csv(args[0] if args else ".", date, appointments)
    if path is None:
        return "No booked appointments to export."
    return f"Exported {len(appointments)} bookings to `{path}`."


def handle_export_transcript(ctx: ConsoleContext, args: list[str]) -> str:
    path = write_transcript_report(args[0] if args else ".", ctx.session.full_transcript(), ctx.session.patient_name)
    return f"Transcript saved to `{path}`."


def handle_transcripts(ctx: ConsoleContext, args: list[str]) -> str:
    table = Table(title="Transcripts")
    for column in ("File", "Patient", "Slot", "Created"):
        table.add_column(column)
    for t in TranscriptRepository(ctx.store).get_transcripts():
        table.add_row(t.file_name, t.patient_name or "", str(t.slot_id or "-"), format_display_datetime(t.created_at))
    console.print(table)
    return ""


def handle_transcript(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/transcript FILE_NAME")
    return "```\n" + TranscriptRepository(ctx.store).get_transcript_content(args[0]) + "\n```"


def handle_end(ctx: ConsoleContext, args: list[str]) -> str:
    file_name = ctx.session.disconnect(ctx.store)
    ctx.session = ConversationSession()
    ctx.agent = None
    if file_name:
        return f"Conversation ended. Transcript recorded as `{file_name}`."
    return "Conversation ended."


# Admin commands

def handle_block(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 2, "/block SLOT_ID REASON")
    if not ctx.schedules.block_slot(int(args[0]), " ".join(args[1:])):
        raise CommandError("Slot not found or already booked.")
    return f"Slot #{args[0]} blocked."


def handle_unblock(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/unblock SLOT_ID")
    if not ctx.schedules.unblock_slot(int(args[0])):
        raise CommandError("Slot not found.")
    return f"Slot #{args[0]} unblocked."


def handle_reset(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/reset DOCTOR_ID")
    count = ctx.schedules.reset_slots(args[0])
    return f"Reset {count} slots for {args[0]}."


def handle_holiday(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 2, "/holiday DOCTOR_ID DATE [REASON]")
    doctor_id, date = args[0], args[1]
    if DoctorRepository(ctx.store).get_by_id(doctor_id) is None:
        raise CommandError(f"Unknown doctor {doctor_id}")
    if not is_iso_date(date):
        raise CommandError("Date must be YYYY-MM-DD")
    reason = " ".join(args[2:]) or "Vacation"
    holiday = HolidayRepository(ctx.store).add_holiday(doctor_id, date, reason)
    return f"Holiday #{holiday.id} added for {doctor_id} on {format_display_date(date)}."


def handle_holidays(ctx: ConsoleContext, args: list[str]) -> str:
    table = Table(title="Holidays")
    for column in ("ID", "Doctor", "Date", "Reason"):
        table.add_column(column)
    for h in HolidayRepository(ctx.store).get_holidays():
        table.add_row(str(h.id), h.doctor_name or h.doctor_id, format_display_date(h.holiday_date), h.reason or "")
    console.print(table)
    return ""


def handle_holiday_edit(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 3, "/holiday-edit ID DATE REASON")
    if not is_iso_date(args[1]):
        raise CommandError("Date must be YYYY-MM-DD")
    if not HolidayRepository(ctx.store).update_holiday(int(args[0]), args[1], " ".join(args[2:])):
        raise CommandError("Holiday not found or clashes with another holiday.")
    return f"Holiday #{args[0]} updated."


def handle_holiday_remove(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/holiday-remove ID")
    if not HolidayRepository(ctx.store).remove_holiday(int(args[0])):
        raise CommandError("Holiday not found.")
    return f"Holiday #{args[0]} removed."


def handle_add_doctor(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 6, '/add-doctor ID "NAME" "SPECIALTY" "AVAILABILITY" "ROOM" "ADDRESS"')
    doctor = Doctor(*args[:6])
    DoctorRepository(ctx.store).add_or_update(doctor)
    return f"Saved {doctor.name} ({doctor.weekly_pattern.name})."


def handle_delete_doctor(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/delete-doctor ID")
    if not DoctorRepository(ctx.store).delete(args[0]):
        raise CommandError(f"Unknown doctor {args[0]}")
    return f"Deleted {args[0]} with their slots and holidays."


def handle_users(ctx: ConsoleContext, args: list[str]) -> str:
    table = Table(title="Users")
    table.add_column("Username")
    table.add_column("Access")
    for u in UserRepository(ctx.store).get_all_users():
        table.add_row(u.username, u.access.name.title())
    console.print(table)
    return ""


def handle_add_user(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 3, "/add-user USERNAME PASSWORD ACCESS")
    try:
        access = AccessLevel(int(args[2]))
    except ValueError:
        raise CommandError("Access must be 1 (Admin) or 2 (Staff)")
    if not UserRepository(ctx.store).add_user(args[0], args[1], access):
        raise CommandError(f"Could not create user {args[0]} (already exists?)")
    return f"User {args[0]} created."


def handle_export_db(ctx: ConsoleContext, args: list[str]) -> str:
    path = write_database_export(ctx.store, args[0] if args else "Clinical_database.db")
    return f"Database exported to `{path}`."


def handle_import_db(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/import-db PATH")
    if not ctx.store.load_from_bytes(Path(args[0]).read_bytes()):
        raise CommandError("Import failed: not a usable SQLite database.")
    return "Local database restored."


def handle_link(ctx: ConsoleContext, args: list[str]) -> str:
    _require(args, 1, "/link PATH")
    if not ctx.store.link_mirror(args[0]):
        raise CommandError(f"Could not link {args[0]}")
    return f"Linked to `{args[0]}`."


COMMAND_HANDLERS = {
    "/help": handle_help,
    "/schedule": handle_schedule,
    "/date": handle_date,
    "/doctors": handle_doctors,
    "/book": handle_book,
    "/export-csv": handle_export_csv,
    "/export-transcript": handle_export_transcript,
    "/transcripts": handle_transcripts,
    "/transcript": handle_transcript,
    "/end": handle_end,
}

ADMIN_COMMAND_HANDLERS = {
    "/block": handle_block,
    "/unblock": handle_unblock,
    "/reset": handle_reset,
    "/holiday": handle_holiday,
    "/holidays": handle_holidays,
    "/holiday-edit": handle_holiday_edit,
    "/holiday-remove": handle_holiday_remove,
    "/add-doctor": handle_add_doctor,
    "/delete-doctor": handle_delete_doctor,
    "/users": handle_users,
    "/add-user": handle_add_user,
    "/export-db": handle_export_db,
    "/import-db": handle_import_db,
    "/link": handle_link,
}


def process_input(ctx: ConsoleContext, user_input: str) -> str:
    """Run a console command, or pass the message to the booking agent."""
    if not user_input.startswith("/"):
        return ctx.get_agent().respond(user_input)

    try:
        command, *args = shlex.split(user_input)
    except ValueError as e:
        raise CommandError(f"Could not parse command: {e}")

    if command in COMMAND_HANDLERS:
        return COMMAND_HANDLERS[command](ctx, args)
    if command in ADMIN_COMMAND_HANDLERS:
        if not ctx.user.is_admin:
            raise CommandError("That command requires admin access.")
        return ADMIN_COMMAND_HANDLERS[command](ctx, args)
    raise CommandError(f"Unknown command {command}. Type /help for the list.")


def login(store: ScheduleStore) -> User | None:
    users = UserRepository(store)
    for _ in range(MAX_LOGIN_ATTEMPTS):
        username = console.input("[bold]Username:[/bold] ").strip()
        password = console.input("[bold]Password:[/bold] ", password=True)
        user = users.authenticate(username, password)
        if user:
            return user
        console.print("[bold red]Invalid username or password.[/bold red]")
    return None


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def main():
    """Main console loop."""
    configure_logging()

    with ScheduleStore(mirror_path=config.MIRROR_PATH) as store:
        console.print(f"[bold blue]{config.CLINIC_NAME} - Appointment Console[/bold blue]")

        try:
            user = login(store)
        except (EOFError, KeyboardInterrupt):
            user = None
        if user is None:
            console.print("[bold blue]Goodbye![/bold blue]")
            return

        ctx = ConsoleContext(store=store, user=user)
        ctx.display.listeners.append(
            lambda date: console.print(f"[dim]Showing {format_display_date(date)}[/dim]")
        )
        console.print(f"Signed in as [bold]{user.username}[/bold] ({user.access.name.title()}).")
        console.print("Type '/help' for commands, 'quit' or 'exit' to leave.\n")
        handle_schedule(ctx, [])

        is_tty = sys.stdin.isatty()

        while True:
            try:
                user_input = console.input("[bold green]You:[/bold green] ").strip()
                # Echo input when stdin is piped (not interactive)
                if not is_tty and user_input:
                    console.print(f"[dim]{user_input}[/dim]")
            except (EOFError, KeyboardInterrupt):
                break

            if not user_input:
                continue

            if user_input.lower() in ("quit", "exit"):
                break

            try:
                with Status("Working...", console=console, spinner="dots"):
                    response = process_input(ctx, user_input)
                if response:
                    console.print(Markdown(response), "\n")
            except CommandError as e:
                console.print(f"[bold red]{e}[/bold red]\n")
            except Exception as e:
                logger.exception("Command failed")
                console.print(f"[bold red]Error:[/bold red] {e}\n")

        handle_end(ctx, [])
        console.print("[bold blue]Goodbye![/bold blue]")


if __name__ == "__main__":
    main()
