"""Shared pytest fixtures."""

import pytest
from unittest.mock import MagicMock

from clinic_booking import config
from clinic_booking.conversation import ConversationSession
from clinic_booking.notifications import SmsNotifier
from clinic_booking.scheduling.database.doctor_repository import DoctorRepository
from clinic_booking.scheduling.database.holiday_repository import HolidayRepository
from clinic_booking.scheduling.database.schedule_repository import ScheduleRepository
from clinic_booking.scheduling.database.store import ScheduleStore
from clinic_booking.scheduling.database.transcript_repository import TranscriptRepository
from clinic_booking.scheduling.database.user_repository import UserRepository
from clinic_booking.tools import AgentToolBridge, DisplayState


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the minimum bcrypt cost so seeding each store stays quick."""
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "storage"


@pytest.fixture
def store(storage_dir):
    """A freshly seeded store persisted under tmp_path."""
    store = ScheduleStore(storage_dir=storage_dir, db_path="test.db").open()
    yield store
    store.close()


@pytest.fixture
def schedules(store):
    return ScheduleRepository(store)


@pytest.fixture
def doctors(store):
    return DoctorRepository(store)


@pytest.fixture
def holidays(store):
    return HolidayRepository(store)


@pytest.fixture
def transcripts(store):
    return TranscriptRepository(store)


@pytest.fixture
def users(store):
    return UserRepository(store)


@pytest.fixture
def notifier():
    """Notifier that only records messages (no SMS gateway)."""
    return SmsNotifier(webhook_url="")


@pytest.fixture
def display():
    return DisplayState(selected_date="2025-03-04")


@pytest.fixture
def session():
    return ConversationSession()


@pytest.fixture
def bridge(store, display, session, notifier):
    return AgentToolBridge(store, display=display, session=session, notifier=notifier)


def make_completion(content=None, tool_calls=None):
    """Build a fake chat.completions.create response."""
    message = MagicMock()
    message.content = content
    message.tool_calls = tool_calls
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def make_tool_call(call_id, name, arguments):
    call = MagicMock()
    call.id = call_id
    call.function.name = name
    call.function.arguments = arguments
    return call


@pytest.fixture
def llm_client():
    """Mock OpenAI client to avoid API calls during tests."""
    return MagicMock()
