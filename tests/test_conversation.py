"""Tests for conversation sessions and the booking agent loop."""

import json

from clinic_booking.conversation import (
    MIN_TURNS_TO_SAVE,
    BookingAgent,
    ConversationSession,
    build_system_prompt,
    clean_text,
)
from clinic_booking.tools import TOOLS

from conftest import make_completion, make_tool_call

TUESDAY = "2025-03-04"


class TestConversationSession:
    """Tests for transcript accumulation."""

    def test_full_transcript_labels(self):
        session = ConversationSession()
        session.add_turn("Hi, I need a cardiologist", "user")
        session.add_turn("Sure. Which day?", "model")
        assert session.full_transcript() == "PATIENT: Hi, I need a cardiologist\nAGENT: Sure. Which day?"

    def test_pending_turn_is_extended(self):
        session = ConversationSession()
        session.add_turn("I need", "user", is_final=False)
        session.add_turn("I need a doctor", "user", is_final=True)
        assert len(session.turns) == 1
        assert session.turns[0].text == "I need a doctor"

    def test_non_final_turns_excluded(self):
        session = ConversationSession()
        session.add_turn("Hello", "user")
        session.add_turn("Hel", "model", is_final=False)
        assert session.full_transcript() == "PATIENT: Hello"

    def test_blank_turns_ignored(self):
        session = ConversationSession()
        session.add_turn("   ", "user")
        assert session.turns == []

    def test_clean_text(self):
        assert clean_text("  café ☃ ok ") == "café  ok"


class TestSavingTranscripts:
    """Tests for partial saves and disconnect."""

    def _fill(self, session, count):
        for i in range(count):
            session.add_turn(f"message {i}", "user" if i % 2 == 0 else "model")

    def test_short_conversation_not_saved(self, store, transcripts):
        session = ConversationSession()
        self._fill(session, MIN_TURNS_TO_SAVE - 1)
        assert session.save_partial_transcript(store) is None
        assert transcripts.get_transcripts() == []

    def test_partial_save_reuses_file(self, store, transcripts):
        session = ConversationSession()
        self._fill(session, MIN_TURNS_TO_SAVE)
        first = session.save_partial_transcript(store)
        session.add_turn("one more", "user")
        second = session.save_partial_transcript(store)

        assert first == second
        records = transcripts.get_transcripts()
        assert len(records) == 1
        assert records[0].patient_name == "Partial"
        assert transcripts.get_transcript_content(first).endswith("PATIENT: one more")

    def test_disconnect_resets_identity(self, store, transcripts):
        session = ConversationSession(patient_name="Jane Doe")
        self._fill(session, MIN_TURNS_TO_SAVE)
        file_name = session.disconnect(store)

        assert transcripts.get_by_file_name(file_name).patient_name == "Jane Doe"
        assert session.patient_name == ""
        assert session.transcript_file_name is None


class TestSystemPrompt:
    def test_includes_date_and_clinic(self):
        prompt = build_system_prompt(TUESDAY)
        assert f"TODAY: {TUESDAY}" in prompt
        assert "book_slot" in prompt


class TestBookingAgent:
    """Tests for the agent's tool-calling loop (LLM mocked)."""

    def test_plain_reply(self, bridge, llm_client):
        llm_client.chat.completions.create.return_value = make_completion("Hello! How can I help?")
        agent = BookingAgent(bridge, client=llm_client)

        assert agent.respond("hi") == "Hello! How can I help?"
        kwargs = llm_client.chat.completions.create.call_args.kwargs
        assert kwargs["tools"] == TOOLS
        assert kwargs["messages"][0]["role"] == "system"
        assert agent.session.full_transcript() == "PATIENT: hi\nAGENT: Hello! How can I help?"

    def test_tool_call_then_reply(self, bridge, llm_client, notifier):
        booking = {
            "doctor_id": "dr_smith",
            "slot_time": "10:00 AM",
            "date": TUESDAY,
            "patient_name": "Jane Doe",
            "patient_phone": "555-1234",
            "patient_dob": "1990-01-01",
        }
        llm_client.chat.completions.create.side_effect = [
            make_completion(tool_calls=[make_tool_call("call_1", "book_slot", json.dumps(booking))]),
            make_completion("You're booked with Dr. Smith at 10:00 AM."),
        ]
        agent = BookingAgent(bridge, client=llm_client)

        reply = agent.respond("Book me with Dr. Smith at 10 on Tuesday. Jane Doe, 555-1234, 1990-01-01")

        assert reply == "You're booked with Dr. Smith at 10:00 AM."
        tool_message = next(m for m in agent.messages if m["role"] == "tool")
        assert tool_message["tool_call_id"] == "call_1"
        assert json.loads(tool_message["content"])["success"] is True
        assert len(notifier.sent) == 1
        assert bridge.session.transcript_file_name is not None

    def test_empty_reply_fallback(self, bridge, llm_client):
        llm_client.chat.completions.create.return_value = make_completion("  ")
        agent = BookingAgent(bridge, client=llm_client)
        assert agent.respond("hi") == "I'm sorry, could you please repeat that?"

    def test_tool_round_limit(self, bridge, llm_client):
        llm_client.chat.completions.create.return_value = make_completion(
            tool_calls=[make_tool_call("call_x", "get_doctors", "{}")]
        )
        agent = BookingAgent(bridge, client=llm_client, max_tool_rounds=2)

        reply = agent.respond("who works here?")

        assert reply.startswith("I'm sorry, I couldn't complete that")
        assert llm_client.chat.completions.create.call_count == 2

    def test_disconnect_saves_transcript(self, bridge, llm_client, transcripts):
        llm_client.chat.completions.create.return_value = make_completion("Okay.")
        agent = BookingAgent(bridge, client=llm_client)
        agent.respond("hi")
        agent.respond("I need an appointment")

        file_name = agent.disconnect()

        assert file_name is not None
        assert "AGENT: Okay." in transcripts.get_transcript_content(file_name)
