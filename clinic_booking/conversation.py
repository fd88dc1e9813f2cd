"""Conversation sessions and the LLM booking agent."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime

from openai import OpenAI

from clinic_booking import config
from clinic_booking.date_utils import today
from clinic_booking.scheduling.database.transcript_repository import TranscriptRepository
from clinic_booking.tools import TOOLS, AgentToolBridge

logger = logging.getLogger(__name__)

# A conversation is worth keeping once it has this many turns
MIN_TURNS_TO_SAVE = 4

ROLE_LABELS = {"user": "PATIENT", "model": "AGENT"}

# Keep printable ASCII and Latin-1 accented characters
_UNPRINTABLE_RE = re.compile(r"[^\x20-\x7E\xA0-\xFF]")


def clean_text(text: str) -> str:
    return _UNPRINTABLE_RE.sub("", text or "").strip()


@dataclass
class TranscriptTurn:
    role: str  # "user" or "model"
    text: str
    timestamp: datetime = field(default_factory=datetime.now)
    is_final: bool = True


@dataclass
class ConversationSession:
    """Transcript of one agent conversation plus what we learned along the way."""
    turns: list[TranscriptTurn] = field(default_factory=list)
    patient_name: str = ""
    transcript_file_name: str | None = None

    def add_turn(self, text: str, role: str, is_final: bool = True) -> None:
        """Record speech. A pending (non-final) turn of the same role is extended in place."""
        cleaned = clean_text(text)
        if self.turns:
            last = self.turns[-1]
            if last.role == role and not last.is_final:
                last.text = cleaned or last.text
                last.is_final = is_final
                return
        if not cleaned:
            return
        self.turns.append(TranscriptTurn(role=role, text=cleaned, is_final=is_final))

    def full_transcript(self) -> str:
        return "\n".join(
            f"{ROLE_LABELS.get(turn.role, turn.role.upper())}: {turn.text}"
            for turn in self.turns
            if turn.is_final
        )

    def save_partial_transcript(self, store) -> str | None:
        """Persist the conversation so far if it is long enough. Returns the file name."""
        if len(self.turns) < MIN_TURNS_TO_SAVE:
            return None
        self.transcript_file_name = TranscriptRepository(store).save_transcript(
            None,
            self.patient_name or "Partial",
            self.full_transcript(),
            self.transcript_file_name,
        )
        logger.info("Transcript recorded: %s", self.transcript_file_name)
        return self.transcript_file_name

    def disconnect(self, store) -> str | None:
        """End the conversation: flush the transcript and forget the patient."""
        for turn in self.turns:
            turn.is_final = True
        file_name = self.save_partial_transcript(store)
        self.patient_name = ""
        self.transcript_file_name = None
        return file_name


def build_system_prompt(date: str | None = None) -> str:
    return f"""You are the scheduling assistant for {config.CLINIC_NAME}.
You help patients book appointments with our doctors.

TODAY: {date or today()}
CLINIC HOURS: {config.CLINIC_HOURS}
CLINIC PHONE: {config.CLINIC_PHONE}

HOW TO BOOK:
- Use get_doctors to find a doctor (filter by specialty when the patient names one)
- Use get_slots to check a doctor's open times on a date; resolve relative dates like "next Friday" to YYYY-MM-DD
- Collect the patient's full name, phone number and date of birth before calling book_slot
- Use slot times exactly as get_slots returned them

RULES:
- Keep responses very brief and professional
- Do not repeat patient details unless confirming
- If a tool returns an error or a booking fails, explain it and offer alternatives
- After booking, confirm doctor, date, time and location"""


class BookingAgent:
    """Chat agent that books appointments through the tool bridge."""

    def __init__(
        self,
        bridge: AgentToolBridge,
        session: ConversationSession | None = None,
        client: OpenAI | None = None,
        model: str | None = None,
        max_tool_rounds: int | None = None,
    ):
        self.bridge = bridge
        self.session = session or bridge.session or ConversationSession()
        self.bridge.session = self.session
        self.client = client or OpenAI(api_key=config.OPENAI_API_KEY)
        self.model = model or config.LLM_MODEL
        self.max_tool_rounds = max_tool_rounds or config.AGENT_MAX_TOOL_ROUNDS
        self.messages: list[dict] = [
            {"role": "system", "content": build_system_prompt(bridge.display.selected_date)},
        ]

    def respond(self, user_input: str) -> str:
        """Handle one patient message, running any tool calls the model asks for."""
        self.session.add_turn(user_input, "user")
        self.messages.append({"role": "user", "content": user_input})

        for _ in range(self.max_tool_rounds):
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self.messages,
                tools=TOOLS,
                max_completion_tokens=1024,
            )
            message = response.choices[0].message
            tool_calls = message.tool_calls or []

            if not tool_calls:
                reply = message.content or ""
                if not reply.strip():
                    reply = "I'm sorry, could you please repeat that?"
                self.messages.append({"role": "assistant", "content": reply})
                self.session.add_turn(reply, "model")
                return reply

            self.messages.append({
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.function.name, "arguments": call.function.arguments},
                    }
                    for call in tool_calls
                ],
            })
            for call in tool_calls:
                result = self.bridge.handle_tool_call(call.function.name, call.function.arguments)
                self.messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(result),
                })

        logger.warning("Agent hit the tool round limit (%d)", self.max_tool_rounds)
        reply = "I'm sorry, I couldn't complete that. Could you tell me again what you need?"
        self.session.add_turn(reply, "model")
        return reply

    def disconnect(self) -> str | None:
        return self.session.disconnect(self.bridge.store)
