"""Configuration loaded from the environment (and a .env file if present)."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=True)

# Persistence
SQLITE_DB_PATH = os.environ.get("SQLITE_DB_PATH", "db/Clinical_database.db")
STORAGE_DIR = Path(os.environ.get("CLINIC_STORAGE_DIR", ".clinic_storage"))
MIRROR_PATH = os.environ.get("CLINIC_MIRROR_PATH") or None

# LLM agent
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
LLM_MODEL = os.environ.get("LLM_MODEL", "gpt-4o-mini")
AGENT_MAX_TOOL_ROUNDS = int(os.environ.get("AGENT_MAX_TOOL_ROUNDS", "5"))

# Notifications - leave unset to only simulate the SMS
SMS_WEBHOOK_URL = os.environ.get("SMS_WEBHOOK_URL") or None
SMS_TIMEOUT_SECONDS = float(os.environ.get("SMS_TIMEOUT_SECONDS", "10"))

# Clinic details
CLINIC_NAME = os.environ.get("CLINIC_NAME", "Upstate Medical")
CLINIC_PHONE = os.environ.get("CLINIC_PHONE", "+1 478-900-3017")
CLINIC_HOURS = "8:00 AM - 4:00 PM"

# Transcripts are stored under this virtual folder
TRANSCRIPT_FOLDER = "Db"

# bcrypt cost factor for login passwords
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
