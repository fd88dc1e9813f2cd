"""Transcript repository: conversation records and their stored text."""

import logging
import time
import uuid

from clinic_booking import config

from .models import Transcript

logger = logging.getLogger(__name__)

MISSING_CONTENT = "Error: File content not found in virtual storage."


class TranscriptRepository:
    """Repository for agent conversation transcripts."""

    def __init__(self, store):
        self.store = store

    def save_transcript(
        self,
        slot_id: int | None,
        patient_name: str,
        transcript: str,
        existing_file_name: str | None = None,
    ) -> str:
        """Create a transcript, or update the one named ``existing_file_name``.

        An update only overwrites slot_id when one is given, so a transcript
        stays linked to its booking. Returns the file name.
        """
        file_name = existing_file_name or self._new_file_name()
        file_path = f"{config.TRANSCRIPT_FOLDER}/{file_name}"

        with self.store.transaction() as cursor:
            if existing_file_name:
                if slot_id is not None:
                    cursor.execute(
                        "UPDATE transcripts SET slot_id = ?, patient_name = ? WHERE file_name = ?",
                        (slot_id, patient_name, file_name),
                    )
                else:
                    cursor.execute(
                        "UPDATE transcripts SET patient_name = ? WHERE file_name = ?",
                        (patient_name, file_name),
                    )
                if cursor.rowcount == 0:
                    # The record was lost (e.g. database reloaded), recreate it
                    self._insert(cursor, slot_id, patient_name, file_name, file_path)
            else:
                self._insert(cursor, slot_id, patient_name, file_name, file_path)

            cursor.execute(
                "INSERT OR REPLACE INTO file_storage (file_name, content) VALUES (?, ?)",
                (file_name, transcript),
            )
        self.store.persist()
        return file_name

    def get_transcript_content(self, file_name: str) -> str:
        row = self.store.connection.execute(
            "SELECT content FROM file_storage WHERE file_name = ?", (file_name,)
        ).fetchone()
        return row["content"] if row else MISSING_CONTENT

    def get_transcripts(self) -> list[Transcript]:
        cursor = self.store.connection.execute(
            "SELECT * FROM transcripts ORDER BY created_at DESC, id DESC"
        )
        return [self._row_to_transcript(row) for row in cursor.fetchall()]

    def get_by_file_name(self, file_name: str) -> Transcript | None:
        row = self.store.connection.execute(
            "SELECT * FROM transcripts WHERE file_name = ?", (file_name,)
        ).fetchone()
        return self._row_to_transcript(row) if row else None

    def _insert(self, cursor, slot_id, patient_name, file_name, file_path) -> None:
        cursor.execute(
            "INSERT INTO transcripts (slot_id, patient_name, file_name, file_path) VALUES (?, ?, ?, ?)",
            (slot_id, patient_name, file_name, file_path),
        )

    def _new_file_name(self) -> str:
        return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}_Transcript.txt"

    def _row_to_transcript(self, row) -> Transcript:
        return Transcript(
            id=row["id"],
            slot_id=row["slot_id"],
            patient_name=row["patient_name"],
            file_name=row["file_name"],
            file_path=row["file_path"],
            created_at=row["created_at"],
        )
