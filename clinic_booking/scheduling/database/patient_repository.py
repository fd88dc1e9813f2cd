"""Patient repository. Phone number is the identity key across visits."""

from .models import Patient


class PatientRepository:
    """Repository for patient records."""

    def __init__(self, store):
        self.store = store

    def upsert_by_phone(self, cursor, name: str, dob: str, phone: str) -> int:
        """Insert a patient or refresh name/DOB of the one with this phone.

        Runs on the caller's cursor so it joins the caller's transaction.
        Returns the patient id.
        """
        cursor.execute(
            """INSERT INTO patients (name, dob, phone) VALUES (?, ?, ?)
               ON CONFLICT(phone) DO UPDATE SET name = excluded.name, dob = excluded.dob""",
            (name, dob, phone),
        )
        cursor.execute("SELECT id FROM patients WHERE phone = ?", (phone,))
        return cursor.fetchone()["id"]

    def get_by_phone(self, phone: str) -> Patient | None:
        cursor = self.store.connection.execute("SELECT * FROM patients WHERE phone = ?", (phone,))
        row = cursor.fetchone()
        return self._row_to_patient(row) if row else None

    def get_by_id(self, patient_id: int) -> Patient | None:
        cursor = self.store.connection.execute("SELECT * FROM patients WHERE id = ?", (patient_id,))
        row = cursor.fetchone()
        return self._row_to_patient(row) if row else None

    def count(self) -> int:
        return self.store.connection.execute("SELECT COUNT(*) FROM patients").fetchone()[0]

    def _row_to_patient(self, row) -> Patient:
        return Patient(id=row["id"], name=row["name"], dob=row["dob"], phone=row["phone"])
