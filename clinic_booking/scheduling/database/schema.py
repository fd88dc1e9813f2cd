"""
Clinic Scheduling Database Schema
Supports doctors, lazily generated slots, bookings, holidays and transcripts.
"""

SCHEMA = """
-- =============================================================================
-- 1. USERS - Console logins (access: 1 = Admin, 2 = Staff)
-- =============================================================================
CREATE TABLE IF NOT EXISTS users (
    username TEXT PRIMARY KEY,
    password_hash TEXT NOT NULL,
    access INTEGER NOT NULL DEFAULT 2
);


-- =============================================================================
-- 2. DOCTORS - Medical staff with a weekly availability pattern
-- =============================================================================
CREATE TABLE IF NOT EXISTS doctors (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    specialty TEXT,
    availability TEXT,  -- "Mon-Fri", "Tue-Sat", ...
    room_no TEXT,
    address TEXT
);


-- =============================================================================
-- 3. PATIENTS - De-duplicated by phone number
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    dob TEXT,
    phone TEXT NOT NULL UNIQUE
);


-- =============================================================================
-- 4. SLOTS - 30-minute units, created on first access to a doctor/date
-- =============================================================================
-- patient_id is set only while is_booked = 1
CREATE TABLE IF NOT EXISTS slots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    doctor_id TEXT NOT NULL,
    date TEXT NOT NULL,
    time TEXT NOT NULL,
    is_booked INTEGER NOT NULL DEFAULT 0,
    is_blocked INTEGER NOT NULL DEFAULT 0,
    blocked_reason TEXT,
    patient_id INTEGER,

    FOREIGN KEY (doctor_id) REFERENCES doctors(id),
    FOREIGN KEY (patient_id) REFERENCES patients(id)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_slots_doctor_date_time ON slots(doctor_id, date, time);
CREATE INDEX IF NOT EXISTS idx_slots_date ON slots(date);
CREATE INDEX IF NOT EXISTS idx_slots_patient ON slots(patient_id);


-- =============================================================================
-- 5. HOLIDAYS - Full-day unavailability for one doctor
-- =============================================================================
CREATE TABLE IF NOT EXISTS holidays (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    doctor_id TEXT NOT NULL,
    holiday_date TEXT NOT NULL,
    reason TEXT DEFAULT 'Vacation',

    FOREIGN KEY (doctor_id) REFERENCES doctors(id)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_holidays_doctor_date ON holidays(doctor_id, holiday_date);


-- =============================================================================
-- 6. TRANSCRIPTS - Agent conversation records, linked to a slot once booked
-- =============================================================================
CREATE TABLE IF NOT EXISTS transcripts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slot_id INTEGER,
    patient_name TEXT,
    file_name TEXT NOT NULL UNIQUE,
    file_path TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (slot_id) REFERENCES slots(id)
);

CREATE INDEX IF NOT EXISTS idx_transcripts_slot ON transcripts(slot_id);


-- =============================================================================
-- 7. FILE_STORAGE - Transcript text, keyed by file name
-- =============================================================================
CREATE TABLE IF NOT EXISTS file_storage (
    file_name TEXT PRIMARY KEY,
    content TEXT
);
"""
