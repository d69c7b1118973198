"""Database schema helpers for the attendance dashboard."""

from __future__ import annotations

from typing import Iterable

from .db_access import get_cursor

_SCHOOLS_SQL = """
CREATE TABLE IF NOT EXISTS schools (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    address TEXT NOT NULL DEFAULT '',
    npsn TEXT NOT NULL DEFAULT '',
    principal_name TEXT NOT NULL DEFAULT '',
    principal_nip TEXT,
    created_by INTEGER,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_DASHBOARD_USERS_SQL = """
CREATE TABLE IF NOT EXISTS dashboard_users (
    id SERIAL PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    full_name TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    role TEXT,
    school_id TEXT REFERENCES schools(id) ON DELETE SET NULL,
    student_id INTEGER,
    nip TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_login_at TIMESTAMPTZ,
    CONSTRAINT dashboard_users_role_check CHECK (role IS NULL OR role IN ('admin', 'teacher', 'student'))
);
"""

_SCHOOL_CLASSES_SQL = """
CREATE TABLE IF NOT EXISTS school_classes (
    id SERIAL PRIMARY KEY,
    school_id TEXT NOT NULL REFERENCES schools(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    level TEXT,
    room TEXT,
    teacher_name TEXT,
    teacher_nip TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (school_id, name)
);
"""

_STUDENTS_SQL = """
CREATE TABLE IF NOT EXISTS students (
    id SERIAL PRIMARY KEY,
    school_id TEXT NOT NULL REFERENCES schools(id) ON DELETE CASCADE,
    class_name TEXT,
    full_name TEXT NOT NULL,
    nisn TEXT,
    gender TEXT,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_STUDENTS_SCHOOL_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_students_school_class
ON students (school_id, class_name);
"""

_ATTENDANCE_RECORDS_SQL = """
CREATE TABLE IF NOT EXISTS attendance_records (
    id SERIAL PRIMARY KEY,
    school_id TEXT NOT NULL REFERENCES schools(id) ON DELETE CASCADE,
    student_id INTEGER NOT NULL REFERENCES students(id) ON DELETE CASCADE,
    student_name TEXT NOT NULL,
    class_name TEXT,
    attendance_date DATE NOT NULL,
    attendance_time TEXT,
    status TEXT NOT NULL,
    note TEXT,
    recorded_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_ATTENDANCE_SCHOOL_DATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_attendance_records_school_date
ON attendance_records (school_id, attendance_date);
"""

_ATTENDANCE_STUDENT_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_attendance_records_student
ON attendance_records (school_id, student_id);
"""

_DASHBOARD_PREFERENCES_SQL = """
CREATE TABLE IF NOT EXISTS dashboard_preferences (
    user_id INTEGER NOT NULL REFERENCES dashboard_users(id) ON DELETE CASCADE,
    pref_key TEXT NOT NULL,
    pref_value JSONB,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (user_id, pref_key)
);
"""


def ensure_dashboard_schema() -> None:
    """Create all tables used by the dashboard if they are missing."""
    statements: Iterable[str] = (
        _SCHOOLS_SQL,
        _DASHBOARD_USERS_SQL,
        _SCHOOL_CLASSES_SQL,
        _STUDENTS_SQL,
        _STUDENTS_SCHOOL_INDEX_SQL,
        _ATTENDANCE_RECORDS_SQL,
        _ATTENDANCE_SCHOOL_DATE_INDEX_SQL,
        _ATTENDANCE_STUDENT_INDEX_SQL,
        _DASHBOARD_PREFERENCES_SQL,
        "ALTER TABLE dashboard_users ADD COLUMN IF NOT EXISTS nip TEXT",
        "ALTER TABLE school_classes ADD COLUMN IF NOT EXISTS teacher_nip TEXT",
        "ALTER TABLE students ADD COLUMN IF NOT EXISTS gender TEXT",
    )
    with get_cursor(commit=True) as cur:
        for statement in statements:
            cur.execute(statement)


__all__ = ["ensure_dashboard_schema"]
