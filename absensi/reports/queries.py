from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from psycopg2.extras import DictRow

from ..db_access import get_cursor
from .models import AttendanceRecord, SchoolInfo

_ATTENDANCE_COLUMNS = """
    id,
    student_id,
    student_name,
    class_name,
    attendance_date,
    attendance_time,
    status,
    note
"""


def fetch_attendance(
    school_id: str,
    start: date,
    end: date,
    class_name: Optional[str] = None,
    student_id: Optional[int] = None,
) -> List[AttendanceRecord]:
    clauses = ["school_id = %s", "attendance_date BETWEEN %s AND %s"]
    params: List[Any] = [school_id, start, end]
    if class_name and class_name != "all":
        clauses.append("class_name = %s")
        params.append(class_name)
    if student_id is not None:
        clauses.append("student_id = %s")
        params.append(student_id)

    with get_cursor() as cur:
        cur.execute(
            f"""
            SELECT {_ATTENDANCE_COLUMNS}
            FROM attendance_records
            WHERE {" AND ".join(clauses)}
            ORDER BY attendance_date DESC, attendance_time DESC NULLS LAST, id DESC
            """,
            params,
        )
        rows = cur.fetchall()
    return [AttendanceRecord.from_row(row) for row in rows]


def fetch_recent_attendance(school_id: str, limit: int = 5) -> List[AttendanceRecord]:
    with get_cursor() as cur:
        cur.execute(
            f"""
            SELECT {_ATTENDANCE_COLUMNS}
            FROM attendance_records
            WHERE school_id = %s
            ORDER BY attendance_date DESC, attendance_time DESC NULLS LAST, id DESC
            LIMIT %s
            """,
            (school_id, limit),
        )
        rows = cur.fetchall()
    return [AttendanceRecord.from_row(row) for row in rows]


def fetch_school_info(school_id: str) -> SchoolInfo:
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT name, address, npsn, principal_name, principal_nip
            FROM schools
            WHERE id = %s
            LIMIT 1
            """,
            (school_id,),
        )
        row: Optional[DictRow] = cur.fetchone()
    return SchoolInfo.from_row(row)


def fetch_students(school_id: str, class_name: Optional[str] = None) -> List[Dict[str, Any]]:
    clauses = ["school_id = %s", "active IS TRUE"]
    params: List[Any] = [school_id]
    if class_name and class_name != "all":
        clauses.append("class_name = %s")
        params.append(class_name)
    with get_cursor() as cur:
        cur.execute(
            f"""
            SELECT id, full_name, class_name, nisn, gender
            FROM students
            WHERE {" AND ".join(clauses)}
            ORDER BY full_name ASC
            """,
            params,
        )
        rows = cur.fetchall()
    return [dict(row) for row in rows]


def fetch_student(school_id: str, student_id: int) -> Optional[Dict[str, Any]]:
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT id, full_name, class_name, nisn, gender
            FROM students
            WHERE school_id = %s AND id = %s
            LIMIT 1
            """,
            (school_id, student_id),
        )
        row: Optional[DictRow] = cur.fetchone()
    return dict(row) if row else None


def search_students(school_id: str, term: str, limit: int = 20) -> List[Dict[str, Any]]:
    """Case-insensitive match on name or NISN."""
    pattern = f"%{term.strip()}%"
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT id, full_name, class_name, nisn
            FROM students
            WHERE school_id = %s
              AND active IS TRUE
              AND (full_name ILIKE %s OR COALESCE(nisn, '') ILIKE %s)
            ORDER BY full_name ASC
            LIMIT %s
            """,
            (school_id, pattern, pattern, limit),
        )
        rows = cur.fetchall()
    return [dict(row) for row in rows]


def fetch_classes(school_id: str) -> List[Dict[str, Any]]:
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT
                sc.id,
                sc.name,
                sc.level,
                sc.room,
                sc.teacher_name,
                sc.teacher_nip,
                COUNT(s.id) FILTER (WHERE s.active IS TRUE) AS student_count
            FROM school_classes sc
            LEFT JOIN students s ON s.school_id = sc.school_id AND s.class_name = sc.name
            WHERE sc.school_id = %s
            GROUP BY sc.id
            ORDER BY sc.name ASC
            """,
            (school_id,),
        )
        rows = cur.fetchall()
    return [dict(row) for row in rows]


def fetch_class(school_id: str, class_name: str) -> Optional[Dict[str, Any]]:
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT id, name, level, room, teacher_name, teacher_nip
            FROM school_classes
            WHERE school_id = %s AND name = %s
            LIMIT 1
            """,
            (school_id, class_name),
        )
        row: Optional[DictRow] = cur.fetchone()
    return dict(row) if row else None


def fetch_dashboard_counts(school_id: str) -> Dict[str, int]:
    with get_cursor() as cur:
        cur.execute(
            """
            SELECT
                (SELECT COUNT(*) FROM students WHERE school_id = %s AND active IS TRUE) AS students,
                (SELECT COUNT(*) FROM school_classes WHERE school_id = %s) AS classes,
                (SELECT COUNT(*) FROM dashboard_users WHERE school_id = %s AND role = 'teacher') AS teachers
            """,
            (school_id, school_id, school_id),
        )
        row: Optional[DictRow] = cur.fetchone()
    if not row:
        return {"students": 0, "classes": 0, "teachers": 0}
    return {
        "students": int(row["students"] or 0),
        "classes": int(row["classes"] or 0),
        "teachers": int(row["teachers"] or 0),
    }


__all__ = [
    "fetch_attendance",
    "fetch_class",
    "fetch_classes",
    "fetch_dashboard_counts",
    "fetch_recent_attendance",
    "fetch_school_info",
    "fetch_student",
    "fetch_students",
    "search_students",
]
