from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

import psycopg2
import pytest

from absensi import create_app
from absensi.reports.models import AttendanceRecord, SchoolInfo
from absensi.reports.service import ReportService

TODAY = date(2025, 5, 14)
SCHOOL_ID = "sekolah-1"


def make_record(
    status: str,
    *,
    day: date = TODAY,
    student_id: Any = 1,
    student_name: str = "Andi",
    class_name: str = "7A",
    time: str = "07:00",
) -> AttendanceRecord:
    return AttendanceRecord(
        id=None,
        student_id=student_id,
        student_name=student_name,
        class_name=class_name,
        date=day,
        time=time,
        status=status,
    )


class FakeAttendanceSource:
    """In-memory stand-in for :mod:`absensi.reports.queries`."""

    def __init__(
        self,
        records: Optional[List[AttendanceRecord]] = None,
        students: Optional[List[Dict[str, Any]]] = None,
        classes: Optional[List[Dict[str, Any]]] = None,
        school: Optional[SchoolInfo] = None,
        fail: bool = False,
    ) -> None:
        self.records = records or []
        self.students = students or []
        self.classes = classes or []
        self.school = school or SchoolInfo(
            name="SMP Negeri 1",
            address="Jl. Merdeka 1",
            npsn="20100001",
            principal_name="Budi Santoso",
            principal_nip="197001012000011001",
        )
        self.fail = fail
        self.calls: List[tuple] = []

    def _check(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if self.fail:
            raise psycopg2.OperationalError("connection refused")

    def fetch_attendance(self, school_id, start, end, class_name=None, student_id=None):
        self._check("fetch_attendance", school_id, start, end, class_name, student_id)
        selected = []
        for record in self.records:
            if not (start <= record.date <= end):
                continue
            if class_name and class_name != "all" and record.class_name != class_name:
                continue
            if student_id is not None and record.student_id != student_id:
                continue
            selected.append(record)
        return selected

    def fetch_recent_attendance(self, school_id, limit=5):
        self._check("fetch_recent_attendance", school_id, limit)
        return sorted(self.records, key=lambda record: record.date, reverse=True)[:limit]

    def fetch_school_info(self, school_id):
        self._check("fetch_school_info", school_id)
        return self.school

    def fetch_students(self, school_id, class_name=None):
        self._check("fetch_students", school_id, class_name)
        if class_name and class_name != "all":
            return [student for student in self.students if student["class_name"] == class_name]
        return list(self.students)

    def fetch_student(self, school_id, student_id):
        self._check("fetch_student", school_id, student_id)
        for student in self.students:
            if student["id"] == student_id:
                return student
        return None

    def search_students(self, school_id, term):
        self._check("search_students", school_id, term)
        needle = term.lower()
        return [student for student in self.students if needle in student["full_name"].lower()]

    def fetch_classes(self, school_id):
        self._check("fetch_classes", school_id)
        return list(self.classes)

    def fetch_class(self, school_id, class_name):
        self._check("fetch_class", school_id, class_name)
        for item in self.classes:
            if item["name"] == class_name:
                return item
        return None

    def fetch_dashboard_counts(self, school_id):
        self._check("fetch_dashboard_counts", school_id)
        return {
            "students": len(self.students),
            "classes": len(self.classes),
            "teachers": 1,
        }


class MemoryPreferenceStore:
    def __init__(self) -> None:
        self.values: Dict[int, Dict[str, Any]] = {}

    def load(self, user_id):
        return dict(self.values.get(user_id, {}))

    def save(self, user_id, key, value):
        self.values.setdefault(user_id, {})[key] = value

    def delete(self, user_id, key):
        self.values.get(user_id, {}).pop(key, None)


@pytest.fixture
def students() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "full_name": "Andi", "class_name": "7A", "nisn": "0011"},
        {"id": 2, "full_name": "Siti Nurhaliza", "class_name": "7A", "nisn": "0012"},
        {"id": 3, "full_name": "Rudi", "class_name": "7B", "nisn": "0013"},
    ]


@pytest.fixture
def classes() -> List[Dict[str, Any]]:
    return [
        {"name": "7A", "teacher_name": "Dewi Lestari", "teacher_nip": "198001012005012001", "student_count": 2},
        {"name": "7B", "teacher_name": None, "teacher_nip": None, "student_count": 1},
    ]


@pytest.fixture
def records() -> List[AttendanceRecord]:
    return [
        make_record("hadir", day=date(2025, 5, 2)),
        make_record("sakit", day=date(2025, 5, 12)),
        make_record("Hadir", day=date(2025, 5, 12), student_id=2, student_name="Siti Nurhaliza"),
        make_record("alpha", day=date(2025, 5, 13), student_id=3, student_name="Rudi", class_name="7B"),
        make_record("izin", day=date(2025, 4, 28), student_id=2, student_name="Siti Nurhaliza"),
    ]


@pytest.fixture
def source(records, students, classes) -> FakeAttendanceSource:
    return FakeAttendanceSource(records=records, students=students, classes=classes)


@pytest.fixture
def service(source) -> ReportService:
    return ReportService(source=source, today=lambda: TODAY)


@pytest.fixture
def preference_store() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture
def app(service, preference_store):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "REPORT_SERVICE": service,
            "PREFERENCE_STORE": preference_store,
        }
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def login_as(client, role: Optional[str], **extra: Any) -> None:
    user = {
        "id": 10,
        "email": "user@example.com",
        "full_name": "Pengguna Uji",
        "role": role,
        "school_id": SCHOOL_ID,
        "student_id": None,
    }
    user.update(extra)
    with client.session_transaction() as sess:
        sess["user"] = user
