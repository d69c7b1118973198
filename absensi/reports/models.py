from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Mapping, Optional, Tuple

from .status import ABSENT, PERMITTED, PRESENT, SICK, STATUS_BUCKETS, STATUS_LABELS, StatusBucket

DEFAULT_SCHOOL_NAME = "NAMA SEKOLAH"
DEFAULT_SCHOOL_ADDRESS = "Alamat"
DEFAULT_SCHOOL_NPSN = "NPSN"


def format_percentage(count: int, total: int) -> str:
    """One-decimal percentage string, halves rounded up; a zero total divides by one."""
    value = Decimal(count * 100) / Decimal(total or 1)
    return f"{value.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"


def _coerce_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class AttendanceRecord:
    id: Any
    student_id: Any
    student_name: str
    class_name: str
    date: Optional[date]
    time: str = ""
    status: str = ""
    note: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AttendanceRecord":
        return cls(
            id=row.get("id"),
            student_id=row.get("student_id"),
            student_name=_clean(row.get("student_name")),
            class_name=_clean(row.get("class_name")),
            date=_coerce_date(row.get("attendance_date")),
            time=_clean(row.get("attendance_time")),
            status=_clean(row.get("status")),
            note=row.get("note") or None,
        )

    @property
    def day(self) -> Optional[int]:
        return self.date.day if self.date else None

    @property
    def date_label(self) -> str:
        return self.date.isoformat() if self.date else ""


@dataclass(frozen=True)
class SchoolInfo:
    name: str = DEFAULT_SCHOOL_NAME
    address: str = DEFAULT_SCHOOL_ADDRESS
    npsn: str = DEFAULT_SCHOOL_NPSN
    principal_name: str = ""
    principal_nip: str = ""

    @classmethod
    def from_row(cls, row: Optional[Mapping[str, Any]]) -> "SchoolInfo":
        if not row:
            return cls()
        return cls(
            name=_clean(row.get("name")) or DEFAULT_SCHOOL_NAME,
            address=_clean(row.get("address")) or DEFAULT_SCHOOL_ADDRESS,
            npsn=_clean(row.get("npsn")) or DEFAULT_SCHOOL_NPSN,
            principal_name=_clean(row.get("principal_name")),
            principal_nip=_clean(row.get("principal_nip")),
        )


@dataclass
class AggregatedSummary:
    """Per-status tallies. ``total`` only covers recognized statuses."""

    present: int = 0
    sick: int = 0
    permitted: int = 0
    absent: int = 0
    unrecognized: int = 0

    @property
    def total(self) -> int:
        return self.present + self.sick + self.permitted + self.absent

    def add(self, bucket: Optional[StatusBucket]) -> None:
        if bucket is None:
            self.unrecognized += 1
            return
        setattr(self, bucket, getattr(self, bucket) + 1)

    def merge(self, other: "AggregatedSummary") -> None:
        for bucket in STATUS_BUCKETS:
            setattr(self, bucket, getattr(self, bucket) + getattr(other, bucket))
        self.unrecognized += other.unrecognized

    def count(self, bucket: StatusBucket) -> int:
        return getattr(self, bucket)

    def percentage(self, bucket: StatusBucket) -> str:
        return format_percentage(self.count(bucket), self.total)

    def total_percentage(self) -> str:
        return "100.0%" if self.total > 0 else "0.0%"

    def attendance_rate(self) -> int:
        """Whole-number share of ``present`` used by the dashboard cards."""
        if not self.total:
            return 0
        value = Decimal(self.present * 100) / Decimal(self.total)
        return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    def status_rows(self) -> List[Tuple[str, int, str]]:
        rows = [
            (STATUS_LABELS[bucket], self.count(bucket), self.percentage(bucket))
            for bucket in STATUS_BUCKETS
        ]
        rows.append(("Total", self.total, self.total_percentage()))
        return rows

    def as_dict(self) -> dict:
        return {
            PRESENT: self.present,
            SICK: self.sick,
            PERMITTED: self.permitted,
            ABSENT: self.absent,
            "total": self.total,
        }


@dataclass
class StudentAttendanceRow:
    name: str
    class_name: str = ""
    hadir: int = 0
    sakit: int = 0
    izin: int = 0
    alpha: int = 0
    nisn: str = ""
    student_id: Any = None

    @classmethod
    def from_summary(
        cls,
        summary: AggregatedSummary,
        *,
        name: str,
        class_name: str = "",
        nisn: str = "",
        student_id: Any = None,
    ) -> "StudentAttendanceRow":
        return cls(
            name=name,
            class_name=class_name,
            hadir=summary.present,
            sakit=summary.sick,
            izin=summary.permitted,
            alpha=summary.absent,
            nisn=nisn,
            student_id=student_id,
        )

    @property
    def total(self) -> int:
        return self.hadir + self.sakit + self.izin + self.alpha

    def counts(self) -> List[int]:
        return [self.hadir, self.sakit, self.izin, self.alpha]


@dataclass
class PeriodSummary:
    label: str
    start: date
    end: date
    summary: AggregatedSummary = field(default_factory=AggregatedSummary)


@dataclass
class ReportContext:
    """Everything a renderer needs for one document, already aggregated."""

    kind: str
    school: SchoolInfo
    summary: AggregatedSummary
    generated_on: date
    month_label: str = ""
    year: Optional[int] = None
    class_name: str = ""
    student_name: str = ""
    teacher_name: str = ""
    teacher_nip: str = ""
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    weeks: List[PeriodSummary] = field(default_factory=list)
    rows: List[StudentAttendanceRow] = field(default_factory=list)


__all__ = [
    "AggregatedSummary",
    "AttendanceRecord",
    "DEFAULT_SCHOOL_ADDRESS",
    "DEFAULT_SCHOOL_NAME",
    "DEFAULT_SCHOOL_NPSN",
    "PeriodSummary",
    "ReportContext",
    "SchoolInfo",
    "StudentAttendanceRow",
    "format_percentage",
]
