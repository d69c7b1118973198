"""Tally attendance records into per-status summaries.

Every report page goes through :func:`partition_summaries`; the other helpers
only pick a partition key or a set of calendar buckets.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Union

from ..utils import INDONESIAN_MONTH_NAMES, format_indonesian_date
from .models import AggregatedSummary, AttendanceRecord, PeriodSummary, StudentAttendanceRow
from .status import normalize_status

logger = logging.getLogger(__name__)

PartitionKey = Union[None, str, Callable[[AttendanceRecord], Hashable]]

_PARTITION_GETTERS: Dict[str, Callable[[AttendanceRecord], Hashable]] = {
    "student": lambda record: record.student_id,
    "class": lambda record: record.class_name,
    "day": lambda record: record.day,
}

WEEKS_IN_COMPREHENSIVE_REPORT = 4


def _resolve_partition(key: PartitionKey) -> Callable[[AttendanceRecord], Hashable]:
    if key is None:
        return lambda record: None
    if callable(key):
        return key
    try:
        return _PARTITION_GETTERS[key]
    except KeyError:
        raise ValueError(f"Partisi tidak dikenal: {key}") from None


def partition_summaries(
    records: Iterable[AttendanceRecord],
    key: PartitionKey = None,
) -> Dict[Hashable, AggregatedSummary]:
    """Single pass over ``records`` producing one summary per partition value.

    ``key`` is ``None`` (one bucket keyed ``None``), ``"student"``, ``"class"``,
    ``"day"`` or any callable returning a hashable value. Partitions appear in
    first-seen order.
    """
    getter = _resolve_partition(key)
    summaries: Dict[Hashable, AggregatedSummary] = {}
    unrecognized = 0
    for record in records:
        partition = getter(record)
        summary = summaries.get(partition)
        if summary is None:
            summary = summaries[partition] = AggregatedSummary()
        bucket = normalize_status(record.status)
        if bucket is None:
            unrecognized += 1
        summary.add(bucket)
    if unrecognized:
        logger.debug("Melewati %s catatan kehadiran dengan status tidak dikenal", unrecognized)
    return summaries


def summarize(records: Iterable[AttendanceRecord]) -> AggregatedSummary:
    return partition_summaries(records).get(None) or AggregatedSummary()


def filter_records(
    records: Iterable[AttendanceRecord],
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    class_name: Optional[str] = None,
    student_id: Any = None,
    search: Optional[str] = None,
) -> List[AttendanceRecord]:
    """Filter records in memory; ``class_name="all"`` means no class filter."""
    needle = (search or "").strip().lower()
    wanted_class = None if class_name in (None, "", "all") else class_name
    selected: List[AttendanceRecord] = []
    for record in records:
        if start and (record.date is None or record.date < start):
            continue
        if end and (record.date is None or record.date > end):
            continue
        if wanted_class is not None and record.class_name != wanted_class:
            continue
        if student_id is not None and str(record.student_id) != str(student_id):
            continue
        if needle and needle not in record.student_name.lower():
            continue
        selected.append(record)
    return selected


def sort_newest_first(records: Iterable[AttendanceRecord]) -> List[AttendanceRecord]:
    return sorted(
        records,
        key=lambda record: (record.date or date.min, record.time),
        reverse=True,
    )


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def daily_breakdown(records: Iterable[AttendanceRecord], year: int, month: int) -> List[PeriodSummary]:
    """One entry per calendar day of the month, including empty days.

    Records are expected to be restricted to the month already.
    """
    by_day = partition_summaries(records, "day")
    days_in_month = calendar.monthrange(year, month)[1]
    breakdown: List[PeriodSummary] = []
    for day in range(1, days_in_month + 1):
        current = date(year, month, day)
        breakdown.append(
            PeriodSummary(
                label=format_indonesian_date(current),
                start=current,
                end=current,
                summary=by_day.get(day) or AggregatedSummary(),
            )
        )
    return breakdown


def start_of_week(value: date) -> date:
    """Weeks start on Sunday."""
    return value - timedelta(days=(value.weekday() + 1) % 7)


def week_windows(today: date, weeks: int = WEEKS_IN_COMPREHENSIVE_REPORT) -> List[tuple[date, date]]:
    """The last ``weeks`` calendar weeks ending with the current one, oldest first."""
    current_start = start_of_week(today)
    windows = []
    for offset in range(weeks - 1, -1, -1):
        week_start = current_start - timedelta(weeks=offset)
        windows.append((week_start, week_start + timedelta(days=6)))
    return windows


def weekly_breakdown(
    records: Iterable[AttendanceRecord],
    today: date,
    weeks: int = WEEKS_IN_COMPREHENSIVE_REPORT,
) -> List[PeriodSummary]:
    windows = week_windows(today, weeks)

    def week_index(record: AttendanceRecord) -> Optional[int]:
        if record.date is None:
            return None
        for index, (week_start, week_end) in enumerate(windows):
            if week_start <= record.date <= week_end:
                return index
        return None

    by_week = partition_summaries(records, week_index)
    return [
        PeriodSummary(
            label=f"Minggu {index + 1}",
            start=week_start,
            end=week_end,
            summary=by_week.get(index) or AggregatedSummary(),
        )
        for index, (week_start, week_end) in enumerate(windows)
    ]


def monthly_breakdown(records: Iterable[AttendanceRecord], year: int) -> List[PeriodSummary]:
    """Twelve month buckets for one year, used by the student chart."""

    def month_key(record: AttendanceRecord) -> Optional[int]:
        if record.date is None or record.date.year != year:
            return None
        return record.date.month

    by_month = partition_summaries(records, month_key)
    breakdown: List[PeriodSummary] = []
    for month in range(1, 13):
        start, end = month_bounds(year, month)
        breakdown.append(
            PeriodSummary(
                label=INDONESIAN_MONTH_NAMES[month][:3],
                start=start,
                end=end,
                summary=by_month.get(month) or AggregatedSummary(),
            )
        )
    return breakdown


def student_rows(
    records: Iterable[AttendanceRecord],
    students: Optional[Sequence[Mapping[str, Any]]] = None,
) -> List[StudentAttendanceRow]:
    """Per-student rows.

    With ``students`` given, every listed student gets a row (zero counts when
    there are no records) in roster order, and records of students outside
    the roster are ignored. Without a roster, rows follow first appearance in
    ``records`` and use the names stored on the records.
    """
    records = list(records)
    by_student = partition_summaries(records, "student")
    rows: List[StudentAttendanceRow] = []

    if students is None:
        seen: Dict[Hashable, AttendanceRecord] = {}
        for record in records:
            seen.setdefault(record.student_id, record)
        for student_id, record in seen.items():
            rows.append(
                StudentAttendanceRow.from_summary(
                    by_student[student_id],
                    name=record.student_name,
                    class_name=record.class_name,
                    student_id=student_id,
                )
            )
        return rows

    by_key = {str(key): summary for key, summary in by_student.items()}
    for student in students:
        student_id = student.get("id")
        rows.append(
            StudentAttendanceRow.from_summary(
                by_key.get(str(student_id)) or AggregatedSummary(),
                name=(student.get("full_name") or student.get("name") or "").strip(),
                class_name=(student.get("class_name") or "").strip(),
                nisn=(student.get("nisn") or "").strip(),
                student_id=student_id,
            )
        )
    return rows


def total_row(rows: Iterable[StudentAttendanceRow]) -> StudentAttendanceRow:
    combined = StudentAttendanceRow(name="TOTAL")
    for row in rows:
        combined.hadir += row.hadir
        combined.sakit += row.sakit
        combined.izin += row.izin
        combined.alpha += row.alpha
    return combined


__all__ = [
    "WEEKS_IN_COMPREHENSIVE_REPORT",
    "daily_breakdown",
    "filter_records",
    "month_bounds",
    "monthly_breakdown",
    "partition_summaries",
    "sort_newest_first",
    "start_of_week",
    "student_rows",
    "summarize",
    "total_row",
    "week_windows",
    "weekly_breakdown",
]
