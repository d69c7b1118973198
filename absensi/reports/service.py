"""Fetch, aggregate and render attendance reports.

:class:`ReportService` talks to a query source (the :mod:`.queries` module in
production, an in-memory fake in tests), folds the records with the shared
aggregator and hands a :class:`~.models.ReportContext` to the PDF or
spreadsheet renderer. A failed fetch raises :class:`DataFetchError`, a failed
render raises :class:`ReportGenerationError`; neither leaves a partial file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from io import BytesIO
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Tuple

import psycopg2

from ..utils import current_jakarta_time, format_month_label
from . import queries as default_source
from .aggregator import (
    daily_breakdown,
    filter_records,
    month_bounds,
    monthly_breakdown,
    sort_newest_first,
    student_rows,
    summarize,
    week_windows,
    weekly_breakdown,
)
from .models import AttendanceRecord, PeriodSummary, ReportContext, SchoolInfo
from .naming import MIMETYPES, PDF, comprehensive_filename, recap_filename, report_filename
from .pdf import build_attendance_pdf, build_comprehensive_pdf, build_monthly_recap_pdf
from .spreadsheet import (
    build_attendance_workbook,
    build_comprehensive_workbook,
    build_monthly_recap_workbook,
)

logger = logging.getLogger(__name__)

CLASS_REPORT_DAYS = 7

_FETCH_ERRORS = (psycopg2.Error, RuntimeError, OSError)


class DataFetchError(Exception):
    """The query source could not deliver the data for a report."""


class ReportGenerationError(Exception):
    """Layout or serialization of a report failed."""


@dataclass
class GeneratedReport:
    filename: str
    mimetype: str
    stream: BytesIO


def _check_format(fmt: str) -> str:
    if fmt not in MIMETYPES:
        raise ValueError(f"Format laporan tidak dikenal: {fmt}")
    return fmt


class ReportService:
    def __init__(
        self,
        source: Any = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.source: ModuleType = source if source is not None else default_source
        self._today = today or (lambda: current_jakarta_time().date())

    def today(self) -> date:
        return self._today()

    def _fetch(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except _FETCH_ERRORS as exc:
            logger.warning("Query %s gagal: %s", getattr(func, "__name__", func), exc)
            raise DataFetchError("Gagal mengambil data dari database") from exc

    def school_info(self, school_id: str) -> SchoolInfo:
        return self._fetch(self.source.fetch_school_info, school_id)

    def classes(self, school_id: str) -> List[dict]:
        return self._fetch(self.source.fetch_classes, school_id)

    def search_students(self, school_id: str, term: str) -> List[dict]:
        return self._fetch(self.source.search_students, school_id, term)

    def _class_teacher(self, school_id: str, class_name: Optional[str]) -> Tuple[str, str]:
        if not class_name or class_name == "all":
            return "", ""
        record = self._fetch(self.source.fetch_class, school_id, class_name) or {}
        return (record.get("teacher_name") or "").strip(), (record.get("teacher_nip") or "").strip()

    # Page data

    def dashboard_overview(self, school_id: str, recent_limit: int = 5) -> Dict[str, Any]:
        """Month-to-date figures for the admin and teacher dashboards."""
        today = self.today()
        start = today.replace(day=1)
        records = self._fetch(self.source.fetch_attendance, school_id, start, today)
        summary = summarize(records)
        return {
            "counts": self._fetch(self.source.fetch_dashboard_counts, school_id),
            "classes": self.classes(school_id),
            "recent": self._fetch(self.source.fetch_recent_attendance, school_id, recent_limit),
            "summary": summary,
            "attendance_rate": summary.attendance_rate(),
            "period_start": start,
            "period_end": today,
        }

    def student_overview(self, school_id: str, student_id: int, recent_limit: int = 5) -> Dict[str, Any]:
        today = self.today()
        start = today.replace(day=1)
        records = self._fetch(
            self.source.fetch_attendance,
            school_id,
            start,
            today,
            student_id=student_id,
        )
        summary = summarize(records)
        return {
            "summary": summary,
            "attendance_rate": summary.attendance_rate(),
            "recent": sort_newest_first(records)[:recent_limit],
            "period_start": start,
            "period_end": today,
        }

    def history(
        self,
        school_id: str,
        start: date,
        end: date,
        class_name: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[AttendanceRecord]:
        if start > end:
            raise ValueError("Tanggal mulai tidak boleh setelah tanggal akhir.")
        records = self._fetch(self.source.fetch_attendance, school_id, start, end, class_name)
        return sort_newest_first(filter_records(records, class_name=class_name, search=search))

    def _monthly(self, school_id: str, year: int, month: int) -> Tuple[ReportContext, List[AttendanceRecord]]:
        start, end = month_bounds(year, month)
        school = self.school_info(school_id)
        records = self._fetch(self.source.fetch_attendance, school_id, start, end)
        context = ReportContext(
            kind="monthly",
            school=school,
            summary=summarize(records),
            generated_on=self.today(),
            month_label=format_month_label(year, month),
            year=year,
            period_start=start,
            period_end=end,
        )
        return context, records

    def monthly_context(self, school_id: str, year: int, month: int) -> ReportContext:
        return self._monthly(school_id, year, month)[0]

    def monthly_page(self, school_id: str, year: int, month: int) -> Tuple[ReportContext, List[PeriodSummary]]:
        context, records = self._monthly(school_id, year, month)
        return context, daily_breakdown(records, year, month)

    def class_context(self, school_id: str, class_name: str) -> ReportContext:
        if not class_name or class_name == "all":
            raise ValueError("Silakan pilih kelas terlebih dahulu.")
        today = self.today()
        start = today - timedelta(days=CLASS_REPORT_DAYS)
        school = self.school_info(school_id)
        teacher_name, teacher_nip = self._class_teacher(school_id, class_name)
        records = self._fetch(self.source.fetch_attendance, school_id, start, today, class_name)
        return ReportContext(
            kind="class",
            school=school,
            summary=summarize(records),
            generated_on=today,
            month_label=format_month_label(today.year, today.month),
            year=today.year,
            class_name=class_name,
            teacher_name=teacher_name,
            teacher_nip=teacher_nip,
            period_start=start,
            period_end=today,
        )

    def _student(
        self, school_id: str, student_id: int, year: int, month: int
    ) -> Tuple[ReportContext, List[PeriodSummary]]:
        student = self._fetch(self.source.fetch_student, school_id, student_id)
        if not student:
            raise ValueError("Data siswa tidak ditemukan.")
        school = self.school_info(school_id)
        class_name = (student.get("class_name") or "").strip()
        teacher_name, teacher_nip = self._class_teacher(school_id, class_name)

        year_start, _ = month_bounds(year, 1)
        _, year_end = month_bounds(year, 12)
        records = self._fetch(
            self.source.fetch_attendance,
            school_id,
            year_start,
            year_end,
            student_id=student_id,
        )
        month_start, month_end = month_bounds(year, month)
        month_records = filter_records(records, start=month_start, end=month_end)
        context = ReportContext(
            kind="student",
            school=school,
            summary=summarize(month_records),
            generated_on=self.today(),
            month_label=format_month_label(year, month),
            year=year,
            class_name=class_name,
            student_name=(student.get("full_name") or "").strip(),
            teacher_name=teacher_name,
            teacher_nip=teacher_nip,
            period_start=month_start,
            period_end=month_end,
        )
        return context, monthly_breakdown(records, year)

    def student_context(self, school_id: str, student_id: int, year: int, month: int) -> ReportContext:
        return self._student(school_id, student_id, year, month)[0]

    def student_page(
        self, school_id: str, student_id: int, year: int, month: int
    ) -> Tuple[ReportContext, List[PeriodSummary]]:
        return self._student(school_id, student_id, year, month)

    def comprehensive_context(
        self,
        school_id: str,
        year: int,
        month: int,
        class_name: Optional[str] = None,
    ) -> ReportContext:
        context, records = self._monthly(school_id, year, month)
        today = self.today()
        windows = week_windows(today)
        weekly_records = self._fetch(
            self.source.fetch_attendance,
            school_id,
            windows[0][0],
            windows[-1][1],
            class_name,
        )
        students = self._fetch(self.source.fetch_students, school_id, class_name)
        month_records = filter_records(records, class_name=class_name)
        teacher_name, teacher_nip = self._class_teacher(school_id, class_name)

        context.kind = "comprehensive"
        context.summary = summarize(month_records)
        context.class_name = "" if class_name in (None, "all") else class_name
        context.teacher_name = teacher_name
        context.teacher_nip = teacher_nip
        context.weeks = weekly_breakdown(weekly_records, today)
        context.rows = student_rows(month_records, students)
        return context

    def recap_context(
        self,
        school_id: str,
        year: int,
        month: int,
        class_name: Optional[str] = None,
    ) -> ReportContext:
        start, end = month_bounds(year, month)
        school = self.school_info(school_id)
        students = self._fetch(self.source.fetch_students, school_id, class_name)
        records = self._fetch(self.source.fetch_attendance, school_id, start, end, class_name)
        teacher_name, teacher_nip = self._class_teacher(school_id, class_name)
        rows = student_rows(records, students)
        return ReportContext(
            kind="recap",
            school=school,
            summary=summarize(records),
            generated_on=self.today(),
            month_label=format_month_label(year, month),
            year=year,
            class_name="" if class_name in (None, "all") else class_name,
            teacher_name=teacher_name,
            teacher_nip=teacher_nip,
            period_start=start,
            period_end=end,
            rows=rows,
        )

    # Downloads

    def _export(
        self,
        context: ReportContext,
        fmt: str,
        filename: str,
        pdf_builder: Callable[[ReportContext], bytes],
        workbook_builder: Callable[[ReportContext], BytesIO],
    ) -> GeneratedReport:
        try:
            if fmt == PDF:
                stream = BytesIO(pdf_builder(context))
            else:
                stream = workbook_builder(context)
        except Exception as exc:
            raise ReportGenerationError(f"Gagal membuat laporan {filename}") from exc
        logger.info("Laporan %s dibuat untuk %s", filename, context.school.name)
        return GeneratedReport(filename=filename, mimetype=MIMETYPES[fmt], stream=stream)

    def monthly_report(self, school_id: str, year: int, month: int, fmt: str) -> GeneratedReport:
        _check_format(fmt)
        context = self.monthly_context(school_id, year, month)
        filename = report_filename("monthly", fmt, context.generated_on)
        return self._export(context, fmt, filename, build_attendance_pdf, build_attendance_workbook)

    def class_report(self, school_id: str, class_name: str, fmt: str) -> GeneratedReport:
        _check_format(fmt)
        context = self.class_context(school_id, class_name)
        filename = report_filename("class", fmt, context.generated_on)
        return self._export(context, fmt, filename, build_attendance_pdf, build_attendance_workbook)

    def student_report(
        self, school_id: str, student_id: int, year: int, month: int, fmt: str
    ) -> GeneratedReport:
        _check_format(fmt)
        context = self.student_context(school_id, student_id, year, month)
        filename = report_filename("student", fmt, context.generated_on)
        return self._export(context, fmt, filename, build_attendance_pdf, build_attendance_workbook)

    def comprehensive_report(
        self,
        school_id: str,
        year: int,
        month: int,
        fmt: str,
        class_name: Optional[str] = None,
    ) -> GeneratedReport:
        _check_format(fmt)
        context = self.comprehensive_context(school_id, year, month, class_name)
        filename = comprehensive_filename(fmt, context.generated_on)
        return self._export(context, fmt, filename, build_comprehensive_pdf, build_comprehensive_workbook)

    def monthly_recap(
        self,
        school_id: str,
        year: int,
        month: int,
        fmt: str,
        class_name: Optional[str] = None,
    ) -> GeneratedReport:
        _check_format(fmt)
        context = self.recap_context(school_id, year, month, class_name)
        filename = recap_filename(year, month, fmt)
        return self._export(context, fmt, filename, build_monthly_recap_pdf, build_monthly_recap_workbook)


__all__ = [
    "CLASS_REPORT_DAYS",
    "DataFetchError",
    "GeneratedReport",
    "ReportGenerationError",
    "ReportService",
]
