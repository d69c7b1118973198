from __future__ import annotations

import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, List, Sequence, Set

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..utils import format_indonesian_date
from .aggregator import total_row
from .models import AggregatedSummary, ReportContext, StudentAttendanceRow, format_percentage
from .pdf import TITLE_REKAP, TITLE_REKAPITULASI

SIGNATURE_PLACEHOLDER = "___________________"

SUMMARY_WIDTHS = (20, 15, 15)
WEEKLY_WIDTHS = (15, 10, 10, 10, 10, 10)
STUDENT_WIDTHS = (25, 10, 10, 10, 10, 10, 10)
RECAP_WIDTHS = (30, 15, 10, 8, 8, 8, 8, 8)

_INVALID_TITLE_CHARS = re.compile(r"[\\/*?:\[\]]")


@dataclass
class SheetSpec:
    title: str
    rows: List[List[Any]]
    widths: Sequence[int]
    bold_rows: Set[int] = field(default_factory=set)

    def add(self, row: List[Any], *, bold: bool = False) -> None:
        if bold:
            self.bold_rows.add(len(self.rows))
        self.rows.append(row)


def _sheet_title(value: str) -> str:
    cleaned = _INVALID_TITLE_CHARS.sub("-", value).strip()
    return (cleaned or "Laporan")[:31]


def build_workbook(sheets: Sequence[SheetSpec]) -> Workbook:
    wb = Workbook()
    wb.remove(wb.active)
    for sheet in sheets:
        ws = wb.create_sheet(_sheet_title(sheet.title))
        for index, row in enumerate(sheet.rows):
            ws.append(row)
            if index in sheet.bold_rows:
                for cell in ws[ws.max_row]:
                    cell.font = Font(bold=True)
        for position, width in enumerate(sheet.widths, start=1):
            ws.column_dimensions[get_column_letter(position)].width = width
    return wb


def workbook_stream(sheets: Sequence[SheetSpec]) -> BytesIO:
    wb = build_workbook(sheets)
    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)
    return stream


def _summary_table(sheet: SheetSpec, summary: AggregatedSummary) -> None:
    sheet.add(["Status", "Jumlah", "Persentase"], bold=True)
    for label, count, percentage in summary.status_rows()[:-1]:
        sheet.add([label, count, percentage])
    sheet.add(["Total", summary.total, summary.total_percentage()], bold=True)


def _kind_lines(context: ReportContext) -> List[str]:
    month = context.month_label.upper()
    if context.kind == "monthly":
        return [f"BULAN {month}"]
    if context.kind == "class":
        lines = [f"KELAS: {context.class_name.upper()}"]
        if context.period_start and context.period_end:
            lines.append(
                f"Periode Tanggal {format_indonesian_date(context.period_start)} "
                f"sampai {format_indonesian_date(context.period_end)}"
            )
        return lines
    if context.kind == "student":
        return [
            f"BULAN: {month}",
            f"NAMA SISWA: {context.student_name.upper()}",
            f"KELAS SISWA: {context.class_name or '-'}",
        ]
    raise ValueError(f"Jenis laporan tidak dikenal: {context.kind}")


def _attendance_sheet_title(context: ReportContext) -> str:
    if context.kind == "class":
        return f"Laporan Kelas {context.class_name}"
    if context.kind == "student":
        return "Laporan Siswa"
    return "Laporan Bulanan"


def attendance_sheet(context: ReportContext) -> SheetSpec:
    """Single-sheet export for the monthly, class and student reports."""
    school = context.school
    sheet = SheetSpec(title=_attendance_sheet_title(context), rows=[], widths=SUMMARY_WIDTHS)
    sheet.add([school.name], bold=True)
    sheet.add([school.address])
    sheet.add([f"NPSN: {school.npsn}"])
    sheet.add([""])
    sheet.add([TITLE_REKAPITULASI], bold=True)
    for line in _kind_lines(context):
        sheet.add([line])
    sheet.add([""])
    sheet.add(["Rekapitulasi Kehadiran:"])
    _summary_table(sheet, context.summary)
    sheet.add([""])
    sheet.add([f"Di unduh pada: {format_indonesian_date(context.generated_on)}"])
    sheet.add([""])

    if context.teacher_name:
        right_heading = ["Wali Kelas", context.class_name or "-"]
        right_name = context.teacher_name
    else:
        right_heading = ["Administrator Sekolah", school.name]
        right_name = SIGNATURE_PLACEHOLDER
    sheet.add(["Mengetahui,", "", "", "", right_heading[0]])
    sheet.add(["Kepala Sekolah", "", "", "", right_heading[1]])
    sheet.add([""])
    sheet.add([""])
    sheet.add([school.principal_name or SIGNATURE_PLACEHOLDER, "", "", "", right_name])
    sheet.add([f"NIP: {school.principal_nip or '-'}", "", "", "", f"NIP: {context.teacher_nip or '-'}"])
    return sheet


def _comprehensive_footer(sheet: SheetSpec, context: ReportContext) -> None:
    sheet.add([""])
    sheet.add([""])
    sheet.add(["Mengetahui,", "", "Wali Kelas"])
    sheet.add(["Kepala Sekolah", "", ""])
    sheet.add(["", "", ""])
    sheet.add(
        [
            context.school.principal_name or SIGNATURE_PLACEHOLDER,
            "",
            context.teacher_name or SIGNATURE_PLACEHOLDER,
        ]
    )


def _student_counts(row: StudentAttendanceRow) -> List[int]:
    return [row.hadir, row.sakit, row.izin, row.alpha, row.total]


def comprehensive_sheets(context: ReportContext) -> List[SheetSpec]:
    """``Bulanan``, ``Mingguan`` and ``Per Siswa`` sheets of the comprehensive report."""
    school = context.school

    monthly = SheetSpec(title="Bulanan", rows=[], widths=SUMMARY_WIDTHS)
    monthly.add([school.name.upper()], bold=True)
    monthly.add([school.address])
    monthly.add([f"NPSN: {school.npsn}"])
    monthly.add([""])
    monthly.add(["LAPORAN REKAPITULASI KEHADIRAN BULANAN"], bold=True)
    monthly.add([f"Periode: {context.month_label}"])
    monthly.add([""])
    monthly.add(["Rekapitulasi Kehadiran:"])
    _summary_table(monthly, context.summary)
    _comprehensive_footer(monthly, context)

    weekly = SheetSpec(title="Mingguan", rows=[], widths=WEEKLY_WIDTHS)
    weekly.add([school.name], bold=True)
    weekly.add(["LAPORAN KEHADIRAN MINGGUAN"], bold=True)
    weekly.add([""])
    weekly.add(["Minggu", "Hadir", "Sakit", "Izin", "Alpha", "Total"], bold=True)
    for week in context.weeks:
        summary = week.summary
        weekly.add([week.label, summary.present, summary.sick, summary.permitted, summary.absent, summary.total])
    _comprehensive_footer(weekly, context)

    students = SheetSpec(title="Per Siswa", rows=[], widths=STUDENT_WIDTHS)
    students.add([school.name], bold=True)
    students.add(["LAPORAN KEHADIRAN PER SISWA"], bold=True)
    students.add([""])
    students.add(["Nama", "Kelas", "Hadir", "Sakit", "Izin", "Alpha", "Total"], bold=True)
    for row in context.rows:
        students.add([row.name, row.class_name or "-", *_student_counts(row)])
    _comprehensive_footer(students, context)

    return [monthly, weekly, students]


def monthly_recap_sheet(context: ReportContext) -> SheetSpec:
    school = context.school
    totals = total_row(context.rows)
    sheet = SheetSpec(title="Rekap Kehadiran", rows=[], widths=RECAP_WIDTHS)
    sheet.add([school.name], bold=True)
    sheet.add([school.address])
    sheet.add([f"NPSN: {school.npsn}"])
    sheet.add([""])
    sheet.add([TITLE_REKAP], bold=True)
    sheet.add([f"BULAN {context.month_label.upper()}"])
    sheet.add([f"TAHUN {context.year or context.generated_on.year}"])
    sheet.add([""])
    sheet.add(
        [
            f"Hadir: {format_percentage(totals.hadir, totals.total)}",
            f"Sakit: {format_percentage(totals.sakit, totals.total)}",
            f"Izin: {format_percentage(totals.izin, totals.total)}",
            f"Alpha: {format_percentage(totals.alpha, totals.total)}",
        ]
    )
    sheet.add([""])
    sheet.add(["Nama Siswa", "NISN", "Kelas", "Hadir", "Sakit", "Izin", "Alpha", "Total"], bold=True)
    for row in context.rows:
        sheet.add([row.name, row.nisn, row.class_name, *_student_counts(row)])
    sheet.add(["TOTAL", "", "", *_student_counts(totals)], bold=True)
    return sheet


def build_attendance_workbook(context: ReportContext) -> BytesIO:
    return workbook_stream([attendance_sheet(context)])


def build_comprehensive_workbook(context: ReportContext) -> BytesIO:
    return workbook_stream(comprehensive_sheets(context))


def build_monthly_recap_workbook(context: ReportContext) -> BytesIO:
    return workbook_stream([monthly_recap_sheet(context)])


__all__ = [
    "SheetSpec",
    "attendance_sheet",
    "build_attendance_workbook",
    "build_comprehensive_workbook",
    "build_monthly_recap_workbook",
    "build_workbook",
    "comprehensive_sheets",
    "monthly_recap_sheet",
    "workbook_stream",
]
