from datetime import date

from openpyxl import load_workbook

from absensi.reports.models import AggregatedSummary, PeriodSummary, ReportContext, SchoolInfo, StudentAttendanceRow
from absensi.reports.pdf import TITLE_REKAPITULASI
from absensi.reports.spreadsheet import (
    SheetSpec,
    build_attendance_workbook,
    build_comprehensive_workbook,
    build_monthly_recap_workbook,
    build_workbook,
)


def _context(kind="monthly", summary=None, **extra):
    return ReportContext(
        kind=kind,
        school=SchoolInfo(name="SMP Negeri 1", address="Jl. Merdeka 1", npsn="20100001"),
        summary=summary or AggregatedSummary(),
        generated_on=date(2025, 5, 14),
        month_label="Mei 2025",
        year=2025,
        **extra,
    )


def _column(ws, column="A"):
    return [cell.value for cell in ws[column]]


def test_monthly_workbook_summary_table():
    summary = AggregatedSummary(present=1, sick=1, permitted=1, absent=1)

    wb = load_workbook(build_attendance_workbook(_context(summary=summary)))
    ws = wb["Laporan Bulanan"]

    assert ws["A1"].value == "SMP Negeri 1"
    assert ws["A1"].font.bold
    assert ws["A3"].value == "NPSN: 20100001"
    assert ws["A5"].value == TITLE_REKAPITULASI
    assert ws["A6"].value == "BULAN MEI 2025"
    assert [ws.cell(row=10, column=c).value for c in range(1, 4)] == ["Hadir", 1, "25.0%"]
    assert [ws.cell(row=14, column=c).value for c in range(1, 4)] == ["Total", 4, "100.0%"]
    assert ws["A14"].font.bold
    assert ws.column_dimensions["A"].width == 20


def test_empty_summary_sheet_shows_zero_percent():
    wb = load_workbook(build_attendance_workbook(_context()))
    ws = wb.active

    assert [ws.cell(row=row, column=3).value for row in range(10, 15)] == ["0.0%"] * 5


def test_class_sheet_title_and_signature():
    context = _context(
        kind="class",
        class_name="7A",
        teacher_name="Dewi Lestari",
        teacher_nip="198001",
        period_start=date(2025, 5, 7),
        period_end=date(2025, 5, 14),
    )

    wb = load_workbook(build_attendance_workbook(context))
    ws = wb["Laporan Kelas 7A"]

    assert "KELAS: 7A" in _column(ws)
    assert "Dewi Lestari" in _column(ws, "E")
    assert "NIP: 198001" in _column(ws, "E")


def test_comprehensive_workbook_has_three_sheets():
    weeks = [
        PeriodSummary(label=f"Minggu {n}", start=date(2025, 5, 1), end=date(2025, 5, 7),
                      summary=AggregatedSummary(present=n))
        for n in range(1, 5)
    ]
    rows = [StudentAttendanceRow(name="Andi", class_name="7A", hadir=2, izin=1)]

    wb = load_workbook(build_comprehensive_workbook(_context(kind="comprehensive", weeks=weeks, rows=rows)))

    assert wb.sheetnames == ["Bulanan", "Mingguan", "Per Siswa"]
    assert "Minggu 4" in _column(wb["Mingguan"])
    per_student = wb["Per Siswa"]
    assert [per_student.cell(row=5, column=c).value for c in range(1, 8)] == ["Andi", "7A", 2, 0, 1, 0, 3]


def test_recap_workbook_total_row():
    rows = [
        StudentAttendanceRow(name="Andi", nisn="0011", class_name="7A", hadir=3, sakit=1),
        StudentAttendanceRow(name="Siti", nisn="0012", class_name="7A"),
    ]

    wb = load_workbook(build_monthly_recap_workbook(_context(kind="recap", rows=rows)))
    ws = wb["Rekap Kehadiran"]
    last = [cell.value for cell in ws[ws.max_row]]

    assert last[0] == "TOTAL"
    assert last[3:] == [3, 1, 0, 0, 4]
    assert ws.cell(row=ws.max_row, column=1).font.bold
    assert ws["A9"].value == "Hadir: 75.0%"


def test_sheet_titles_are_sanitized():
    wb = build_workbook([SheetSpec(title="Laporan Kelas 7/A: [pagi] dan sore lengkap", rows=[["x"]], widths=(10,))])

    assert wb.sheetnames == ["Laporan Kelas 7-A- -pagi- dan s"]
