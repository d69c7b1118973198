from datetime import date

from absensi.reports.models import AggregatedSummary, ReportContext, SchoolInfo, StudentAttendanceRow
from absensi.reports.pdf import (
    NAME_PLACEHOLDER,
    NIP_PLACEHOLDER,
    TITLE_KOMPREHENSIF,
    TITLE_REKAPITULASI,
    Column,
    TableLayout,
    build_attendance_pdf,
    build_comprehensive_pdf,
    build_monthly_recap_pdf,
    draw_table,
    title_lines,
    truncate_name,
)


class RecordingSurface:
    """Collects drawing calls instead of producing a PDF."""

    page_width = 210
    page_height = 297

    def __init__(self):
        self.texts = []
        self.rects = []
        self.lines = []
        self.pages = 1

    def text(self, value, x, y, *, size=10, bold=False, align="left"):
        self.texts.append({"value": value, "x": x, "y": y, "size": size, "bold": bold, "page": self.pages})

    def rect(self, x, y, width, height, *, fill=None, stroke=None):
        self.rects.append((x, y, width, height, fill, stroke))

    def line(self, x1, y1, x2, y2, *, width=0.5, color=(0, 0, 0)):
        self.lines.append((x1, y1, x2, y2))

    def add_page(self):
        self.pages += 1

    def to_bytes(self):
        return b"recorded"

    def values(self):
        return [item["value"] for item in self.texts]


def _context(kind="monthly", summary=None, school=None, **extra):
    return ReportContext(
        kind=kind,
        school=school or SchoolInfo(name="SMP Negeri 1", address="Jl. Merdeka 1", npsn="20100001"),
        summary=summary or AggregatedSummary(),
        generated_on=date(2025, 5, 14),
        month_label="Mei 2025",
        year=2025,
        **extra,
    )


def test_truncate_name():
    assert truncate_name("Muhammad Abdullah Rahman") == "Muhammad Abdulla..."
    assert truncate_name("Siti Nurhaliza Put") == "Siti Nurhaliza Put"
    assert truncate_name("Andi") == "Andi"


def test_table_repeats_header_on_new_page():
    surface = RecordingSurface()
    layout = TableLayout(
        columns=(Column("Nama", 1),),
        header_height=10,
        row_height=10,
        bottom_limit=50,
        continuation_top=20,
    )

    end = draw_table(surface, layout, [["A"], ["B"], ["C"]], top=20)

    assert surface.pages == 2
    assert surface.values().count("Nama") == 2
    assert [item["page"] for item in surface.texts if item["value"] == "C"] == [2]
    assert end == 40


def test_empty_summary_renders_zero_percentages():
    surface = RecordingSurface()

    data = build_attendance_pdf(_context(), surface=surface)

    assert data == b"recorded"
    assert surface.values().count("0.0%") == 5
    total_cells = [item for item in surface.texts if item["value"] == "Total"]
    assert total_cells and all(item["bold"] for item in total_cells)


def test_monthly_report_header_and_title():
    surface = RecordingSurface()
    summary = AggregatedSummary(present=1, sick=1, permitted=1, absent=1)

    build_attendance_pdf(_context(summary=summary), surface=surface)
    values = surface.values()

    assert values[:3] == ["SMP Negeri 1", "Jl. Merdeka 1", "NPSN :  20100001"]
    assert TITLE_REKAPITULASI in values
    assert "BULAN MEI 2025" in values
    assert values.count("25.0%") == 4
    assert "100.0%" in values
    assert "Di unduh pada: 14 Mei 2025" in values


def test_missing_signatories_use_placeholders():
    surface = RecordingSurface()

    build_attendance_pdf(_context(), surface=surface)
    values = surface.values()

    assert NAME_PLACEHOLDER in values
    assert NIP_PLACEHOLDER in values
    assert "Administrator Sekolah" in values


def test_class_teacher_fills_right_signature():
    surface = RecordingSurface()
    context = _context(
        kind="class",
        class_name="7A",
        teacher_name="Dewi Lestari",
        teacher_nip="198001012005012001",
        period_start=date(2025, 5, 7),
        period_end=date(2025, 5, 14),
    )

    build_attendance_pdf(context, surface=surface)
    values = surface.values()

    assert "KELAS 7A" in values
    assert "Periode Tanggal 7 Mei 2025 sampai 14 Mei 2025" in values
    assert "Dewi Lestari" in values
    assert "NIP. 198001012005012001" in values


def test_student_title_lines():
    lines = title_lines(_context(kind="student", student_name="Andi", class_name="7A"))

    assert [line.text for line in lines] == [
        TITLE_REKAPITULASI,
        "BULAN : MEI 2025",
        "NAMA SISWA : ANDI",
        "KELAS SISWA : 7A",
    ]


def test_comprehensive_report_puts_students_on_new_page():
    surface = RecordingSurface()
    rows = [StudentAttendanceRow(name="Muhammad Abdullah Rahman", class_name="7A", hadir=3)]

    build_comprehensive_pdf(_context(kind="comprehensive", rows=rows), surface=surface)
    values = surface.values()

    assert values[0] == "SMP NEGERI 1"
    assert TITLE_KOMPREHENSIF in values
    assert "PERIODE : MEI 2025" in values
    per_student = [item for item in surface.texts if item["value"] == "3. Rekapitulasi Kehadiran Per Siswa"]
    assert per_student[0]["page"] == 2
    assert "Muhammad Abdulla..." in values


def test_recap_has_bold_total_row():
    surface = RecordingSurface()
    rows = [
        StudentAttendanceRow(name="Andi", nisn="0011", class_name="7A", hadir=2, sakit=1),
        StudentAttendanceRow(name="Siti", nisn="0012", class_name="7A", alpha=1),
    ]

    build_monthly_recap_pdf(_context(kind="recap", rows=rows, class_name="7A"), surface=surface)

    total = [item for item in surface.texts if item["value"] == "TOTAL"]
    assert total and total[0]["bold"]
    assert "REKAP LAPORAN KEHADIRAN SISWA" in surface.values()
    assert "Wali Kelas 7A" in surface.values()


def test_real_pdf_bytes():
    data = build_attendance_pdf(_context(summary=AggregatedSummary(present=3, absent=1)))

    assert data.startswith(b"%PDF")
