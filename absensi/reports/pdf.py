"""PDF rendering of attendance reports on top of reportlab's canvas.

Layout code works in millimetres measured from the top-left corner of an A4
page; :class:`PdfSurface` converts to reportlab's bottom-left point space.
Tables are described by a :class:`TableLayout` and drawn by :func:`draw_table`,
which also takes care of page breaks.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Any, List, Optional, Sequence, Tuple, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from ..utils import format_indonesian_date
from .models import AggregatedSummary, ReportContext, SchoolInfo, StudentAttendanceRow
from .aggregator import total_row

Color = Tuple[int, int, int]

WHITE: Color = (255, 255, 255)
BLACK: Color = (0, 0, 0)

NAME_TRUNCATE_AFTER = 18
NAME_KEEP_CHARS = 16

NAME_PLACEHOLDER = "_________________"
NIP_PLACEHOLDER = "NIP. ......................................"

TITLE_REKAPITULASI = "LAPORAN REKAPITULASI KEHADIRAN SISWA"
TITLE_KOMPREHENSIF = "LAPORAN KOMPREHENSIF KEHADIRAN SISWA"
TITLE_REKAP = "REKAP LAPORAN KEHADIRAN SISWA"


def truncate_name(name: str) -> str:
    if len(name) > NAME_TRUNCATE_AFTER:
        return name[:NAME_KEEP_CHARS] + "..."
    return name


class PdfSurface:
    """Drawing surface backed by a reportlab canvas writing into memory."""

    def __init__(self, pagesize: Tuple[float, float] = A4) -> None:
        self._buffer = BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pagesize=pagesize)
        self.page_width = pagesize[0] / mm
        self.page_height = pagesize[1] / mm

    def _y(self, y: float) -> float:
        return (self.page_height - y) * mm

    def text(
        self,
        value: str,
        x: float,
        y: float,
        *,
        size: float = 10,
        bold: bool = False,
        align: str = "left",
    ) -> None:
        c = self._canvas
        c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        c.setFillColorRGB(0, 0, 0)
        if align == "center":
            c.drawCentredString(x * mm, self._y(y), value)
        elif align == "right":
            c.drawRightString(x * mm, self._y(y), value)
        else:
            c.drawString(x * mm, self._y(y), value)

    def rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        *,
        fill: Optional[Color] = None,
        stroke: Optional[Color] = None,
    ) -> None:
        c = self._canvas
        if fill is not None:
            c.setFillColorRGB(*(channel / 255 for channel in fill))
        if stroke is not None:
            c.setStrokeColorRGB(*(channel / 255 for channel in stroke))
        c.rect(
            x * mm,
            self._y(y + height),
            width * mm,
            height * mm,
            stroke=1 if stroke is not None else 0,
            fill=1 if fill is not None else 0,
        )

    def line(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        *,
        width: float = 0.5,
        color: Color = BLACK,
    ) -> None:
        c = self._canvas
        c.setLineWidth(width)
        c.setStrokeColorRGB(*(channel / 255 for channel in color))
        c.line(x1 * mm, self._y(y1), x2 * mm, self._y(y2))

    def add_page(self) -> None:
        self._canvas.showPage()

    def to_bytes(self) -> bytes:
        self._canvas.save()
        return self._buffer.getvalue()


@dataclass(frozen=True)
class Column:
    header: str
    weight: float
    align: str = "center"


@dataclass(frozen=True)
class TableRow:
    cells: Sequence[Any]
    bold: bool = False
    fill: Optional[Color] = None


@dataclass(frozen=True)
class TableLayout:
    columns: Sequence[Column]
    x: float = 20
    width: float = 170
    header_height: float = 10
    row_height: float = 8
    header_fill: Optional[Color] = (240, 240, 240)
    header_border: Color = (180, 180, 180)
    row_border: Color = (220, 220, 220)
    stripe_fills: Tuple[Optional[Color], Optional[Color]] = (WHITE, (245, 245, 245))
    header_font_size: float = 10
    font_size: float = 10
    header_bold: bool = False
    vertical_rules: bool = False
    bottom_limit: float = 270
    continuation_top: float = 20

    def column_bounds(self) -> List[Tuple[float, float]]:
        total_weight = sum(column.weight for column in self.columns) or 1
        bounds = []
        left = self.x
        for column in self.columns:
            width = self.width * column.weight / total_weight
            bounds.append((left, width))
            left += width
        return bounds


def _cell_text(
    surface: Any,
    value: Any,
    left: float,
    width: float,
    top: float,
    height: float,
    *,
    size: float,
    bold: bool,
    align: str,
) -> None:
    baseline = top + height / 2 + size * 0.18
    text = "" if value is None else str(value)
    if align == "center":
        surface.text(text, left + width / 2, baseline, size=size, bold=bold, align="center")
    elif align == "right":
        surface.text(text, left + width - 2, baseline, size=size, bold=bold, align="right")
    else:
        surface.text(text, left + 2, baseline, size=size, bold=bold)


def _vertical_rules(surface: Any, layout: TableLayout, top: float, height: float, color: Color) -> None:
    if not layout.vertical_rules:
        return
    for left, _width in layout.column_bounds()[1:]:
        surface.line(left, top, left, top + height, width=0.2, color=color)


def _draw_header_row(surface: Any, layout: TableLayout, top: float) -> float:
    height = layout.header_height
    surface.rect(layout.x, top, layout.width, height, fill=layout.header_fill, stroke=layout.header_border)
    _vertical_rules(surface, layout, top, height, layout.header_border)
    for (left, width), column in zip(layout.column_bounds(), layout.columns):
        _cell_text(
            surface,
            column.header,
            left,
            width,
            top,
            height,
            size=layout.header_font_size,
            bold=layout.header_bold,
            align=column.align,
        )
    return top + height


def draw_table(
    surface: Any,
    layout: TableLayout,
    rows: Sequence[Union[TableRow, Sequence[Any]]],
    top: float,
) -> float:
    """Draw header and rows starting at ``top``; return the y below the table.

    A row that would cross ``layout.bottom_limit`` goes to a fresh page whose
    first line is the repeated header row.
    """
    y = _draw_header_row(surface, layout, top)
    bounds = layout.column_bounds()
    for index, raw_row in enumerate(rows):
        row = raw_row if isinstance(raw_row, TableRow) else TableRow(cells=raw_row)
        if y + layout.row_height > layout.bottom_limit:
            surface.add_page()
            y = _draw_header_row(surface, layout, layout.continuation_top)
        fill = row.fill if row.fill is not None else layout.stripe_fills[index % 2]
        surface.rect(layout.x, y, layout.width, layout.row_height, fill=fill, stroke=layout.row_border)
        _vertical_rules(surface, layout, y, layout.row_height, layout.row_border)
        for (left, width), column, value in zip(bounds, layout.columns, row.cells):
            _cell_text(
                surface,
                value,
                left,
                width,
                y,
                layout.row_height,
                size=layout.font_size,
                bold=row.bold,
                align=column.align,
            )
        y += layout.row_height
    return y


SUMMARY_TABLE = TableLayout(
    columns=(Column("Status", 0.4), Column("Jumlah", 0.3), Column("%", 0.3)),
    header_height=12,
    row_height=10,
    header_fill=(240, 249, 255),
    header_border=(180, 200, 230),
    row_border=(150, 180, 220),
    stripe_fills=(WHITE, WHITE),
    header_font_size=12,
    font_size=11,
    vertical_rules=True,
)

COMPREHENSIVE_SUMMARY_TABLE = TableLayout(
    columns=(Column("Status", 0.4), Column("Jumlah", 0.3), Column("%", 0.3)),
)

WEEKLY_TABLE = TableLayout(
    columns=(
        Column("Minggu", 30),
        Column("Hadir", 25),
        Column("Sakit", 25),
        Column("Izin", 25),
        Column("Alpha", 25),
    ),
)

STUDENT_TABLE = TableLayout(
    columns=(
        Column("Nama", 50, align="left"),
        Column("Kelas", 20),
        Column("Hadir", 25),
        Column("Sakit", 25),
        Column("Izin", 25),
        Column("Alpha", 25),
    ),
)

RECAP_TABLE = TableLayout(
    columns=(
        Column("Nama Siswa", 50, align="left"),
        Column("NISN", 25, align="left"),
        Column("Kelas", 15, align="left"),
        Column("Hadir", 15, align="left"),
        Column("Sakit", 15, align="left"),
        Column("Izin", 15, align="left"),
        Column("Alpha", 15, align="left"),
        Column("Total", 15, align="left"),
    ),
    x=15,
    width=180,
    header_height=8,
    row_height=7,
    header_fill=(144, 238, 144),
    header_border=BLACK,
    row_border=BLACK,
    stripe_fills=((240, 240, 240), None),
    header_font_size=9,
    font_size=8,
    vertical_rules=True,
    bottom_limit=242,
    continuation_top=15,
)


@dataclass
class SignatureColumn:
    headings: List[str]
    name: str = ""
    nip: str = ""
    nip_prefix: str = "NIP. "

    def name_line(self) -> str:
        return self.name or NAME_PLACEHOLDER

    def nip_line(self) -> str:
        if self.nip:
            return f"{self.nip_prefix}{self.nip}"
        return NIP_PLACEHOLDER


@dataclass
class TitleLine:
    text: str
    size: float = 12
    bold: bool = False


def summary_rows(summary: AggregatedSummary) -> List[TableRow]:
    rows = [TableRow(cells=row) for row in summary.status_rows()]
    rows[-1] = TableRow(cells=rows[-1].cells, bold=True)
    return rows


def draw_school_header(surface: Any, school: SchoolInfo, *, uppercase: bool = False) -> float:
    """Centered name, address and NPSN with a rule beneath; returns the rule's y."""
    center = surface.page_width / 2
    name = school.name.upper() if uppercase else school.name
    surface.text(name, center, 20, size=18, bold=True, align="center")
    surface.text(school.address, center, 27, size=13, bold=True, align="center")
    surface.text(f"NPSN :  {school.npsn}", center, 33, size=11, bold=True, align="center")
    surface.line(20, 40, surface.page_width - 20, 40, width=0.5)
    return 40


def draw_title_block(surface: Any, lines: Sequence[TitleLine], top: float) -> float:
    center = surface.page_width / 2
    y = top
    for line in lines:
        surface.text(line.text, center, y, size=line.size, bold=line.bold, align="center")
        y += 8
    return y


def title_lines(context: ReportContext) -> List[TitleLine]:
    month = context.month_label.upper()
    if context.kind == "monthly":
        return [
            TitleLine(TITLE_REKAPITULASI, size=14, bold=True),
            TitleLine(f"BULAN {month}"),
        ]
    if context.kind == "class":
        lines = [
            TitleLine(TITLE_REKAPITULASI, size=14, bold=True),
            TitleLine(f"KELAS {context.class_name.upper()}"),
        ]
        if context.period_start and context.period_end:
            lines.append(
                TitleLine(
                    f"Periode Tanggal {format_indonesian_date(context.period_start)} "
                    f"sampai {format_indonesian_date(context.period_end)}",
                    size=11,
                )
            )
        return lines
    if context.kind == "student":
        return [
            TitleLine(TITLE_REKAPITULASI, size=14, bold=True),
            TitleLine(f"BULAN : {month}"),
            TitleLine(f"NAMA SISWA : {context.student_name.upper()}", size=11),
            TitleLine(f"KELAS SISWA : {context.class_name or '-'}", size=10),
        ]
    if context.kind == "comprehensive":
        return [
            TitleLine(TITLE_KOMPREHENSIF, size=14, bold=True),
            TitleLine(f"PERIODE : {month}", size=11),
        ]
    raise ValueError(f"Jenis laporan tidak dikenal: {context.kind}")


def draw_signatures(
    surface: Any,
    top: float,
    left: SignatureColumn,
    right: SignatureColumn,
    *,
    bottom_limit: float = 270,
    size: float = 10,
) -> float:
    """Two centered signature columns; moves to a new page when out of room."""
    block_height = 5 * max(len(left.headings), len(right.headings)) + 30
    if top + block_height > bottom_limit:
        surface.add_page()
        top = 20
    left_x = surface.page_width / 4
    right_x = surface.page_width / 4 * 3
    for x, column in ((left_x, left), (right_x, right)):
        y = top
        for heading in column.headings:
            surface.text(heading, x, y, size=size, align="center")
            y += 5
    name_y = top + block_height - 5
    for x, column in ((left_x, left), (right_x, right)):
        surface.text(column.name_line(), x, name_y, size=size, align="center")
        surface.text(column.nip_line(), x, name_y + 5, size=size, align="center")
    return name_y + 5


def _principal_column(school: SchoolInfo, headings: Optional[List[str]] = None) -> SignatureColumn:
    return SignatureColumn(
        headings=headings or ["Mengetahui,", "Kepala Sekolah"],
        name=school.principal_name,
        nip=school.principal_nip,
    )


def _right_column(context: ReportContext) -> SignatureColumn:
    if context.teacher_name:
        return SignatureColumn(
            headings=["Wali Kelas", context.class_name or "-"],
            name=context.teacher_name,
            nip=context.teacher_nip,
        )
    return SignatureColumn(headings=["Administrator Sekolah", context.school.name])


def _downloaded_on(surface: Any, context: ReportContext, y: float) -> None:
    surface.text(
        f"Di unduh pada: {format_indonesian_date(context.generated_on)}",
        surface.page_width / 2,
        y,
        size=11,
        align="center",
    )


def render_attendance_report(surface: Any, context: ReportContext) -> None:
    """Monthly, class and student reports: header, title, summary, signatures."""
    rule_y = draw_school_header(surface, context.school)
    title_end = draw_title_block(surface, title_lines(context), rule_y + 12)
    table_end = draw_table(surface, SUMMARY_TABLE, summary_rows(context.summary), title_end + 4)
    _downloaded_on(surface, context, table_end + 13)
    draw_signatures(surface, table_end + 28, _principal_column(context.school), _right_column(context))


def student_table_rows(rows: Sequence[StudentAttendanceRow]) -> List[List[Any]]:
    return [
        [truncate_name(row.name), row.class_name or "-", row.hadir, row.sakit, row.izin, row.alpha]
        for row in rows
    ]


def render_comprehensive_report(surface: Any, context: ReportContext) -> None:
    rule_y = draw_school_header(surface, context.school, uppercase=True)
    y = draw_title_block(surface, title_lines(context), rule_y + 12)

    surface.text("1. Rekapitulasi Kehadiran Bulanan", 20, y + 6, size=12, bold=True)
    y = draw_table(surface, COMPREHENSIVE_SUMMARY_TABLE, summary_rows(context.summary), y + 10)

    surface.text("2. Rekapitulasi Kehadiran Mingguan", 20, y + 12, size=12, bold=True)
    weekly_rows = [
        [week.label, week.summary.present, week.summary.sick, week.summary.permitted, week.summary.absent]
        for week in context.weeks
    ]
    draw_table(surface, WEEKLY_TABLE, weekly_rows, y + 16)

    surface.add_page()
    surface.text("3. Rekapitulasi Kehadiran Per Siswa", 20, 20, size=12, bold=True)
    y = draw_table(surface, STUDENT_TABLE, student_table_rows(context.rows), 26)

    _downloaded_on(surface, context, y + 10)
    right = SignatureColumn(headings=["Wali Kelas"], name=context.teacher_name, nip=context.teacher_nip)
    draw_signatures(surface, y + 20, _principal_column(context.school), right)


def recap_table_rows(rows: Sequence[StudentAttendanceRow]) -> List[TableRow]:
    table_rows = [
        TableRow(cells=[row.name, row.nisn, row.class_name, row.hadir, row.sakit, row.izin, row.alpha, row.total])
        for row in rows
    ]
    totals = total_row(rows)
    table_rows.append(
        TableRow(
            cells=["TOTAL", "", "", totals.hadir, totals.sakit, totals.izin, totals.alpha, totals.total],
            bold=True,
            fill=(200, 200, 200),
        )
    )
    return table_rows


def render_monthly_recap(surface: Any, context: ReportContext) -> None:
    center = surface.page_width / 2
    surface.text(context.school.name, center, 15, size=14, bold=True, align="center")
    surface.text(context.school.address, center, 21, size=10, align="center")
    surface.text(f"NPSN: {context.school.npsn}", center, 27, size=10, align="center")
    surface.line(15, 31, surface.page_width - 15, 31, width=0.5)

    lines = [
        TitleLine(TITLE_REKAP, bold=True),
        TitleLine(f"BULAN {context.month_label.upper()}"),
        TitleLine(f"TAHUN {context.year or context.generated_on.year}"),
    ]
    y = 37
    for line in lines:
        surface.text(line.text, center, y, size=line.size, bold=line.bold, align="center")
        y += 6

    y = draw_table(surface, RECAP_TABLE, recap_table_rows(context.rows), y + 4)

    left = _principal_column(context.school, headings=["Mengetahui", "Kepala Sekolah,"])
    right = SignatureColumn(
        headings=[
            f"Di unduh pada : {format_indonesian_date(context.generated_on)}",
            f"Wali Kelas {context.class_name or 'kelas'}",
        ],
        name=context.teacher_name,
        nip=context.teacher_nip,
    )
    draw_signatures(surface, y + 15, left, right, bottom_limit=282)


def _render(renderer, context: ReportContext, surface: Optional[Any]) -> bytes:
    surface = surface if surface is not None else PdfSurface()
    renderer(surface, context)
    return surface.to_bytes()


def build_attendance_pdf(context: ReportContext, surface: Optional[Any] = None) -> bytes:
    return _render(render_attendance_report, context, surface)


def build_comprehensive_pdf(context: ReportContext, surface: Optional[Any] = None) -> bytes:
    return _render(render_comprehensive_report, context, surface)


def build_monthly_recap_pdf(context: ReportContext, surface: Optional[Any] = None) -> bytes:
    return _render(render_monthly_recap, context, surface)


__all__ = [
    "Column",
    "PdfSurface",
    "SignatureColumn",
    "TableLayout",
    "TableRow",
    "TitleLine",
    "build_attendance_pdf",
    "build_comprehensive_pdf",
    "build_monthly_recap_pdf",
    "draw_signatures",
    "draw_table",
    "title_lines",
    "truncate_name",
]
