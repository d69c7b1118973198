from datetime import date

import pytest

from absensi.reports import service as service_module
from absensi.reports.service import DataFetchError, ReportGenerationError, ReportService

from conftest import SCHOOL_ID, TODAY, FakeAttendanceSource


def test_monthly_context_summarizes_selected_month(service):
    context = service.monthly_context(SCHOOL_ID, 2025, 5)

    assert context.kind == "monthly"
    assert context.month_label == "Mei 2025"
    assert context.summary.as_dict() == {"present": 2, "sick": 1, "permitted": 0, "absent": 1, "total": 4}
    assert context.school.name == "SMP Negeri 1"


def test_monthly_page_lists_every_day(service):
    _context, days = service.monthly_page(SCHOOL_ID, 2025, 5)

    assert len(days) == 31
    assert days[11].summary.total == 2


def test_class_context_covers_last_seven_days(service, source):
    context = service.class_context(SCHOOL_ID, "7A")

    assert context.period_start == date(2025, 5, 7)
    assert context.period_end == TODAY
    assert context.teacher_name == "Dewi Lestari"
    assert context.summary.total == 2
    assert ("fetch_attendance", SCHOOL_ID, date(2025, 5, 7), TODAY, "7A", None) in source.calls


def test_class_context_requires_a_class(service):
    with pytest.raises(ValueError):
        service.class_context(SCHOOL_ID, "all")


def test_student_page_uses_class_teacher_and_year_chart(service):
    context, chart = service.student_page(SCHOOL_ID, 2, 2025, 5)

    assert context.student_name == "Siti Nurhaliza"
    assert context.class_name == "7A"
    assert context.teacher_name == "Dewi Lestari"
    assert context.summary.present == 1
    assert context.summary.permitted == 0
    assert len(chart) == 12
    assert chart[3].summary.permitted == 1


def test_unknown_student_is_reported(service):
    with pytest.raises(ValueError, match="Data siswa tidak ditemukan"):
        service.student_context(SCHOOL_ID, 404, 2025, 5)


def test_comprehensive_context_collects_weeks_and_students(service):
    context = service.comprehensive_context(SCHOOL_ID, 2025, 5)

    assert [week.label for week in context.weeks] == ["Minggu 1", "Minggu 2", "Minggu 3", "Minggu 4"]
    assert context.weeks[1].summary.permitted == 1
    assert context.weeks[3].summary.total == 3
    assert [row.name for row in context.rows] == ["Andi", "Siti Nurhaliza", "Rudi"]


def test_recap_context_filters_by_class(service):
    context = service.recap_context(SCHOOL_ID, 2025, 5, "7B")

    assert context.class_name == "7B"
    assert [row.name for row in context.rows] == ["Rudi"]
    assert context.rows[0].alpha == 1
    assert context.teacher_name == ""


def test_history_filters_and_orders(service):
    records = service.history(SCHOOL_ID, date(2025, 4, 1), TODAY, "all", "siti")

    assert [record.date for record in records] == [date(2025, 5, 12), date(2025, 4, 28)]


def test_history_rejects_inverted_range(service):
    with pytest.raises(ValueError):
        service.history(SCHOOL_ID, TODAY, date(2025, 5, 1))


def test_dashboard_overview(service):
    overview = service.dashboard_overview(SCHOOL_ID)

    assert overview["counts"] == {"students": 3, "classes": 2, "teachers": 1}
    assert overview["summary"].total == 4
    assert overview["attendance_rate"] == 50
    assert overview["period_start"] == date(2025, 5, 1)


def test_student_overview_only_counts_own_records(service):
    overview = service.student_overview(SCHOOL_ID, 1)

    assert overview["summary"].as_dict()["total"] == 2
    assert overview["recent"][0].date == date(2025, 5, 12)


def test_monthly_report_download(service):
    report = service.monthly_report(SCHOOL_ID, 2025, 5, "pdf")

    assert report.filename == "Laporan_monthly_14-05-2025.pdf"
    assert report.mimetype == "application/pdf"
    assert report.stream.getvalue().startswith(b"%PDF")


def test_recap_download_name(service):
    report = service.monthly_recap(SCHOOL_ID, 2025, 5, "xlsx")

    assert report.filename == "Rekap_Kehadiran_Mei_2025.xlsx"
    assert report.stream.getvalue()[:2] == b"PK"


def test_unknown_format_is_rejected_before_fetching(source):
    svc = ReportService(source=source, today=lambda: TODAY)

    with pytest.raises(ValueError):
        svc.monthly_report(SCHOOL_ID, 2025, 5, "docx")
    assert source.calls == []


def test_fetch_failure_raises_data_fetch_error():
    svc = ReportService(source=FakeAttendanceSource(fail=True), today=lambda: TODAY)

    with pytest.raises(DataFetchError):
        svc.monthly_report(SCHOOL_ID, 2025, 5, "pdf")


def test_render_failure_raises_generation_error(service, monkeypatch):
    def broken(context):
        raise RuntimeError("font missing")

    monkeypatch.setattr(service_module, "build_attendance_pdf", broken)

    with pytest.raises(ReportGenerationError):
        service.monthly_report(SCHOOL_ID, 2025, 5, "pdf")
