from datetime import date

import pytest

from absensi.reports.aggregator import (
    daily_breakdown,
    filter_records,
    monthly_breakdown,
    partition_summaries,
    sort_newest_first,
    start_of_week,
    student_rows,
    summarize,
    total_row,
    week_windows,
    weekly_breakdown,
)
from absensi.reports.models import AggregatedSummary, format_percentage

from conftest import make_record


def test_one_of_each_status():
    records = [make_record(status) for status in ("hadir", "sakit", "izin", "alpha")]

    summary = summarize(records)

    assert summary.as_dict() == {"present": 1, "sick": 1, "permitted": 1, "absent": 1, "total": 4}
    assert [row[2] for row in summary.status_rows()] == ["25.0%", "25.0%", "25.0%", "25.0%", "100.0%"]


def test_empty_records_give_zero_percentages():
    summary = summarize([])

    assert summary.total == 0
    assert [row[1] for row in summary.status_rows()] == [0, 0, 0, 0, 0]
    assert [row[2] for row in summary.status_rows()] == ["0.0%"] * 5
    assert summary.attendance_rate() == 0


def test_unrecognized_status_is_left_out_of_total():
    records = [make_record("present"), make_record("present"), make_record("unknown")]

    summary = summarize(records)

    assert summary.present == 2
    assert summary.total == 2
    assert summary.unrecognized == 1
    assert summary.percentage("present") == "100.0%"


def test_total_always_equals_bucket_sum():
    records = [make_record(status) for status in ("hadir", "HADIR ", "sick", "x", "izin", "absent", "")]

    summary = summarize(records)

    assert summary.total == summary.present + summary.sick + summary.permitted + summary.absent


def test_format_percentage_divides_by_one_for_empty_total():
    assert format_percentage(0, 0) == "0.0%"
    assert format_percentage(1, 3) == "33.3%"
    assert format_percentage(2, 3) == "66.7%"


def test_percentage_halves_round_up():
    assert format_percentage(1, 16) == "6.3%"
    assert format_percentage(1, 80) == "1.3%"
    assert format_percentage(3, 16) == "18.8%"
    assert AggregatedSummary(present=1, absent=7).attendance_rate() == 13


def test_partition_by_student_keeps_first_seen_order():
    records = [
        make_record("hadir", student_id=2),
        make_record("sakit", student_id=1),
        make_record("alpha", student_id=2),
    ]

    partitions = partition_summaries(records, "student")

    assert list(partitions) == [2, 1]
    assert partitions[2].present == 1
    assert partitions[2].absent == 1
    assert partitions[1].sick == 1


def test_unknown_partition_key_is_rejected():
    with pytest.raises(ValueError):
        partition_summaries([], "semester")


def test_filter_records_by_class_search_and_range():
    records = [
        make_record("hadir", day=date(2025, 5, 1), student_name="Andi", class_name="7A"),
        make_record("hadir", day=date(2025, 5, 20), student_name="Siti", class_name="7A"),
        make_record("hadir", day=date(2025, 5, 5), student_name="Rudi", class_name="7B"),
    ]

    assert len(filter_records(records, class_name="all")) == 3
    assert [r.student_name for r in filter_records(records, class_name="7B")] == ["Rudi"]
    assert [r.student_name for r in filter_records(records, search="SIT")] == ["Siti"]
    assert [r.student_name for r in filter_records(records, end=date(2025, 5, 10))] == ["Andi", "Rudi"]


def test_sort_newest_first():
    records = [
        make_record("hadir", day=date(2025, 5, 1)),
        make_record("hadir", day=date(2025, 5, 3), time="09:00"),
        make_record("hadir", day=date(2025, 5, 3), time="07:00"),
    ]

    ordered = sort_newest_first(records)

    assert [(r.date.day, r.time) for r in ordered] == [(3, "09:00"), (3, "07:00"), (1, "07:00")]


def test_daily_breakdown_covers_every_day_of_month():
    records = [make_record("hadir", day=date(2025, 2, 3)), make_record("sakit", day=date(2025, 2, 3))]

    days = daily_breakdown(records, 2025, 2)

    assert len(days) == 28
    assert days[2].label == "3 Februari 2025"
    assert days[2].summary.total == 2
    assert days[0].summary.total == 0


def test_weeks_start_on_sunday_and_run_oldest_first():
    wednesday = date(2025, 5, 14)

    assert start_of_week(wednesday) == date(2025, 5, 11)
    assert start_of_week(date(2025, 5, 11)) == date(2025, 5, 11)
    assert week_windows(wednesday) == [
        (date(2025, 4, 20), date(2025, 4, 26)),
        (date(2025, 4, 27), date(2025, 5, 3)),
        (date(2025, 5, 4), date(2025, 5, 10)),
        (date(2025, 5, 11), date(2025, 5, 17)),
    ]


def test_weekly_breakdown_labels_and_counts():
    records = [
        make_record("hadir", day=date(2025, 5, 12)),
        make_record("izin", day=date(2025, 4, 21)),
        make_record("hadir", day=date(2025, 3, 1)),
    ]

    weeks = weekly_breakdown(records, date(2025, 5, 14))

    assert [week.label for week in weeks] == ["Minggu 1", "Minggu 2", "Minggu 3", "Minggu 4"]
    assert weeks[0].summary.permitted == 1
    assert weeks[3].summary.present == 1
    assert sum(week.summary.total for week in weeks) == 2


def test_monthly_breakdown_has_twelve_months():
    records = [make_record("hadir", day=date(2025, 1, 6)), make_record("alpha", day=date(2024, 12, 6))]

    months = monthly_breakdown(records, 2025)

    assert [month.label for month in months][:3] == ["Jan", "Feb", "Mar"]
    assert months[0].summary.present == 1
    assert sum(month.summary.total for month in months) == 1


def test_student_rows_follow_roster_and_include_empty_students():
    roster = [
        {"id": 1, "full_name": "Andi", "class_name": "7A", "nisn": "0011"},
        {"id": 2, "full_name": "Siti", "class_name": "7A", "nisn": "0012"},
    ]
    records = [
        make_record("hadir", student_id=1),
        make_record("sakit", student_id=1),
        make_record("hadir", student_id=99, student_name="Tamu"),
    ]

    rows = student_rows(records, roster)

    assert [row.name for row in rows] == ["Andi", "Siti"]
    assert rows[0].counts() == [1, 1, 0, 0]
    assert rows[1].total == 0
    assert rows[1].nisn == "0012"


def test_student_rows_without_roster_use_record_names():
    records = [make_record("hadir", student_id=5, student_name="Wati"), make_record("alpha", student_id=5)]

    rows = student_rows(records)

    assert len(rows) == 1
    assert rows[0].name == "Wati"
    assert rows[0].alpha == 1


def test_total_row_sums_columns():
    records = [make_record("hadir", student_id=1), make_record("izin", student_id=2, student_name="Siti")]

    totals = total_row(student_rows(records))

    assert totals.name == "TOTAL"
    assert totals.counts() == [1, 0, 1, 0]
    assert totals.total == 2
