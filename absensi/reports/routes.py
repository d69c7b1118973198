from __future__ import annotations

import os
from datetime import date, timedelta
from typing import Any, Dict, Optional

from flask import Response, current_app, flash, redirect, render_template, request, url_for

from ..auth import current_user, login_required, role_required
from ..utils import parse_iso_date, parse_month_value
from . import reports_bp
from .aggregator import total_row
from .naming import PDF, XLSX
from .service import DataFetchError, GeneratedReport, ReportGenerationError, ReportService
from .status import STATUS_BADGES, STATUS_LABELS, normalize_status, status_badge, status_label

FETCH_FAILED_MESSAGE = "Gagal mengambil data dari database"
DOWNLOAD_FAILED_MESSAGES = {
    PDF: "Gagal mengunduh laporan PDF",
    XLSX: "Gagal mengunduh laporan Excel",
}

_PAGE_ENDPOINTS = {
    "monthly": "reports.monthly",
    "class": "reports.class_report",
    "student": "reports.student",
    "comprehensive": "reports.monthly",
    "recap": "reports.recap",
}


def _service() -> ReportService:
    return current_app.extensions["report_service"]


def _school_id() -> Optional[str]:
    user = current_user() or {}
    return user.get("school_id")


def _require_school():
    """Redirect response when the session user has no school yet, else ``None``."""
    if _school_id():
        return None
    user = current_user() or {}
    if user.get("role") == "admin":
        flash("Lengkapi data sekolah terlebih dahulu.", "warning")
        return redirect(url_for("main.setup_school"))
    flash("Akun Anda belum terhubung dengan sekolah.", "warning")
    return redirect(url_for("main.dashboard"))


def _selected_month() -> date:
    return parse_month_value(request.args.get("month"), _service().today())


def _status_context() -> Dict[str, Any]:
    return {
        "status_labels": STATUS_LABELS,
        "status_badges": STATUS_BADGES,
        "normalize_status": normalize_status,
        "status_label": status_label,
        "status_badge": status_badge,
    }


def _fetch_failed() -> Response:
    current_app.logger.exception("Gagal mengambil data laporan kehadiran")
    flash(FETCH_FAILED_MESSAGE, "danger")
    return redirect(url_for("main.dashboard"))


@reports_bp.route("/riwayat", methods=["GET"])
@login_required
@role_required("admin", "teacher")
def history() -> str:
    guard = _require_school()
    if guard is not None:
        return guard
    school_id = _school_id()

    today = _service().today()
    window_days = int(os.getenv("DASHBOARD_HISTORY_DAYS", "30"))
    start = parse_iso_date(request.args.get("start")) or today - timedelta(days=window_days)
    end = parse_iso_date(request.args.get("end")) or today
    class_name = request.args.get("class") or "all"
    search = (request.args.get("q") or "").strip()

    service = _service()
    try:
        records = service.history(school_id, start, end, class_name, search)
        classes = service.classes(school_id)
    except ValueError as exc:
        flash(str(exc), "warning")
        return redirect(url_for("reports.history"))
    except DataFetchError:
        return _fetch_failed()

    return render_template(
        "reports/history.html",
        records=records,
        classes=classes,
        start=start,
        end=end,
        selected_class=class_name,
        search=search,
        **_status_context(),
    )


@reports_bp.route("/bulanan", methods=["GET"])
@login_required
@role_required("admin", "teacher")
def monthly() -> str:
    guard = _require_school()
    if guard is not None:
        return guard
    month_reference = _selected_month()
    try:
        context, days = _service().monthly_page(_school_id(), month_reference.year, month_reference.month)
    except DataFetchError:
        return _fetch_failed()

    return render_template(
        "reports/monthly.html",
        context=context,
        days=days,
        selected_month=month_reference,
        **_status_context(),
    )


@reports_bp.route("/kelas", methods=["GET"], endpoint="class_report")
@login_required
@role_required("admin", "teacher")
def class_report() -> str:
    guard = _require_school()
    if guard is not None:
        return guard
    school_id = _school_id()
    selected_class = (request.args.get("class") or "").strip()
    service = _service()
    context = None
    try:
        classes = service.classes(school_id)
        if selected_class:
            context = service.class_context(school_id, selected_class)
    except ValueError as exc:
        flash(str(exc), "warning")
    except DataFetchError:
        return _fetch_failed()

    return render_template(
        "reports/class.html",
        classes=classes,
        selected_class=selected_class,
        context=context,
        **_status_context(),
    )


@reports_bp.route("/siswa", methods=["GET"])
@login_required
@role_required("admin", "teacher", "student")
def student() -> str:
    guard = _require_school()
    if guard is not None:
        return guard
    user = current_user() or {}
    school_id = _school_id()
    month_reference = _selected_month()
    search = (request.args.get("q") or "").strip()

    if user.get("role") == "student":
        student_id = user.get("student_id")
    else:
        student_id = request.args.get("student_id", type=int)

    service = _service()
    matches = []
    context = None
    chart = []
    try:
        if search and user.get("role") != "student":
            matches = service.search_students(school_id, search)
        if student_id:
            context, chart = service.student_page(
                school_id, student_id, month_reference.year, month_reference.month
            )
    except ValueError as exc:
        flash(str(exc), "warning")
    except DataFetchError:
        return _fetch_failed()

    return render_template(
        "reports/student.html",
        search=search,
        matches=matches,
        student_id=student_id,
        context=context,
        chart=chart,
        selected_month=month_reference,
        **_status_context(),
    )


@reports_bp.route("/rekap", methods=["GET"])
@login_required
@role_required("admin", "teacher")
def recap() -> str:
    guard = _require_school()
    if guard is not None:
        return guard
    school_id = _school_id()
    month_reference = _selected_month()
    class_name = request.args.get("class") or "all"
    service = _service()
    try:
        classes = service.classes(school_id)
        context = service.recap_context(school_id, month_reference.year, month_reference.month, class_name)
    except DataFetchError:
        return _fetch_failed()

    return render_template(
        "reports/recap.html",
        classes=classes,
        selected_class=class_name,
        context=context,
        total=total_row(context.rows),
        selected_month=month_reference,
        **_status_context(),
    )


def _generate(kind: str, fmt: str) -> GeneratedReport:
    service = _service()
    school_id = _school_id()
    user = current_user() or {}
    month_reference = _selected_month()
    class_name = request.args.get("class") or None

    if kind == "monthly":
        return service.monthly_report(school_id, month_reference.year, month_reference.month, fmt)
    if kind == "class":
        return service.class_report(school_id, class_name or "", fmt)
    if kind == "student":
        if user.get("role") == "student":
            student_id = user.get("student_id")
        else:
            student_id = request.args.get("student_id", type=int)
        if not student_id:
            raise ValueError("Silakan pilih siswa terlebih dahulu.")
        return service.student_report(school_id, student_id, month_reference.year, month_reference.month, fmt)
    if kind == "comprehensive":
        return service.comprehensive_report(
            school_id, month_reference.year, month_reference.month, fmt, class_name
        )
    if kind == "recap":
        return service.monthly_recap(school_id, month_reference.year, month_reference.month, fmt, class_name)
    raise ValueError("Jenis laporan tidak dikenal.")


@reports_bp.route("/<kind>/unduh/<fmt>", methods=["GET"])
@login_required
@role_required("admin", "teacher", "student")
def download(kind: str, fmt: str) -> Response:
    guard = _require_school()
    if guard is not None:
        return guard
    user = current_user() or {}
    back = redirect(url_for(_PAGE_ENDPOINTS.get(kind, "reports.monthly"), **request.args))
    if user.get("role") == "student" and kind != "student":
        flash("Anda tidak memiliki akses ke fitur ini.", "danger")
        return redirect(url_for("main.dashboard"))
    if fmt not in DOWNLOAD_FAILED_MESSAGES:
        flash("Format laporan tidak dikenal.", "warning")
        return back

    try:
        report = _generate(kind, fmt)
    except ValueError as exc:
        flash(str(exc), "warning")
        return back
    except DataFetchError:
        current_app.logger.exception("Gagal mengambil data untuk laporan %s", kind)
        flash(FETCH_FAILED_MESSAGE, "danger")
        return back
    except ReportGenerationError:
        current_app.logger.exception("Gagal membuat laporan %s", kind)
        flash(DOWNLOAD_FAILED_MESSAGES[fmt], "danger")
        return back

    response = Response(report.stream.getvalue(), mimetype=report.mimetype)
    response.headers["Content-Disposition"] = f"attachment; filename={report.filename}"
    return response
