from __future__ import annotations

from typing import Any, Dict

from flask import (
    Blueprint,
    Response,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from .auth import ROLE_LABELS, current_user, login_required, role_required
from .layout import DashboardPreferences, reset_layouts, save_layouts, set_dynamic_dashboard
from .queries import assign_user_school, create_school, get_school, update_school
from .reports.service import DataFetchError
from .reports.status import status_badge, status_label
from .utils import current_jakarta_time

main_bp = Blueprint("main", __name__)

WELCOME_TEXT = "SELAMAT DATANG DI ABSENSI DIGITAL"
NO_ROLE_MESSAGE = "Silakan hubungi administrator untuk mengatur peran akses Anda."


def _preference_store():
    return current_app.extensions["preference_store"]


def _report_service():
    return current_app.extensions["report_service"]


def _empty_overview() -> Dict[str, Any]:
    return {
        "counts": {"students": 0, "classes": 0, "teachers": 0},
        "classes": [],
        "recent": [],
        "summary": None,
        "attendance_rate": 0,
    }


@main_bp.route("/")
@login_required
def dashboard() -> Response:
    user = current_user() or {}
    role = user.get("role")
    today = current_jakarta_time()

    if role not in ROLE_LABELS:
        return render_template("dashboard/no_role.html", message=NO_ROLE_MESSAGE)

    school_id = user.get("school_id")
    if role == "admin" and not school_id:
        return redirect(url_for("main.setup_school"))

    service = _report_service()
    overview = _empty_overview()
    preferences = None
    try:
        if role == "student":
            if school_id and user.get("student_id"):
                overview.update(service.student_overview(school_id, user["student_id"]))
        elif school_id:
            overview.update(service.dashboard_overview(school_id))
    except DataFetchError:
        current_app.logger.exception("Gagal memuat ringkasan dashboard")
        flash("Gagal mengambil data dari database", "danger")

    if role == "admin":
        try:
            preferences = DashboardPreferences.from_store(_preference_store(), user["id"], role)
        except Exception:
            current_app.logger.exception("Gagal memuat preferensi dashboard")
            preferences = DashboardPreferences(role=role)

    return render_template(
        f"dashboard/{role}.html",
        welcome_text=WELCOME_TEXT,
        role_label=ROLE_LABELS[role],
        overview=overview,
        preferences=preferences,
        status_label=status_label,
        status_badge=status_badge,
        today=today,
    )


def _json_payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


@main_bp.route("/preferences/dynamic-dashboard", methods=["POST"])
@role_required("admin")
def toggle_dynamic_dashboard() -> Response:
    user = current_user()
    if not user:
        return jsonify({"success": False, "message": "Unauthorized"}), 401

    payload = _json_payload()
    try:
        enabled = set_dynamic_dashboard(_preference_store(), user["id"], payload.get("enabled"))
    except Exception as exc:  # pragma: no cover - surfaces to UI
        current_app.logger.exception("Gagal menyimpan preferensi dashboard")
        return jsonify({"success": False, "message": str(exc)}), 500

    return jsonify({"success": True, "enabled": enabled})


@main_bp.route("/preferences/layout", methods=["POST"])
@role_required("admin")
def save_dashboard_layout() -> Response:
    user = current_user()
    if not user:
        return jsonify({"success": False, "message": "Unauthorized"}), 401

    payload = _json_payload()
    try:
        preferences = save_layouts(_preference_store(), user["id"], user["role"], payload.get("layouts"))
    except ValueError as exc:
        return jsonify({"success": False, "message": str(exc)}), 400
    except Exception as exc:  # pragma: no cover - surfaces to UI
        current_app.logger.exception("Gagal menyimpan layout dashboard")
        return jsonify({"success": False, "message": str(exc)}), 500

    return jsonify({"success": True, "preferences": preferences.to_payload()})


@main_bp.route("/preferences/layout/reset", methods=["POST"])
@role_required("admin")
def reset_dashboard_layout() -> Response:
    user = current_user()
    if not user:
        return jsonify({"success": False, "message": "Unauthorized"}), 401

    try:
        preferences = reset_layouts(_preference_store(), user["id"], user["role"])
    except Exception as exc:  # pragma: no cover - surfaces to UI
        current_app.logger.exception("Gagal mengatur ulang layout dashboard")
        return jsonify({"success": False, "message": str(exc)}), 500

    return jsonify({"success": True, "preferences": preferences.to_payload()})


def _extract_school_form(form_data) -> Dict[str, Any]:
    payload = {
        "name": (form_data.get("name") or "").strip(),
        "address": (form_data.get("address") or "").strip(),
        "npsn": (form_data.get("npsn") or "").strip(),
        "principal_name": (form_data.get("principal_name") or "").strip(),
        "principal_nip": (form_data.get("principal_nip") or "").strip() or None,
    }
    if not payload["name"]:
        raise ValueError("Nama sekolah wajib diisi.")
    if not payload["npsn"]:
        raise ValueError("NPSN wajib diisi.")
    return payload


@main_bp.route("/sekolah/setup", methods=["GET", "POST"])
@role_required("admin")
def setup_school() -> Response:
    user = current_user() or {}
    school_id = user.get("school_id")
    school = None

    if request.method == "POST":
        try:
            payload = _extract_school_form(request.form)
            if not school_id:
                school_id = create_school(str(user["id"]), created_by=user["id"])
                assign_user_school(user["id"], school_id)
                session_user = session.get("user") or {}
                session_user["school_id"] = school_id
                session["user"] = session_user
            update_school(school_id, **payload)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("setup_school.html", school=request.form)
        except Exception:
            current_app.logger.exception("Gagal menyimpan data sekolah")
            flash("Gagal menyimpan data sekolah.", "danger")
            return render_template("setup_school.html", school=request.form)

        flash("Data sekolah berhasil disimpan.", "success")
        return redirect(url_for("main.dashboard"))

    if school_id:
        try:
            school = get_school(school_id)
        except Exception:
            current_app.logger.exception("Gagal memuat data sekolah %s", school_id)
            flash("Gagal mengambil data dari database", "danger")
    return render_template("setup_school.html", school=school or {})
