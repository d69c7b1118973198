from __future__ import annotations

import atexit
import logging
import os
from datetime import timedelta
from typing import Any, Mapping, Optional

from flask import Flask

from .auth import ROLE_LABELS, auth_bp, current_user
from .db_access import shutdown_pool
from .layout import DatabasePreferenceStore
from .reports import reports_bp
from .reports.service import ReportService
from .routes import main_bp
from .schema import ensure_dashboard_schema
from .utils import format_indonesian_date, to_jakarta


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(
        __name__,
        template_folder="templates",
    )

    app.config["SECRET_KEY"] = os.getenv("DASHBOARD_SECRET_KEY", "change-me")
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(
        days=int(os.getenv("DASHBOARD_SESSION_DAYS", "14"))
    )
    if overrides:
        app.config.update(overrides)

    log_level = os.getenv("DASHBOARD_LOG_LEVEL", "INFO").upper()
    app.logger.setLevel(getattr(logging, log_level, logging.INFO))

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(reports_bp)

    app.extensions["report_service"] = app.config.get("REPORT_SERVICE") or ReportService()
    app.extensions["preference_store"] = app.config.get("PREFERENCE_STORE") or DatabasePreferenceStore()

    if not (app.config.get("TESTING") or app.config.get("SKIP_SCHEMA")):
        try:
            ensure_dashboard_schema()
        except Exception:
            # App tetap jalan; halaman akan menampilkan pesan gagal ambil data
            app.logger.exception("Gagal menyiapkan schema dashboard")

    @app.context_processor
    def inject_globals() -> dict:
        return {
            "current_user": current_user(),
            "role_labels": ROLE_LABELS,
        }

    @app.template_filter("jakarta")
    def format_jakarta(value, fmt="%d %b %Y %H:%M"):
        if value is None:
            return ""
        dt = to_jakarta(value)
        try:
            return dt.strftime(fmt)
        except Exception:
            return ""

    @app.template_filter("tanggal")
    def format_tanggal(value):
        if value is None:
            return ""
        return format_indonesian_date(value)

    atexit.register(shutdown_pool)

    return app
