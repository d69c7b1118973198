from __future__ import annotations

from flask import Blueprint

reports_bp = Blueprint(
    "reports",
    __name__,
    url_prefix="/laporan",
)

from . import routes  # noqa: E402,F401
