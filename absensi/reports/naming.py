from __future__ import annotations

from datetime import date
from typing import Optional

from ..utils import current_jakarta_time, format_month_label

PDF = "pdf"
XLSX = "xlsx"

MIMETYPES = {
    PDF: "application/pdf",
    XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

REPORT_KINDS = ("monthly", "class", "student", "comprehensive")


def _today(today: Optional[date]) -> date:
    return today or current_jakarta_time().date()


def _check_extension(extension: str) -> str:
    if extension not in MIMETYPES:
        raise ValueError(f"Format laporan tidak dikenal: {extension}")
    return extension


def report_filename(report_type: str, extension: str, today: Optional[date] = None) -> str:
    """``Laporan_monthly_14-05-2025.pdf``"""
    stamp = _today(today).strftime("%d-%m-%Y")
    return f"Laporan_{report_type}_{stamp}.{_check_extension(extension)}"


def comprehensive_filename(extension: str, today: Optional[date] = None) -> str:
    stamp = _today(today).strftime("%d-%m-%Y")
    return f"Laporan_Komprehensif_{stamp}.{_check_extension(extension)}"


def recap_filename(year: int, month: int, extension: str) -> str:
    """``Rekap_Kehadiran_Mei_2025.xlsx``"""
    label = format_month_label(year, month).replace(" ", "_")
    return f"Rekap_Kehadiran_{label}.{_check_extension(extension)}"


__all__ = [
    "MIMETYPES",
    "PDF",
    "REPORT_KINDS",
    "XLSX",
    "comprehensive_filename",
    "recap_filename",
    "report_filename",
]
