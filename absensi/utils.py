from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union

try:
    from zoneinfo import ZoneInfo
except (ImportError, ModuleNotFoundError):
    ZoneInfo = None

if ZoneInfo is not None:
    try:
        JAKARTA_TZ = ZoneInfo("Asia/Jakarta")
    except Exception:
        JAKARTA_TZ = None
    try:
        UTC_TZ = ZoneInfo("UTC")
    except Exception:
        UTC_TZ = timezone.utc
else:
    JAKARTA_TZ = None
    UTC_TZ = timezone.utc


INDONESIAN_MONTH_NAMES = {
    1: "Januari",
    2: "Februari",
    3: "Maret",
    4: "April",
    5: "Mei",
    6: "Juni",
    7: "Juli",
    8: "Agustus",
    9: "September",
    10: "Oktober",
    11: "November",
    12: "Desember",
}


def current_jakarta_time() -> datetime:
    if JAKARTA_TZ is not None:
        try:
            return datetime.now(JAKARTA_TZ)
        except Exception:
            pass
    return datetime.now()


def to_jakarta(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if not isinstance(dt, datetime):
        return dt
    if JAKARTA_TZ is None:
        return dt
    try:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC_TZ)
        return dt.astimezone(JAKARTA_TZ)
    except Exception:
        return dt


def format_indonesian_date(dt: Union[date, datetime]) -> str:
    """`14 Mei 2025` style date used in report footers."""
    month_name = INDONESIAN_MONTH_NAMES.get(dt.month, dt.strftime("%B"))
    return f"{dt.day} {month_name} {dt.year}"


def format_month_label(year: int, month: int) -> str:
    month_name = INDONESIAN_MONTH_NAMES.get(month, str(month))
    return f"{month_name} {year}"


def parse_month_value(raw_value: Optional[str], fallback: date) -> date:
    """Parse a `YYYY-MM` query value into the first day of that month."""
    if raw_value:
        try:
            return datetime.strptime(raw_value, "%Y-%m").date().replace(day=1)
        except ValueError:
            pass
    return fallback.replace(day=1)


def parse_iso_date(raw_value: Optional[str]) -> Optional[date]:
    if not raw_value:
        return None
    try:
        return date.fromisoformat(str(raw_value).strip())
    except ValueError:
        return None
