"""Status kehadiran: kosakata bilingual dipetakan ke empat bucket kanonik."""

from __future__ import annotations

from typing import Dict, Literal, Optional

StatusBucket = Literal["present", "sick", "permitted", "absent"]

PRESENT: StatusBucket = "present"
SICK: StatusBucket = "sick"
PERMITTED: StatusBucket = "permitted"
ABSENT: StatusBucket = "absent"

STATUS_BUCKETS: tuple[StatusBucket, ...] = (
    PRESENT,
    SICK,
    PERMITTED,
    ABSENT,
)

_STATUS_ALIASES: Dict[str, StatusBucket] = {
    "hadir": PRESENT,
    "present": PRESENT,
    "sakit": SICK,
    "sick": SICK,
    "izin": PERMITTED,
    "permitted": PERMITTED,
    "alpha": ABSENT,
    "absent": ABSENT,
}

KNOWN_STATUS_CODES: tuple[str, ...] = tuple(_STATUS_ALIASES)

STATUS_LABELS: Dict[StatusBucket, str] = {
    PRESENT: "Hadir",
    SICK: "Sakit",
    PERMITTED: "Izin",
    ABSENT: "Alpha",
}

STATUS_BADGES: Dict[StatusBucket, str] = {
    PRESENT: "success",
    SICK: "info",
    PERMITTED: "warning",
    ABSENT: "danger",
}


def normalize_status(value: Optional[str]) -> Optional[StatusBucket]:
    """Return the canonical bucket for ``value`` or ``None`` when unrecognized.

    Canonical bucket names map to themselves, so normalizing twice is stable.
    """
    if value is None:
        return None
    return _STATUS_ALIASES.get(str(value).strip().lower())


def status_label(value: Optional[str]) -> str:
    bucket = normalize_status(value)
    if bucket is None:
        return (value or "-").strip() or "-"
    return STATUS_LABELS[bucket]


def status_badge(value: Optional[str]) -> str:
    bucket = normalize_status(value)
    if bucket is None:
        return "secondary"
    return STATUS_BADGES[bucket]


__all__ = [
    "ABSENT",
    "KNOWN_STATUS_CODES",
    "PERMITTED",
    "PRESENT",
    "SICK",
    "STATUS_BADGES",
    "STATUS_BUCKETS",
    "STATUS_LABELS",
    "StatusBucket",
    "normalize_status",
    "status_badge",
    "status_label",
]
