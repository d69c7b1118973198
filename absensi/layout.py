"""Dashboard layout preferences.

The admin dashboard can switch between the fixed layout and a widget grid.
Both the switch and the per-role grid layouts live in a key-value store
(``dashboard_preferences`` in production) and are handed to the dashboard
view as a :class:`DashboardPreferences` value.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from . import queries

WIDGET_TYPES: Dict[str, str] = {
    "bar": "Bar Chart",
    "line": "Line Chart",
    "pie": "Pie Chart",
    "stats": "Statistics",
    "table": "Table",
}

BREAKPOINTS = ("lg", "md", "sm")

DEFAULT_LAYOUTS: Dict[str, List[Dict[str, Any]]] = {
    "lg": [
        {"i": "stats-1", "x": 0, "y": 0, "w": 4, "h": 2, "type": "stats"},
        {"i": "bar-1", "x": 4, "y": 0, "w": 8, "h": 4, "type": "bar"},
        {"i": "pie-1", "x": 0, "y": 2, "w": 4, "h": 4, "type": "pie"},
        {"i": "line-1", "x": 0, "y": 6, "w": 6, "h": 4, "type": "line"},
        {"i": "table-1", "x": 6, "y": 6, "w": 6, "h": 4, "type": "table"},
    ],
    "md": [
        {"i": "stats-1", "x": 0, "y": 0, "w": 4, "h": 2, "type": "stats"},
        {"i": "bar-1", "x": 4, "y": 0, "w": 4, "h": 4, "type": "bar"},
        {"i": "pie-1", "x": 0, "y": 2, "w": 4, "h": 4, "type": "pie"},
        {"i": "line-1", "x": 0, "y": 6, "w": 4, "h": 4, "type": "line"},
        {"i": "table-1", "x": 4, "y": 4, "w": 4, "h": 4, "type": "table"},
    ],
    "sm": [
        {"i": "stats-1", "x": 0, "y": 0, "w": 6, "h": 2, "type": "stats"},
        {"i": "bar-1", "x": 0, "y": 2, "w": 6, "h": 4, "type": "bar"},
        {"i": "pie-1", "x": 0, "y": 6, "w": 6, "h": 4, "type": "pie"},
        {"i": "line-1", "x": 0, "y": 10, "w": 6, "h": 4, "type": "line"},
        {"i": "table-1", "x": 0, "y": 14, "w": 6, "h": 4, "type": "table"},
    ],
}

DEFAULT_WIDGET_TITLES: Dict[str, str] = {
    "stats-1": "Statistik Kehadiran",
    "bar-1": "Kehadiran Bulanan",
    "pie-1": "Distribusi Kehadiran",
    "line-1": "Tren Kehadiran",
    "table-1": "Data Kehadiran Terkini",
}

DYNAMIC_DASHBOARD_KEY = "show_dynamic_dashboard"


def layout_key(role: str) -> str:
    return f"dashboard_layout_{role}"


class DatabasePreferenceStore:
    """Key-value store backed by the ``dashboard_preferences`` table."""

    def load(self, user_id: int) -> Dict[str, Any]:
        return queries.fetch_preferences(user_id)

    def save(self, user_id: int, key: str, value: Any) -> None:
        queries.save_preference(user_id, key, value)

    def delete(self, user_id: int, key: str) -> None:
        queries.delete_preference(user_id, key)


def _coerce_bool(raw_value: Any) -> bool:
    if isinstance(raw_value, str):
        return raw_value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw_value)


def _parse_item(raw_item: Any) -> Dict[str, Any]:
    if not isinstance(raw_item, Mapping):
        raise ValueError("Format widget tidak valid.")
    widget_id = str(raw_item.get("i") or "").strip()
    widget_type = str(raw_item.get("type") or "").strip()
    if not widget_id:
        raise ValueError("Widget wajib memiliki ID.")
    if widget_type not in WIDGET_TYPES:
        raise ValueError(f"Jenis widget tidak dikenal: {widget_type or '-'}")
    item: Dict[str, Any] = {"i": widget_id, "type": widget_type}
    for key, minimum in (("x", 0), ("y", 0), ("w", 1), ("h", 1)):
        try:
            value = int(raw_item.get(key))
        except (TypeError, ValueError):
            raise ValueError(f"Nilai {key} widget {widget_id} tidak valid.") from None
        if value < minimum:
            raise ValueError(f"Nilai {key} widget {widget_id} tidak valid.")
        item[key] = value
    return item


def parse_layouts(raw_layouts: Any) -> Dict[str, List[Dict[str, Any]]]:
    """Validate a ``{breakpoint: [widget, ...]}`` payload.

    Breakpoints missing from the payload keep their default layout.
    """
    if not isinstance(raw_layouts, Mapping):
        raise ValueError("Format layout tidak valid.")
    unknown = set(raw_layouts) - set(BREAKPOINTS)
    if unknown:
        raise ValueError(f"Breakpoint tidak dikenal: {', '.join(sorted(unknown))}")
    layouts = deepcopy(DEFAULT_LAYOUTS)
    for breakpoint in BREAKPOINTS:
        if breakpoint not in raw_layouts:
            continue
        items = raw_layouts[breakpoint]
        if not isinstance(items, list):
            raise ValueError("Format layout tidak valid.")
        layouts[breakpoint] = [_parse_item(item) for item in items]
    return layouts


@dataclass
class DashboardPreferences:
    role: str
    show_dynamic_dashboard: bool = False
    layouts: Dict[str, List[Dict[str, Any]]] = field(default_factory=lambda: deepcopy(DEFAULT_LAYOUTS))

    @classmethod
    def from_store(cls, store: Any, user_id: int, role: str) -> "DashboardPreferences":
        stored = store.load(user_id) or {}
        layouts = deepcopy(DEFAULT_LAYOUTS)
        raw_layouts = stored.get(layout_key(role))
        if raw_layouts is not None:
            try:
                layouts = parse_layouts(raw_layouts)
            except ValueError:
                layouts = deepcopy(DEFAULT_LAYOUTS)
        return cls(
            role=role,
            show_dynamic_dashboard=_coerce_bool(stored.get(DYNAMIC_DASHBOARD_KEY, False)),
            layouts=layouts,
        )

    def widgets(self) -> List[Dict[str, Any]]:
        """Widgets of the widest breakpoint with their display titles."""
        return [
            {
                "id": item["i"],
                "type": item["type"],
                "title": DEFAULT_WIDGET_TITLES.get(item["i"], f"Widget {item['i']}"),
            }
            for item in self.layouts.get("lg", [])
        ]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "show_dynamic_dashboard": self.show_dynamic_dashboard,
            "layouts": self.layouts,
            "widgets": self.widgets(),
            "widget_types": WIDGET_TYPES,
        }


def set_dynamic_dashboard(store: Any, user_id: int, enabled: Any) -> bool:
    value = _coerce_bool(enabled)
    store.save(user_id, DYNAMIC_DASHBOARD_KEY, value)
    return value


def save_layouts(store: Any, user_id: int, role: str, raw_layouts: Any) -> DashboardPreferences:
    layouts = parse_layouts(raw_layouts)
    store.save(user_id, layout_key(role), layouts)
    return DashboardPreferences.from_store(store, user_id, role)


def reset_layouts(store: Any, user_id: int, role: str) -> DashboardPreferences:
    store.delete(user_id, layout_key(role))
    return DashboardPreferences.from_store(store, user_id, role)


__all__ = [
    "BREAKPOINTS",
    "DEFAULT_LAYOUTS",
    "DEFAULT_WIDGET_TITLES",
    "DYNAMIC_DASHBOARD_KEY",
    "DashboardPreferences",
    "DatabasePreferenceStore",
    "WIDGET_TYPES",
    "layout_key",
    "parse_layouts",
    "reset_layouts",
    "save_layouts",
    "set_dynamic_dashboard",
]
