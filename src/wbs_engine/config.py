from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .task_models import LABEL_FIELDS, PLACEHOLDER_LABEL, ROOT_SENTINEL, STATUS_DISPLAY_NAMES, NodeId

# Tunable defaults. The duration and the candidate order are product choices,
# not invariants.
DEFAULT_DURATION_DAYS = 3
START_FIELDS = ("start_date", "registered_at")
END_FIELDS = ("end_date", "deadline")
COMPLETED_END_FIELDS = ("completed_at",)

COMPLETED_COLOR = "#22c55e"
OVERDUE_COLOR = "#ef4444"
DEFAULT_COLOR = "#3b82f6"
DEPTH_MARKERS = ("#1d4ed8", "#0891b2", "#7c3aed", "#6b7280")
"""Marker colors for depth 0, 1, 2 and 3+."""

_DATE_FIELDS = {"start_date", "end_date", "completed_at", "deadline", "registered_at"}


@dataclass(frozen=True)
class EngineConfig:
    """Knobs for label fallback, date inference and Gantt colors."""

    root_sentinel: NodeId = ROOT_SENTINEL
    default_duration_days: int = DEFAULT_DURATION_DAYS
    start_fields: tuple[str, ...] = START_FIELDS
    end_fields: tuple[str, ...] = END_FIELDS
    completed_end_fields: tuple[str, ...] = COMPLETED_END_FIELDS
    label_fields: tuple[str, ...] = LABEL_FIELDS
    placeholder_label: str = PLACEHOLDER_LABEL
    completed_color: str = COMPLETED_COLOR
    overdue_color: str = OVERDUE_COLOR
    default_color: str = DEFAULT_COLOR
    depth_markers: tuple[str, ...] = field(default=DEPTH_MARKERS)
    locale: str = "en"

    def depth_marker(self, depth: int) -> str:
        return self.depth_markers[min(depth, len(self.depth_markers) - 1)]


def load_config(path: str | Path | None) -> EngineConfig:
    """Load an EngineConfig from YAML; missing path means defaults."""

    if path is None:
        return EngineConfig()

    with open(path, "r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"{path}: invalid YAML ({exc})") from exc

    if raw is None:
        return EngineConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected mapping at top level")
    return config_from_mapping(raw)


def config_from_mapping(raw: dict[str, Any]) -> EngineConfig:
    allowed = {f.name for f in dataclasses.fields(EngineConfig)}
    extras = sorted(set(raw) - allowed)
    if extras:
        raise ConfigError(f"unexpected config fields {extras}")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key in {"start_fields", "end_fields", "completed_end_fields", "label_fields", "depth_markers"}:
            values[key] = _require_str_tuple(key, value)
        elif key == "default_duration_days":
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigError("default_duration_days: expected non-negative integer")
            values[key] = value
        elif key == "locale":
            if value not in STATUS_DISPLAY_NAMES:
                raise ConfigError(f"locale: expected one of {sorted(STATUS_DISPLAY_NAMES)}")
            values[key] = value
        elif key == "root_sentinel":
            if not isinstance(value, (int, str)) or isinstance(value, bool):
                raise ConfigError("root_sentinel: expected integer or string")
            values[key] = value
        else:
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{key}: expected non-empty string")
            values[key] = value

    for key in ("start_fields", "end_fields", "completed_end_fields"):
        unknown = [name for name in values.get(key, ()) if name not in _DATE_FIELDS]
        if unknown:
            raise ConfigError(f"{key}: unknown date fields {unknown}")

    return EngineConfig(**values)


def _require_str_tuple(key: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{key}: expected non-empty list of strings")
    for idx, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"{key}[{idx}]: expected non-empty string")
    return tuple(value)
