from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Hashable, Literal


NodeId = Hashable
"""Node ids come from the persistence layer: integers or strings."""

ROOT_SENTINEL: NodeId = 0
"""Parent id used for top-level nodes in the flat representation."""

LABEL_FIELDS: tuple[str, ...] = ("name", "content")
PLACEHOLDER_LABEL = "(untitled)"

EditedField = Literal["status", "progress"]


class TaskStatus(Enum):
    """Internal three-state task status; localized names live at the display boundary."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus":
        """Map a source status value (any supported locale or spelling) onto the enum."""
        if isinstance(value, TaskStatus):
            return value
        if not isinstance(value, str):
            raise ValueError(f"unsupported status value {value!r}")
        key = value.strip()
        status = _SOURCE_STATUSES.get(key) or _SOURCE_STATUSES.get(key.upper().replace("-", "_").replace(" ", "_"))
        if status is None:
            raise ValueError(f"unsupported status value {value!r}")
        return status


_SOURCE_STATUSES: dict[str, TaskStatus] = {
    "미완료": TaskStatus.NOT_STARTED,
    "진행중": TaskStatus.IN_PROGRESS,
    "완료": TaskStatus.DONE,
    "TODO": TaskStatus.NOT_STARTED,
    "NOT_STARTED": TaskStatus.NOT_STARTED,
    "IN_PROGRESS": TaskStatus.IN_PROGRESS,
    "DOING": TaskStatus.IN_PROGRESS,
    "DONE": TaskStatus.DONE,
    "COMPLETED": TaskStatus.DONE,
}

STATUS_DISPLAY_NAMES: dict[str, dict[TaskStatus, str]] = {
    "en": {
        TaskStatus.NOT_STARTED: "Todo",
        TaskStatus.IN_PROGRESS: "In Progress",
        TaskStatus.DONE: "Done",
    },
    "ko": {
        TaskStatus.NOT_STARTED: "미완료",
        TaskStatus.IN_PROGRESS: "진행중",
        TaskStatus.DONE: "완료",
    },
}


def display_name(status: TaskStatus, locale: str = "en") -> str:
    """Localized label for a status; unknown locales fall back to English."""
    names = STATUS_DISPLAY_NAMES.get(locale, STATUS_DISPLAY_NAMES["en"])
    return names[status]


@dataclass(frozen=True)
class TaskNode:
    """
    One WBS item.

    Instances are immutable; edits and moves produce new nodes via
    dataclasses.replace. `depth` is derived on every flatten and is ignored
    by equality. `children` is only populated in the tree representation.
    """

    id: NodeId
    name: str | None = None
    content: str | None = None
    parent_id: NodeId | None = ROOT_SENTINEL
    order: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    completed_at: str | None = None
    deadline: str | None = None
    registered_at: str | None = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    progress: int = 0
    assignee: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, hash=False)
    children: tuple["TaskNode", ...] = ()
    depth: int = field(default=0, compare=False)

    @property
    def label(self) -> str:
        return node_label(self)

    @property
    def is_done(self) -> bool:
        return self.status is TaskStatus.DONE


def node_label(
    node: TaskNode,
    fields: tuple[str, ...] = LABEL_FIELDS,
    placeholder: str = PLACEHOLDER_LABEL,
) -> str:
    """First non-blank candidate field, else the placeholder."""
    for name in fields:
        value = getattr(node, name, None)
        if value is None:
            value = node.extra.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return placeholder


def is_top_level(parent_id: NodeId | None, root_sentinel: NodeId = ROOT_SENTINEL) -> bool:
    return parent_id is None or parent_id == root_sentinel


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day interval."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class DisplayWindow:
    """Contiguous run of calendar days shown by the Gantt chart, usually one month."""

    start: date
    end: date

    @property
    def days(self) -> list[date]:
        return [self.start + timedelta(days=offset) for offset in range((self.end - self.start).days + 1)]

    def offset(self, day: date) -> int:
        """Zero-based day offset from the window start."""
        return (day - self.start).days


@dataclass(frozen=True)
class GanttRow:
    """
    Grid placement for one visible task.

    Column 0 holds the label; day offset d sits in column d + 1. `col_end`
    is exclusive, so a single-day bar spans one column. Row 0 is the header.
    """

    node_id: NodeId
    label: str
    row: int
    depth: int
    depth_marker: str
    status: TaskStatus
    range: DateRange
    start: date
    end: date
    start_offset: int
    end_offset: int
    col_start: int
    col_end: int
    color: str

    @property
    def span(self) -> int:
        return self.col_end - self.col_start


@dataclass
class GanttLayout:
    """Result of laying out one display window."""

    window: DisplayWindow
    rows: list[GanttRow] = field(default_factory=list)
    hidden: list[NodeId] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.window.days) + 1
