"""Work breakdown structure engine: tree/flat conversion, moves, date inference and Gantt layout."""

from .config import EngineConfig, load_config
from .date_inference import intersects, resolve_range
from .errors import (
    ConfigError,
    CycleError,
    DuplicateIdError,
    StructureError,
    TaskFileError,
    UnknownNodeError,
    UnknownParentError,
)
from .gantt_layout import layout_gantt, month_window, shift_month
from .hierarchy import MoveOutcome, move, try_move
from .status import edit_node, progress_rollup, reconcile, status_summary
from .task_models import DateRange, DisplayWindow, GanttLayout, GanttRow, TaskNode, TaskStatus
from .tree_flat import split_orphans, to_flat, to_tree

__all__ = [
    "ConfigError",
    "CycleError",
    "DateRange",
    "DisplayWindow",
    "DuplicateIdError",
    "EngineConfig",
    "GanttLayout",
    "GanttRow",
    "MoveOutcome",
    "StructureError",
    "TaskFileError",
    "TaskNode",
    "TaskStatus",
    "UnknownNodeError",
    "UnknownParentError",
    "edit_node",
    "intersects",
    "layout_gantt",
    "load_config",
    "month_window",
    "move",
    "progress_rollup",
    "reconcile",
    "resolve_range",
    "shift_month",
    "split_orphans",
    "status_summary",
    "to_flat",
    "to_tree",
    "try_move",
]
