from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from .task_models import EditedField, TaskNode, TaskStatus


def reconcile(status: TaskStatus, progress: int, changed_field: EditedField) -> tuple[TaskStatus, int]:
    """
    Return a consistent (status, progress) pair after the user edited one of them.

    - status DONE forces 100, NOT_STARTED forces 0, IN_PROGRESS keeps the
      progress but moves 0/100 to 1/99.
    - progress 100 means DONE, 0 means NOT_STARTED, anything in between
      IN_PROGRESS. Out-of-range progress is clamped first.

    Consistent pairs come back unchanged, so applying it twice is a no-op.
    """

    status = TaskStatus.parse(status)
    progress = _clamp(progress)

    if changed_field == "status":
        if status is TaskStatus.DONE:
            return status, 100
        if status is TaskStatus.NOT_STARTED:
            return status, 0
        return status, min(max(progress, 1), 99)

    if changed_field == "progress":
        if progress == 100:
            return TaskStatus.DONE, progress
        if progress == 0:
            return TaskStatus.NOT_STARTED, progress
        return TaskStatus.IN_PROGRESS, progress

    raise ValueError(f"changed_field must be 'status' or 'progress', got {changed_field!r}")


def edit_node(node: TaskNode, *, status: Any = None, progress: int | None = None) -> TaskNode:
    """Apply one status or progress edit to a node and return the reconciled copy."""

    if (status is None) == (progress is None):
        raise ValueError("edit exactly one of status or progress")
    if status is not None:
        new_status, new_progress = reconcile(TaskStatus.parse(status), node.progress, "status")
    else:
        new_status, new_progress = reconcile(node.status, progress, "progress")
    return replace(node, status=new_status, progress=new_progress)


def is_consistent(status: TaskStatus, progress: int) -> bool:
    if status is TaskStatus.DONE:
        return progress == 100
    if status is TaskStatus.NOT_STARTED:
        return progress == 0
    return 0 < progress < 100


def _clamp(progress: int) -> int:
    if isinstance(progress, bool) or not isinstance(progress, int):
        raise TypeError(f"progress must be an integer, got {progress!r}")
    return max(0, min(100, progress))


def progress_rollup(flat: Iterable[TaskNode]) -> int:
    """Mean node progress rounded half up; 0 for an empty structure."""
    values = [node.progress for node in flat]
    if not values:
        return 0
    return (2 * sum(values) + len(values)) // (2 * len(values))


def status_summary(flat: Iterable[TaskNode]) -> dict[TaskStatus, int]:
    """
    Count nodes per status bucket, derived from progress alone.

    0 is NOT_STARTED, 100 or more is DONE, anything else IN_PROGRESS. Every
    bucket is present, empty ones with a zero count.
    """

    summary = {status: 0 for status in TaskStatus}
    for node in flat:
        if node.progress <= 0:
            summary[TaskStatus.NOT_STARTED] += 1
        elif node.progress >= 100:
            summary[TaskStatus.DONE] += 1
        else:
            summary[TaskStatus.IN_PROGRESS] += 1
    return summary
