from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

import yaml

from .errors import TaskFileError
from .status import is_consistent, reconcile
from .task_models import ROOT_SENTINEL, NodeId, TaskNode, TaskStatus, is_top_level
from .tree_flat import to_tree

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    "parentId": "parent_id",
    "startDate": "start_date",
    "endDate": "end_date",
    "completedAt": "completed_at",
    "registeredAt": "registered_at",
}
DATE_FIELDS = ("start_date", "end_date", "completed_at", "deadline", "registered_at")
TEXT_FIELDS = ("name", "content", "assignee")
KNOWN_FIELDS = {"id", "parent_id", "order", "status", "progress", "children", *DATE_FIELDS, *TEXT_FIELDS}

STATUS_SOURCE_VALUES = {
    TaskStatus.NOT_STARTED: "TODO",
    TaskStatus.IN_PROGRESS: "IN_PROGRESS",
    TaskStatus.DONE: "DONE",
}
"""Status values the backend stores."""


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable document paths like tasks[0].children[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


@dataclass
class TaskDocument:
    """A parsed WBS document: optional project name and the task tree."""

    name: str | None = None
    roots: list[TaskNode] = field(default_factory=list)


def load_document(path: str, root_sentinel: NodeId = ROOT_SENTINEL) -> TaskDocument:
    """Load a WBS document from a JSON or YAML file (.json uses the JSON parser)."""

    with open(path, "r", encoding="utf-8") as fh:
        try:
            raw = json.load(fh) if str(path).endswith(".json") else yaml.safe_load(fh)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise TaskFileError(f"{path}: invalid JSON/YAML ({exc})") from exc

    return parse_document(raw, root_sentinel)


def parse_document(data: Any, root_sentinel: NodeId = ROOT_SENTINEL) -> TaskDocument:
    """
    Build the task tree from a decoded document.

    Accepts a bare list of tasks or a mapping with `tasks` (and an optional
    `project.name`). Tasks may be nested through `children`, listed flat with
    `parent_id` references, or both.
    """

    path = _Path()
    name = None
    items_key = ""
    if isinstance(data, dict):
        _assert_allowed_keys(data, {"project", "tasks"}, path)
        project = data.get("project")
        if project is not None:
            if not isinstance(project, dict) or not isinstance(project.get("name"), str):
                raise TaskFileError(f"{path.child('project')}: expected mapping with a 'name' string")
            name = project["name"]
        items = data.get("tasks")
        items_key = "tasks"
    else:
        items = data

    if not isinstance(items, list):
        raise TaskFileError(f"{path.child(items_key or 'root')}: expected list of tasks")

    flat: list[TaskNode] = []
    for idx, item in enumerate(items):
        _collect(item, path.child(f"{items_key}[{idx}]"), flat, None)

    return TaskDocument(name=name, roots=to_tree(flat, root_sentinel))


def load_tree(path: str, root_sentinel: NodeId = ROOT_SENTINEL) -> list[TaskNode]:
    return load_document(path, root_sentinel).roots


def _collect(data: Any, path: _Path, flat: list[TaskNode], nested_parent: NodeId | None) -> None:
    """Append the task and its nested children to flat; nesting overrides parent_id."""

    node = node_from_dict(data, path)
    children_raw = _normalize_keys(data).get("children") or []
    if not isinstance(children_raw, list):
        raise TaskFileError(f"{path}.children: expected list")
    if nested_parent is not None:
        if not is_top_level(node.parent_id) and node.parent_id != nested_parent:
            logger.warning("%s: parent_id %r disagrees with nesting under %r", path, node.parent_id, nested_parent)
        node = replace(node, parent_id=nested_parent)
    flat.append(node)
    for idx, child in enumerate(children_raw):
        _collect(child, path.child(f"children[{idx}]"), flat, node.id)


def node_from_dict(data: Any, path: _Path | None = None) -> TaskNode:
    """Convert one task mapping (snake or camel case keys) into a TaskNode; children are ignored."""

    path = path or _Path()
    if not isinstance(data, dict):
        raise TaskFileError(f"{path}: expected mapping for task")
    data = _normalize_keys(data)

    node_id = _require_id(data, path)
    values: dict[str, Any] = {"id": node_id}

    for key in TEXT_FIELDS:
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise TaskFileError(f"{path.child(key)}: expected string")
        values[key] = value

    for key in DATE_FIELDS:
        values[key] = _date_text(data.get(key), path.child(key))

    parent_id = data.get("parent_id")
    if parent_id is not None and (isinstance(parent_id, bool) or not isinstance(parent_id, (int, str))):
        raise TaskFileError(f"{path.child('parent_id')}: expected id or null")
    values["parent_id"] = parent_id

    order = data.get("order")
    if order is not None and (isinstance(order, bool) or not isinstance(order, int)):
        raise TaskFileError(f"{path.child('order')}: expected integer")
    values["order"] = order

    progress = data.get("progress")
    if progress is not None and (isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100):
        raise TaskFileError(f"{path.child('progress')}: expected integer between 0 and 100")

    status = None
    if data.get("status") is not None:
        try:
            status = TaskStatus.parse(data["status"])
        except ValueError as exc:
            raise TaskFileError(f"{path.child('status')}: {exc}") from exc

    values["status"], values["progress"] = _coupled(status, progress, path)
    values["extra"] = {key: value for key, value in data.items() if key not in KNOWN_FIELDS}
    return TaskNode(**values)


def node_to_dict(node: TaskNode, root_sentinel: NodeId = ROOT_SENTINEL, include_children: bool = True) -> dict[str, Any]:
    """Backend-shaped mapping for a node; top-level parent is emitted as null."""

    payload: dict[str, Any] = dict(node.extra)
    payload.update(
        {
            "id": node.id,
            "name": node.name,
            "content": node.content,
            "parent_id": None if is_top_level(node.parent_id, root_sentinel) else node.parent_id,
            "order": node.order,
            "start_date": node.start_date,
            "end_date": node.end_date,
            "completed_at": node.completed_at,
            "deadline": node.deadline,
            "registered_at": node.registered_at,
            "status": STATUS_SOURCE_VALUES[node.status],
            "progress": node.progress,
            "assignee": node.assignee,
        }
    )
    if include_children:
        payload["children"] = [node_to_dict(child, root_sentinel) for child in node.children]
    return payload


def node_payload(node: TaskNode, root_sentinel: NodeId = ROOT_SENTINEL) -> dict[str, Any]:
    """Full-node payload sent after a single field edit."""
    return node_to_dict(node, root_sentinel, include_children=False)


def structure_payload(flat: Iterable[TaskNode], root_sentinel: NodeId = ROOT_SENTINEL) -> list[dict[str, Any]]:
    """Full {id, parent_id, order} replacement list for the structure endpoint."""
    return [
        {
            "id": node.id,
            "parent_id": None if is_top_level(node.parent_id, root_sentinel) else node.parent_id,
            "order": node.order,
        }
        for node in flat
    ]


def _coupled(status: TaskStatus | None, progress: int | None, path: _Path) -> tuple[TaskStatus, int]:
    if status is None and progress is None:
        return TaskStatus.NOT_STARTED, 0
    if status is None:
        return reconcile(TaskStatus.NOT_STARTED, progress, "progress")
    if progress is None:
        return reconcile(status, 0, "status")
    if not is_consistent(status, progress):
        logger.warning("%s: status %s disagrees with progress %s; keeping progress", path, status.name, progress)
        return reconcile(status, progress, "progress")
    return status, progress


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {FIELD_ALIASES.get(key, key): value for key, value in data.items()}


def _require_id(data: dict[str, Any], path: _Path) -> NodeId:
    if "id" not in data:
        raise TaskFileError(f"{path}: missing required field 'id'")
    value = data["id"]
    if isinstance(value, bool) or not isinstance(value, (int, str)) or (isinstance(value, str) and not value.strip()):
        raise TaskFileError(f"{path.child('id')}: expected integer or non-empty string")
    return value


def _date_text(value: Any, path: _Path) -> str | None:
    """Keep dates as ISO text; YAML may already have decoded them."""
    if value is None:
        return None
    if isinstance(value, (_dt.date, _dt.datetime)):
        return value.isoformat()
    if not isinstance(value, str):
        raise TaskFileError(f"{path}: expected ISO date string")
    return value


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise TaskFileError(f"{path}: unexpected fields {extras}")
