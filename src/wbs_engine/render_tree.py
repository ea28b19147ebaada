from __future__ import annotations

from typing import Collection, Iterable, Iterator

from .config import EngineConfig
from .task_models import NodeId, TaskNode, display_name, node_label

INDENT = "  "
EXPANDED = "▾"
COLLAPSED = "▸"
LEAF = "•"


def visible_nodes(
    roots: Iterable[TaskNode], collapsed: Collection[NodeId] = (), depth: int = 0
) -> Iterator[tuple[TaskNode, int]]:
    """Pre-order (node, depth) pairs, skipping the children of collapsed nodes."""
    for node in roots:
        yield node, depth
        if node.id not in collapsed:
            yield from visible_nodes(node.children, collapsed, depth + 1)


def render_tree(
    roots: Iterable[TaskNode],
    collapsed: Collection[NodeId] = (),
    config: EngineConfig | None = None,
) -> list[str]:
    """
    Render the tree as indented text lines.

    Each line shows the expand marker, label, localized status and progress;
    collapsed nodes also show how many descendants are hidden.
    """

    config = config or EngineConfig()
    lines: list[str] = []
    for node, depth in visible_nodes(roots, collapsed):
        if not node.children:
            marker = LEAF
        elif node.id in collapsed:
            marker = COLLAPSED
        else:
            marker = EXPANDED
        label = node_label(node, config.label_fields, config.placeholder_label)
        status = display_name(node.status, config.locale)
        line = f"{INDENT * depth}{marker} {label} [{status} {node.progress}%]"
        if node.children and node.id in collapsed:
            line += f" (+{_count_descendants(node)})"
        lines.append(line)
    return lines


def _count_descendants(node: TaskNode) -> int:
    return sum(1 + _count_descendants(child) for child in node.children)
