from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Iterator, List

from .errors import CycleError, DuplicateIdError, StructureError, UnknownParentError
from .task_models import ROOT_SENTINEL, NodeId, TaskNode, is_top_level

logger = logging.getLogger(__name__)


def to_flat(roots: Iterable[TaskNode], root_sentinel: NodeId = ROOT_SENTINEL) -> list[TaskNode]:
    """
    Flatten a nested tree into a pre-order list of parent-pointer records.

    Each record's parent_id is the id of the node it was nested under (the
    root sentinel for top-level nodes) and depth is the walk depth. Children
    are emptied. Nodes without an explicit order take their sibling index.
    """

    flat: List[TaskNode] = []
    for index, node in enumerate(roots):
        _append_node(node, flat, parent_id=root_sentinel, depth=0, index=index)
    return flat


def _append_node(node: TaskNode, flat: List[TaskNode], parent_id: NodeId, depth: int, index: int) -> None:
    """Append the given node, then its children in tree order."""

    order = node.order if node.order is not None else index
    flat.append(replace(node, parent_id=parent_id, order=order, depth=depth, children=()))
    for child_index, child in enumerate(node.children):
        _append_node(child, flat, parent_id=node.id, depth=depth + 1, index=child_index)


def to_tree(flat: Iterable[TaskNode], root_sentinel: NodeId = ROOT_SENTINEL) -> list[TaskNode]:
    """
    Rebuild nested children from a flat parent-pointer list.

    Siblings are sorted by order, ties keep input position. Raises
    UnknownParentError for dangling parent refs, DuplicateIdError for
    repeated ids, and CycleError for records unreachable from any root.
    """

    nodes = list(flat)
    by_id = index_by_id(nodes)
    _check_sentinel(by_id, root_sentinel)

    orphan_ids = [
        node.id for node in nodes if not is_top_level(node.parent_id, root_sentinel) and node.parent_id not in by_id
    ]
    if orphan_ids:
        raise UnknownParentError(f"Nodes reference unknown parents: {orphan_ids}", orphan_ids)

    roots, reached = _build(nodes, root_sentinel)
    unreached = [node.id for node in nodes if node.id not in reached]
    if unreached:
        raise CycleError(f"Parent cycle detected among nodes {unreached}")
    return roots


def split_orphans(
    flat: Iterable[TaskNode], root_sentinel: NodeId = ROOT_SENTINEL
) -> tuple[list[TaskNode], list[TaskNode]]:
    """
    Partition a flat list into (attached, orphans).

    Orphans are nodes whose parent chain never reaches a top-level node:
    dangling parent refs, their descendants, and cycle members. Both lists
    keep input order.
    """

    nodes = list(flat)
    by_id = index_by_id(nodes)
    _check_sentinel(by_id, root_sentinel)
    _, reached = _build(nodes, root_sentinel)
    attached = [node for node in nodes if node.id in reached]
    orphans = [node for node in nodes if node.id not in reached]
    if orphans:
        logger.info("Split %s orphaned node(s) from the hierarchy", len(orphans))
    return attached, orphans


def children_by_parent(
    flat: Iterable[TaskNode], root_sentinel: NodeId = ROOT_SENTINEL
) -> dict[NodeId, list[TaskNode]]:
    """Group nodes by parent id (top-level under the sentinel), each group in sibling order."""

    groups: dict[NodeId, list[TaskNode]] = {}
    for node in flat:
        key = root_sentinel if is_top_level(node.parent_id, root_sentinel) else node.parent_id
        groups.setdefault(key, []).append(node)
    for siblings in groups.values():
        # Stable sort keeps input position for equal or missing orders.
        siblings.sort(key=lambda n: (n.order is None, n.order if n.order is not None else 0))
    return groups


def index_by_id(flat: Iterable[TaskNode]) -> dict[NodeId, TaskNode]:
    by_id: dict[NodeId, TaskNode] = {}
    for node in flat:
        if node.id in by_id:
            raise DuplicateIdError(f"Duplicate node id {node.id!r}")
        by_id[node.id] = node
    return by_id


def walk(roots: Iterable[TaskNode]) -> Iterator[TaskNode]:
    """Pre-order iteration over a nested tree."""
    for node in roots:
        yield node
        yield from walk(node.children)


def _build(nodes: list[TaskNode], root_sentinel: NodeId) -> tuple[list[TaskNode], set[NodeId]]:
    groups = children_by_parent(nodes, root_sentinel)
    reached: set[NodeId] = set()

    def build(node: TaskNode, parent_id: NodeId, depth: int) -> TaskNode:
        reached.add(node.id)
        children = tuple(build(child, node.id, depth + 1) for child in groups.get(node.id, []))
        return replace(node, parent_id=parent_id, children=children, depth=depth)

    roots = [build(node, root_sentinel, 0) for node in groups.get(root_sentinel, [])]
    return roots, reached


def _check_sentinel(by_id: dict[NodeId, TaskNode], root_sentinel: NodeId) -> None:
    if root_sentinel in by_id:
        raise StructureError(f"Node id {root_sentinel!r} collides with the root sentinel")
