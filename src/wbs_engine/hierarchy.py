from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from .errors import CycleError, StructureError, UnknownNodeError, UnknownParentError
from .task_models import ROOT_SENTINEL, NodeId, TaskNode, is_top_level
from .tree_flat import children_by_parent, index_by_id, to_flat, to_tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cycle:
    """Parent chain that leads back to the moved node, for error reporting."""

    path: list[NodeId]

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        return " -> ".join(str(node_id) for node_id in self.path)


@dataclass(frozen=True)
class MoveOutcome:
    """Result of try_move: the list to keep showing and the rejection, if any."""

    nodes: Sequence[TaskNode]
    error: StructureError | None = None

    @property
    def accepted(self) -> bool:
        return self.error is None


def move(
    flat: Sequence[TaskNode],
    node_id: NodeId,
    new_parent_id: NodeId | None,
    new_index: int,
    root_sentinel: NodeId = ROOT_SENTINEL,
) -> list[TaskNode]:
    """
    Reparent/reorder one node and return a new flat list.

    - Rejects a move under the node itself or under one of its descendants.
    - Inserts the node at new_index (clamped) among its new siblings and
      renumbers that sibling group sequentially; the group it left is
      compacted the same way. Untouched siblings keep their relative order.
    - The result is in pre-order with fresh depths. The input is not modified.
    """

    nodes = list(flat)
    by_id = index_by_id(nodes)
    if node_id not in by_id:
        raise UnknownNodeError(f"Cannot move unknown node {node_id!r}")

    target_parent = root_sentinel if is_top_level(new_parent_id, root_sentinel) else new_parent_id
    if target_parent != root_sentinel:
        if target_parent not in by_id:
            raise UnknownParentError(f"Cannot move {node_id!r} under unknown parent {target_parent!r}", [node_id])
        cycle = _find_cycle(by_id, node_id, target_parent, root_sentinel)
        if cycle:
            raise CycleError(f"Moving {node_id!r} under {target_parent!r} creates a cycle: {cycle}")

    moving = by_id[node_id]
    old_parent = root_sentinel if is_top_level(moving.parent_id, root_sentinel) else moving.parent_id
    groups = children_by_parent(nodes, root_sentinel)

    old_siblings = [node.id for node in groups.get(old_parent, []) if node.id != node_id]
    if old_parent == target_parent:
        new_siblings = list(old_siblings)
    else:
        new_siblings = [node.id for node in groups.get(target_parent, [])]
    index = max(0, min(new_index, len(new_siblings)))
    new_siblings.insert(index, node_id)

    updates: dict[NodeId, tuple[NodeId, int]] = {}
    if old_parent != target_parent:
        for order, sibling_id in enumerate(old_siblings):
            updates[sibling_id] = (old_parent, order)
    for order, sibling_id in enumerate(new_siblings):
        updates[sibling_id] = (target_parent, order)

    updated = [
        replace(node, parent_id=updates[node.id][0], order=updates[node.id][1]) if node.id in updates else node
        for node in nodes
    ]
    logger.debug("Moved %r from %r to %r at index %s", node_id, old_parent, target_parent, index)
    return to_flat(to_tree(updated, root_sentinel), root_sentinel)


def try_move(
    flat: Sequence[TaskNode],
    node_id: NodeId,
    new_parent_id: NodeId | None,
    new_index: int,
    root_sentinel: NodeId = ROOT_SENTINEL,
) -> MoveOutcome:
    """Like move, but a rejected move returns the input list unchanged with the error."""

    try:
        nodes = move(flat, node_id, new_parent_id, new_index, root_sentinel)
    except StructureError as exc:
        logger.info("Rejected move of %r: %s", node_id, exc)
        return MoveOutcome(nodes=flat, error=exc)
    return MoveOutcome(nodes=nodes)


def ancestor_ids(
    flat: Sequence[TaskNode], node_id: NodeId, root_sentinel: NodeId = ROOT_SENTINEL
) -> list[NodeId]:
    """Parent chain of node_id, nearest first, excluding the root sentinel."""

    by_id = index_by_id(flat)
    if node_id not in by_id:
        raise UnknownNodeError(f"Unknown node {node_id!r}")
    chain: list[NodeId] = []
    current = by_id[node_id].parent_id
    while not is_top_level(current, root_sentinel):
        if current in chain or current == node_id:
            raise CycleError(f"Parent cycle detected above {node_id!r}")
        if current not in by_id:
            raise UnknownParentError(f"Node chain of {node_id!r} reaches unknown parent {current!r}", [node_id])
        chain.append(current)
        current = by_id[current].parent_id
    return chain


def descendant_ids(
    flat: Sequence[TaskNode], node_id: NodeId, root_sentinel: NodeId = ROOT_SENTINEL
) -> list[NodeId]:
    """All descendants of node_id in pre-order."""

    nodes = list(flat)
    if node_id not in index_by_id(nodes):
        raise UnknownNodeError(f"Unknown node {node_id!r}")
    groups = children_by_parent(nodes, root_sentinel)
    result: list[NodeId] = []
    stack = [child.id for child in reversed(groups.get(node_id, []))]
    while stack:
        current = stack.pop()
        if current in result or current == node_id:
            raise CycleError(f"Parent cycle detected below {node_id!r}")
        result.append(current)
        stack.extend(child.id for child in reversed(groups.get(current, [])))
    return result


def _find_cycle(
    by_id: dict[NodeId, TaskNode], node_id: NodeId, target_parent: NodeId, root_sentinel: NodeId
) -> Cycle | None:
    """Walk target_parent's chain to the root; report a path if node_id is on it."""

    path: list[NodeId] = []
    current: NodeId | None = target_parent
    while not is_top_level(current, root_sentinel):
        path.append(current)
        if current == node_id:
            return Cycle(path)
        node = by_id.get(current)
        if node is None:
            # Dangling refs are reported by to_tree.
            return None
        if node.parent_id in path:
            return Cycle(path + [node.parent_id])
        current = node.parent_id
    return None
