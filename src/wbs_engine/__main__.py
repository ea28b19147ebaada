from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
import sys
import webbrowser
from pathlib import Path
from typing import Any, Iterable

import yaml

from .config import EngineConfig, load_config
from .errors import ConfigError, StructureError, TaskFileError
from .gantt_layout import layout_gantt, month_window
from .hierarchy import try_move
from .render_gantt import render_gantt
from .render_tree import render_tree
from .status import edit_node
from .task_io import load_document, node_payload, structure_payload
from .task_models import NodeId, TaskNode
from .tree_flat import to_flat, to_tree

logger = logging.getLogger("wbs_engine")

_ROOT_WORDS = {"root", "none", "null"}


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wbs-engine",
        description="Work breakdown structure tree, move and Gantt tools",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", help="Path to engine config YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    tree = sub.add_parser("tree", help="Print the task tree")
    tree.add_argument("tasks", help="Path to WBS document (JSON or YAML)")
    tree.add_argument("--collapse", nargs="*", default=[], metavar="ID", help="Node ids shown collapsed")

    move = sub.add_parser("move", help="Move a node and emit the structure payload")
    move.add_argument("tasks", help="Path to WBS document (JSON or YAML)")
    move.add_argument("node", help="Id of the node to move")
    move.add_argument("parent", help="New parent id ('root' for top level)")
    move.add_argument("index", type=int, help="Position among the new siblings")
    move.add_argument("--out", help="Write the payload here instead of stdout")

    edit = sub.add_parser("edit", help="Edit status or progress and emit the node payload")
    edit.add_argument("tasks", help="Path to WBS document (JSON or YAML)")
    edit.add_argument("node", help="Id of the node to edit")
    group = edit.add_mutually_exclusive_group(required=True)
    group.add_argument("--status", help="New status (e.g. TODO, IN_PROGRESS, DONE, 진행중)")
    group.add_argument("--progress", type=int, help="New progress 0-100")

    gantt = sub.add_parser("gantt", help="Render a month Gantt chart to SVG")
    gantt.add_argument("tasks", help="Path to WBS document (JSON or YAML)")
    gantt.add_argument("--month", type=_parse_date, help="Any date in the month to show; defaults to today")
    gantt.add_argument("--today", type=_parse_date, help="Override today's date for overdue checks")
    gantt.add_argument("--out", default="output/gantt_chart.svg", help="Output SVG path")
    gantt.add_argument(
        "--view",
        dest="view",
        action="store_true",
        default=False,
        help="Best-effort open the output file after rendering",
    )
    gantt.add_argument("--no-view", dest="view", action="store_false", help="Do not open the output file")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        return 1

    tasks_path = Path(args.tasks)
    try:
        document = load_document(str(tasks_path), config.root_sentinel)
    except (yaml.YAMLError, TaskFileError, StructureError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: task file not found: {tasks_path}", file=sys.stderr)
        return 1

    flat = to_flat(document.roots, config.root_sentinel)
    handlers = {"tree": _run_tree, "move": _run_move, "edit": _run_edit, "gantt": _run_gantt}
    try:
        return handlers[args.command](args, document.name, flat, config)
    except Exception as exc:  # Unexpected
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Unexpected error while running {args.command}: {exc}", file=sys.stderr)
        return 1


def _run_tree(args: argparse.Namespace, title: str | None, flat: list[TaskNode], config: EngineConfig) -> int:
    collapsed = {_resolve_id(raw, flat) for raw in args.collapse}
    if title:
        print(title)
    for line in render_tree(to_tree(flat, config.root_sentinel), collapsed, config):
        print(line)
    return 0


def _run_move(args: argparse.Namespace, title: str | None, flat: list[TaskNode], config: EngineConfig) -> int:
    node_id = _resolve_id(args.node, flat)
    parent_id = _resolve_parent(args.parent, flat, config)
    outcome = try_move(flat, node_id, parent_id, args.index, config.root_sentinel)
    if not outcome.accepted:
        print(f"Error: move rejected: {outcome.error}", file=sys.stderr)
        return 2
    _emit_json({"structure": structure_payload(outcome.nodes, config.root_sentinel)}, args.out)
    return 0


def _run_edit(args: argparse.Namespace, title: str | None, flat: list[TaskNode], config: EngineConfig) -> int:
    node_id = _resolve_id(args.node, flat)
    node = next((n for n in flat if n.id == node_id), None)
    if node is None:
        print(f"Error: unknown node {args.node!r}", file=sys.stderr)
        return 2
    try:
        edited = edit_node(node, status=args.status, progress=args.progress)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    _emit_json(node_payload(edited, config.root_sentinel), None)
    return 0


def _run_gantt(args: argparse.Namespace, title: str | None, flat: list[TaskNode], config: EngineConfig) -> int:
    today = args.today or dt.date.today()
    window = month_window(args.month or today)
    layout = layout_gantt(flat, window, today=today, config=config)
    render_gantt(layout, out_path=args.out, title=title or "", today=today)
    logger.info("Rendered %s bar(s), %s task(s) hidden, to %s", len(layout.rows), len(layout.hidden), args.out)

    if args.view:
        try:
            webbrowser.open(Path(args.out).resolve().as_uri())
        except Exception:
            logger.debug("Could not open %s", args.out, exc_info=True)
    return 0


def _resolve_id(raw: str, flat: Iterable[TaskNode]) -> NodeId:
    """Match a command line id against node ids, which may be ints or strings."""
    for node in flat:
        if str(node.id) == raw:
            return node.id
    return raw


def _resolve_parent(raw: str, flat: Iterable[TaskNode], config: EngineConfig) -> NodeId:
    if raw.lower() in _ROOT_WORDS or raw == str(config.root_sentinel):
        return config.root_sentinel
    return _resolve_id(raw, flat)


def _emit_json(data: Any, out: str | None) -> None:
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if out is None:
        print(text)
        return
    Path(out).parent.mkdir(parents=True, exist_ok=True)
    Path(out).write_text(text + "\n", encoding="utf-8")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
