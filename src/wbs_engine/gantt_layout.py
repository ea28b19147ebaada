from __future__ import annotations

import calendar
import datetime as dt
import logging
from typing import Callable, Iterable

from .config import EngineConfig
from .date_inference import clip, intersects, parse_day, resolve_range
from .task_models import DisplayWindow, GanttLayout, GanttRow, TaskNode, node_label

logger = logging.getLogger(__name__)

BarHook = Callable[[GanttRow], None]


def month_window(anchor: dt.date) -> DisplayWindow:
    """Every day of the month containing anchor."""
    last_day = calendar.monthrange(anchor.year, anchor.month)[1]
    return DisplayWindow(start=anchor.replace(day=1), end=anchor.replace(day=last_day))


def shift_month(anchor: dt.date, months: int) -> dt.date:
    """First day of the month `months` away from anchor (negative goes back)."""
    index = anchor.year * 12 + (anchor.month - 1) + months
    return dt.date(index // 12, index % 12 + 1, 1)


def layout_gantt(
    flat: Iterable[TaskNode],
    window: DisplayWindow,
    today: dt.date | None = None,
    config: EngineConfig | None = None,
    on_bar: BarHook | None = None,
) -> GanttLayout:
    """
    Place every visible task of a flattened hierarchy on the window grid.

    Rows follow input order (row 0 is the header). Tasks with no resolvable
    range, or a range outside the window, are listed in `hidden` instead.
    `on_bar` is called with each computed row.
    """

    config = config or EngineConfig()
    today = today or dt.date.today()
    layout = GanttLayout(window=window)

    for node in flat:
        date_range = resolve_range(node, config)
        if date_range is None or not intersects(date_range, window):
            layout.hidden.append(node.id)
            continue

        clipped = clip(date_range, window)
        start_offset = window.offset(clipped.start)
        end_offset = window.offset(clipped.end)
        row = GanttRow(
            node_id=node.id,
            label=node_label(node, config.label_fields, config.placeholder_label),
            row=len(layout.rows) + 1,
            depth=node.depth,
            depth_marker=config.depth_marker(node.depth),
            status=node.status,
            range=date_range,
            start=clipped.start,
            end=clipped.end,
            start_offset=start_offset,
            end_offset=end_offset,
            col_start=start_offset + 1,
            col_end=end_offset + 2,
            color=bar_color(node, today, config),
        )
        logger.debug(
            "Bar %r row=%s cols=%s..%s color=%s range=%s..%s",
            node.id,
            row.row,
            row.col_start,
            row.col_end,
            row.color,
            date_range.start,
            date_range.end,
        )
        if on_bar is not None:
            on_bar(row)
        layout.rows.append(row)

    return layout


def bar_color(node: TaskNode, today: dt.date, config: EngineConfig | None = None) -> str:
    """Completed beats overdue (deadline strictly before today) beats default."""
    config = config or EngineConfig()
    if node.is_done:
        return config.completed_color
    deadline = parse_day(node.deadline, context=f"{node.id!r}.deadline")
    if deadline is not None and deadline < today:
        return config.overdue_color
    return config.default_color
