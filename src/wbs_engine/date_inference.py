from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Iterable, Iterator

from .config import EngineConfig
from .task_models import DateRange, DisplayWindow, TaskNode

logger = logging.getLogger(__name__)


def resolve_range(node: TaskNode, config: EngineConfig | None = None) -> DateRange | None:
    """
    Derive a displayable [start, end] for a node, or None when nothing resolves.

    Start and end each take the first candidate field that parses. Done tasks
    try the completion fields before the regular end fields. End candidates
    earlier than the resolved start are skipped. With only one endpoint the
    other is inferred from the default duration.
    """

    config = config or EngineConfig()
    start = first_date(node, config.start_fields)
    end_fields = config.completed_end_fields + config.end_fields if node.is_done else config.end_fields
    end = None
    for name, candidate in candidate_dates(node, end_fields):
        if start is not None and candidate < start:
            logger.warning("Task %r: %s %s precedes start %s; skipped", node.id, name, candidate, start)
            continue
        end = candidate
        break
    duration = _dt.timedelta(days=config.default_duration_days)

    if start is None and end is None:
        return None
    if end is None:
        end = _shift(start, duration, node)
    elif start is None:
        start = _shift(end, -duration, node)
    return DateRange(start=start, end=end)


def _shift(day: _dt.date, delta: _dt.timedelta, node: TaskNode) -> _dt.date:
    """day + delta, pinned to the supported calendar when it would leave it."""
    try:
        return day + delta
    except OverflowError:
        bound = _dt.date.max if delta > _dt.timedelta(0) else _dt.date.min
        logger.warning("Task %r: inferred date past %s; clamped", node.id, bound)
        return bound


def first_date(node: TaskNode, fields: Iterable[str]) -> _dt.date | None:
    """First candidate field of the node holding a parseable date."""
    for _, parsed in candidate_dates(node, fields):
        return parsed
    return None


def candidate_dates(node: TaskNode, fields: Iterable[str]) -> Iterator[tuple[str, _dt.date]]:
    """(field, date) for every candidate field that parses, in priority order."""
    for name in fields:
        raw = getattr(node, name, None)
        if raw is None:
            raw = node.extra.get(name)
        parsed = parse_day(raw, context=f"{node.id!r}.{name}")
        if parsed is not None:
            yield name, parsed


def parse_day(value: Any, context: str = "value") -> _dt.date | None:
    """
    Parse a calendar day from a date, datetime or ISO string.

    Datetime strings are cut to their day ('2025-03-01T09:00:00Z'). Empty
    values give None; malformed ones are logged and give None.
    """

    if value is None:
        return None
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        logger.warning("Ignoring non-date %s: %r", context, value)
        return None
    text = value.strip()
    if not text:
        return None
    day_part = text.split("T", 1)[0].split(" ", 1)[0]
    try:
        return _dt.date.fromisoformat(day_part)
    except ValueError:
        logger.warning("Ignoring unparseable date %s: %r", context, value)
        return None


def intersects(date_range: DateRange, window: DisplayWindow) -> bool:
    return date_range.end >= window.start and date_range.start <= window.end


def clip(date_range: DateRange, window: DisplayWindow) -> DateRange:
    """Clip a range to the window; callers check intersects first."""
    return DateRange(start=max(date_range.start, window.start), end=min(date_range.end, window.end))
