import datetime as dt

from wbs_engine.config import EngineConfig
from wbs_engine.gantt_layout import bar_color, layout_gantt, month_window, shift_month
from wbs_engine.hierarchy import move
from wbs_engine.task_models import TaskNode, TaskStatus
from wbs_engine.tree_flat import to_flat, to_tree

FEB_2025 = month_window(dt.date(2025, 2, 14))
TODAY = dt.date(2025, 2, 14)


def _flat(nodes):
    return to_flat(to_tree(nodes))


def test_month_window_covers_whole_month():
    assert (FEB_2025.start, FEB_2025.end) == (dt.date(2025, 2, 1), dt.date(2025, 2, 28))
    assert len(FEB_2025.days) == 28
    assert len(month_window(dt.date(2024, 2, 29)).days) == 29
    assert month_window(dt.date(2024, 12, 31)).start == dt.date(2024, 12, 1)


def test_shift_month_crosses_year_boundaries():
    assert shift_month(dt.date(2025, 1, 31), 1) == dt.date(2025, 2, 1)
    assert shift_month(dt.date(2025, 1, 15), -1) == dt.date(2024, 12, 1)
    assert shift_month(dt.date(2025, 6, 1), 12) == dt.date(2026, 6, 1)


def test_range_is_clipped_to_window():
    flat = _flat([TaskNode(id=1, name="Migration", start_date="2025-01-20", end_date="2025-02-10")])

    row = layout_gantt(flat, FEB_2025, today=TODAY).rows[0]

    assert (row.start, row.end) == (dt.date(2025, 2, 1), dt.date(2025, 2, 10))
    assert (row.start_offset, row.end_offset) == (0, 9)
    assert (row.col_start, row.col_end, row.span) == (1, 11, 10)
    assert row.range.start == dt.date(2025, 1, 20)


def test_single_day_bar_spans_one_column():
    flat = _flat([TaskNode(id=1, start_date="2025-02-05", end_date="2025-02-05")])

    row = layout_gantt(flat, FEB_2025, today=TODAY).rows[0]

    assert (row.col_start, row.col_end, row.span) == (5, 6, 1)


def test_bar_ending_on_last_day_reaches_last_column():
    flat = _flat([TaskNode(id=1, start_date="2025-02-20", end_date="2025-03-15")])

    layout = layout_gantt(flat, FEB_2025, today=TODAY)

    assert layout.rows[0].col_end == layout.column_count


def test_rows_follow_hierarchy_order_and_skip_hidden_tasks():
    flat = _flat(
        [
            TaskNode(id=1, name="Phase", parent_id=0, order=0, start_date="2025-02-01", end_date="2025-02-20"),
            TaskNode(id=2, name="No dates", parent_id=1, order=0),
            TaskNode(id=3, name="Last year", parent_id=1, order=1, start_date="2024-05-01", end_date="2024-05-03"),
            TaskNode(id=4, name="Build", parent_id=1, order=2, start_date="2025-02-10"),
            TaskNode(id=5, name="Ship", parent_id=0, order=1, end_date="2025-02-27"),
        ]
    )

    layout = layout_gantt(flat, FEB_2025, today=TODAY)

    assert [(row.node_id, row.row) for row in layout.rows] == [(1, 1), (4, 2), (5, 3)]
    assert layout.hidden == [2, 3]
    assert [row.depth for row in layout.rows] == [0, 1, 0]


def test_rows_follow_moves():
    flat = _flat(
        [
            TaskNode(id=1, parent_id=0, order=0, start_date="2025-02-01"),
            TaskNode(id=2, parent_id=0, order=1, start_date="2025-02-02"),
        ]
    )

    layout = layout_gantt(move(flat, 2, 0, 0), FEB_2025, today=TODAY)

    assert [row.node_id for row in layout.rows] == [2, 1]


def test_color_precedence():
    config = EngineConfig()
    done_late = TaskNode(id=1, status=TaskStatus.DONE, progress=100, deadline="2025-01-01")
    late = TaskNode(id=2, deadline="2025-02-13")
    due_today = TaskNode(id=3, deadline="2025-02-14")
    no_deadline = TaskNode(id=4)

    assert bar_color(done_late, TODAY, config) == config.completed_color
    assert bar_color(late, TODAY, config) == config.overdue_color
    assert bar_color(due_today, TODAY, config) == config.default_color
    assert bar_color(no_deadline, TODAY, config) == config.default_color


def test_overdue_scenario_with_inferred_end():
    config = EngineConfig()
    flat = _flat([TaskNode(id=1, start_date="2025-03-05", deadline="2025-03-01")])

    layout = layout_gantt(flat, month_window(dt.date(2025, 3, 1)), today=dt.date(2025, 3, 10), config=config)

    row = layout.rows[0]
    assert (row.range.start, row.range.end) == (dt.date(2025, 3, 5), dt.date(2025, 3, 8))
    assert row.color == config.overdue_color


def test_depth_markers_are_distinct_up_to_three():
    config = EngineConfig()
    nodes = [TaskNode(id=1, parent_id=0, order=0, start_date="2025-02-03")]
    for node_id in range(2, 6):
        nodes.append(TaskNode(id=node_id, parent_id=node_id - 1, order=0, start_date="2025-02-03"))

    rows = layout_gantt(_flat(nodes), FEB_2025, today=TODAY, config=config).rows

    markers = [row.depth_marker for row in rows]
    assert [row.depth for row in rows] == [0, 1, 2, 3, 4]
    assert len(set(markers[:4])) == 4
    assert markers[4] == markers[3] == config.depth_markers[3]


def test_labels_fall_back_to_content_then_placeholder():
    config = EngineConfig(placeholder_label="-")
    flat = _flat(
        [
            TaskNode(id=1, parent_id=0, order=0, content="Write tests", start_date="2025-02-03"),
            TaskNode(id=2, parent_id=0, order=1, name="  ", start_date="2025-02-03"),
        ]
    )

    rows = layout_gantt(flat, FEB_2025, today=TODAY, config=config).rows

    assert [row.label for row in rows] == ["Write tests", "-"]


def test_on_bar_hook_sees_every_row():
    seen = []
    flat = _flat(
        [
            TaskNode(id=1, parent_id=0, order=0, start_date="2025-02-03"),
            TaskNode(id=2, parent_id=0, order=1),
            TaskNode(id=3, parent_id=0, order=2, start_date="2025-02-07"),
        ]
    )

    layout = layout_gantt(flat, FEB_2025, today=TODAY, on_bar=seen.append)

    assert seen == layout.rows
    assert [row.node_id for row in seen] == [1, 3]


def test_layout_is_pure_between_windows():
    flat = _flat([TaskNode(id=1, start_date="2025-02-25", end_date="2025-03-04")])

    feb = layout_gantt(flat, FEB_2025, today=TODAY)
    mar = layout_gantt(flat, month_window(shift_month(FEB_2025.start, 1)), today=TODAY)
    feb_again = layout_gantt(flat, FEB_2025, today=TODAY)

    assert (feb.rows[0].col_start, feb.rows[0].col_end) == (25, 29)
    assert (mar.rows[0].col_start, mar.rows[0].col_end) == (1, 5)
    assert feb_again.rows == feb.rows


def test_task_at_the_end_of_the_calendar_is_laid_out():
    layout = layout_gantt([TaskNode(id=1, start_date="9999-12-30")], month_window(dt.date(9999, 12, 1)),
                          today=dt.date(9999, 12, 1))

    (row,) = layout.rows
    assert (row.start, row.end) == (dt.date(9999, 12, 30), dt.date(9999, 12, 31))
    assert (row.col_start, row.col_end) == (30, 32)
