from __future__ import annotations

import datetime as dt
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .task_models import GanttLayout

FONT_SCALE = 1.0
TITLE_FONT = 14 * FONT_SCALE
LABEL_FONT = 10 * FONT_SCALE
TICK_FONT = 8 * FONT_SCALE
ROW_HEIGHT = 0.6
INDENT_STEP = 0.06  # label axis fraction per depth level
MARKER_SIZE = 0.035
WEEKEND_SHADE = "#f3f4f6"
TODAY_COLOR = "#111827"
TOP_MARGIN_FRAC = 0.88
TITLE_Y = 0.985


def render_gantt(layout: GanttLayout, out_path: str, title: str, today: dt.date | None = None) -> None:
    """
    Render one month of a laid-out Gantt chart to an SVG at `out_path`.

    - Left axis holds labels, indented by depth with a depth marker.
    - Right axis is the day grid; each row's bar uses its precomputed
      columns and color. Weekends are shaded and `today` gets a rule when
      it falls in the window.
    """

    days = layout.window.days
    n_rows = len(layout.rows)
    fig_height = max(3.0, ROW_HEIGHT * (n_rows + 1) + 2.0)
    fig_width = max(12.0, len(days) * 0.4 + 4.0)
    fig = plt.figure(figsize=(fig_width, fig_height))
    # Allocate explicit grid: left column for labels, right for chart.
    gs = fig.add_gridspec(1, 2, width_ratios=[1.2, 4.0], wspace=0.02, left=0.02, right=0.98, top=TOP_MARGIN_FRAC, bottom=0.05)
    label_ax = fig.add_subplot(gs[0, 0])
    ax = fig.add_subplot(gs[0, 1], sharey=label_ax)

    # Day columns on x (offset d spans [d, d + 1]); row r sits at y = r.
    ax.set_xlim(0, len(days))
    ax.set_ylim(max(n_rows, 1) + 0.5, 0.5)
    ax.xaxis.tick_top()
    ax.set_xticks([offset + 0.5 for offset in range(len(days))])
    ax.set_xticklabels([str(day.day) for day in days], fontsize=TICK_FONT)
    ax.set_xticks(range(len(days) + 1), minor=True)
    ax.grid(True, axis="x", which="minor", linestyle=":", alpha=0.4)
    ax.tick_params(axis="x", which="major", length=0)
    ax.set_yticks([])

    for offset, day in enumerate(days):
        if day.weekday() >= 5:
            ax.axvspan(offset, offset + 1, color=WEEKEND_SHADE, zorder=0)

    label_ax.set_xlim(0, 1)
    label_ax.axis("off")

    fig.suptitle(title, x=0.5, fontsize=TITLE_FONT, y=TITLE_Y)
    fig.text(0.5, TOP_MARGIN_FRAC + 0.04, layout.window.start.strftime("%B %Y"), ha="center", fontsize=LABEL_FONT)

    for row in layout.rows:
        y = row.row
        x = 0.02 + row.depth * INDENT_STEP
        label_ax.add_patch(
            Rectangle(
                (x, y - MARKER_SIZE * 4),
                MARKER_SIZE,
                MARKER_SIZE * 8,
                facecolor=row.depth_marker,
                edgecolor="none",
            )
        )
        label_ax.text(
            x + MARKER_SIZE * 1.8,
            y,
            row.label,
            ha="left",
            va="center",
            fontsize=LABEL_FONT,
            fontweight="bold" if row.depth == 0 else "normal",
            transform=label_ax.transData,
        )
        ax.barh(
            y,
            width=row.end_offset - row.start_offset + 1,
            left=row.start_offset,
            height=ROW_HEIGHT,
            color=row.color,
            edgecolor="black",
            linewidth=0.5,
            zorder=2,
        )

    if today is not None and layout.window.start <= today <= layout.window.end:
        x_today = layout.window.offset(today) + 0.5
        ax.axvline(x_today, color=TODAY_COLOR, linewidth=1.0, linestyle="--", zorder=3)

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg", bbox_inches="tight")
    plt.close(fig)
