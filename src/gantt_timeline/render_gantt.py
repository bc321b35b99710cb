from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from importlib import metadata
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

from .dependency_renderer import Connector, draw_connectors
from .schedule_models import LayoutRow, Level
from .task_bar import BarGeometry, BarKey
from .time_axis import draw_axis
from .timeline import TimelineModel

DPI = 100
LABEL_GUTTER_PX = 350.0
INDENT_PX = 18.0
LABEL_FONT = 9
TITLE_FONT = 12
FOOTER_FONT = 7
BAR_ALPHA = 0.35
BASELINE_COLOR = "#94a3b8"
BASELINE_HEIGHT = 4.0
ROW_RULE_COLOR = "#f1f5f9"


@dataclass
class ChartView:
    """Everything needed to draw one frame of the chart, already in pixels."""

    timeline: TimelineModel
    rows: list[LayoutRow] = field(default_factory=list)
    bars: dict[BarKey, BarGeometry] = field(default_factory=dict)
    connectors: list[Connector] = field(default_factory=list)
    today: dt.date | None = None

    @property
    def chart_height(self) -> float:
        return sum(row.height for row in self.rows)


def render_gantt(view: ChartView, out_path: str, title: str = "") -> None:
    """
    Render the chart to an SVG at `out_path`.

    One data unit equals one pixel on both axes, so bar and connector
    geometry computed by the engine is drawn unchanged. An empty schedule
    still produces the ruled axis.
    """

    model = view.timeline
    axis_height = model.config.axis_height
    chart_height = max(view.chart_height, model.config.row_height(Level.PHASE))
    total_w = LABEL_GUTTER_PX + model.width
    total_h = axis_height + chart_height

    fig = plt.figure(figsize=(total_w / DPI, total_h / DPI), dpi=DPI)
    label_ax = fig.add_axes((0.0, 0.0, LABEL_GUTTER_PX / total_w, 1.0))
    ax = fig.add_axes((LABEL_GUTTER_PX / total_w, 0.0, model.width / total_w, 1.0))

    for axes, x_max in ((label_ax, LABEL_GUTTER_PX), (ax, model.width)):
        axes.set_xlim(0, x_max)
        axes.set_ylim(chart_height, -axis_height)
        axes.axis("off")

    if title:
        label_ax.text(8, -axis_height / 2, title, ha="left", va="center", fontsize=TITLE_FONT, fontweight="bold")

    draw_axis(ax, model, chart_height, view.today)

    for row in view.rows:
        _draw_label(label_ax, row)
        ax.plot([0, model.width], [row.y + row.height] * 2, color=ROW_RULE_COLOR, linewidth=0.5, zorder=0)
        bar = view.bars.get((row.level, row.item.id))
        if bar is not None:
            _draw_bar(ax, bar, model.config.overdue_color)

    draw_connectors(ax, view.connectors)

    footer = f"Gantt timeline engine v{_tool_version()}"
    fig.text(0.995, 0.002, footer, ha="right", va="bottom", fontsize=FOOTER_FONT, alpha=0.6)

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg")
    plt.close(fig)


def _draw_label(label_ax: plt.Axes, row: LayoutRow) -> None:
    indent = 8 + (int(row.level) - 1) * INDENT_PX
    marker = ""
    if row.has_children:
        marker = "▾ " if row.expanded else "▸ "
    label = f"{marker}{row.item.name}"
    if row.item.responsible:
        label = f"{label}  ({row.item.responsible})"
    label_ax.text(
        indent,
        row.mid_y,
        label,
        ha="left",
        va="center",
        fontsize=LABEL_FONT,
        fontweight="bold" if row.level == Level.PHASE else "normal",
        clip_on=True,
    )


def _draw_bar(ax: plt.Axes, bar: BarGeometry, overdue_color: str) -> None:
    if bar.baseline_x is not None and bar.baseline_width is not None:
        ax.add_patch(
            Rectangle(
                (bar.baseline_x, bar.y + bar.height + 1),
                bar.baseline_width,
                BASELINE_HEIGHT,
                facecolor=BASELINE_COLOR,
                alpha=0.5,
                edgecolor="none",
                zorder=2,
            )
        )
    ax.add_patch(
        Rectangle(
            (bar.x, bar.y),
            bar.width,
            bar.height,
            facecolor=bar.color,
            alpha=BAR_ALPHA,
            edgecolor=overdue_color if bar.overdue else bar.color,
            linewidth=1.5 if bar.overdue else 0.8,
            zorder=3,
        )
    )
    if bar.progress_width > 0:
        ax.add_patch(
            Rectangle((bar.x, bar.y), bar.progress_width, bar.height, facecolor=bar.color, edgecolor="none", zorder=4)
        )


def _tool_version() -> str:
    try:
        return metadata.version("gantt-timeline-engine")
    except Exception:
        return "0.0.0"
