from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import matplotlib.dates as mdates
from matplotlib.axes import Axes

from .timeline import TimelineModel

TODAY_COLOR = "#ef4444"
MAJOR_GRID_COLOR = "#9ca3af"
MINOR_GRID_COLOR = "#e5e7eb"
AXIS_FONT = 8


@dataclass(frozen=True)
class AxisTick:
    """One gridline of the ruled axis; only some ticks carry a label."""

    x: float
    day: date
    major: bool
    label: str | None = None


Strategy = tuple[mdates.DateLocator, "mdates.DateFormatter | None"]


def _tick_strategy(scale: str) -> tuple[Strategy, Strategy]:
    """(major, minor) locator/formatter pairs for a scale; minor ticks may be unlabelled."""
    if scale == "days":
        return (
            (mdates.WeekdayLocator(byweekday=mdates.MO), mdates.DateFormatter("%b %d")),
            (mdates.DayLocator(interval=1), None),
        )
    if scale == "weeks":
        return (
            (mdates.MonthLocator(interval=1), mdates.DateFormatter("%b %Y")),
            (mdates.WeekdayLocator(byweekday=mdates.MO), None),
        )
    return (
        (mdates.YearLocator(), mdates.DateFormatter("%Y")),
        (mdates.MonthLocator(interval=1), mdates.DateFormatter("%b")),
    )


def axis_ticks(model: TimelineModel) -> list[AxisTick]:
    """
    Compute the gridlines for the model's window and scale.

    - days: a minor line per day, a labelled major line each Monday.
    - weeks: a minor line each Monday, a labelled major line each 1st of month.
    - months: a labelled minor line each 1st of month, a major line each Jan 1.
    """

    vmin, vmax = mdates.date2num(model.start), mdates.date2num(model.end)
    ticks: dict[date, AxisTick] = {}
    for major, (locator, formatter) in zip((True, False), _tick_strategy(model.scale)):
        for value in locator.tick_values(mdates.num2date(vmin), mdates.num2date(vmax)):
            day = mdates.num2date(value).date()
            # Locators pad the range; majors take precedence on shared days.
            if not model.contains(day) or day in ticks:
                continue
            label = formatter(value) if formatter is not None else None
            ticks[day] = AxisTick(model.date_to_x(day), day, major=major, label=label)
    return [ticks[day] for day in sorted(ticks)]


def today_x(model: TimelineModel, today: date | None = None) -> float | None:
    """Pixel position of the "today" marker, or None outside the window."""
    current = today or date.today()
    if not model.contains(current):
        return None
    return model.date_to_x(current)


def draw_axis(ax: Axes, model: TimelineModel, chart_height: float, today: date | None = None) -> None:
    """Draw gridlines, labels and the today marker on a pixel-space axes."""

    top = -model.config.axis_height
    for tick in axis_ticks(model):
        ax.plot(
            [tick.x, tick.x],
            [top if tick.major else top / 2, chart_height],
            color=MAJOR_GRID_COLOR if tick.major else MINOR_GRID_COLOR,
            linewidth=0.8 if tick.major else 0.5,
            linestyle="--" if tick.major else ":",
            zorder=0,
        )
        if tick.label:
            ax.text(
                tick.x + 3,
                top + (8 if tick.major else model.config.axis_height / 2 + 8),
                tick.label,
                ha="left",
                va="top",
                fontsize=AXIS_FONT,
                fontweight="bold" if tick.major else "normal",
            )
    ax.plot([0, model.width], [0, 0], color=MAJOR_GRID_COLOR, linewidth=1.0, zorder=1)

    marker = today_x(model, today)
    if marker is not None:
        ax.plot([marker, marker], [top, chart_height], color=TODAY_COLOR, linewidth=1.2, zorder=4)
        ax.text(marker + 2, top + 2, "Today", color=TODAY_COLOR, fontsize=AXIS_FONT, va="top", ha="left")
