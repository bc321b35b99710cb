from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

import matplotlib.path as mpath
from matplotlib.axes import Axes
from matplotlib.patches import Circle, FancyArrowPatch

from .schedule_models import Dependency, DependencyType
from .task_bar import BarGeometry

Point = tuple[float, float]
PositionLookup = Callable[[str], "BarGeometry | None"]

CONTROL_OFFSET = 0.3  # fraction of the horizontal span between an endpoint and its control point
CONNECTOR_COLOR = "#475569"
ENDPOINT_RADIUS = 3.0

# Whether each endpoint attaches at the bar's finish (right) edge: (from, to).
_ATTACH_AT_FINISH = {
    DependencyType.FINISH_TO_START: (True, False),
    DependencyType.START_TO_START: (False, False),
    DependencyType.FINISH_TO_FINISH: (True, True),
    DependencyType.START_TO_FINISH: (False, True),
}


@dataclass(frozen=True)
class Connector:
    """Cubic curve from one bar edge to another for a single dependency."""

    dependency: Dependency
    start: Point
    end: Point
    control1: Point
    control2: Point


def build_connectors(dependencies: Iterable[Dependency], position_of: PositionLookup) -> list[Connector]:
    """
    Compute a connector for every dependency whose endpoints are both visible.

    `position_of` returns the bar of a visible item, or None when the item
    is hidden (collapsed ancestor) or undated; such edges are skipped.
    """

    connectors: list[Connector] = []
    for dependency in dependencies:
        source = position_of(dependency.from_task_id)
        target = position_of(dependency.to_task_id)
        if source is None or target is None:
            continue
        connectors.append(connector_for(dependency, source, target))
    return connectors


def connector_for(dependency: Dependency, source: BarGeometry, target: BarGeometry) -> Connector:
    from_finish, to_finish = _ATTACH_AT_FINISH[dependency.type]
    start = (source.right if from_finish else source.x, source.mid_y)
    end = (target.right if to_finish else target.x, target.mid_y)
    control1, control2 = control_points(start, end)
    return Connector(dependency=dependency, start=start, end=end, control1=control1, control2=control2)


def control_points(start: Point, end: Point) -> tuple[Point, Point]:
    """
    Control points pushed outward by 30% of the horizontal span.

    The first leaves `start` to the right and the second enters `end`
    from the left, producing an S-curve even when `end` lies left of `start`.
    """

    offset = abs(end[0] - start[0]) * CONTROL_OFFSET
    return (start[0] + offset, start[1]), (end[0] - offset, end[1])


def connector_path(connector: Connector) -> mpath.Path:
    codes = [mpath.Path.MOVETO, mpath.Path.CURVE4, mpath.Path.CURVE4, mpath.Path.CURVE4]
    return mpath.Path([connector.start, connector.control1, connector.control2, connector.end], codes)


def draw_connectors(ax: Axes, connectors: Iterable[Connector], color: str = CONNECTOR_COLOR) -> None:
    """Draw each connector with an arrowhead at its end and dots on both endpoints."""

    for connector in connectors:
        arrow = FancyArrowPatch(
            path=connector_path(connector),
            arrowstyle="-|>",
            mutation_scale=9.0,
            lw=1.0,
            color=color,
            shrinkA=0.0,
            shrinkB=0.0,
            zorder=5,
        )
        ax.add_patch(arrow)
        for point in (connector.start, connector.end):
            ax.add_patch(Circle(point, radius=ENDPOINT_RADIUS, facecolor=color, edgecolor="none", zorder=6))
