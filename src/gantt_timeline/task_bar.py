from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Literal, Protocol

from .config import DEFAULT_CONFIG, EngineConfig
from .schedule_models import DateSpan, LayoutRow, Level, ScheduleItem
from .timeline import TimelineModel

logger = logging.getLogger(__name__)

Handle = Literal["move", "start", "end"]
"""Which part of a bar a drag grabbed: the body or one of its edges."""

ONE_DAY = timedelta(days=1)

BarKey = tuple[Level, str]
"""Identifies one visible bar; ids are only unique within a level."""


@dataclass(frozen=True)
class BarGeometry:
    """Pixel rectangle of one task bar plus the decorations drawn with it."""

    item_id: str
    x: float
    y: float
    width: float
    height: float
    progress_width: float
    color: str
    overdue: bool = False
    baseline_x: float | None = None
    baseline_width: float | None = None

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2


def bar_geometry(
    item: ScheduleItem,
    row: LayoutRow,
    model: TimelineModel,
    today: date | None = None,
    baseline: DateSpan | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> BarGeometry | None:
    """
    Compute the bar for `item` on its visible `row`.

    Actual dates take precedence over planned ones for position and width;
    progress always comes from the percent-complete value. Items without
    usable dates have no bar.
    """

    span = item.display_span
    if span is None:
        return None
    return _geometry_for_span(item, span, row, model, today, baseline, config)


def _geometry_for_span(
    item: ScheduleItem,
    span: DateSpan,
    row: LayoutRow,
    model: TimelineModel,
    today: date | None,
    baseline: DateSpan | None,
    config: EngineConfig,
) -> BarGeometry:
    x = model.date_to_x(span.start)
    width = max(config.min_bar_width, model.date_to_x(span.end) - x)
    height = min(config.bar_height, row.height - 8)
    current = today or date.today()

    baseline_x = baseline_width = None
    if baseline is not None:
        baseline_x = model.date_to_x(baseline.start)
        baseline_width = max(2.0, model.date_to_x(baseline.end) - baseline_x)

    return BarGeometry(
        item_id=item.id,
        x=x,
        y=row.y + (row.height - height) / 2,
        width=width,
        height=height,
        progress_width=width * item.progress / 100.0,
        color=config.color_for(row.level),
        overdue=span.end < current and item.progress < 100,
        baseline_x=baseline_x,
        baseline_width=baseline_width,
    )


def hit_test(geometry: BarGeometry, x: float, edge_hit_zone: float = DEFAULT_CONFIG.edge_hit_zone) -> Handle | None:
    """Classify a pointer-down at `x`: left edge, right edge, body, or outside."""
    if x < geometry.x - edge_hit_zone or x > geometry.right + edge_hit_zone:
        return None
    if abs(x - geometry.x) <= edge_hit_zone:
        return "start"
    if abs(x - geometry.right) <= edge_hit_zone:
        return "end"
    return "move"


def apply_delta(original: DateSpan, handle: Handle, delta_days: int) -> DateSpan:
    """
    Shift `original` by `delta_days` according to the grabbed handle.

    Edge drags keep at least one day between start and end.
    """

    delta = timedelta(days=delta_days)
    if handle == "move":
        return DateSpan(original.start + delta, original.end + delta)
    if handle == "start":
        return DateSpan(min(original.start + delta, original.end - ONE_DAY), original.end)
    return DateSpan(original.start, max(original.end + delta, original.start + ONE_DAY))


class PointerInput(Protocol):
    """
    Pointer events scoped to one drag session.

    `subscribe` registers the callbacks and returns a function that removes
    them again; the UI runtime behind it is irrelevant to the engine.
    """

    def subscribe(
        self,
        on_move: Callable[[float], None],
        on_up: Callable[[float], None],
        on_cancel: Callable[[], None],
    ) -> Callable[[], None]: ...


CommitCallback = Callable[[ScheduleItem, Handle, DateSpan], None]


class DragSession:
    """
    Move/resize state machine for one bar: idle -> dragging(handle) -> idle.

    Pointer moves update the candidate dates and live geometry only;
    pointer-up hands the final dates to `on_commit`. Cancelling reverts to
    the original dates without committing.
    """

    def __init__(
        self,
        item: ScheduleItem,
        geometry: BarGeometry,
        model: TimelineModel,
        on_commit: CommitCallback,
        pixels_per_day: float | None = None,
        config: EngineConfig = DEFAULT_CONFIG,
    ) -> None:
        span = item.display_span
        if span is None:
            raise ValueError(f"item '{item.id}' has no dates to drag")
        self.item = item
        self.original = span
        self.geometry = geometry
        self.model = model
        self.pixels_per_day = pixels_per_day or model.pixels_per_day
        self.config = config
        self._on_commit = on_commit
        self.state: Literal["idle", "dragging"] = "idle"
        self.handle: Handle | None = None
        self.start_x = 0.0
        self.candidate = span
        self._unsubscribe: Callable[[], None] | None = None

    def pointer_down(self, x: float, pointer: PointerInput) -> Handle | None:
        """Start dragging when `x` hits the bar; return the grabbed handle."""
        if self.state == "dragging":
            return self.handle
        handle = hit_test(self.geometry, x, self.config.edge_hit_zone)
        if handle is None:
            return None
        self.state = "dragging"
        self.handle = handle
        self.start_x = x
        self.candidate = self.original
        self._unsubscribe = pointer.subscribe(self._on_move, self._on_up, self.cancel)
        logger.debug("Drag %s started on '%s' at x=%.1f", handle, self.item.id, x)
        return handle

    def delta_days(self, x: float) -> int:
        return round((x - self.start_x) / self.pixels_per_day)

    def _on_move(self, x: float) -> None:
        if self.state != "dragging" or self.handle is None:
            return
        self.candidate = apply_delta(self.original, self.handle, self.delta_days(x))

    def _on_up(self, x: float) -> None:
        if self.state != "dragging" or self.handle is None:
            return
        self._on_move(x)
        handle, candidate = self.handle, self.candidate
        self._finish()
        if candidate == self.original:
            logger.debug("Drag on '%s' ended without a date change", self.item.id)
            return
        self._on_commit(self.item, handle, candidate)

    def cancel(self) -> None:
        """Abort the drag and restore the original dates."""
        if self.state != "dragging":
            return
        self.candidate = self.original
        self._finish()
        logger.debug("Drag on '%s' cancelled", self.item.id)

    def _finish(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.state = "idle"
        self.handle = None

    @property
    def live_x(self) -> float:
        return self.model.date_to_x(self.candidate.start)

    @property
    def live_width(self) -> float:
        return max(self.config.min_bar_width, self.model.date_to_x(self.candidate.end) - self.live_x)
