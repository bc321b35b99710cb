from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Literal

from .config import DEFAULT_CONFIG, EngineConfig
from .dependency_renderer import Connector, build_connectors
from .hierarchy_layout import compute_rows, expand_all, toggle_expanded
from .history import HistoryStack
from .parse_schedule import parse_schedule
from .render_gantt import ChartView, render_gantt
from .schedule_models import (
    ActionType,
    BaselineMap,
    DateSpan,
    ExpandedSet,
    HistoryAction,
    LayoutRow,
    Level,
    ScheduleData,
    ScheduleItem,
)
from .store import BaselineLoadError, PersistenceError, ScheduleBackend, load_baseline, patch_dates
from .task_bar import BarGeometry, BarKey, DragSession, Handle, PointerInput, apply_delta, bar_geometry
from .timeline import Scale, TimelineModel, compute_bounds
from .variance import VarianceRow, compute_variance

logger = logging.getLogger(__name__)

NotifyKind = Literal["success", "error"]
Notifier = Callable[[NotifyKind, str], None]


def log_notification(kind: NotifyKind, message: str) -> None:
    """Default notifier: user-facing messages go to the engine log."""
    if kind == "error":
        logger.error(message)
    else:
        logger.info(message)


class GanttEngine:
    """
    Orchestrates one editing session of a project schedule.

    Owns the item and dependency collections, the expanded set, the
    baseline overlay and the edit history; every schedule change goes
    through the backend and is followed by a reload, so local items are
    never mutated in place.
    """

    def __init__(
        self,
        backend: ScheduleBackend,
        project_id: str,
        schedule_id: str | None = None,
        config: EngineConfig = DEFAULT_CONFIG,
        scale: Scale = "weeks",
        notify: Notifier = log_notification,
        today: date | None = None,
    ) -> None:
        self.backend = backend
        self.project_id = project_id
        self.schedule_id = schedule_id
        self.config = config
        self.notify = notify
        self.today = today
        self.data = ScheduleData()
        self.expanded: ExpandedSet = frozenset()
        self.baseline: BaselineMap = {}
        self.history = HistoryStack()
        start, end = compute_bounds([], self.current_day, config)
        self.timeline = TimelineModel(start, end, scale=scale, config=config)

    @property
    def current_day(self) -> date:
        return self.today or date.today()

    # Loading

    def load(self, schedule_id: str | None = None) -> None:
        """
        Freshly load a schedule, clearing the edit history.

        Switching to a different schedule also collapses every row.
        """

        if schedule_id is not None and schedule_id != self.schedule_id:
            self.schedule_id = schedule_id
            self.expanded = frozenset()
        self.reload()
        self.history.clear_history()
        logger.info(
            "Loaded schedule %s of project %s: %d items, %d dependencies, %d baseline entries",
            self.schedule_id,
            self.project_id,
            len(self.data.all_items()),
            len(self.data.dependencies),
            len(self.baseline),
        )

    def reload(self) -> None:
        """Replace every collection with a fresh read; history is kept."""

        payloads = {
            resource: self._read(resource)
            for resource in (*(level.endpoint for level in Level), "dependencias")
        }
        self.data = parse_schedule(
            payloads["fases"],
            payloads["edt"],
            payloads["tareas"],
            payloads["subtareas"],
            payloads["dependencias"],
        )
        dates = [day for item in self.data.all_items() for day in item.candidate_dates()]
        self.timeline = self.timeline.with_bounds(*compute_bounds(dates, self.current_day, self.config))
        self.baseline = self._read_baseline()

    def _read(self, resource: str) -> Any:
        # Dependencies are project-wide; hierarchy reads are scoped to the schedule.
        schedule_id = None if resource == "dependencias" else self.schedule_id
        try:
            return self.backend.fetch(resource, self.project_id, schedule_id)
        except Exception as exc:
            logger.warning("Reading %s failed, showing it as empty: %s", resource, exc)
            return []

    def _read_baseline(self) -> BaselineMap:
        try:
            return load_baseline(self.backend, self.project_id, self.schedule_id)
        except BaselineLoadError as exc:
            logger.debug("Baseline overlay unavailable: %s", exc)
            return {}

    # Layout

    def find_item(self, item_id: str, level: Level | None = None) -> ScheduleItem | None:
        for item in self.data.all_items():
            if item.id == item_id and (level is None or item.level == level):
                return item
        return None

    def rows(self) -> list[LayoutRow]:
        return compute_rows(
            self.data.phases,
            self.data.work_packages,
            self.data.tasks,
            self.data.subtasks,
            self.expanded,
            self.config,
        )

    def toggle_expand(self, item_id: str) -> ExpandedSet:
        self.expanded = toggle_expanded(self.expanded, item_id)
        return self.expanded

    def expand_all(self) -> ExpandedSet:
        self.expanded = expand_all(self.data.work_packages, self.data.tasks, self.data.subtasks)
        return self.expanded

    def collapse_all(self) -> ExpandedSet:
        self.expanded = frozenset()
        return self.expanded

    def set_scale(self, scale: Scale) -> TimelineModel:
        self.timeline = self.timeline.with_scale(scale)
        return self.timeline

    def set_zoom(self, zoom: float) -> TimelineModel:
        self.timeline = self.timeline.with_zoom(zoom)
        return self.timeline

    def zoom_in(self) -> TimelineModel:
        self.timeline = self.timeline.zoom_in()
        return self.timeline

    def zoom_out(self) -> TimelineModel:
        self.timeline = self.timeline.zoom_out()
        return self.timeline

    def baseline_for(self, item: ScheduleItem) -> DateSpan | None:
        return self.baseline.get(item.name)

    def bars(self, rows: list[LayoutRow] | None = None) -> dict[BarKey, BarGeometry]:
        """Bars of every visible, dated item keyed by (level, item id)."""
        bars: dict[BarKey, BarGeometry] = {}
        for row in rows if rows is not None else self.rows():
            geometry = bar_geometry(
                row.item, row, self.timeline, self.current_day, self.baseline_for(row.item), self.config
            )
            if geometry is not None:
                bars[(row.level, row.item.id)] = geometry
        return bars

    def visible_row(self, item_id: str, level: Level | None = None) -> LayoutRow | None:
        for row in self.rows():
            if row.item.id == item_id and (level is None or row.level == level):
                return row
        return None

    def position_of(self, item_id: str, level: Level | None = None) -> BarGeometry | None:
        """Bar of `item_id`, or None when hidden by a collapsed ancestor or undated."""
        row = self.visible_row(item_id, level)
        if row is None:
            return None
        return bar_geometry(row.item, row, self.timeline, self.current_day, self.baseline_for(row.item), self.config)

    def connectors(self, bars: dict[BarKey, BarGeometry] | None = None) -> list[Connector]:
        lookup = _dependency_lookup(bars if bars is not None else self.bars())
        return build_connectors(self.data.dependencies, lookup.get)

    def variance(self) -> list[VarianceRow]:
        return compute_variance(self.data.all_items(), self.baseline)

    # Editing

    def begin_drag(
        self, item_id: str, x: float, pointer: PointerInput, level: Level | None = None
    ) -> DragSession | None:
        """Start a move/resize session when `x` hits the item's visible bar."""
        row = self.visible_row(item_id, level)
        if row is None:
            return None
        geometry = bar_geometry(row.item, row, self.timeline, self.current_day, self.baseline_for(row.item), self.config)
        if geometry is None:
            return None
        session = DragSession(row.item, geometry, self.timeline, self._commit_drag, config=self.config)
        if session.pointer_down(x, pointer) is None:
            return None
        return session

    def _commit_drag(self, item: ScheduleItem, handle: Handle, span: DateSpan) -> None:
        span = _planned_target(item, handle, span)
        if span == item.planned_span:
            return
        if handle == "move":
            self.on_drag_commit(item, span.start, span.end)
        else:
            self.on_resize_commit(item, span.start, span.end)

    def on_drag_commit(self, item: ScheduleItem, new_start: date, new_end: date) -> bool:
        return self._commit("move", item, DateSpan(new_start, new_end))

    def on_resize_commit(self, item: ScheduleItem, new_start: date, new_end: date) -> bool:
        return self._commit("resize", item, DateSpan(new_start, new_end))

    def _commit(self, action_type: ActionType, item: ScheduleItem, new_span: DateSpan) -> bool:
        if new_span.start > new_span.end:
            self.notify("error", f"Invalid dates for '{item.name}': start {new_span.start} is after end {new_span.end}")
            return False
        if action_type == "resize" and new_span.days < 1:
            self.notify("error", f"Invalid dates for '{item.name}': a resized item must last at least one day")
            return False
        previous = item.planned_span or item.display_span or new_span
        try:
            patch_dates(self.backend, self.project_id, item.level, item.id, new_span)
        except PersistenceError as exc:
            self.notify("error", f"Could not update '{item.name}': {exc}")
            return False

        self.history.record_action(
            HistoryAction(
                type=action_type,
                item_id=item.id,
                item_type=item.level.item_type,
                previous_data=previous,
                new_data=new_span,
            )
        )
        verb = "rescheduled" if action_type == "move" else "resized"
        self.notify("success", f"'{item.name}' {verb} to {new_span.start} - {new_span.end}")
        self.reload()
        return True

    def undo(self) -> bool:
        action = self.history.undo()
        if action is None:
            return False
        if not self._replay(action, action.previous_data):
            # Keep history consistent with what is persisted.
            self.history.redo()
            return False
        self.notify("success", "Action undone")
        return True

    def redo(self) -> bool:
        action = self.history.redo()
        if action is None:
            return False
        if not self._replay(action, action.new_data):
            self.history.undo()
            return False
        self.notify("success", "Action redone")
        return True

    def _replay(self, action: HistoryAction, span: DateSpan) -> bool:
        try:
            patch_dates(self.backend, self.project_id, action.level, action.item_id, span)
        except PersistenceError as exc:
            self.notify("error", f"Could not replay {action.type} of '{action.item_id}': {exc}")
            return False
        logger.info("Replayed %s of %s '%s' as %s - %s", action.type, action.item_type, action.item_id, span.start, span.end)
        self.reload()
        return True

    # Rendering

    def chart_view(self, show_dependencies: bool = True) -> ChartView:
        rows = self.rows()
        bars = self.bars(rows)
        return ChartView(
            timeline=self.timeline,
            rows=rows,
            bars=bars,
            connectors=self.connectors(bars) if show_dependencies else [],
            today=self.current_day,
        )

    def render(self, out_path: str, title: str = "", show_dependencies: bool = True) -> None:
        render_gantt(self.chart_view(show_dependencies), out_path=out_path, title=title)


# Dependencies name items by bare id; a task wins over other levels sharing it.
_DEPENDENCY_PRECEDENCE = (Level.TASK, Level.SUBTASK, Level.WORK_PACKAGE, Level.PHASE)


def _dependency_lookup(bars: dict[BarKey, BarGeometry]) -> dict[str, BarGeometry]:
    lookup: dict[str, BarGeometry] = {}
    for level in _DEPENDENCY_PRECEDENCE:
        for (bar_level, item_id), geometry in bars.items():
            if bar_level == level:
                lookup.setdefault(item_id, geometry)
    return lookup


def _planned_target(item: ScheduleItem, handle: Handle, candidate: DateSpan) -> DateSpan:
    """
    Carry a drag of the displayed bar over to the planned dates a commit writes.

    When actual dates are shown, the day delta of the grabbed handle is
    applied to the planned span instead of persisting the actual one.
    """

    shown, planned = item.display_span, item.planned_span
    if shown is None or planned is None or shown == planned:
        return candidate
    if handle == "end":
        delta = candidate.end - shown.end
    else:
        delta = candidate.start - shown.start
    return apply_delta(planned, handle, delta.days)
