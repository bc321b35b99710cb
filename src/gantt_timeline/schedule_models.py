from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from typing import Literal


class Level(enum.IntEnum):
    """Hierarchy level of a schedule item, coarsest (1) to finest (4)."""

    PHASE = 1
    WORK_PACKAGE = 2
    TASK = 3
    SUBTASK = 4

    @property
    def endpoint(self) -> str:
        """Persistence endpoint that accepts date patches for this level."""
        return _ENDPOINTS[self]

    @property
    def item_type(self) -> str:
        """Short tag recorded in history actions."""
        return _ITEM_TYPES[self]

    @property
    def date_fields(self) -> tuple[str, str]:
        """Writable (start, end) field names for this level."""
        if self in (Level.PHASE, Level.WORK_PACKAGE):
            return ("fechaInicioPlan", "fechaFinPlan")
        return ("fechaInicio", "fechaFin")

    @property
    def child(self) -> "Level | None":
        return Level(self + 1) if self < Level.SUBTASK else None

    @classmethod
    def from_item_type(cls, item_type: str) -> "Level":
        for level, tag in _ITEM_TYPES.items():
            if tag == item_type:
                return level
        raise ValueError(f"unknown item type '{item_type}'")


_ENDPOINTS = {
    Level.PHASE: "fases",
    Level.WORK_PACKAGE: "edt",
    Level.TASK: "tareas",
    Level.SUBTASK: "subtareas",
}

_ITEM_TYPES = {
    Level.PHASE: "fase",
    Level.WORK_PACKAGE: "edt",
    Level.TASK: "tarea",
    Level.SUBTASK: "subtarea",
}


class DependencyType(str, enum.Enum):
    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"


@dataclass(frozen=True)
class DateSpan:
    """Inclusive (start, end) date pair."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def to_body(self, level: Level) -> dict[str, str]:
        """Patch body carrying this span in the field names `level` expects."""
        start_field, end_field = level.date_fields
        return {start_field: self.start.isoformat(), end_field: self.end.isoformat()}


@dataclass
class ScheduleItem:
    """
    One schedulable node of the four-level hierarchy.

    The level tag is carried explicitly so callers never need to search
    sibling collections to classify an item.
    """

    id: str
    name: str
    level: Level
    parent_id: str | None = None
    planned_start: date | None = None
    planned_end: date | None = None
    actual_start: date | None = None
    actual_end: date | None = None
    progress: float = 0.0
    responsible: str | None = None

    @property
    def planned_span(self) -> DateSpan | None:
        if self.planned_start is None or self.planned_end is None:
            return None
        return DateSpan(self.planned_start, self.planned_end)

    @property
    def display_span(self) -> DateSpan | None:
        """Actual dates when both are recorded, otherwise the planned dates."""
        if self.actual_start is not None and self.actual_end is not None:
            return DateSpan(self.actual_start, self.actual_end)
        return self.planned_span

    def candidate_dates(self) -> list[date]:
        """Every known date on this item, used to size the timeline."""
        values = (self.planned_start, self.planned_end, self.actual_start, self.actual_end)
        return [value for value in values if value is not None]


@dataclass(frozen=True)
class Dependency:
    """Directed edge between two schedule items."""

    id: str
    from_task_id: str
    to_task_id: str
    type: DependencyType = DependencyType.FINISH_TO_START


ExpandedSet = frozenset
"""Immutable set of item ids whose children are visible."""

BaselineMap = dict[str, DateSpan]
"""Frozen baseline spans keyed by item name."""

ActionType = Literal["move", "resize"]


@dataclass(frozen=True)
class HistoryAction:
    """One committed schedule edit; immutable once recorded."""

    type: ActionType
    item_id: str
    item_type: str
    previous_data: DateSpan
    new_data: DateSpan

    @property
    def level(self) -> Level:
        return Level.from_item_type(self.item_type)


@dataclass
class ScheduleData:
    """Raw hierarchy collections after parsing, one list per level."""

    phases: list[ScheduleItem] = field(default_factory=list)
    work_packages: list[ScheduleItem] = field(default_factory=list)
    tasks: list[ScheduleItem] = field(default_factory=list)
    subtasks: list[ScheduleItem] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)

    def all_items(self) -> list[ScheduleItem]:
        return [*self.phases, *self.work_packages, *self.tasks, *self.subtasks]


@dataclass
class LayoutRow:
    """
    One visible row of the chart.

    `y` is the top offset of the row; `height` depends on the level so
    deeper rows are visually de-emphasized.
    """

    item: ScheduleItem
    level: Level
    y: float
    height: float
    has_children: bool = False
    expanded: bool = False

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2
