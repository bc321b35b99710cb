from __future__ import annotations

from collections import defaultdict
from typing import Iterable, List

from .config import DEFAULT_CONFIG, EngineConfig
from .schedule_models import ExpandedSet, LayoutRow, Level, ScheduleItem


def compute_rows(
    phases: list[ScheduleItem],
    work_packages: list[ScheduleItem],
    tasks: list[ScheduleItem],
    subtasks: list[ScheduleItem],
    expanded: ExpandedSet = frozenset(),
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[LayoutRow]:
    """
    Flatten the hierarchy into the ordered list of visible rows.

    Phases are emitted in input order; a node's children are visited only
    when its id is in `expanded`, so a collapsed ancestor hides the whole
    subtree and its vertical space. Pure: inputs are never mutated.
    """

    children = _children_index(work_packages, tasks, subtasks)
    rows: List[LayoutRow] = []
    y = 0.0
    for phase in phases:
        y = _append_item(phase, Level.PHASE, rows, y, children, expanded, config)
    return rows


def _append_item(
    item: ScheduleItem,
    level: Level,
    rows: List[LayoutRow],
    y: float,
    children: dict[tuple[Level, str], list[ScheduleItem]],
    expanded: ExpandedSet,
    config: EngineConfig,
) -> float:
    """Append the item and its visible descendants; return the updated y offset."""

    height = config.row_height(level)
    kids = children.get((level, item.id), [])
    is_expanded = item.id in expanded
    rows.append(
        LayoutRow(
            item=item,
            level=level,
            y=y,
            height=height,
            has_children=bool(kids),
            expanded=is_expanded,
        )
    )
    y += height
    if is_expanded and level.child is not None:
        for child in kids:
            y = _append_item(child, level.child, rows, y, children, expanded, config)
    return y


def _children_index(
    work_packages: list[ScheduleItem],
    tasks: list[ScheduleItem],
    subtasks: list[ScheduleItem],
) -> dict[tuple[Level, str], list[ScheduleItem]]:
    # Keyed by the parent's (level, id) so equal ids on different levels never collide.
    index: dict[tuple[Level, str], list[ScheduleItem]] = defaultdict(list)
    for parent_level, collection in (
        (Level.PHASE, work_packages),
        (Level.WORK_PACKAGE, tasks),
        (Level.TASK, subtasks),
    ):
        for item in collection:
            if item.parent_id is not None:
                index[(parent_level, item.parent_id)].append(item)
    return index


def toggle_expanded(expanded: ExpandedSet, item_id: str) -> ExpandedSet:
    """Return a new set with `item_id` flipped."""
    if item_id in expanded:
        return expanded - {item_id}
    return expanded | {item_id}


def expand_all(
    work_packages: list[ScheduleItem],
    tasks: list[ScheduleItem],
    subtasks: list[ScheduleItem],
) -> ExpandedSet:
    """Every id referenced as a parent, i.e. the fully expanded state."""
    return frozenset(item.parent_id for item in (*work_packages, *tasks, *subtasks) if item.parent_id is not None)


def total_height(rows: Iterable[LayoutRow]) -> float:
    return sum(row.height for row in rows)


def row_index(rows: Iterable[LayoutRow]) -> dict[str, LayoutRow]:
    """Map item id to its visible row; hidden items are absent."""
    return {row.item.id: row for row in rows}
