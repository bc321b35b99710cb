from __future__ import annotations

import datetime as _dt
import logging
from typing import Any

from .schedule_models import BaselineMap, DateSpan, Dependency, DependencyType, Level, ScheduleData, ScheduleItem

logger = logging.getLogger(__name__)


class DataShapeError(Exception):
    """Raised when a read collaborator returns something other than a list of records."""


class DegenerateDateError(Exception):
    """Raised when an item's dates are missing, unparsable, or reversed."""


# Parent reference field per level; phases have none.
PARENT_FIELDS = {
    Level.PHASE: None,
    Level.WORK_PACKAGE: "proyectoFaseId",
    Level.TASK: "proyectoEdtId",
    Level.SUBTASK: "proyectoTareaId",
}

# (start, end) planned field names, first match wins.
_PLANNED_FIELDS = (("fechaInicio", "fechaFin"), ("fechaInicioPlan", "fechaFinPlan"))
_ACTUAL_FIELDS = ("fechaInicioReal", "fechaFinReal")
_PROGRESS_FIELDS = ("porcentajeAvance", "porcentajeCompletado", "progreso")


def unwrap_records(payload: Any, resource: str = "records") -> list[Any]:
    """
    Return the list carried by `payload`, either bare or as `{data: [...]}`.

    Raises DataShapeError for any other shape.
    """

    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise DataShapeError(f"{resource}: expected a list, got {type(payload).__name__}")
    return payload


def coerce_records(payload: Any, resource: str) -> list[dict[str, Any]]:
    """Like `unwrap_records`, but degrades any shape problem to an empty list."""

    try:
        records = unwrap_records(payload, resource)
    except DataShapeError as exc:
        logger.warning("Ignoring %s payload: %s", resource, exc)
        return []
    kept = [record for record in records if isinstance(record, dict)]
    if len(kept) != len(records):
        logger.warning("Dropped %d non-mapping %s records", len(records) - len(kept), resource)
    return kept


def parse_items(records: list[dict[str, Any]], level: Level) -> list[ScheduleItem]:
    """Convert raw records of a single hierarchy level into tagged items."""

    items: list[ScheduleItem] = []
    for record in records:
        item_id = record.get("id")
        if item_id is None:
            logger.warning("Skipping %s record without id: %r", level.item_type, record)
            continue
        items.append(_parse_item(record, level))
    return items


def _parse_item(record: dict[str, Any], level: Level) -> ScheduleItem:
    item_id = str(record["id"])
    parent_field = PARENT_FIELDS[level]
    parent_id = record.get(parent_field) if parent_field else None

    item = ScheduleItem(
        id=item_id,
        name=str(record.get("nombre") or record.get("name") or item_id),
        level=level,
        parent_id=str(parent_id) if parent_id is not None else None,
        progress=_parse_progress(record),
        responsible=_parse_responsible(record.get("responsable")),
    )

    try:
        planned = _first_span(record, _PLANNED_FIELDS)
        if planned is not None:
            item.planned_start, item.planned_end = planned.start, planned.end
    except DegenerateDateError as exc:
        logger.debug("%s '%s' has no usable planned dates: %s", level.item_type, item_id, exc)

    try:
        actual = _span(record, *_ACTUAL_FIELDS)
        if actual is not None:
            item.actual_start, item.actual_end = actual.start, actual.end
    except DegenerateDateError as exc:
        logger.debug("%s '%s' has no usable actual dates: %s", level.item_type, item_id, exc)

    return item


def _first_span(record: dict[str, Any], field_pairs: tuple[tuple[str, str], ...]) -> DateSpan | None:
    for start_field, end_field in field_pairs:
        if record.get(start_field) or record.get(end_field):
            return _span(record, start_field, end_field)
    return None


def _span(record: dict[str, Any], start_field: str, end_field: str) -> DateSpan | None:
    raw_start, raw_end = record.get(start_field), record.get(end_field)
    if not raw_start and not raw_end:
        return None
    if not raw_start or not raw_end:
        raise DegenerateDateError(f"only one of {start_field}/{end_field} is set")
    start = parse_date(raw_start, start_field)
    end = parse_date(raw_end, end_field)
    if start > end:
        raise DegenerateDateError(f"{start_field} {start} is after {end_field} {end}")
    return DateSpan(start, end)


def parse_date(value: Any, field_name: str = "date") -> _dt.date:
    """Accept dates, datetimes, and ISO strings (date or datetime, optional 'Z')."""

    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise DegenerateDateError(f"{field_name}: expected ISO date string")
    text = value.strip()
    try:
        return _dt.date.fromisoformat(text[:10])
    except ValueError as exc:
        raise DegenerateDateError(f"{field_name}: unparsable date '{value}'") from exc


def _parse_progress(record: dict[str, Any]) -> float:
    for key in _PROGRESS_FIELDS:
        value = record.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(min(100.0, max(0.0, value)))
    return 0.0


def _parse_responsible(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        name = value.get("nombre") or value.get("name")
        return str(name) if name else None
    return None


def parse_dependencies(records: list[dict[str, Any]]) -> list[Dependency]:
    """
    Rename canonical dependency fields to (id, from_task_id, to_task_id, type).

    Self-loops and unknown types are dropped; cycles are left to the caller.
    """

    dependencies: list[Dependency] = []
    for idx, record in enumerate(records):
        origin = record.get("tareaOrigenId", record.get("fromTaskId"))
        target = record.get("tareaDependienteId", record.get("toTaskId"))
        if origin is None or target is None:
            logger.warning("Skipping dependency #%d without endpoints: %r", idx, record)
            continue
        if origin == target:
            logger.warning("Skipping self-referencing dependency on '%s'", origin)
            continue
        raw_type = record.get("tipo", record.get("type")) or DependencyType.FINISH_TO_START.value
        try:
            dep_type = DependencyType(raw_type)
        except ValueError:
            logger.warning("Skipping dependency with unknown type '%s'", raw_type)
            continue
        dependencies.append(
            Dependency(
                id=str(record.get("id", f"dep-{idx}")),
                from_task_id=str(origin),
                to_task_id=str(target),
                type=dep_type,
            )
        )
    return dependencies


def parse_schedule(
    phases: Any,
    work_packages: Any,
    tasks: Any,
    subtasks: Any,
    dependencies: Any,
) -> ScheduleData:
    """Build ScheduleData from the five raw read-collaborator payloads."""

    return ScheduleData(
        phases=parse_items(coerce_records(phases, "fases"), Level.PHASE),
        work_packages=parse_items(coerce_records(work_packages, "edt"), Level.WORK_PACKAGE),
        tasks=parse_items(coerce_records(tasks, "tareas"), Level.TASK),
        subtasks=parse_items(coerce_records(subtasks, "subtareas"), Level.SUBTASK),
        dependencies=parse_dependencies(coerce_records(dependencies, "dependencias")),
    )


def flatten_baseline_tree(tree: list[Any]) -> BaselineMap:
    """
    Flatten a frozen schedule tree into spans keyed by node name.

    Phases and work packages read their planned fields; deeper nodes
    prefer their own dates and fall back to the planned pair.
    """

    baseline: BaselineMap = {}

    def visit(nodes: Any, depth: int) -> None:
        if not isinstance(nodes, list):
            return
        for node in nodes:
            if not isinstance(node, dict):
                continue
            name = node.get("nombre")
            data = node.get("data") or {}
            pairs = _PLANNED_FIELDS[1:] if depth < 2 else _PLANNED_FIELDS
            if name and isinstance(data, dict):
                try:
                    span = _first_span(data, pairs)
                except DegenerateDateError:
                    span = None
                if span is not None:
                    baseline[str(name)] = span
            visit(node.get("children"), depth + 1)

    visit(tree, 0)
    return baseline
