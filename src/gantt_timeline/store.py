from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Protocol

import yaml

from .parse_schedule import PARENT_FIELDS, DataShapeError, flatten_baseline_tree, unwrap_records
from .schedule_models import BaselineMap, DateSpan, Level

logger = logging.getLogger(__name__)

HIERARCHY_RESOURCES = tuple(level.endpoint for level in Level)
READ_RESOURCES = (*HIERARCHY_RESOURCES, "dependencias", "cronogramas", "tree")

EXECUTION_SCHEDULE = "ejecucion"
PLANNING_SCHEDULE = "planificacion"


class PersistenceError(Exception):
    """Raised when a schedule write is rejected or cannot be delivered."""


class BaselineLoadError(Exception):
    """Raised when the optional baseline overlay cannot be read."""


class ScheduleBackend(Protocol):
    """
    Fetch/patch contract of the persistence collaborator.

    `fetch` returns a list or `{"data": list}` (the `tree` resource returns
    `{"data": {"tree": [...]}}`); `patch` returns an HTTP-style status code.
    """

    def fetch(self, resource: str, project_id: str, schedule_id: str | None = None) -> Any: ...

    def patch(self, endpoint: str, project_id: str, item_id: str, body: dict[str, Any]) -> int: ...


def patch_dates(backend: ScheduleBackend, project_id: str, level: Level, item_id: str, span: DateSpan) -> None:
    """Persist `span` for one item through its level's endpoint; raise PersistenceError on failure."""

    body = span.to_body(level)
    try:
        status = backend.patch(level.endpoint, project_id, item_id, body)
    except PersistenceError:
        raise
    except Exception as exc:
        raise PersistenceError(f"could not update {level.item_type} '{item_id}': {exc}") from exc
    if not 200 <= status < 300:
        raise PersistenceError(f"could not update {level.item_type} '{item_id}' (status {status})")


def load_baseline(backend: ScheduleBackend, project_id: str, schedule_id: str | None) -> BaselineMap:
    """
    Return the frozen planning baseline for an execution schedule.

    Any other schedule, or a project without a baseline, yields an empty
    map; read failures raise BaselineLoadError.
    """

    if schedule_id is None:
        return {}
    try:
        schedules = unwrap_records(backend.fetch("cronogramas", project_id), "cronogramas")
        current = _find(schedules, lambda s: str(s.get("id")) == str(schedule_id))
        if current is None or current.get("tipo") != EXECUTION_SCHEDULE:
            return {}
        baseline = _find(schedules, lambda s: s.get("tipo") == PLANNING_SCHEDULE and s.get("esBaseline"))
        if baseline is None:
            return {}
        payload = backend.fetch("tree", project_id, str(baseline["id"]))
    except (DataShapeError, KeyError) as exc:
        raise BaselineLoadError(f"unexpected baseline payload: {exc}") from exc
    except Exception as exc:
        raise BaselineLoadError(f"baseline read failed: {exc}") from exc

    data = payload.get("data") if isinstance(payload, dict) else None
    tree = data.get("tree") if isinstance(data, dict) else None
    if tree is None:
        return {}
    if not isinstance(tree, list):
        raise BaselineLoadError("baseline tree is not a list")
    return flatten_baseline_tree(tree)


def _find(records: list[Any], predicate) -> dict[str, Any] | None:
    for record in records:
        if isinstance(record, dict) and predicate(record):
            return record
    return None


class YamlScheduleStore:
    """
    File-backed ScheduleBackend.

    The YAML document holds one project:

        project: {id: P1, nombre: ...}
        cronogramas: [{id: C1, tipo: ejecucion}, ...]
        fases / edt / tareas / subtareas: [records with cronogramaId]
        dependencias: [{id, tareaOrigenId, tareaDependienteId, tipo}]

    Patches are applied in memory and written back to the file.
    """

    def __init__(self, path: str | Path, autosave: bool = True) -> None:
        self.path = Path(path)
        self.autosave = autosave
        with self.path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise DataShapeError(f"{self.path}: expected mapping at top level")
        self._data: dict[str, Any] = raw

    @property
    def project_id(self) -> str | None:
        project = self._data.get("project")
        if isinstance(project, dict) and project.get("id") is not None:
            return str(project["id"])
        return None

    @property
    def project_name(self) -> str | None:
        project = self._data.get("project")
        if isinstance(project, dict):
            name = project.get("nombre") or project.get("name")
            return str(name) if name else None
        return None

    def fetch(self, resource: str, project_id: str, schedule_id: str | None = None) -> Any:
        if resource not in READ_RESOURCES:
            raise KeyError(f"unknown resource '{resource}'")
        if not self._owns(project_id):
            return {"data": []}
        if resource == "tree":
            return {"data": {"tree": self._tree(schedule_id)}}
        records = self._data.get(resource)
        if not isinstance(records, list):
            # Pass malformed payloads through untouched; readers coerce them.
            return copy.deepcopy(records)
        if resource in HIERARCHY_RESOURCES and schedule_id is not None:
            records = [r for r in records if _schedule_of(r) in (None, schedule_id)]
        return {"data": copy.deepcopy(records)}

    def patch(self, endpoint: str, project_id: str, item_id: str, body: dict[str, Any]) -> int:
        if endpoint not in HIERARCHY_RESOURCES or not self._owns(project_id):
            return 404
        record = _find(self._data.get(endpoint) or [], lambda r: str(r.get("id")) == str(item_id))
        if record is None:
            return 404
        allowed = set(Level(HIERARCHY_RESOURCES.index(endpoint) + 1).date_fields)
        if not body or set(body) - allowed:
            return 400
        record.update(body)
        if self.autosave:
            self.save()
        logger.info("Patched %s/%s with %s", endpoint, item_id, body)
        return 200

    def save(self) -> None:
        with self.path.open("w", encoding="utf-8") as fh:
            yaml.safe_dump(self._data, fh, sort_keys=False, allow_unicode=True)

    def _owns(self, project_id: str) -> bool:
        return self.project_id is None or str(project_id) == self.project_id

    def _tree(self, schedule_id: str | None) -> list[dict[str, Any]]:
        """Nest the flat records of one schedule as {nombre, data, children} nodes."""

        def records_for(level: Level) -> list[dict[str, Any]]:
            rows = self._data.get(level.endpoint) or []
            return [r for r in rows if isinstance(r, dict) and _schedule_of(r) in (None, schedule_id)]

        def node(record: dict[str, Any], level: Level) -> dict[str, Any]:
            children: list[dict[str, Any]] = []
            if level.child is not None:
                parent_field = PARENT_FIELDS[level.child]
                children = [
                    node(child, level.child)
                    for child in records_for(level.child)
                    if str(child.get(parent_field)) == str(record.get("id"))
                ]
            return {"id": record.get("id"), "nombre": record.get("nombre"), "data": dict(record), "children": children}

        return [node(record, Level.PHASE) for record in records_for(Level.PHASE)]


def _schedule_of(record: Any) -> str | None:
    if isinstance(record, dict) and record.get("cronogramaId") is not None:
        return str(record["cronogramaId"])
    return None
