import datetime as dt

import pytest

from gantt_timeline.parse_schedule import (
    DataShapeError,
    DegenerateDateError,
    coerce_records,
    flatten_baseline_tree,
    parse_date,
    parse_dependencies,
    parse_items,
    parse_schedule,
    unwrap_records,
)
from gantt_timeline.schedule_models import DateSpan, DependencyType, Level


def test_unwrap_accepts_bare_lists_and_data_envelopes():
    assert unwrap_records([{"id": 1}]) == [{"id": 1}]
    assert unwrap_records({"data": [{"id": 1}]}) == [{"id": 1}]
    assert unwrap_records(None) == []


def test_unwrap_rejects_other_shapes():
    with pytest.raises(DataShapeError):
        unwrap_records({"error": "boom"})
    with pytest.raises(DataShapeError):
        unwrap_records({"data": "nope"})


def test_coerce_degrades_bad_payloads_to_empty_lists():
    assert coerce_records("<html>502</html>", "tareas") == []
    assert coerce_records({"data": [{"id": "a"}, "junk", 3]}, "tareas") == [{"id": "a"}]


def test_task_records_become_tagged_items():
    [item] = parse_items(
        [
            {
                "id": "T1",
                "nombre": "Planos",
                "proyectoEdtId": "E1",
                "fechaInicio": "2024-01-01T00:00:00.000Z",
                "fechaFin": "2024-01-05",
                "fechaInicioReal": "2024-01-02",
                "fechaFinReal": "2024-01-06",
                "porcentajeCompletado": 140,
                "responsable": {"nombre": "Ana"},
            }
        ],
        Level.TASK,
    )

    assert item.level == Level.TASK
    assert item.parent_id == "E1"
    assert item.planned_span == DateSpan(dt.date(2024, 1, 1), dt.date(2024, 1, 5))
    assert item.display_span == DateSpan(dt.date(2024, 1, 2), dt.date(2024, 1, 6))
    assert item.progress == 100
    assert item.responsible == "Ana"


def test_phase_records_read_planned_fields():
    [phase] = parse_items(
        [{"id": 7, "nombre": "Ingenieria", "fechaInicioPlan": "2024-01-01", "fechaFinPlan": "2024-01-31", "porcentajeAvance": 40}],
        Level.PHASE,
    )

    assert phase.id == "7"
    assert phase.parent_id is None
    assert phase.planned_span == DateSpan(dt.date(2024, 1, 1), dt.date(2024, 1, 31))
    assert phase.progress == 40


@pytest.mark.parametrize(
    "dates",
    [
        {"fechaInicio": "not-a-date", "fechaFin": "2024-01-05"},
        {"fechaInicio": "2024-01-09", "fechaFin": "2024-01-05"},
        {"fechaInicio": "2024-01-01"},
        {},
    ],
)
def test_degenerate_dates_leave_item_undated(dates):
    [item] = parse_items([{"id": "T1", "nombre": "x", **dates}], Level.TASK)

    assert item.display_span is None


def test_records_without_id_are_skipped():
    assert parse_items([{"nombre": "ghost"}], Level.SUBTASK) == []


def test_parse_date_accepts_dates_and_rejects_garbage():
    assert parse_date(dt.datetime(2024, 3, 1, 15, 30)) == dt.date(2024, 3, 1)
    assert parse_date(dt.date(2024, 3, 1)) == dt.date(2024, 3, 1)
    with pytest.raises(DegenerateDateError):
        parse_date(20240301)


def test_dependencies_are_renamed_and_filtered():
    dependencies = parse_dependencies(
        [
            {"id": "D1", "tareaOrigenId": "A", "tareaDependienteId": "B", "tipo": "start_to_finish"},
            {"id": "D2", "tareaOrigenId": "A", "tareaDependienteId": "A", "tipo": "finish_to_start"},
            {"id": "D3", "tareaOrigenId": "A", "tareaDependienteId": "C", "tipo": "sideways"},
            {"id": "D4", "tareaOrigenId": "B", "tareaDependienteId": "C"},
            {"id": "D5", "tareaOrigenId": "B"},
        ]
    )

    assert [(d.id, d.from_task_id, d.to_task_id, d.type) for d in dependencies] == [
        ("D1", "A", "B", DependencyType.START_TO_FINISH),
        ("D4", "B", "C", DependencyType.FINISH_TO_START),
    ]


def test_parse_schedule_tolerates_partial_outage():
    data = parse_schedule(
        {"data": [{"id": "F1", "nombre": "Fase"}]},
        None,
        {"error": "timeout"},
        [{"id": "S1", "proyectoTareaId": "T1"}],
        {"data": []},
    )

    assert [item.id for item in data.all_items()] == ["F1", "S1"]
    assert data.tasks == []
    assert data.dependencies == []


def test_baseline_tree_flattens_by_name():
    tree = [
        {
            "nombre": "Fase A",
            "data": {"fechaInicioPlan": "2024-01-01", "fechaFinPlan": "2024-01-31"},
            "children": [
                {
                    "nombre": "EDT A",
                    "data": {"fechaInicioPlan": "2024-01-02", "fechaFinPlan": "2024-01-20"},
                    "children": [
                        {
                            "nombre": "Tarea A",
                            "data": {"fechaInicio": "2024-01-03", "fechaFin": "2024-01-05"},
                            "children": [{"nombre": "Sub A", "data": {"fechaInicioPlan": "2024-01-03", "fechaFinPlan": "2024-01-04"}}],
                        },
                        {"nombre": "Sin fechas", "data": {}},
                    ],
                }
            ],
        }
    ]

    baseline = flatten_baseline_tree(tree)

    assert baseline == {
        "Fase A": DateSpan(dt.date(2024, 1, 1), dt.date(2024, 1, 31)),
        "EDT A": DateSpan(dt.date(2024, 1, 2), dt.date(2024, 1, 20)),
        "Tarea A": DateSpan(dt.date(2024, 1, 3), dt.date(2024, 1, 5)),
        "Sub A": DateSpan(dt.date(2024, 1, 3), dt.date(2024, 1, 4)),
    }
