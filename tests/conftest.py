import copy

import pytest
import yaml

from gantt_timeline.store import YamlScheduleStore

SCHEDULE = {
    "project": {"id": "P1", "nombre": "Demo"},
    "cronogramas": [
        {"id": "C-PLAN", "tipo": "planificacion", "esBaseline": True},
        {"id": "C-EXEC", "tipo": "ejecucion"},
    ],
    "fases": [
        {"id": "F1", "cronogramaId": "C-EXEC", "nombre": "Ingenieria", "fechaInicioPlan": "2024-01-01", "fechaFinPlan": "2024-01-31"},
        {"id": "F2", "cronogramaId": "C-EXEC", "nombre": "Construccion", "fechaInicioPlan": "2024-02-01", "fechaFinPlan": "2024-03-15"},
        {"id": "BF1", "cronogramaId": "C-PLAN", "nombre": "Ingenieria", "fechaInicioPlan": "2024-01-01", "fechaFinPlan": "2024-01-25"},
        {"id": "BF2", "cronogramaId": "C-PLAN", "nombre": "Construccion", "fechaInicioPlan": "2024-01-29", "fechaFinPlan": "2024-03-08"},
    ],
    "edt": [
        {"id": "E1", "cronogramaId": "C-EXEC", "proyectoFaseId": "F1", "nombre": "Diseno", "fechaInicioPlan": "2024-01-01", "fechaFinPlan": "2024-01-20"},
        {"id": "E2", "cronogramaId": "C-EXEC", "proyectoFaseId": "F2", "nombre": "Montaje", "fechaInicioPlan": "2024-02-01", "fechaFinPlan": "2024-03-10"},
    ],
    "tareas": [
        {"id": "T1", "cronogramaId": "C-EXEC", "proyectoEdtId": "E1", "nombre": "Planos", "fechaInicio": "2024-01-01", "fechaFin": "2024-01-05"},
        {"id": "T2", "cronogramaId": "C-EXEC", "proyectoEdtId": "E1", "nombre": "Memoria", "fechaInicio": "2024-01-08", "fechaFin": "2024-01-20"},
        {"id": "T3", "cronogramaId": "C-EXEC", "proyectoEdtId": "E2", "nombre": "Tableros", "fechaInicio": "2024-02-05", "fechaFin": "2024-02-25"},
    ],
    "subtareas": [
        {"id": "S1", "cronogramaId": "C-EXEC", "proyectoTareaId": "T3", "nombre": "Cableado", "fechaInicio": "2024-02-05", "fechaFin": "2024-02-12"},
    ],
    "dependencias": [
        {"id": "D1", "tareaOrigenId": "T1", "tareaDependienteId": "T2", "tipo": "finish_to_start"},
        {"id": "D2", "tareaOrigenId": "T3", "tareaDependienteId": "S1", "tipo": "start_to_start"},
    ],
}


@pytest.fixture
def schedule_data():
    return copy.deepcopy(SCHEDULE)


@pytest.fixture
def store_path(tmp_path, schedule_data):
    path = tmp_path / "schedule.yaml"
    path.write_text(yaml.safe_dump(schedule_data, sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture
def store(store_path):
    return YamlScheduleStore(store_path)


class FakePointer:
    """Pointer input driven by the test; records subscription lifecycle."""

    def __init__(self):
        self.handlers = None
        self.subscriptions = 0
        self.unsubscribed = 0

    def subscribe(self, on_move, on_up, on_cancel):
        self.handlers = (on_move, on_up, on_cancel)
        self.subscriptions += 1

        def unsubscribe():
            self.unsubscribed += 1
            self.handlers = None

        return unsubscribe

    def move(self, x):
        self.handlers[0](x)

    def up(self, x):
        self.handlers[1](x)

    def escape(self):
        self.handlers[2]()


@pytest.fixture
def pointer():
    return FakePointer()
