from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .schedule_models import BaselineMap, Level, ScheduleItem


@dataclass(frozen=True)
class VarianceRow:
    """Slip of one item against its baseline, in days (positive = later)."""

    item_id: str
    name: str
    level: Level
    start_delta_days: int
    end_delta_days: int

    @property
    def status(self) -> str:
        if self.end_delta_days > 0:
            return "late"
        if self.end_delta_days < 0:
            return "early"
        return "on time"


def compute_variance(items: Iterable[ScheduleItem], baseline: BaselineMap) -> list[VarianceRow]:
    """
    Compare each item's displayed span with the baseline entry of the same name.

    Items without dates or without a baseline entry are skipped.
    """

    rows: list[VarianceRow] = []
    for item in items:
        reference = baseline.get(item.name)
        span = item.display_span
        if reference is None or span is None:
            continue
        rows.append(
            VarianceRow(
                item_id=item.id,
                name=item.name,
                level=item.level,
                start_delta_days=(span.start - reference.start).days,
                end_delta_days=(span.end - reference.end).days,
            )
        )
    return rows
