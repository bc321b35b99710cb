from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Literal

from .config import DEFAULT_CONFIG, EngineConfig

Scale = Literal["days", "weeks", "months"]
SCALES: tuple[Scale, ...] = ("days", "weeks", "months")


def compute_bounds(
    dates: Iterable[date],
    today: date | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> tuple[date, date]:
    """
    Return the (start, end) window covering every candidate date.

    The overall min/max is padded by `config.padding_days` on each side.
    With no dates at all, a default window around `today` keeps the empty
    chart usable.
    """

    candidates = list(dates)
    if not candidates:
        anchor = today or date.today()
        return (
            anchor - timedelta(days=config.empty_days_before),
            anchor + timedelta(days=config.empty_days_after),
        )
    pad = timedelta(days=config.padding_days)
    return min(candidates) - pad, max(candidates) + pad


@dataclass(frozen=True)
class TimelineModel:
    """
    Date <-> pixel mapping for the visible window.

    Re-scaling or re-zooming returns a new model; task dates are never
    touched, only the mapping changes.
    """

    start: date
    end: date
    scale: Scale = "weeks"
    zoom: float = 1.0
    config: EngineConfig = field(default=DEFAULT_CONFIG, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"timeline end {self.end} must be after start {self.start}")
        if self.scale not in SCALES:
            raise ValueError(f"unknown scale '{self.scale}', expected one of {SCALES}")

    @property
    def total_days(self) -> int:
        return (self.end - self.start).days

    @property
    def width(self) -> float:
        base = max(self.config.min_width, self.total_days * self.config.pixels_per_unit[self.scale])
        return min(base * self.zoom, self.config.max_width)

    @property
    def pixels_per_day(self) -> float:
        return self.width / self.total_days

    def date_to_x(self, value: date | datetime) -> float:
        return _day_offset(value, self.start) / self.total_days * self.width

    def x_to_date(self, x: float) -> date:
        """Inverse of `date_to_x`, rounded to the nearest whole day."""
        days = x / self.width * self.total_days
        return self.start + timedelta(days=round(days))

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def with_bounds(self, start: date, end: date) -> "TimelineModel":
        return dataclasses.replace(self, start=start, end=end)

    def with_scale(self, scale: Scale) -> "TimelineModel":
        return dataclasses.replace(self, scale=scale)

    def with_zoom(self, zoom: float) -> "TimelineModel":
        clamped = min(self.config.zoom_max, max(self.config.zoom_min, zoom))
        return dataclasses.replace(self, zoom=clamped)

    def zoom_in(self) -> "TimelineModel":
        return self.with_zoom(self.zoom + self.config.zoom_step)

    def zoom_out(self) -> "TimelineModel":
        return self.with_zoom(self.zoom - self.config.zoom_step)


def _day_offset(value: date | datetime, origin: date) -> float:
    if isinstance(value, datetime):
        delta = value - datetime.combine(origin, datetime.min.time(), tzinfo=value.tzinfo)
        return delta.total_seconds() / 86400.0
    return float((value - origin).days)
