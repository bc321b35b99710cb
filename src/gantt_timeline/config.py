from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .schedule_models import Level


class ConfigError(Exception):
    """Raised when an engine configuration file is malformed."""


@dataclass(frozen=True)
class EngineConfig:
    """Layout and interaction knobs shared by every engine component."""

    row_heights: dict[int, float] = field(
        default_factory=lambda: {Level.PHASE: 45.0, Level.WORK_PACKAGE: 40.0, Level.TASK: 35.0, Level.SUBTASK: 30.0}
    )
    pixels_per_unit: dict[str, float] = field(default_factory=lambda: {"days": 40.0, "weeks": 20.0, "months": 8.0})
    min_width: float = 1200.0
    max_width: float = 50_000.0
    padding_days: int = 7
    empty_days_before: int = 30
    empty_days_after: int = 90
    edge_hit_zone: float = 3.0
    min_bar_width: float = 20.0
    bar_height: float = 24.0
    zoom_min: float = 0.25
    zoom_max: float = 4.0
    zoom_step: float = 0.25
    axis_height: float = 60.0
    level_colors: dict[int, str] = field(
        default_factory=lambda: {
            Level.PHASE: "#10b981",
            Level.WORK_PACKAGE: "#f59e0b",
            Level.TASK: "#3b82f6",
            Level.SUBTASK: "#6b7280",
        }
    )
    overdue_color: str = "#ef4444"

    def row_height(self, level: Level) -> float:
        return self.row_heights[int(level)]

    def color_for(self, level: Level) -> str:
        return self.level_colors[int(level)]


DEFAULT_CONFIG = EngineConfig()

_LEVEL_KEYED = {"row_heights", "level_colors"}


def load_config(path: str | Path) -> EngineConfig:
    """Load an EngineConfig from YAML, overlaying the defaults."""

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        return DEFAULT_CONFIG
    return config_from_mapping(raw)


def config_from_mapping(data: Any) -> EngineConfig:
    if not isinstance(data, dict):
        raise ConfigError("config: expected mapping at top level")

    allowed = {f.name for f in dataclasses.fields(EngineConfig)}
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise ConfigError(f"config: unexpected fields {extras}")

    overrides: dict[str, Any] = {}
    for key, value in data.items():
        default = getattr(DEFAULT_CONFIG, key)
        if isinstance(default, dict):
            overrides[key] = _merge_mapping(key, default, value)
        elif isinstance(default, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"config.{key}: expected number")
            overrides[key] = float(value)
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"config.{key}: expected integer")
            overrides[key] = value
        else:
            if not isinstance(value, str):
                raise ConfigError(f"config.{key}: expected string")
            overrides[key] = value

    config = dataclasses.replace(DEFAULT_CONFIG, **overrides)
    if config.zoom_min <= 0 or config.zoom_min > config.zoom_max:
        raise ConfigError("config: zoom_min must be positive and not exceed zoom_max")
    return config


def _merge_mapping(key: str, default: dict, value: Any) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(f"config.{key}: expected mapping")
    merged = dict(default)
    for sub_key, sub_value in value.items():
        if key in _LEVEL_KEYED:
            sub_key = _level_key(key, sub_key)
        elif sub_key not in default:
            raise ConfigError(f"config.{key}: unknown entry '{sub_key}'")
        merged[sub_key] = sub_value
    return merged


def _level_key(key: str, raw: Any) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool) and raw in {int(level) for level in Level}:
        return raw
    if isinstance(raw, str):
        try:
            return int(Level[raw.upper()])
        except KeyError:
            pass
    raise ConfigError(f"config.{key}: unknown level '{raw}'")
