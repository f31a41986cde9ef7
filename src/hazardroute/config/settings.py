"""
Application settings (Pydantic).

Settings are loaded from `src/hazardroute/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `HAZARDROUTE_LOG_LEVEL`)
- an external YAML file via `HAZARDROUTE_CONFIG_PATH`

Design rule:
- Provider limits and tracking thresholds live in YAML, not hard-coded in geometry code.
  They were tuned against one routing provider and must be re-checked for another.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any
from hazardroute.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `hazardroute.config`."""
    text = resources.files("hazardroute.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "HazardRoute"
    log_level: str = "INFO"


class HazardSettings(BaseModel):
    default_buffer_m: float = Field(150.0, gt=0)
    min_buffer_m: float = Field(1.0, gt=0)
    max_drawn_circle_radius_m: float = Field(5000.0, gt=0)
    circle_steps: int = Field(64, ge=8)


class AvoidanceSettings(BaseModel):
    max_area_km2: float = Field(200.0, gt=0)
    max_bounding_side_km: float = Field(20.0, gt=0)


class GuardSettings(BaseModel):
    max_route_km_with_avoidance: float = Field(150.0, gt=0)


class MonitorSettings(BaseModel):
    off_route_threshold_m: float = Field(40.0, gt=0)
    live_debounce_seconds: float = Field(0.4, ge=0)


class SimulationSettings(BaseModel):
    tick_seconds: float = Field(0.5, gt=0)
    default_speed_kmh: float = Field(40.0, gt=0)


class HandoffSettings(BaseModel):
    simplify_tolerance_m: float = Field(100.0, ge=0)
    max_waypoints: int = Field(8, ge=1)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    hazards: HazardSettings = Field(default_factory=HazardSettings)
    avoidance: AvoidanceSettings = Field(default_factory=AvoidanceSettings)
    guard: GuardSettings = Field(default_factory=GuardSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    handoff: HandoffSettings = Field(default_factory=HandoffSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small; numeric limits belong in YAML.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("HAZARDROUTE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("HAZARDROUTE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
