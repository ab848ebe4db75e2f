"""Pydantic configuration models for garden simulation.

This module defines the configuration schema for garden simulations using
Pydantic v2 models. Configuration can be loaded from YAML or JSON files.

The configuration hierarchy:
- SimulationConfig (top-level)
  - GardenConfig
  - PlantingConfig[]
  - WeatherConfig
  - WateringConfig
  - ThermalConfig
  - PestControlConfig
  - parasites (pest -> target plants table)
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from smartgarden_sim.core.state import Position, Weather
from smartgarden_sim.model.catalog import (
    DEFAULT_VULNERABILITIES,
    PlantType,
    vulnerabilities_from_parasites,
)


class GardenConfig(BaseModel):
    """Garden grid dimensions."""

    model_config = ConfigDict(frozen=True)

    rows: Annotated[int, Field(default=9, gt=0, le=100, description="Grid rows")] = 9
    columns: Annotated[int, Field(default=9, gt=0, le=100, description="Grid columns")] = 9


class PlantingConfig(BaseModel):
    """One plant to seed at startup."""

    model_config = ConfigDict(frozen=True)

    plant: str = Field(description="Plant type name, e.g. 'Tomato' or 'APPLE'")
    row: Annotated[int, Field(ge=0)]
    column: Annotated[int, Field(ge=0)]

    @field_validator("plant")
    @classmethod
    def validate_plant_type(cls, v: str) -> str:
        """Ensure the plant type exists in the catalog."""
        PlantType.from_name(v)
        return v

    @property
    def plant_type(self) -> PlantType:
        return PlantType.from_name(self.plant)

    @property
    def position(self) -> Position:
        return Position(self.row, self.column)


class WeatherConfig(BaseModel):
    """Weather process configuration."""

    strategy: Literal["markov", "forced", "rotation"] = Field(default="markov")
    initial: Weather = Field(default=Weather.SUNNY)
    initial_duration: Annotated[int, Field(default=60, gt=0)] = 60
    automatic: bool = True
    temperature_coupling: bool = Field(
        default=True, description="Weather changes set the ambient temperature"
    )

    # Markov strategy
    min_duration: Annotated[int, Field(default=30, gt=0)] = 30
    max_duration: Annotated[int, Field(default=120, gt=0)] = 120

    # Forced and rotation strategies
    forced_weather: Weather = Field(default=Weather.RAINY)
    rotation: list[Weather] = Field(
        default_factory=lambda: [Weather.SUNNY, Weather.RAINY, Weather.SNOWY]
    )
    strategy_duration: Annotated[int, Field(default=1, gt=0)] = 1

    @field_validator("initial", "forced_weather", mode="before")
    @classmethod
    def normalize_weather(cls, v: Any) -> Any:
        """Accept weather names in any case."""
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator("rotation", mode="before")
    @classmethod
    def normalize_rotation(cls, v: Any) -> Any:
        """Accept weather names in any case."""
        if isinstance(v, list):
            return [item.lower() if isinstance(item, str) else item for item in v]
        return v

    @model_validator(mode="after")
    def validate_durations(self) -> WeatherConfig:
        """Ensure the duration range is not empty."""
        if self.min_duration > self.max_duration:
            msg = f"min_duration ({self.min_duration}) exceeds max_duration ({self.max_duration})"
            raise ValueError(msg)
        if not self.rotation:
            msg = "rotation must name at least one weather"
            raise ValueError(msg)
        return self


class WateringConfig(BaseModel):
    """Irrigation system configuration."""

    enabled: bool = True
    initial_supply: Annotated[int, Field(default=10_000, ge=0, description="Litres")] = 10_000
    low_supply_threshold: Annotated[int, Field(default=10, ge=0)] = 10
    cycle_amount: Annotated[int, Field(default=30, gt=0)] = 30
    flow_rate: Annotated[int, Field(default=10, gt=0)] = 10
    moisture_threshold: Annotated[int, Field(default=40, ge=0, le=100)] = 40


class ThermalConfig(BaseModel):
    """Heating/cooling configuration.

    mode selects the thermal systems run by the engine: "unified" (one
    bidirectional regulator), "heating" or "cooling" alone, or
    "independent" (both loops without coordination).
    """

    enabled: bool = True
    mode: Literal["unified", "heating", "cooling", "independent"] = Field(default="unified")
    target_min: int = 15
    target_max: int = 28
    hysteresis: Annotated[int, Field(default=2, ge=0)] = 2
    ambient_temperature: int = 20

    @model_validator(mode="after")
    def validate_targets(self) -> ThermalConfig:
        """Ensure target_min is below target_max."""
        if self.target_min >= self.target_max:
            msg = f"target_min ({self.target_min}) must be below target_max ({self.target_max})"
            raise ValueError(msg)
        return self


class PestControlConfig(BaseModel):
    """Pest control configuration."""

    enabled: bool = True
    initial_stock: Annotated[int, Field(default=50, ge=0, description="Treatments")] = 50
    spawn_probability: Annotated[float, Field(default=0.05, ge=0, le=1)] = 0.05
    treatment_threshold: Annotated[int, Field(default=30, ge=0, le=100)] = 30
    treatment_delay: Annotated[
        float, Field(default=3.0, ge=0, description="Simulated seconds before treating")
    ] = 3.0
    auto_spawn: bool = True


class SimulationConfig(BaseModel):
    """Top-level simulation configuration."""

    model_config = ConfigDict(extra="forbid")

    # Simulation parameters
    name: str = Field(default="Smart Garden")
    seed: int | None = Field(default=None, description="Seed for all random draws")
    tick_interval: Annotated[float, Field(default=1.0, ge=0)] = 1.0  # wall seconds
    speed: Annotated[int, Field(default=1, ge=1, le=10)] = 1
    duration_ticks: Annotated[int | None, Field(default=None, gt=0)] = None
    start_time: datetime | None = None
    api_mode: bool = Field(
        default=False, description="Disable automatic weather changes and pest spawns"
    )
    log_file: str | None = Field(default=None, description="Journal file for log records")

    # Garden
    garden: GardenConfig = Field(default_factory=GardenConfig)
    plantings: list[PlantingConfig] = Field(default_factory=list)

    # Subsystems
    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    watering: WateringConfig = Field(default_factory=WateringConfig)
    thermal: ThermalConfig = Field(default_factory=ThermalConfig)
    pest_control: PestControlConfig = Field(default_factory=PestControlConfig)

    # Pest name -> plant names it attacks
    parasites: dict[str, list[str]] | None = None

    @field_validator("parasites")
    @classmethod
    def validate_parasites(cls, v: dict[str, list[str]] | None) -> dict[str, list[str]] | None:
        """Ensure every parasite target is a known plant type."""
        if v is not None:
            vulnerabilities_from_parasites(v)
        return v

    @model_validator(mode="after")
    def validate_plantings(self) -> SimulationConfig:
        """Ensure plantings are inside the grid and do not overlap."""
        seen: set[tuple[int, int]] = set()
        for planting in self.plantings:
            cell = (planting.row, planting.column)
            if planting.row >= self.garden.rows or planting.column >= self.garden.columns:
                msg = (
                    f"Planting {planting.plant} at {cell} is outside the "
                    f"{self.garden.rows}x{self.garden.columns} garden"
                )
                raise ValueError(msg)
            if cell in seen:
                msg = f"Duplicate planting at {cell}"
                raise ValueError(msg)
            seen.add(cell)
        return self

    def vulnerabilities(self) -> dict[PlantType, tuple[str, ...]]:
        """Plant type -> pests table from parasites, or the built-in table."""
        if self.parasites is None:
            return dict(DEFAULT_VULNERABILITIES)
        return vulnerabilities_from_parasites(self.parasites)


def load_config(path: str | Path) -> SimulationConfig:
    """Load simulation configuration from YAML or JSON file.

    Args:
        path: Path to configuration file.

    Returns:
        Validated SimulationConfig object.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If configuration is invalid.
    """
    path = Path(path)

    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open() as f:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    return SimulationConfig.model_validate(data or {})


def save_config(config: SimulationConfig, path: str | Path) -> None:
    """Save simulation configuration to YAML or JSON file.

    Args:
        config: Configuration to save.
        path: Output file path.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json", exclude_none=True)

    with path.open("w") as f:
        if path.suffix in (".yaml", ".yml"):
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)


def validate_config(data: dict[str, Any]) -> SimulationConfig:
    """Validate configuration data without loading from file.

    Args:
        data: Configuration dictionary.

    Returns:
        Validated SimulationConfig object.

    Raises:
        ValueError: If configuration is invalid.
    """
    return SimulationConfig.model_validate(data)
