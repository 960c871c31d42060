"""Configuration models and YAML loader for the dispatch scheduler."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

_DEFAULT_CATEGORY_SKILLS: dict[str, list[str]] = {
    "HVAC": ["HVAC", "Heating", "Cooling", "AC"],
    "Plumbing": ["Plumbing", "Drains", "Water Heater"],
    "Electrical": ["Electrical", "Wiring", "Panel"],
    "Appliance": ["Appliance", "Repair"],
    "General": [],
}


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/dispatch.db"


class ScoringConfig(BaseModel):
    """Point weights for technician/job scoring.

    Penalties are stored as positive numbers and subtracted by the scorer.
    """

    skill_match: float = 50.0
    certification_match: float = 30.0
    availability: float = 40.0
    unconfigured_day_factor: float = Field(default=0.8, ge=0.0, le=1.0)
    day_off_penalty: float = 100.0
    time_off_penalty: float = 200.0
    capacity: float = 30.0
    max_jobs_penalty: float = 50.0
    max_hours_penalty: float = 30.0
    workload_balance: float = 20.0
    proximity: float = 25.0
    cluster_bonus: float = 15.0
    cluster_radius_miles: float = Field(default=10.0, ge=0.0)
    travel_penalty_per_mile: float = 2.0
    preferred_zone: float = 15.0
    crew_shortfall_penalty: float = 100.0
    time_conflict_penalty: float = 500.0
    travel_infeasible_penalty: float = 300.0
    recommended_threshold: float = 80.0


class DefaultsConfig(BaseModel):
    """Fallback values used when a technician or job leaves a field unset."""

    max_jobs_per_day: int = Field(default=4, ge=1)
    max_hours_per_day: float = Field(default=8.0, gt=0)
    buffer_minutes: int = Field(default=30, ge=0)
    max_travel_miles: float = Field(default=30.0, ge=0)
    default_duration_minutes: int = Field(default=60, ge=1)
    max_reasonable_duration_minutes: int = Field(default=2400, ge=60)
    min_travel_buffer_minutes: int = Field(default=10, ge=0)


class PlannerConfig(BaseModel):
    """Batch auto-assignment options."""

    lookahead_days: int = Field(default=14, ge=1, le=60)
    spread_across_days: bool = True


class SkillsConfig(BaseModel):
    """Category → skill-tag table used to derive a job's required skills."""

    category_skills: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in _DEFAULT_CATEGORY_SKILLS.items()},
    )

    @field_validator("category_skills")
    @classmethod
    def categories_not_blank(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        for key in v:
            if not key.strip():
                msg = "category names must not be empty"
                raise ValueError(msg)
        return v


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    planner: PlannerConfig = Field(default_factory=PlannerConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
