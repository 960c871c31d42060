"""Core data models for the dispatch scheduler."""

import re
from datetime import date, datetime, time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HHMM = re.compile(r"^\d{1,2}:\d{2}$")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class JobStatus:
    """Job lifecycle states as stored on the job document."""

    PENDING = "pending"
    QUOTED = "quoted"
    ACCEPTED = "accepted"
    SLOTS_OFFERED = "slots_offered"
    PENDING_SCHEDULE = "pending_schedule"
    SCHEDULED = "scheduled"
    EN_ROUTE = "en_route"
    ON_SITE = "on_site"
    IN_PROGRESS = "in_progress"
    RUNNING_LATE = "running_late"
    WAITING = "waiting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = frozenset({
        PENDING, QUOTED, ACCEPTED, SLOTS_OFFERED, PENDING_SCHEDULE, SCHEDULED,
        EN_ROUTE, ON_SITE, IN_PROGRESS, RUNNING_LATE, WAITING, COMPLETED, CANCELLED,
    })
    TERMINAL = frozenset({COMPLETED, CANCELLED})
    # not yet on the calendar; a dated assignment moves these to SCHEDULED
    UNSCHEDULED = frozenset({PENDING, QUOTED, ACCEPTED, SLOTS_OFFERED, PENDING_SCHEDULE})


class WorkingDay(BaseModel):
    """Working-hours window for one weekday."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    start: str = "08:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def hhmm_format(cls, v: str) -> str:
        v = v.strip()
        if not _HHMM.match(v):
            msg = f"time must be HH:MM, got '{v}'"
            raise ValueError(msg)
        return v


class TimeOffEntry(BaseModel):
    """A date range during which a technician cannot be scheduled."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date | None = None
    type: str = "time-off"
    status: str = "approved"
    notes: str = ""


class Technician(BaseModel):
    """A schedulable worker.

    Frozen: scoring and planning never mutate the roster. Capacity fields left
    unset (or 0) fall back to DefaultsConfig at scoring time.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    color: str = ""
    role: str = "technician"
    working_hours: dict[str, WorkingDay] | None = None
    skills: list[str] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    max_jobs_per_day: int | None = None
    max_hours_per_day: float | None = None
    default_buffer_minutes: int | None = None
    home_zip: str | None = None
    max_travel_miles: float | None = None
    preferred_zones: list[str] = Field(default_factory=list)
    time_off: list[TimeOffEntry] = Field(default_factory=list)

    @field_validator("working_hours")
    @classmethod
    def weekday_keys(cls, v: dict[str, WorkingDay] | None) -> dict[str, WorkingDay] | None:
        if v is None:
            return None
        normalized = {k.lower().strip(): day for k, day in v.items()}
        unknown = set(normalized) - set(WEEKDAYS)
        if unknown:
            msg = f"unknown weekday(s) in working_hours: {sorted(unknown)}"
            raise ValueError(msg)
        return normalized

    @field_validator("max_jobs_per_day", "max_hours_per_day", "default_buffer_minutes", "max_travel_miles")
    @classmethod
    def non_negative(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            msg = "capacity values must not be negative"
            raise ValueError(msg)
        return v


class Customer(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    address: str = ""


class CrewMember(BaseModel):
    """One technician on a job's crew."""

    model_config = ConfigDict(frozen=True)

    tech_id: str
    tech_name: str = ""
    role: Literal["lead", "helper", "apprentice", "specialist"] = "helper"
    assigned_at: datetime | None = None


class CrewRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    required: int = Field(default=1, ge=1)
    minimum: int | None = None
    maximum: int | None = None


class Job(BaseModel):
    """A service job as stored in the job store.

    Frozen: the planner derives synthetic assignment records with model_copy.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    category: str = ""
    service_type: str = ""
    estimated_duration: str | int | float | None = None
    customer: Customer = Field(default_factory=Customer)
    service_address: str = ""
    scheduled_date: date | None = None
    scheduled_time: str | None = None
    assigned_tech_id: str | None = None
    assigned_tech_name: str | None = None
    assigned_crew: list[CrewMember] = Field(default_factory=list)
    status: str = JobStatus.PENDING_SCHEDULE
    crew_requirements: CrewRequirements | None = None
    required_certifications: list[str] = Field(default_factory=list)
    zone: str | None = None
    assigned_at: datetime | None = None
    assigned_by: str | None = None
    last_activity: datetime | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    actual_duration_minutes: int | None = None
    marked_late_at: datetime | None = None
    late_reason: str | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    status_notes: str | None = None
    version: int = 0

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def date_from_datetime(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        return v

    @field_validator("scheduled_time", mode="before")
    @classmethod
    def time_to_text(cls, v: Any) -> Any:
        if isinstance(v, (datetime, time)):
            return v.strftime("%H:%M")
        return v or None

    @field_validator("status")
    @classmethod
    def known_status(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in JobStatus.ALL:
            msg = f"status must be one of {sorted(JobStatus.ALL)}, got '{v}'"
            raise ValueError(msg)
        return v


# ---------------------------------------------------------------------------
# Results (ephemeral, never persisted as-is)
# ---------------------------------------------------------------------------


class ScoreResult(BaseModel):
    """How well one technician fits one job on one day.

    Scores are unbounded and only comparable within a single scoring run.
    """

    model_config = ConfigDict(frozen=True)

    tech_id: str
    tech_name: str
    score: int
    reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    is_recommended: bool = False
    has_warnings: bool = False
    has_time_conflict: bool = False
    has_travel_conflict: bool = False
    is_blocked: bool = False
    is_day_off: bool = False
    on_time_off: bool = False
    at_capacity: bool = False


class AssignmentSuggestions(BaseModel):
    """All technicians ranked for one job."""

    job: Job
    suggestions: list[ScoreResult]
    top_pick: ScoreResult | None = None
    has_good_match: bool = False


class PlannedAssignment(BaseModel):
    """One job's outcome in an auto-assignment plan."""

    job_id: str
    job: Job
    tech_id: str | None = None
    tech_name: str | None = None
    tech_ids: list[str] = Field(default_factory=list)
    tech_names: list[str] = Field(default_factory=list)
    score: int = 0
    reasons: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    failed: bool = False
    required_crew_size: int = 1
    assigned_crew_size: int = 0
    is_fully_staffed: bool = False
    has_travel_warnings: bool = False
    scheduled_date: date | None = None


class PlanSummary(BaseModel):
    total: int = 0
    assigned: int = 0
    unassigned: int = 0
    fully_staffed: int = 0
    understaffed: int = 0
    with_travel_warnings: int = 0


class AutoAssignPlan(BaseModel):
    """Result of a greedy batch run. Pure data; nothing has been written."""

    assignments: list[PlannedAssignment] = Field(default_factory=list)
    summary: PlanSummary = Field(default_factory=PlanSummary)

    @property
    def successful(self) -> list[PlannedAssignment]:
        return [a for a in self.assignments if not a.failed]

    @property
    def failed(self) -> list[PlannedAssignment]:
        return [a for a in self.assignments if a.failed]


class Conflict(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["day_off", "time_off", "max_jobs", "max_hours", "skills", "time_conflict"]
    severity: Literal["error", "warning"]
    message: str
    can_override: bool = False


class ConflictReport(BaseModel):
    has_conflicts: bool = False
    has_errors: bool = False
    has_warnings: bool = False
    conflicts: list[Conflict] = Field(default_factory=list)


class TimeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    start_time: str
    end_time: str
    day_name: str


class BulkAssignResult(BaseModel):
    """Per-item outcome of a bulk write."""

    job_id: str
    tech_ids: list[str] = Field(default_factory=list)
    success: bool
    changed: bool = False
    error: str | None = None
