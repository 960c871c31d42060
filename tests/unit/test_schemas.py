"""Tests for core schemas: Technician, Job, crew and result models."""

from datetime import date, datetime, time

import pytest
from pydantic import ValidationError

from dispatch.core.schemas import (
    AutoAssignPlan,
    CrewMember,
    CrewRequirements,
    Job,
    JobStatus,
    PlannedAssignment,
    Technician,
    WorkingDay,
)


def _make_job(**overrides: object) -> Job:
    defaults: dict[str, object] = {
        "id": "job-1",
        "title": "AC not cooling",
        "category": "HVAC",
        "estimated_duration": "2 hours",
        "service_address": "12 Oak St, Austin TX 78701",
    }
    defaults.update(overrides)
    return Job(**defaults)  # type: ignore[arg-type]


class TestWorkingDay:
    def test_defaults(self) -> None:
        d = WorkingDay()
        assert d.enabled is True
        assert d.start == "08:00"
        assert d.end == "17:00"

    def test_bad_time(self) -> None:
        with pytest.raises(ValidationError, match="HH:MM"):
            WorkingDay(start="8am")


class TestTechnician:
    def test_minimal(self) -> None:
        t = Technician(id="t1")
        assert t.working_hours is None
        assert t.skills == []
        assert t.max_jobs_per_day is None

    def test_unknown_weekday(self) -> None:
        with pytest.raises(ValidationError, match="unknown weekday"):
            Technician(id="t1", working_hours={"funday": WorkingDay()})

    def test_negative_capacity(self) -> None:
        with pytest.raises(ValidationError):
            Technician(id="t1", max_jobs_per_day=-1)

    def test_frozen(self) -> None:
        t = Technician(id="t1")
        with pytest.raises(ValidationError):
            t.name = "changed"  # type: ignore[misc]


class TestJob:
    def test_defaults(self) -> None:
        j = Job(id="j")
        assert j.status == JobStatus.PENDING_SCHEDULE
        assert j.assigned_crew == []
        assert j.version == 0

    def test_datetime_date_truncated(self) -> None:
        j = _make_job(scheduled_date=datetime(2025, 3, 10, 14, 30))
        assert j.scheduled_date == date(2025, 3, 10)

    def test_iso_string_date(self) -> None:
        j = _make_job(scheduled_date="2025-03-10T09:00:00Z")
        assert j.scheduled_date == date(2025, 3, 10)

    def test_plain_date_string(self) -> None:
        assert _make_job(scheduled_date="2025-03-10").scheduled_date == date(2025, 3, 10)

    def test_time_object_formatted(self) -> None:
        assert _make_job(scheduled_time=time(9, 5)).scheduled_time == "09:05"

    def test_empty_time_is_none(self) -> None:
        assert _make_job(scheduled_time="").scheduled_time is None

    def test_status_normalized(self) -> None:
        assert _make_job(status=" Scheduled ").status == "scheduled"

    def test_unknown_status(self) -> None:
        with pytest.raises(ValidationError, match="status must be one of"):
            _make_job(status="archived")

    @pytest.mark.parametrize("status", ["pending", "quoted", "accepted", "slots_offered"])
    def test_pre_schedule_statuses_accepted(self, status: str) -> None:
        job = _make_job(status=status)
        assert job.status == status
        assert job.status not in JobStatus.TERMINAL

    def test_numeric_duration_kept(self) -> None:
        assert _make_job(estimated_duration=90).estimated_duration == 90

    def test_json_round_trip(self) -> None:
        j = _make_job(
            scheduled_date=date(2025, 3, 10),
            assigned_crew=[CrewMember(tech_id="t1", role="lead")],
            crew_requirements=CrewRequirements(required=2),
        )
        assert Job.model_validate_json(j.model_dump_json()) == j


class TestCrew:
    def test_default_role(self) -> None:
        assert CrewMember(tech_id="t1").role == "helper"

    def test_bad_role(self) -> None:
        with pytest.raises(ValidationError):
            CrewMember(tech_id="t1", role="boss")  # type: ignore[arg-type]

    def test_required_at_least_one(self) -> None:
        with pytest.raises(ValidationError):
            CrewRequirements(required=0)


class TestAutoAssignPlan:
    def test_successful_and_failed(self) -> None:
        job = _make_job()
        plan = AutoAssignPlan(assignments=[
            PlannedAssignment(job_id="a", job=job, tech_id="t1", tech_ids=["t1"]),
            PlannedAssignment(job_id="b", job=job, failed=True),
        ])
        assert [a.job_id for a in plan.successful] == ["a"]
        assert [a.job_id for a in plan.failed] == ["b"]
