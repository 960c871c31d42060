"""Tests for the conflict checker and slot/busy predicates."""

from datetime import date

from dispatch.core.schemas import ConflictReport, Job, Technician, TimeOffEntry, WorkingDay
from dispatch.scheduling.conflicts import check_conflicts, is_slot_available, is_tech_busy_at

MONDAY = date(2025, 3, 10)
SATURDAY = date(2025, 3, 15)


def _tech(**kwargs: object) -> Technician:
    defaults: dict[str, object] = {"id": "t1", "name": "Ann"}
    defaults.update(kwargs)
    return Technician(**defaults)  # type: ignore[arg-type]


def _job(job_id: str = "j1", **kwargs: object) -> Job:
    defaults: dict[str, object] = {"id": job_id, "estimated_duration": 60}
    defaults.update(kwargs)
    return Job(**defaults)  # type: ignore[arg-type]


def _booked(job_id: str = "x", **kwargs: object) -> Job:
    return _job(job_id, assigned_tech_id="t1", scheduled_date=MONDAY, **kwargs)


def _types(report: ConflictReport) -> list[str]:
    return [c.type for c in report.conflicts]


WEEKDAY_HOURS = {
    "monday": WorkingDay(start="08:00", end="17:00"),
    "saturday": WorkingDay(enabled=False),
}


# ---------------------------------------------------------------------------
# check_conflicts
# ---------------------------------------------------------------------------


class TestCheckConflicts:
    def test_clean(self) -> None:
        report = check_conflicts(_tech(), _job(), [], MONDAY)
        assert report.has_conflicts is False
        assert report.conflicts == []

    def test_day_off(self) -> None:
        report = check_conflicts(_tech(working_hours=WEEKDAY_HOURS), _job(), [], SATURDAY)
        conflict = report.conflicts[0]
        assert conflict.type == "day_off"
        assert conflict.severity == "error"
        assert conflict.message == "Ann is scheduled off on saturdays"
        assert conflict.can_override is True
        assert report.has_errors is True

    def test_time_off(self) -> None:
        tech = _tech(time_off=[TimeOffEntry(start_date=MONDAY, type="vacation")])
        report = check_conflicts(tech, _job(), [], MONDAY)
        assert _types(report) == ["time_off"]
        assert report.conflicts[0].message == "Ann is on vacation"

    def test_max_jobs(self) -> None:
        report = check_conflicts(_tech(max_jobs_per_day=1), _job(), [_booked()], MONDAY)
        assert _types(report) == ["max_jobs"]
        assert report.conflicts[0].message == "Ann already has 1 jobs scheduled"
        assert report.conflicts[0].can_override is False

    def test_job_itself_not_counted(self) -> None:
        job = _booked("j1")
        report = check_conflicts(_tech(max_jobs_per_day=1), job, [job], MONDAY)
        assert report.has_conflicts is False

    def test_max_hours_is_warning(self) -> None:
        report = check_conflicts(_tech(max_hours_per_day=2), _job(estimated_duration="3 hours"), [], MONDAY)
        assert _types(report) == ["max_hours"]
        assert report.conflicts[0].message == "Would exceed 2hr daily limit (3.0hrs total)"
        assert report.has_errors is False
        assert report.has_warnings is True

    def test_skills_warning(self) -> None:
        report = check_conflicts(_tech(skills=["Plumbing"]), _job(category="HVAC"), [], MONDAY)
        assert _types(report) == ["skills"]
        assert report.conflicts[0].message == "Ann may not have HVAC skills"

    def test_time_conflict(self) -> None:
        existing = _booked(scheduled_time="09:00")
        report = check_conflicts(_tech(), _job(scheduled_time="09:45"), [existing], MONDAY)
        assert _types(report) == ["time_conflict"]
        assert report.conflicts[0].message == "Time slot conflicts with existing job"

    def test_buffer_respected(self) -> None:
        existing = _booked(scheduled_time="09:00")
        report = check_conflicts(_tech(), _job(scheduled_time="10:30"), [existing], MONDAY)
        assert report.has_conflicts is False

    def test_several_at_once(self) -> None:
        tech = _tech(
            working_hours=WEEKDAY_HOURS,
            time_off=[TimeOffEntry(start_date=SATURDAY)],
            skills=["Electrical"],
        )
        report = check_conflicts(tech, _job(category="Plumbing"), [], SATURDAY)
        assert _types(report) == ["day_off", "time_off", "skills"]


# ---------------------------------------------------------------------------
# Slot predicates
# ---------------------------------------------------------------------------


class TestIsSlotAvailable:
    def _tech(self) -> Technician:
        return _tech(working_hours=WEEKDAY_HOURS)

    def test_free_after_buffer(self) -> None:
        jobs = [_booked(scheduled_time="09:00")]
        assert is_slot_available(self._tech(), MONDAY, "10:30", 60, jobs) is True

    def test_inside_buffer(self) -> None:
        jobs = [_booked(scheduled_time="09:00")]
        assert is_slot_available(self._tech(), MONDAY, "10:00", 60, jobs) is False

    def test_outside_window(self) -> None:
        assert is_slot_available(self._tech(), MONDAY, "07:30", 60, []) is False
        assert is_slot_available(self._tech(), MONDAY, "16:30", 60, []) is False

    def test_unconfigured_day_has_no_window_check(self) -> None:
        assert is_slot_available(_tech(), MONDAY, "07:00", 60, []) is True

    def test_day_off(self) -> None:
        assert is_slot_available(self._tech(), SATURDAY, "10:00", 60, []) is False

    def test_time_off(self) -> None:
        tech = _tech(time_off=[TimeOffEntry(start_date=MONDAY)])
        assert is_slot_available(tech, MONDAY, "10:00", 60, []) is False

    def test_unparseable_time(self) -> None:
        assert is_slot_available(self._tech(), MONDAY, "noon", 60, []) is False

    def test_other_days_ignored(self) -> None:
        jobs = [_booked(scheduled_time="10:00").model_copy(update={"scheduled_date": date(2025, 3, 11)})]
        assert is_slot_available(self._tech(), MONDAY, "10:00", 60, jobs) is True


class TestIsTechBusyAt:
    def test_day_off(self) -> None:
        assert is_tech_busy_at(_tech(working_hours=WEEKDAY_HOURS), SATURDAY, "10:00", 60, []) == (True, "Day off")

    def test_no_time_given(self) -> None:
        assert is_tech_busy_at(_tech(), MONDAY, None, None, []) == (False, "")

    def test_clash(self) -> None:
        jobs = [_booked(scheduled_time="10:00")]
        assert is_tech_busy_at(_tech(), MONDAY, "10:15", None, jobs) == (True, "Time conflict")

    def test_free(self) -> None:
        assert is_tech_busy_at(_tech(), MONDAY, "10:15", 45, []) == (False, "")
