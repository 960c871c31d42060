"""Severity-tagged conflict checks for a proposed (technician, job, day).

This is the explanation surface for manual assignment. It does its own
arithmetic rather than reading the scorer's numbers, but takes day-off,
time-off and time-overlap decisions from the same helpers the scorer uses.
"""

import logging
from datetime import date

from dispatch.core.config import DefaultsConfig
from dispatch.core.schemas import Conflict, ConflictReport, Job, Technician
from dispatch.scheduling import availability
from dispatch.scheduling.duration import parse_duration
from dispatch.scheduling.roster import jobs_for_tech
from dispatch.scheduling.skills import SkillResolver, has_skills, required_skills

logger = logging.getLogger(__name__)


def check_conflicts(
    tech: Technician,
    job: Job,
    jobs_for_day: list[Job],
    target_date: date,
    defaults: DefaultsConfig | None = None,
    resolver: SkillResolver | None = None,
) -> ConflictReport:
    """List every reason ``tech`` should not take ``job`` on ``target_date``.

    Errors (day_off, time_off, max_jobs, time_conflict) block planning;
    warnings (max_hours, skills) only need a second look.
    """
    conflicts: list[Conflict] = []

    if not availability.is_working_day(tech, target_date):
        day = availability.weekday_name(target_date)
        conflicts.append(Conflict(
            type="day_off",
            severity="error",
            message=f"{tech.name} is scheduled off on {day}s",
            can_override=True,
        ))

    time_off = availability.time_off_on(tech, target_date)
    if time_off is not None:
        conflicts.append(Conflict(
            type="time_off",
            severity="error",
            message=f"{tech.name} is on {time_off.type}",
            can_override=True,
        ))

    tech_jobs = [j for j in jobs_for_tech(tech.id, jobs_for_day) if j.id != job.id]
    max_jobs = availability.max_jobs_per_day(tech, defaults)
    if len(tech_jobs) >= max_jobs:
        conflicts.append(Conflict(
            type="max_jobs",
            severity="error",
            message=f"{tech.name} already has {max_jobs} jobs scheduled",
        ))

    booked_hours = sum(parse_duration(j.estimated_duration, defaults) for j in tech_jobs) / 60
    total_hours = booked_hours + parse_duration(job.estimated_duration, defaults) / 60
    max_hours = availability.max_hours_per_day(tech, defaults)
    if total_hours > max_hours:
        conflicts.append(Conflict(
            type="max_hours",
            severity="warning",
            message=f"Would exceed {max_hours:g}hr daily limit ({total_hours:.1f}hrs total)",
        ))

    needed = required_skills(job, resolver)
    if not has_skills(tech, needed):
        conflicts.append(Conflict(
            type="skills",
            severity="warning",
            message=f"{tech.name} may not have {needed[0] if needed else 'required'} skills",
        ))

    if job.scheduled_time:
        buffer = availability.buffer_minutes(tech, defaults)
        if availability.find_time_conflict(job, tech_jobs, buffer, defaults) is not None:
            conflicts.append(Conflict(
                type="time_conflict",
                severity="error",
                message="Time slot conflicts with existing job",
            ))

    if conflicts:
        logger.debug("%d conflict(s) for %s on job %s", len(conflicts), tech.id, job.id)
    return ConflictReport(
        has_conflicts=bool(conflicts),
        has_errors=any(c.severity == "error" for c in conflicts),
        has_warnings=any(c.severity == "warning" for c in conflicts),
        conflicts=conflicts,
    )


def is_slot_available(
    tech: Technician,
    target_date: date,
    start_time: str,
    duration_minutes: int,
    jobs: list[Job],
    defaults: DefaultsConfig | None = None,
) -> bool:
    """Whether ``tech`` could start a job of ``duration_minutes`` at ``start_time``.

    Checks time off, day off, the configured working window and buffered
    overlap with the technician's timed jobs on ``target_date``.
    """
    if not availability.is_available(tech, target_date):
        return False

    start = availability.clock_minutes(start_time)
    if start is None:
        return False

    if availability.day_status(tech, target_date) == availability.ENABLED:
        work_start, work_end = availability.work_window(tech, target_date)  # type: ignore[misc]
        if start < work_start or start + duration_minutes > work_end:
            return False

    buffer = availability.buffer_minutes(tech, defaults)
    for other in jobs_for_tech(tech.id, jobs, on=target_date):
        other_start = availability.job_start_minutes(other)
        if other_start is None:
            continue
        other_duration = parse_duration(other.estimated_duration, defaults)
        if availability.intervals_clash(start, duration_minutes, other_start, other_duration, buffer):
            return False
    return True


def is_tech_busy_at(
    tech: Technician,
    target_date: date,
    start_time: str | None,
    duration_minutes: int | None,
    jobs: list[Job],
    defaults: DefaultsConfig | None = None,
) -> tuple[bool, str]:
    """(busy, reason) for a busy indicator. Reason is "Day off" or "Time conflict"."""
    if not availability.is_working_day(tech, target_date):
        return True, "Day off"
    if not start_time:
        return False, ""
    duration = duration_minutes or (defaults or DefaultsConfig()).default_duration_minutes
    if not is_slot_available(tech, target_date, start_time, duration, jobs, defaults):
        return True, "Time conflict"
    return False, ""
