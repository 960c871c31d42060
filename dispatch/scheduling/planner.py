"""Greedy batch auto-assignment, plus the date finder and day spreading on top.

Data flow:
  1. Date finder: jobs without a date get the first day any tech works
  2. Day spreading: date-less jobs over a day's capacity roll to the next working day
  3. Per day, longest job first: rank techs against the running assignments
  4. Staff the top eligible tech(s) and feed them forward to the next job

Nothing here writes anywhere; the caller applies the plan.
"""

import logging
from datetime import date, timedelta

from dispatch.core.config import Settings
from dispatch.core.schemas import (
    AutoAssignPlan,
    CrewMember,
    Job,
    PlannedAssignment,
    PlanSummary,
    ScoreResult,
    Technician,
)
from dispatch.scheduling import availability
from dispatch.scheduling.duration import parse_duration
from dispatch.scheduling.proximity import DistanceEstimator
from dispatch.scheduling.roster import is_active, valid_tech_ids
from dispatch.scheduling.scorer import required_crew_size, suggest_assignments

logger = logging.getLogger(__name__)

_SETTINGS = Settings()

NO_SUITABLE_TECH = "No suitable tech available"
ALL_TIME_CONFLICTS = "All techs have scheduling conflicts at this time"


def _is_eligible(result: ScoreResult) -> bool:
    return not result.is_blocked and result.score > 0


def _with_crew(job: Job, picks: list[ScoreResult], on: date) -> Job:
    """Synthetic copy of ``job`` as if the picked techs were already on it."""
    crew = [
        CrewMember(tech_id=p.tech_id, tech_name=p.tech_name, role="lead" if i == 0 else "helper")
        for i, p in enumerate(picks)
    ]
    return job.model_copy(update={
        "assigned_tech_id": picks[0].tech_id,
        "assigned_tech_name": picks[0].tech_name,
        "assigned_crew": crew,
        "scheduled_date": job.scheduled_date or on,
    })


def summarize(assignments: list[PlannedAssignment]) -> PlanSummary:
    assigned = [a for a in assignments if not a.failed]
    return PlanSummary(
        total=len(assignments),
        assigned=len(assigned),
        unassigned=len(assignments) - len(assigned),
        fully_staffed=sum(1 for a in assigned if a.is_fully_staffed),
        understaffed=sum(1 for a in assigned if not a.is_fully_staffed),
        with_travel_warnings=sum(1 for a in assignments if a.has_travel_warnings),
    )


def auto_assign_all(
    unassigned_jobs: list[Job],
    techs: list[Technician],
    existing_assignments: list[Job],
    target_date: date,
    settings: Settings | None = None,
    estimator: DistanceEstimator | None = None,
) -> AutoAssignPlan:
    """Assign each job to its best eligible technician(s) for one day.

    Jobs go longest first (input order breaks ties). Every decision is added
    to the running assignment list before the next job is scored, so
    capacity and workload see earlier picks from the same batch. A tech is
    eligible when nothing blocks them (day off, time off, full day, time
    clash) and their score is positive.
    """
    settings = settings or _SETTINGS
    ordered = sorted(
        unassigned_jobs,
        key=lambda j: parse_duration(j.estimated_duration, settings.defaults),
        reverse=True,
    )

    running = list(existing_assignments)
    assignments: list[PlannedAssignment] = []
    for job in ordered:
        crew_size = required_crew_size(job)
        ranked = suggest_assignments(job, techs, running, target_date, settings, estimator).suggestions
        eligible = [r for r in ranked if _is_eligible(r)]

        if not eligible:
            all_clash = bool(ranked) and all(r.has_time_conflict for r in ranked)
            reason = ALL_TIME_CONFLICTS if all_clash else NO_SUITABLE_TECH
            logger.debug("Job %s: %s", job.id, reason)
            assignments.append(PlannedAssignment(
                job_id=job.id,
                job=job,
                score=0,
                warnings=[reason],
                failed=True,
                required_crew_size=crew_size,
                scheduled_date=target_date,
            ))
            continue

        picks = eligible[:crew_size]
        warnings: list[str] = []
        for pick in picks:
            warnings.extend(w for w in pick.warnings if w not in warnings)
        if len(picks) < crew_size:
            warnings.append(f"Needs {crew_size} techs, only {len(picks)} available without conflicts")

        lead = picks[0]
        assignments.append(PlannedAssignment(
            job_id=job.id,
            job=job,
            tech_id=lead.tech_id,
            tech_name=lead.tech_name,
            tech_ids=[p.tech_id for p in picks],
            tech_names=[p.tech_name for p in picks],
            score=lead.score,
            reasons=list(lead.reasons),
            warnings=warnings,
            required_crew_size=crew_size,
            assigned_crew_size=len(picks),
            is_fully_staffed=len(picks) >= crew_size,
            has_travel_warnings=any(p.has_travel_conflict for p in picks),
            scheduled_date=target_date,
        ))
        logger.debug("Job %s -> %s (score %d)", job.id, ", ".join(p.tech_id for p in picks), lead.score)
        running = [*running, _with_crew(job, picks, target_date)]

    summary = summarize(assignments)
    logger.info(
        "Planned %s: %d/%d assigned, %d understaffed",
        target_date, summary.assigned, summary.total, summary.understaffed,
    )
    return AutoAssignPlan(assignments=assignments, summary=summary)


# ---------------------------------------------------------------------------
# Multi-day policy
# ---------------------------------------------------------------------------


def _anyone_available(techs: list[Technician], d: date) -> bool:
    return any(availability.is_available(t, d) for t in techs)


def find_assignable_date(
    techs: list[Technician],
    start_date: date,
    lookahead_days: int = 14,
) -> date:
    """First day from ``start_date`` on which at least one tech works.

    Falls back to ``start_date`` when nobody works within the window.
    """
    for offset in range(lookahead_days):
        d = start_date + timedelta(days=offset)
        if _anyone_available(techs, d):
            return d
    logger.warning("No technician available within %d days of %s", lookahead_days, start_date)
    return start_date


def _next_working_day(techs: list[Technician], after: date, last: date) -> date | None:
    d = after + timedelta(days=1)
    while d <= last:
        if _anyone_available(techs, d):
            return d
        d += timedelta(days=1)
    return None


def daily_capacity(
    techs: list[Technician],
    existing_jobs: list[Job],
    d: date,
    settings: Settings | None = None,
) -> int:
    """Open job slots on ``d``: max jobs of every available tech minus jobs already booked."""
    settings = settings or _SETTINGS
    total = sum(
        availability.max_jobs_per_day(t, settings.defaults)
        for t in techs
        if availability.is_available(t, d)
    )
    booked = sum(
        1 for j in existing_jobs
        if j.scheduled_date == d and is_active(j) and valid_tech_ids(j, techs)
    )
    return max(0, total - booked)


def spread_jobs_across_days(
    jobs: list[Job],
    techs: list[Technician],
    existing_jobs: list[Job],
    start_date: date,
    settings: Settings | None = None,
) -> dict[date, list[Job]]:
    """Group jobs by the day they should be planned on.

    Jobs with a date stay on it. Date-less jobs start on the first working
    day and roll forward one working day at a time while their day is over
    capacity, never past the lookahead window.
    """
    settings = settings or _SETTINGS
    lookahead = settings.planner.lookahead_days
    last_day = start_date + timedelta(days=lookahead - 1)
    first_day = find_assignable_date(techs, start_date, lookahead)

    buckets: dict[date, list[Job]] = {}
    for job in jobs:
        buckets.setdefault(job.scheduled_date or first_day, []).append(job)

    if not settings.planner.spread_across_days:
        return dict(sorted(buckets.items()))

    result: dict[date, list[Job]] = {}
    while buckets:
        day = min(buckets)
        bucket = buckets.pop(day)
        fixed = [j for j in bucket if j.scheduled_date is not None]
        flexible = [j for j in bucket if j.scheduled_date is None]

        room = max(0, daily_capacity(techs, existing_jobs, day, settings) - len(fixed))
        overflow = flexible[room:]
        next_day = _next_working_day(techs, day, last_day) if overflow else None
        if next_day is None:
            result[day] = bucket
            continue

        result[day] = fixed + flexible[:room]
        for job in overflow:
            logger.debug("Rolling job %s from %s to %s", job.id, day, next_day)
        buckets.setdefault(next_day, []).extend(overflow)

    return {d: js for d, js in sorted(result.items()) if js}


def plan_across_days(
    jobs: list[Job],
    techs: list[Technician],
    existing_jobs: list[Job],
    start_date: date,
    settings: Settings | None = None,
    estimator: DistanceEstimator | None = None,
) -> AutoAssignPlan:
    """Spread ``jobs`` over working days, then run the greedy planner per day.

    ``existing_jobs`` are already-assigned jobs on any day; each day's run
    only sees the ones dated that day.
    """
    settings = settings or _SETTINGS
    assignments: list[PlannedAssignment] = []
    for day, day_jobs in spread_jobs_across_days(jobs, techs, existing_jobs, start_date, settings).items():
        context = [j for j in existing_jobs if j.scheduled_date == day]
        plan = auto_assign_all(day_jobs, techs, context, day, settings, estimator)
        assignments.extend(plan.assignments)

    summary = summarize(assignments)
    logger.info(
        "Planned %d job(s) from %s: %d assigned, %d unassigned",
        summary.total, start_date, summary.assigned, summary.unassigned,
    )
    return AutoAssignPlan(assignments=assignments, summary=summary)
