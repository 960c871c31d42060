"""Additive technician/job scoring and per-job ranking.

Scores are not clamped or normalized: a day-off, fully booked, far-away
technician goes well below zero, and raw numbers only compare within one
ranking for one job and day.
"""

import logging
from datetime import date

from dispatch.core.config import Settings
from dispatch.core.schemas import AssignmentSuggestions, Job, ScoreResult, Technician
from dispatch.scheduling import availability
from dispatch.scheduling.duration import parse_duration, round_half_up
from dispatch.scheduling.proximity import (
    DistanceEstimator,
    ZipPrefixEstimator,
    estimate_travel_minutes,
    job_zip,
    travel_gap_ok,
)
from dispatch.scheduling.roster import jobs_for_tech
from dispatch.scheduling.skills import (
    CategoryTableResolver,
    has_certifications,
    has_skills,
    required_skills,
)

logger = logging.getLogger(__name__)

_SETTINGS = Settings()
_ESTIMATOR = ZipPrefixEstimator()


def required_crew_size(job: Job) -> int:
    return job.crew_requirements.required if job.crew_requirements else 1


def _job_label(job: Job, fallback: str) -> str:
    return job.title or job.service_type or fallback


def score_tech_for_job(
    tech: Technician,
    job: Job,
    jobs_for_day: list[Job],
    target_date: date,
    settings: Settings | None = None,
    estimator: DistanceEstimator | None = None,
) -> ScoreResult:
    """Score how well ``tech`` fits ``job`` on ``target_date``.

    Args:
        tech: Candidate technician. Never modified.
        job: The job being placed. Never modified.
        jobs_for_day: Jobs already assigned (to anyone) that day.
        target_date: Day being planned; decides weekday and time-off.
        settings: Weights, fallbacks and the skill table. Defaults if omitted.
        estimator: Distance provider. Zip-prefix heuristic if omitted.

    Returns:
        ScoreResult with a rounded, unclamped score plus reasons and warnings.
    """
    settings = settings or _SETTINGS
    estimator = estimator or _ESTIMATOR
    weights = settings.scoring
    defaults = settings.defaults

    score = 0.0
    reasons: list[str] = []
    warnings: list[str] = []

    # Time off outranks everything else but still leaves an override possible
    time_off = availability.time_off_on(tech, target_date)
    if time_off is not None:
        score -= weights.time_off_penalty
        warnings.append(f"On {time_off.type}")

    crew_size = required_crew_size(job)
    if crew_size > 1:
        warnings.append(f"Job requires {crew_size} techs")
        score -= weights.crew_shortfall_penalty * (crew_size - 1)
        reasons.append(f"Multi-tech job (needs {crew_size})")

    needed = required_skills(job, CategoryTableResolver(settings.skills))
    if has_skills(tech, needed):
        score += weights.skill_match
        if needed:
            reasons.append(f"Has {needed[0]} skills")
    else:
        warnings.append(f"May lack {needed[0] if needed else 'required'} skills")

    if has_certifications(tech, job):
        score += weights.certification_match
    else:
        warnings.append("Missing required certification")

    day = availability.weekday_name(target_date)
    status = availability.day_status(tech, target_date)
    if status == availability.ENABLED:
        score += weights.availability
        reasons.append(f"Works {day}s")
    elif status == availability.DISABLED:
        score -= weights.day_off_penalty
        warnings.append(f"Normally off on {day}s")
    else:
        score += weights.availability * weights.unconfigured_day_factor
        reasons.append(f"Available {day}s")

    tech_jobs = [j for j in jobs_for_tech(tech.id, jobs_for_day) if j.id != job.id]
    max_jobs = availability.max_jobs_per_day(tech, defaults)
    job_count = len(tech_jobs)
    at_capacity = job_count >= max_jobs
    if not at_capacity:
        slots = max_jobs - job_count
        score += weights.capacity * (slots / max_jobs)
        reasons.append(f"{slots} slots available")
    else:
        score -= weights.max_jobs_penalty
        warnings.append("At max jobs for day")

    max_hours = availability.max_hours_per_day(tech, defaults)
    booked_hours = sum(parse_duration(j.estimated_duration, defaults) for j in tech_jobs) / 60
    job_hours = parse_duration(job.estimated_duration, defaults) / 60
    if booked_hours + job_hours <= max_hours:
        reasons.append(f"{max_hours - booked_hours:.1f}hrs available")
    else:
        score -= weights.max_hours_penalty
        warnings.append("Would exceed daily hours")

    # Rewards the same under-booking as the capacity term, with a different curve
    score += weights.workload_balance * (1 - job_count / max_jobs)

    target_zip = job_zip(job)
    if target_zip and tech.home_zip:
        distance = estimator.miles_between(tech.home_zip, target_zip)
        radius = availability.max_travel_miles(tech, defaults)
        if distance <= radius:
            score += weights.proximity
            if distance <= weights.cluster_radius_miles:
                reasons.append("Close to home base")
        else:
            score -= weights.travel_penalty_per_mile * (distance - radius)
            warnings.append(f"{distance:g}mi from home base")

        nearby = (job_zip(j) for j in tech_jobs)
        if any(z and estimator.miles_between(z, target_zip) <= weights.cluster_radius_miles for z in nearby):
            score += weights.cluster_bonus
            reasons.append("Near other jobs today")

    if job.zone and job.zone in tech.preferred_zones:
        score += weights.preferred_zone
        reasons.append("In preferred zone")

    has_time_conflict = False
    has_travel_conflict = False
    if job.scheduled_time:
        buffer = availability.buffer_minutes(tech, defaults)
        clash = availability.find_time_conflict(job, tech_jobs, buffer, defaults)
        if clash is not None:
            has_time_conflict = True
            score -= weights.time_conflict_penalty
            warnings.append(f"Time conflict with {_job_label(clash, 'another job')}")
        else:
            for other in tech_jobs:
                message = _travel_shortfall(job, other, settings, estimator)
                if message:
                    has_travel_conflict = True
                    score -= weights.travel_infeasible_penalty
                    warnings.append(f"Insufficient travel time: {message}")

    is_day_off = status == availability.DISABLED
    on_time_off = time_off is not None
    result = ScoreResult(
        tech_id=tech.id,
        tech_name=tech.name,
        score=round_half_up(score),
        reasons=reasons,
        warnings=warnings,
        is_recommended=(
            score >= weights.recommended_threshold
            and not warnings
            and not has_time_conflict
            and not has_travel_conflict
        ),
        has_warnings=bool(warnings),
        has_time_conflict=has_time_conflict,
        has_travel_conflict=has_travel_conflict,
        is_blocked=has_time_conflict or is_day_off or on_time_off or at_capacity,
        is_day_off=is_day_off,
        on_time_off=on_time_off,
        at_capacity=at_capacity,
    )
    logger.debug("Scored %s for job %s: %d", tech.id, job.id, result.score)
    return result


def _travel_shortfall(
    job: Job,
    other: Job,
    settings: Settings,
    estimator: DistanceEstimator,
) -> str | None:
    """Describe why the drive between two timed jobs cannot fit, or None if it can."""
    start = availability.job_start_minutes(job)
    other_start = availability.job_start_minutes(other)
    if start is None or other_start is None:
        return None

    first, second = (other, job) if other_start <= start else (job, other)
    first_start = min(start, other_start)
    second_start = max(start, other_start)
    gap = second_start - (first_start + parse_duration(first.estimated_duration, settings.defaults))

    miles = estimator.miles_between(job_zip(first), job_zip(second))
    if travel_gap_ok(gap, miles, settings.defaults):
        return None
    travel = estimate_travel_minutes(miles)
    return (
        f"Only {gap} min gap but need {travel}+ min travel between "
        f"{_job_label(first, 'Job 1')} and {_job_label(second, 'Job 2')}"
    )


def suggest_assignments(
    job: Job,
    techs: list[Technician],
    jobs_for_day: list[Job],
    target_date: date,
    settings: Settings | None = None,
    estimator: DistanceEstimator | None = None,
) -> AssignmentSuggestions:
    """Rank every technician for one job, best first.

    The sort is stable, so equal scores keep roster order.
    """
    suggestions = [
        score_tech_for_job(t, job, jobs_for_day, target_date, settings, estimator) for t in techs
    ]
    suggestions.sort(key=lambda s: s.score, reverse=True)
    return AssignmentSuggestions(
        job=job,
        suggestions=suggestions,
        top_pick=suggestions[0] if suggestions else None,
        has_good_match=any(s.is_recommended for s in suggestions),
    )
