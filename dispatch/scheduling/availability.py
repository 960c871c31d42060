"""Working-day, time-off, and clock-time helpers shared by scoring and checks.

The scorer and the conflict checker both decide "is this a day off" here, so
they cannot disagree about it.
"""

from datetime import date, datetime

from dispatch.core.config import DefaultsConfig
from dispatch.core.schemas import WEEKDAYS, Job, Technician, TimeOffEntry, WorkingDay
from dispatch.scheduling.duration import parse_duration

_DEFAULTS = DefaultsConfig()

# Window assumed for a day the technician never configured.
DEFAULT_WORKING_DAY = WorkingDay()

ENABLED = "enabled"
DISABLED = "disabled"
UNCONFIGURED = "unconfigured"


def weekday_name(d: date) -> str:
    return WEEKDAYS[d.weekday()]


def day_status(tech: Technician, d: date) -> str:
    """One of ENABLED, DISABLED or UNCONFIGURED for the weekday of ``d``."""
    if not tech.working_hours:
        return UNCONFIGURED
    config = tech.working_hours.get(weekday_name(d))
    if config is None:
        return UNCONFIGURED
    return ENABLED if config.enabled else DISABLED


def is_working_day(tech: Technician, d: date) -> bool:
    """Unconfigured days count as working."""
    return day_status(tech, d) != DISABLED


def time_off_on(tech: Technician, d: date) -> TimeOffEntry | None:
    """The approved time-off entry covering ``d``, if any."""
    for entry in tech.time_off:
        if entry.status != "approved":
            continue
        end = entry.end_date or entry.start_date
        if entry.start_date <= d <= end:
            return entry
    return None


def is_available(tech: Technician, d: date) -> bool:
    return is_working_day(tech, d) and time_off_on(tech, d) is None


def work_window(tech: Technician, d: date) -> tuple[int, int] | None:
    """(start, end) in minutes after midnight, or None on a day off."""
    status = day_status(tech, d)
    if status == DISABLED:
        return None
    config = DEFAULT_WORKING_DAY
    if status == ENABLED:
        config = tech.working_hours[weekday_name(d)]  # type: ignore[index]
    return clock_minutes(config.start), clock_minutes(config.end)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Clock time
# ---------------------------------------------------------------------------


def clock_minutes(value: str | None) -> int | None:
    """Minutes after midnight from "HH:MM" or an ISO datetime string."""
    if not value:
        return None
    text = value.strip()
    try:
        if "T" in text:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            return parsed.hour * 60 + parsed.minute
        hours, minutes = text.split(":")[:2]
        return int(hours) * 60 + int(minutes)
    except ValueError:
        return None


def format_clock(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def job_start_minutes(job: Job) -> int | None:
    return clock_minutes(job.scheduled_time)


def intervals_clash(
    start: int,
    duration: int,
    other_start: int,
    other_duration: int,
    buffer: int,
) -> bool:
    """Whether two bookings overlap once ``buffer`` is kept after each of them."""
    end = start + duration
    other_end = other_start + other_duration
    return not (end + buffer <= other_start or start >= other_end + buffer)


def find_time_conflict(
    job: Job,
    tech_jobs: list[Job],
    buffer: int,
    defaults: DefaultsConfig | None = None,
) -> Job | None:
    """The first timed job in ``tech_jobs`` that clashes with ``job``.

    Jobs without a clock time never clash. ``job`` itself is skipped.
    """
    start = job_start_minutes(job)
    if start is None:
        return None
    duration = parse_duration(job.estimated_duration, defaults)
    for other in tech_jobs:
        if other.id == job.id:
            continue
        other_start = job_start_minutes(other)
        if other_start is None:
            continue
        other_duration = parse_duration(other.estimated_duration, defaults)
        if intervals_clash(start, duration, other_start, other_duration, buffer):
            return other
    return None


# ---------------------------------------------------------------------------
# Capacity limits (unset or zero falls back to the configured defaults)
# ---------------------------------------------------------------------------


def max_jobs_per_day(tech: Technician, defaults: DefaultsConfig | None = None) -> int:
    return tech.max_jobs_per_day or (defaults or _DEFAULTS).max_jobs_per_day


def max_hours_per_day(tech: Technician, defaults: DefaultsConfig | None = None) -> float:
    return tech.max_hours_per_day or (defaults or _DEFAULTS).max_hours_per_day


def buffer_minutes(tech: Technician, defaults: DefaultsConfig | None = None) -> int:
    if tech.default_buffer_minutes is None:
        return (defaults or _DEFAULTS).buffer_minutes
    return tech.default_buffer_minutes


def max_travel_miles(tech: Technician, defaults: DefaultsConfig | None = None) -> float:
    return tech.max_travel_miles or (defaults or _DEFAULTS).max_travel_miles
