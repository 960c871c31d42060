"""Start-time suggestions inside a technician's working day."""

import logging
from datetime import date, timedelta

from dispatch.core.config import DefaultsConfig
from dispatch.core.schemas import Job, Technician, TimeSlot
from dispatch.scheduling import availability
from dispatch.scheduling.duration import parse_duration
from dispatch.scheduling.roster import jobs_for_tech

logger = logging.getLogger(__name__)

SEARCH_STEP_MINUTES = 30


def _booked_intervals(
    tech: Technician,
    jobs: list[Job],
    buffer: int,
    defaults: DefaultsConfig | None,
    on: date | None = None,
) -> list[tuple[int, int]]:
    """(start, end + buffer) for each timed job of ``tech``, sorted by start."""
    intervals = []
    for job in jobs_for_tech(tech.id, jobs, on=on):
        start = availability.job_start_minutes(job)
        if start is None:
            continue
        intervals.append((start, start + parse_duration(job.estimated_duration, defaults) + buffer))
    return sorted(intervals)


def suggest_time_slot(
    tech: Technician,
    job: Job,
    jobs_for_day: list[Job],
    target_date: date,
    defaults: DefaultsConfig | None = None,
) -> str | None:
    """First "HH:MM" start in the technician's day that fits ``job``, or None.

    Each existing booking is padded by the buffer on its end, and the job plus
    its own buffer has to fit before the next booking starts. After the last
    booking the job only has to finish by the end of the working window.
    """
    window = availability.work_window(tech, target_date)
    if window is None:
        return None
    work_start, work_end = window

    duration = parse_duration(job.estimated_duration, defaults)
    buffer = availability.buffer_minutes(tech, defaults)
    others = [j for j in jobs_for_day if j.id != job.id]

    search_start = work_start
    for slot_start, slot_end in _booked_intervals(tech, others, buffer, defaults):
        if search_start + duration + buffer <= slot_start:
            return availability.format_clock(search_start)
        search_start = max(search_start, slot_end)

    if search_start + duration <= work_end:
        return availability.format_clock(search_start)
    return None


def find_next_available_slot(
    tech: Technician,
    duration: str | int | None,
    jobs: list[Job],
    start_date: date,
    max_days: int = 7,
    earliest_start: str | None = None,
    defaults: DefaultsConfig | None = None,
) -> TimeSlot | None:
    """Walk forward day by day in 30-minute steps for the first open slot.

    Days off and time off are skipped. ``earliest_start`` ("HH:MM") only
    applies to ``start_date`` itself, e.g. to skip hours already gone today.
    """
    minutes = parse_duration(duration, defaults)
    buffer = availability.buffer_minutes(tech, defaults)
    not_before = availability.clock_minutes(earliest_start)

    for offset in range(max_days):
        day = start_date + timedelta(days=offset)
        if not availability.is_available(tech, day):
            continue
        work_start, work_end = availability.work_window(tech, day)  # type: ignore[misc]

        search_start = work_start
        if offset == 0 and not_before is not None:
            # round up to the next step boundary
            rounded = -(-not_before // SEARCH_STEP_MINUTES) * SEARCH_STEP_MINUTES
            search_start = max(search_start, rounded)

        booked = _booked_intervals(tech, jobs, buffer, defaults, on=day)
        while search_start + minutes <= work_end:
            slot_end = search_start + minutes
            if not any(not (slot_end + buffer <= b_start or search_start >= b_end) for b_start, b_end in booked):
                return TimeSlot(
                    date=day,
                    start_time=availability.format_clock(search_start),
                    end_time=availability.format_clock(slot_end),
                    day_name=availability.weekday_name(day),
                )
            search_start += SEARCH_STEP_MINUTES

    logger.debug("No %d-minute slot for %s within %d days", minutes, tech.id, max_days)
    return None
