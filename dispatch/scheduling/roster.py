"""Assignment-state helpers over a job list and a technician roster.

A job can reference technicians two ways: a crew list, or the single
``assigned_tech_id`` field. Everything that asks "who is on this job" goes
through ``assigned_tech_ids`` so both formats count the same.
"""

from datetime import date
from typing import NamedTuple

from dispatch.core.config import DefaultsConfig
from dispatch.core.schemas import CrewMember, Job, JobStatus, Technician
from dispatch.scheduling.duration import parse_duration


class RosterView(NamedTuple):
    assigned: list[Job]
    unassigned: list[Job]
    by_tech: dict[str, list[Job]]


class TechWorkload(NamedTuple):
    job_count: int
    minutes: int


def is_active(job: Job) -> bool:
    return job.status not in JobStatus.TERMINAL


def assigned_tech_ids(job: Job) -> list[str]:
    """Technician ids on a job, crew first, then the single-assignee field."""
    if job.assigned_crew:
        return [m.tech_id for m in job.assigned_crew]
    if job.assigned_tech_id:
        return [job.assigned_tech_id]
    return []


def valid_tech_ids(job: Job, techs: list[Technician]) -> list[str]:
    """Assigned ids that still exist in the roster."""
    known = {t.id for t in techs}
    return [tid for tid in assigned_tech_ids(job) if tid in known]


def is_assigned(job: Job, techs: list[Technician]) -> bool:
    """A reference to a technician no longer on the roster does not count."""
    return bool(valid_tech_ids(job, techs))


def lead_of(job: Job) -> CrewMember | None:
    for member in job.assigned_crew:
        if member.role == "lead":
            return member
    return job.assigned_crew[0] if job.assigned_crew else None


def jobs_for_tech(tech_id: str, jobs: list[Job], on: date | None = None) -> list[Job]:
    """Active jobs carrying ``tech_id``, optionally restricted to one date."""
    return [
        j for j in jobs
        if is_active(j)
        and tech_id in assigned_tech_ids(j)
        and (on is None or j.scheduled_date == on)
    ]


def partition_jobs(jobs: list[Job], techs: list[Technician]) -> RosterView:
    """Split active jobs into assigned and unassigned, grouping the former by tech.

    Completed and cancelled jobs are left out entirely. A crewed job appears
    under every valid crew member.
    """
    assigned: list[Job] = []
    unassigned: list[Job] = []
    by_tech: dict[str, list[Job]] = {t.id: [] for t in techs}
    for job in jobs:
        if not is_active(job):
            continue
        ids = valid_tech_ids(job, techs)
        if not ids:
            unassigned.append(job)
            continue
        assigned.append(job)
        for tid in ids:
            by_tech[tid].append(job)
    return RosterView(assigned, unassigned, by_tech)


def workload_by_tech(
    jobs: list[Job],
    techs: list[Technician],
    on: date | None = None,
    defaults: DefaultsConfig | None = None,
) -> dict[str, TechWorkload]:
    view = partition_jobs([j for j in jobs if on is None or j.scheduled_date == on], techs)
    return {
        tid: TechWorkload(len(tech_jobs), sum(parse_duration(j.estimated_duration, defaults) for j in tech_jobs))
        for tid, tech_jobs in view.by_tech.items()
    }
