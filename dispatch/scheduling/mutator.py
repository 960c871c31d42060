"""Assignment writes: the only place scheduling decisions become visible.

Every write goes through JobStore.save_job with the version the job was read
at, so a concurrent change surfaces as StaleWriteError instead of being
silently overwritten. Writes that would not change anything are skipped.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime

from dispatch.core.schemas import BulkAssignResult, CrewMember, Job, JobStatus, PlannedAssignment
from dispatch.scheduling.roster import assigned_tech_ids
from dispatch.store.base import JobStore, StaleWriteError

logger = logging.getLogger(__name__)


def normalize_crew(crew: list[CrewMember]) -> list[CrewMember]:
    """Drop duplicate techs and keep exactly one lead (the first one named, else the first member)."""
    seen: set[str] = set()
    unique = []
    for member in crew:
        if member.tech_id not in seen:
            seen.add(member.tech_id)
            unique.append(member)

    lead_index = next((i for i, m in enumerate(unique) if m.role == "lead"), 0)
    result = []
    for i, member in enumerate(unique):
        if i == lead_index:
            role = "lead"
        elif member.role == "lead":
            role = "helper"
        else:
            role = member.role
        result.append(member.model_copy(update={"role": role}))
    # lead first
    result.sort(key=lambda m: m.role != "lead")
    return result


class AssignmentMutator:
    """Applies assignments, crews and status changes to jobs in a JobStore."""

    def __init__(self, store: JobStore, clock: Callable[[], datetime] = datetime.now) -> None:
        self._store = store
        self._clock = clock

    @staticmethod
    def _check_version(job: Job, expected_version: int | None) -> None:
        if expected_version is not None and job.version != expected_version:
            msg = f"Job {job.id} is at version {job.version}, expected {expected_version}"
            raise StaleWriteError(msg)

    @staticmethod
    def _check_assignable(job: Job) -> None:
        if job.status in JobStatus.TERMINAL:
            msg = f"Job {job.id} is {job.status} and cannot be assigned"
            raise ValueError(msg)

    async def _log(self, job_id: str, action: str, tech_ids: list[str], assigned_by: str) -> None:
        # the job write is already committed; a missing log row must not fail it
        try:
            await self._store.log_assignment(job_id, action, tech_ids, assigned_by)
        except Exception:
            logger.warning("Could not log %s for job %s", action, job_id, exc_info=True)

    async def _save(self, job: Job, updated: Job, action: str, assigned_by: str) -> Job:
        saved = await self._store.save_job(updated, job.version)
        await self._log(job.id, action, assigned_tech_ids(saved), assigned_by)
        logger.info("%s job %s -> %s", action, job.id, ", ".join(assigned_tech_ids(saved)) or "-")
        return saved

    async def assign(
        self,
        job_id: str,
        tech_id: str,
        tech_name: str,
        assigned_by: str = "manual",
        scheduled_date: date | None = None,
        scheduled_time: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        """Put a single technician on a job.

        A job that ends up with a date moves from any pre-schedule status to
        scheduled. Re-assigning the same tech with the same date and time
        returns the stored job without writing, whatever its version.
        Completed and cancelled jobs raise ValueError.
        """
        job = await self._store.get_job(job_id)
        self._check_assignable(job)
        new_date = scheduled_date or job.scheduled_date
        new_time = scheduled_time or job.scheduled_time

        if (
            job.assigned_tech_id == tech_id
            and job.assigned_tech_name == tech_name
            and not job.assigned_crew
            and job.scheduled_date == new_date
            and job.scheduled_time == new_time
        ):
            logger.debug("Job %s already assigned to %s", job_id, tech_id)
            return job

        self._check_version(job, expected_version)
        now = self._clock()
        status = job.status
        if new_date is not None and status in JobStatus.UNSCHEDULED:
            status = JobStatus.SCHEDULED
        updated = job.model_copy(update={
            "assigned_tech_id": tech_id,
            "assigned_tech_name": tech_name,
            "assigned_crew": [],
            "assigned_at": now,
            "assigned_by": assigned_by,
            "last_activity": now,
            "scheduled_date": new_date,
            "scheduled_time": new_time,
            "status": status,
        })
        return await self._save(job, updated, "assign", assigned_by)

    async def unassign(self, job_id: str, expected_version: int | None = None) -> Job:
        """Clear every technician reference. A job with none is left alone."""
        job = await self._store.get_job(job_id)
        if not job.assigned_tech_id and not job.assigned_crew:
            logger.debug("Job %s has no assignment to clear", job_id)
            return job
        self._check_version(job, expected_version)

        updated = job.model_copy(update={
            "assigned_tech_id": None,
            "assigned_tech_name": None,
            "assigned_crew": [],
            "assigned_at": None,
            "assigned_by": None,
            "last_activity": self._clock(),
        })
        return await self._save(job, updated, "unassign", "")

    async def assign_crew(
        self,
        job_id: str,
        crew: list[CrewMember],
        assigned_by: str = "manual",
        scheduled_date: date | None = None,
        expected_version: int | None = None,
    ) -> Job:
        """Put a crew on a job. The lead also fills the single-assignee fields."""
        if not crew:
            msg = "crew must contain at least one technician"
            raise ValueError(msg)

        job = await self._store.get_job(job_id)
        self._check_assignable(job)
        now = self._clock()
        members = [m.model_copy(update={"assigned_at": m.assigned_at or now}) for m in normalize_crew(crew)]
        lead = members[0]
        new_date = scheduled_date or job.scheduled_date

        current = [(m.tech_id, m.role) for m in job.assigned_crew]
        if current == [(m.tech_id, m.role) for m in members] and job.scheduled_date == new_date:
            logger.debug("Job %s already has this crew", job_id)
            return job

        self._check_version(job, expected_version)
        status = job.status
        if new_date is not None and status in JobStatus.UNSCHEDULED:
            status = JobStatus.SCHEDULED
        updated = job.model_copy(update={
            "assigned_crew": members,
            "assigned_tech_id": lead.tech_id,
            "assigned_tech_name": lead.tech_name,
            "assigned_at": now,
            "assigned_by": assigned_by,
            "last_activity": now,
            "scheduled_date": new_date,
            "status": status,
        })
        return await self._save(job, updated, "assign_crew", assigned_by)

    async def update_status(
        self,
        job_id: str,
        status: str,
        reason: str | None = None,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Job:
        """Move a job to ``status`` and stamp the matching timestamps.

        Cancelling also clears every technician reference so the job no
        longer counts against anyone's day.
        """
        if status not in JobStatus.ALL:
            msg = f"Unknown job status: {status}"
            raise ValueError(msg)

        job = await self._store.get_job(job_id)
        if job.status == status and notes is None and reason is None:
            return job
        self._check_version(job, expected_version)

        now = self._clock()
        update: dict[str, object] = {"status": status, "last_activity": now}
        if notes is not None:
            update["status_notes"] = notes
        if status == JobStatus.IN_PROGRESS and job.actual_start_time is None:
            update["actual_start_time"] = now
        elif status == JobStatus.COMPLETED:
            update["actual_end_time"] = now
            if job.actual_start_time is not None:
                update["actual_duration_minutes"] = int((now - job.actual_start_time).total_seconds() // 60)
        elif status == JobStatus.RUNNING_LATE:
            update["marked_late_at"] = now
            update["late_reason"] = reason
        elif status == JobStatus.CANCELLED:
            update["cancelled_at"] = now
            update["cancellation_reason"] = reason
            update.update({
                "assigned_tech_id": None,
                "assigned_tech_name": None,
                "assigned_crew": [],
                "assigned_at": None,
                "assigned_by": None,
            })

        updated = job.model_copy(update=update)
        saved = await self._save(job, updated, f"status:{status}", "")
        if status == JobStatus.CANCELLED and assigned_tech_ids(job):
            await self._log(job.id, "unassign", [], "")
            logger.info("unassign job %s on cancel", job.id)
        return saved

    async def bulk_assign(
        self,
        planned: list[PlannedAssignment],
        assigned_by: str = "auto",
    ) -> list[BulkAssignResult]:
        """Apply every successful planned assignment.

        Failed plan entries are skipped. Each write is checked against the
        version the job had when it was planned, so a job changed or
        cancelled since then is reported as failed instead of overwritten.
        A write that fails does not stop the rest of the batch.
        """
        results: list[BulkAssignResult] = []
        for item in planned:
            if item.failed or not item.tech_ids:
                continue
            try:
                before = await self._store.get_job(item.job_id)
                if len(item.tech_ids) > 1:
                    crew = [
                        CrewMember(tech_id=tid, tech_name=name, role="lead" if i == 0 else "helper")
                        for i, (tid, name) in enumerate(zip(item.tech_ids, item.tech_names))
                    ]
                    after = await self.assign_crew(
                        item.job_id, crew, assigned_by, item.scheduled_date, expected_version=item.job.version,
                    )
                else:
                    after = await self.assign(
                        item.job_id,
                        item.tech_ids[0],
                        item.tech_names[0] if item.tech_names else "",
                        assigned_by,
                        scheduled_date=item.scheduled_date,
                        expected_version=item.job.version,
                    )
                results.append(BulkAssignResult(
                    job_id=item.job_id,
                    tech_ids=item.tech_ids,
                    success=True,
                    changed=after.version != before.version,
                ))
            except Exception as e:
                logger.warning("Bulk assign failed for job %s: %s", item.job_id, e, exc_info=True)
                results.append(BulkAssignResult(
                    job_id=item.job_id, tech_ids=item.tech_ids, success=False, error=str(e),
                ))

        ok = sum(1 for r in results if r.success)
        logger.info("Bulk assign: %d/%d applied", ok, len(results))
        return results
