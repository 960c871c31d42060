"""JobStore backed by the local SQLite database."""

import logging
import sqlite3
from datetime import date

from dispatch.core import db
from dispatch.core.schemas import Job, Technician
from dispatch.store.base import JobNotFoundError, JobStore, StaleWriteError

logger = logging.getLogger(__name__)


class SQLiteJobStore(JobStore):
    """Wraps the synchronous ``dispatch.core.db`` functions behind the async interface."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    async def get_job(self, job_id: str) -> Job:
        job = db.get_job(self._conn, job_id)
        if job is None:
            msg = f"Job not found: {job_id}"
            raise JobNotFoundError(msg)
        return job

    async def list_jobs(self, scheduled_date: date | None = None, active_only: bool = False) -> list[Job]:
        return db.list_jobs(self._conn, scheduled_date=scheduled_date, active_only=active_only)

    async def list_technicians(self) -> list[Technician]:
        return db.list_technicians(self._conn)

    async def save_job(self, job: Job, expected_version: int) -> Job:
        new_version = db.update_job(self._conn, job, expected_version)
        if new_version is None:
            current = db.get_job(self._conn, job.id)
            if current is None:
                msg = f"Job not found: {job.id}"
                raise JobNotFoundError(msg)
            msg = f"Job {job.id} is at version {current.version}, expected {expected_version}"
            raise StaleWriteError(msg)
        logger.debug("Saved job %s at version %d", job.id, new_version)
        return job.model_copy(update={"version": new_version})

    async def put_job(self, job: Job) -> None:
        db.upsert_job(self._conn, job)

    async def put_technician(self, tech: Technician) -> None:
        db.upsert_technician(self._conn, tech)

    async def log_assignment(self, job_id: str, action: str, tech_ids: list[str], assigned_by: str) -> None:
        db.insert_assignment_log(self._conn, job_id, action, tech_ids, assigned_by)
