"""Abstract base class for the job/roster store the mutator writes through."""

from abc import ABC, abstractmethod
from datetime import date

from dispatch.core.schemas import Job, Technician


class JobNotFoundError(LookupError):
    """No job with the requested id."""


class StaleWriteError(RuntimeError):
    """The job changed since the caller read it; nothing was written."""


class JobStore(ABC):
    """Key-indexed job store with atomic single-document writes."""

    @abstractmethod
    async def get_job(self, job_id: str) -> Job:
        """Return the job or raise JobNotFoundError."""

    @abstractmethod
    async def list_jobs(self, scheduled_date: date | None = None, active_only: bool = False) -> list[Job]:
        """Jobs, optionally only one day's and/or only non-terminal ones."""

    @abstractmethod
    async def list_technicians(self) -> list[Technician]:
        """The current roster, in roster order."""

    @abstractmethod
    async def save_job(self, job: Job, expected_version: int) -> Job:
        """Replace the stored job if its version still equals ``expected_version``.

        Returns the job with its new version. Raises JobNotFoundError or
        StaleWriteError and leaves the stored job untouched otherwise.
        """

    @abstractmethod
    async def put_job(self, job: Job) -> None:
        """Insert or overwrite a job without a version check (imports)."""

    @abstractmethod
    async def put_technician(self, tech: Technician) -> None:
        """Insert or overwrite a technician (imports)."""

    @abstractmethod
    async def log_assignment(self, job_id: str, action: str, tech_ids: list[str], assigned_by: str) -> None:
        """Append an entry to the assignment history."""
