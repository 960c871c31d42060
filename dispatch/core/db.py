"""SQLite database layer for jobs, technicians, and the assignment log.

Jobs and technicians are stored as JSON documents keyed by id; the columns
next to the payload exist only for filtering and for the version check.
"""

import json
import sqlite3
from datetime import date, datetime
from pathlib import Path

from dispatch.core.schemas import Job, JobStatus, Technician

_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS jobs (
    id              TEXT    PRIMARY KEY,
    payload         TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'pending_schedule',
    scheduled_date  TEXT,
    version         INTEGER NOT NULL DEFAULT 0,
    updated_at      TEXT    NOT NULL
);
"""

_TECHNICIANS_TABLE = """
CREATE TABLE IF NOT EXISTS technicians (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL DEFAULT '',
    payload     TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""

_ASSIGNMENT_LOG_TABLE = """
CREATE TABLE IF NOT EXISTS assignment_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id      TEXT NOT NULL,
    action      TEXT NOT NULL,
    tech_ids    TEXT NOT NULL DEFAULT '[]',
    assigned_by TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL
);
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_JOBS_TABLE)
    conn.execute(_TECHNICIANS_TABLE)
    conn.execute(_ASSIGNMENT_LOG_TABLE)
    conn.commit()
    return conn


def _job_from_row(row: sqlite3.Row) -> Job:
    job = Job.model_validate_json(row["payload"])
    return job.model_copy(update={"version": row["version"]})


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def upsert_job(conn: sqlite3.Connection, job: Job) -> bool:
    """Insert a job or replace an existing one's document.

    Replacing bumps the stored version. Returns True if a new row was inserted.
    """
    existed = conn.execute("SELECT 1 FROM jobs WHERE id = ?", (job.id,)).fetchone() is not None
    conn.execute(
        """
        INSERT INTO jobs (id, payload, status, scheduled_date, version, updated_at)
        VALUES (?, ?, ?, ?, 0, ?)
        ON CONFLICT(id)
        DO UPDATE SET
            payload = excluded.payload,
            status = excluded.status,
            scheduled_date = excluded.scheduled_date,
            version = jobs.version + 1,
            updated_at = excluded.updated_at
        """,
        (
            job.id,
            job.model_dump_json(),
            job.status,
            job.scheduled_date.isoformat() if job.scheduled_date else None,
            datetime.now().isoformat(),
        ),
    )
    conn.commit()
    return not existed


def get_job(conn: sqlite3.Connection, job_id: str) -> Job | None:
    row = conn.execute("SELECT payload, version FROM jobs WHERE id = ?", (job_id,)).fetchone()
    if row is None:
        return None
    return _job_from_row(row)


def list_jobs(
    conn: sqlite3.Connection,
    *,
    scheduled_date: date | None = None,
    status: str | None = None,
    active_only: bool = False,
) -> list[Job]:
    """Return jobs filtered by date and/or status, ordered by id."""
    clauses: list[str] = []
    params: list[str] = []
    if scheduled_date is not None:
        clauses.append("scheduled_date = ?")
        params.append(scheduled_date.isoformat())
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if active_only:
        terminal = sorted(JobStatus.TERMINAL)
        clauses.append(f"status NOT IN ({', '.join('?' for _ in terminal)})")
        params.extend(terminal)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT payload, version FROM jobs {where} ORDER BY id",  # noqa: S608
        params,
    ).fetchall()
    return [_job_from_row(r) for r in rows]


def update_job(conn: sqlite3.Connection, job: Job, expected_version: int) -> int | None:
    """Write a job document if the stored version still matches.

    Returns the new version, or None when the row is missing or was changed
    by someone else since ``expected_version`` was read.
    """
    new_version = expected_version + 1
    payload = job.model_copy(update={"version": new_version})
    cursor = conn.execute(
        """
        UPDATE jobs
        SET payload = ?, status = ?, scheduled_date = ?, version = ?, updated_at = ?
        WHERE id = ? AND version = ?
        """,
        (
            payload.model_dump_json(),
            job.status,
            job.scheduled_date.isoformat() if job.scheduled_date else None,
            new_version,
            datetime.now().isoformat(),
            job.id,
            expected_version,
        ),
    )
    conn.commit()
    if cursor.rowcount != 1:
        return None
    return new_version


# ---------------------------------------------------------------------------
# Technicians
# ---------------------------------------------------------------------------


def upsert_technician(conn: sqlite3.Connection, tech: Technician) -> None:
    conn.execute(
        """
        INSERT INTO technicians (id, name, payload, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(id)
        DO UPDATE SET
            name = excluded.name,
            payload = excluded.payload,
            updated_at = excluded.updated_at
        """,
        (tech.id, tech.name, tech.model_dump_json(), datetime.now().isoformat()),
    )
    conn.commit()


def get_technician(conn: sqlite3.Connection, tech_id: str) -> Technician | None:
    row = conn.execute("SELECT payload FROM technicians WHERE id = ?", (tech_id,)).fetchone()
    if row is None:
        return None
    return Technician.model_validate_json(row["payload"])


def list_technicians(conn: sqlite3.Connection) -> list[Technician]:
    """Return the roster in insertion order (the suggester's tiebreak order)."""
    rows = conn.execute("SELECT payload FROM technicians ORDER BY rowid").fetchall()
    return [Technician.model_validate_json(r["payload"]) for r in rows]


# ---------------------------------------------------------------------------
# Assignment log
# ---------------------------------------------------------------------------


def insert_assignment_log(
    conn: sqlite3.Connection,
    job_id: str,
    action: str,
    tech_ids: list[str],
    assigned_by: str = "",
) -> int:
    """Record an assignment write. Returns the row ID."""
    cursor = conn.execute(
        """
        INSERT INTO assignment_log (job_id, action, tech_ids, assigned_by, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (job_id, action, json.dumps(tech_ids), assigned_by, datetime.now().isoformat()),
    )
    conn.commit()
    return cursor.lastrowid or 0


def list_assignment_log(conn: sqlite3.Connection, job_id: str | None = None) -> list[dict]:
    """Return log rows oldest first, optionally for one job."""
    if job_id is None:
        rows = conn.execute("SELECT * FROM assignment_log ORDER BY id").fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM assignment_log WHERE job_id = ? ORDER BY id", (job_id,)
        ).fetchall()
    return [{**dict(r), "tech_ids": json.loads(r["tech_ids"])} for r in rows]
