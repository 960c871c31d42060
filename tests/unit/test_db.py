"""Tests for the database layer: init, job/technician documents, versions, log."""

from datetime import date

import pytest

from dispatch.core.db import (
    get_job,
    get_technician,
    init_db,
    insert_assignment_log,
    list_assignment_log,
    list_jobs,
    list_technicians,
    update_job,
    upsert_job,
    upsert_technician,
)
from dispatch.core.schemas import Job, Technician, WorkingDay

MONDAY = date(2025, 3, 10)


def _job(job_id: str = "j1", **kw: object) -> Job:
    defaults: dict[str, object] = {"id": job_id, "title": "Leaky tap", "estimated_duration": "1 hour"}
    defaults.update(kw)
    return Job(**defaults)  # type: ignore[arg-type]


@pytest.fixture()
def db(tmp_path):  # type: ignore[no-untyped-def]
    """Provide a fresh SQLite connection per test."""
    return init_db(tmp_path / "test.db")


class TestInitDb:
    def test_creates_tables(self, db) -> None:  # type: ignore[no-untyped-def]
        tables = {
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert "jobs" in tables
        assert "technicians" in tables
        assert "assignment_log" in tables

    def test_idempotent(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        p = tmp_path / "double.db"
        init_db(p).close()
        init_db(p).close()

    def test_creates_parent_dir(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        init_db(tmp_path / "nested" / "dir" / "x.db").close()
        assert (tmp_path / "nested" / "dir" / "x.db").exists()


class TestJobs:
    def test_insert_new(self, db) -> None:  # type: ignore[no-untyped-def]
        assert upsert_job(db, _job()) is True
        stored = get_job(db, "j1")
        assert stored is not None
        assert stored.title == "Leaky tap"
        assert stored.version == 0

    def test_replace_bumps_version(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_job(db, _job())
        assert upsert_job(db, _job(title="Burst pipe")) is False
        stored = get_job(db, "j1")
        assert stored.title == "Burst pipe"  # type: ignore[union-attr]
        assert stored.version == 1  # type: ignore[union-attr]

    def test_missing(self, db) -> None:  # type: ignore[no-untyped-def]
        assert get_job(db, "nope") is None

    def test_list_filters(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_job(db, _job("a", scheduled_date=MONDAY))
        upsert_job(db, _job("b", scheduled_date=date(2025, 3, 11)))
        upsert_job(db, _job("c", scheduled_date=MONDAY, status="cancelled"))
        upsert_job(db, _job("d", status="scheduled"))
        assert [j.id for j in list_jobs(db)] == ["a", "b", "c", "d"]
        assert [j.id for j in list_jobs(db, scheduled_date=MONDAY)] == ["a", "c"]
        assert [j.id for j in list_jobs(db, scheduled_date=MONDAY, active_only=True)] == ["a"]
        assert [j.id for j in list_jobs(db, status="scheduled")] == ["d"]


class TestUpdateJob:
    def test_matching_version(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_job(db, _job())
        job = get_job(db, "j1")
        new_version = update_job(db, job.model_copy(update={"assigned_tech_id": "t1"}), 0)  # type: ignore[union-attr]
        assert new_version == 1
        stored = get_job(db, "j1")
        assert stored.assigned_tech_id == "t1"  # type: ignore[union-attr]
        assert stored.version == 1  # type: ignore[union-attr]

    def test_stale_version_rejected(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_job(db, _job())
        upsert_job(db, _job(title="edited elsewhere"))
        assert update_job(db, _job(assigned_tech_id="t1"), 0) is None
        stored = get_job(db, "j1")
        assert stored.assigned_tech_id is None  # type: ignore[union-attr]
        assert stored.title == "edited elsewhere"  # type: ignore[union-attr]

    def test_missing_row(self, db) -> None:  # type: ignore[no-untyped-def]
        assert update_job(db, _job("ghost"), 0) is None

    def test_status_column_follows_document(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_job(db, _job())
        update_job(db, _job(status="completed"), 0)
        assert list_jobs(db, active_only=True) == []


class TestTechnicians:
    def test_round_trip(self, db) -> None:  # type: ignore[no-untyped-def]
        tech = Technician(id="t1", name="Ann", working_hours={"monday": WorkingDay(start="07:00")})
        upsert_technician(db, tech)
        assert get_technician(db, "t1") == tech

    def test_update_in_place(self, db) -> None:  # type: ignore[no-untyped-def]
        upsert_technician(db, Technician(id="t1", name="Ann"))
        upsert_technician(db, Technician(id="t1", name="Annie"))
        assert [t.name for t in list_technicians(db)] == ["Annie"]

    def test_insertion_order(self, db) -> None:  # type: ignore[no-untyped-def]
        for tid in ("z", "a", "m"):
            upsert_technician(db, Technician(id=tid))
        assert [t.id for t in list_technicians(db)] == ["z", "a", "m"]

    def test_missing(self, db) -> None:  # type: ignore[no-untyped-def]
        assert get_technician(db, "nope") is None


class TestAssignmentLog:
    def test_insert_and_list(self, db) -> None:  # type: ignore[no-untyped-def]
        row_id = insert_assignment_log(db, "j1", "assign", ["t1"], assigned_by="auto")
        assert row_id > 0
        insert_assignment_log(db, "j2", "assign_crew", ["t1", "t2"])
        rows = list_assignment_log(db)
        assert [r["job_id"] for r in rows] == ["j1", "j2"]
        assert rows[1]["tech_ids"] == ["t1", "t2"]
        assert rows[0]["assigned_by"] == "auto"

    def test_filter_by_job(self, db) -> None:  # type: ignore[no-untyped-def]
        insert_assignment_log(db, "j1", "assign", ["t1"])
        insert_assignment_log(db, "j2", "unassign", [])
        assert [r["action"] for r in list_assignment_log(db, "j2")] == ["unassign"]
