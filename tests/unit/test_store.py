"""Tests for the SQLite-backed JobStore."""

from datetime import date

import pytest

from dispatch.core.db import init_db, list_assignment_log
from dispatch.core.schemas import Job, Technician
from dispatch.store.base import JobNotFoundError, StaleWriteError
from dispatch.store.sqlite import SQLiteJobStore

MONDAY = date(2025, 3, 10)


@pytest.fixture()
def store(tmp_path):  # type: ignore[no-untyped-def]
    return SQLiteJobStore(init_db(tmp_path / "test.db"))


class TestGetJob:
    async def test_found(self, store: SQLiteJobStore) -> None:
        await store.put_job(Job(id="j1", title="Fix sink"))
        job = await store.get_job("j1")
        assert job.title == "Fix sink"

    async def test_missing_raises(self, store: SQLiteJobStore) -> None:
        with pytest.raises(JobNotFoundError, match="Job not found: nope"):
            await store.get_job("nope")


class TestSaveJob:
    async def test_versions_advance(self, store: SQLiteJobStore) -> None:
        await store.put_job(Job(id="j1"))
        job = await store.get_job("j1")
        saved = await store.save_job(job.model_copy(update={"assigned_tech_id": "t1"}), job.version)
        assert saved.version == 1
        again = await store.save_job(saved.model_copy(update={"assigned_tech_id": "t2"}), saved.version)
        assert again.version == 2
        assert (await store.get_job("j1")).assigned_tech_id == "t2"

    async def test_concurrent_write_detected(self, store: SQLiteJobStore) -> None:
        await store.put_job(Job(id="j1"))
        first_reader = await store.get_job("j1")
        second_reader = await store.get_job("j1")

        await store.save_job(first_reader.model_copy(update={"assigned_tech_id": "t1"}), first_reader.version)
        with pytest.raises(StaleWriteError, match="at version 1, expected 0"):
            await store.save_job(second_reader.model_copy(update={"assigned_tech_id": "t2"}), second_reader.version)

        assert (await store.get_job("j1")).assigned_tech_id == "t1"

    async def test_missing_job(self, store: SQLiteJobStore) -> None:
        with pytest.raises(JobNotFoundError):
            await store.save_job(Job(id="ghost"), 0)


class TestListing:
    async def test_jobs_by_day(self, store: SQLiteJobStore) -> None:
        await store.put_job(Job(id="a", scheduled_date=MONDAY))
        await store.put_job(Job(id="b", scheduled_date=MONDAY, status="completed"))
        await store.put_job(Job(id="c"))
        assert [j.id for j in await store.list_jobs(MONDAY)] == ["a", "b"]
        assert [j.id for j in await store.list_jobs(MONDAY, active_only=True)] == ["a"]
        assert len(await store.list_jobs()) == 3

    async def test_technicians(self, store: SQLiteJobStore) -> None:
        await store.put_technician(Technician(id="t2", name="Bo"))
        await store.put_technician(Technician(id="t1", name="Ann"))
        assert [t.id for t in await store.list_technicians()] == ["t2", "t1"]


class TestLogAssignment:
    async def test_written_to_db(self, store: SQLiteJobStore) -> None:
        await store.log_assignment("j1", "assign", ["t1"], "auto")
        rows = list_assignment_log(store.conn)
        assert len(rows) == 1
        assert rows[0]["tech_ids"] == ["t1"]
