"""Tests for the background generation job manager."""
import asyncio

import pytest

from app.services.job_manager import GenerationJobManager, JobPhase, job_manager


@pytest.mark.asyncio
async def test_job_runs_and_reports_completion():
    gate = asyncio.Event()

    async def body(status):
        status.phase = JobPhase.RUNNING
        status.total_documents = 1
        await gate.wait()
        status.documents_completed = 1
        status.phase = JobPhase.COMPLETED

    status = job_manager.start(body)
    assert status.phase == JobPhase.QUEUED
    await asyncio.sleep(0)
    assert job_manager.is_running(status.job_id)
    assert status.phase == JobPhase.RUNNING

    gate.set()
    final = await job_manager.wait(status.job_id)

    assert final is status
    assert final.phase == JobPhase.COMPLETED
    assert final.completed_at is not None
    assert not job_manager.is_running(status.job_id)
    assert job_manager.get_status(status.job_id).to_dict()["phase"] == "completed"


@pytest.mark.asyncio
async def test_crashing_job_is_marked_failed():
    async def body(status):
        status.phase = JobPhase.RUNNING
        raise RuntimeError("disk full")

    status = job_manager.start(body)
    await job_manager.wait(status.job_id)

    assert status.phase == JobPhase.FAILED
    assert status.errors == ["job crash: disk full"]


@pytest.mark.asyncio
async def test_job_without_terminal_phase_is_marked_failed():
    async def body(status):
        status.phase = JobPhase.RUNNING

    status = job_manager.start(body)
    await job_manager.wait(status.job_id)

    assert status.phase == JobPhase.FAILED
    assert status.errors == ["job ended without reporting completion"]


def test_unknown_job():
    assert job_manager.get_status("missing") is None
    assert not job_manager.is_running("missing")


@pytest.mark.asyncio
async def test_finished_statuses_are_capped(monkeypatch):
    monkeypatch.setattr(GenerationJobManager, "history_limit", 3)

    async def body(status):
        status.phase = JobPhase.COMPLETED

    job_ids = []
    for _ in range(5):
        status = job_manager.start(body)
        await job_manager.wait(status.job_id)
        job_ids.append(status.job_id)
    await asyncio.sleep(0)

    assert [job_manager.get_status(j) for j in job_ids[:2]] == [None, None]
    assert all(job_manager.get_status(j) is not None for j in job_ids[2:])


@pytest.mark.asyncio
async def test_running_jobs_are_never_evicted(monkeypatch):
    monkeypatch.setattr(GenerationJobManager, "history_limit", 0)
    gate = asyncio.Event()

    async def slow(status):
        await gate.wait()
        status.phase = JobPhase.COMPLETED

    async def fast(status):
        status.phase = JobPhase.COMPLETED

    running = job_manager.start(slow)
    done = job_manager.start(fast)
    await job_manager.wait(done.job_id)
    await asyncio.sleep(0)

    assert job_manager.get_status(done.job_id) is None
    assert job_manager.get_status(running.job_id) is running

    gate.set()
    final = await job_manager.wait(running.job_id)
    assert final.phase == JobPhase.COMPLETED
