import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.features.chair_reports.domain.models import ItemRunLog, ReportRun
from app.features.chair_reports.jobs.report_job import ChairReportJob
from app.jobs import worker


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


def test_registry_exposes_report_jobs():
    assert {"chair_reports", "closing_reports"} <= set(worker.JOB_REGISTRY)


def _run() -> ReportRun:
    run = ReportRun(started_at=datetime(2025, 3, 5, tzinfo=UTC))
    run.record(ItemRunLog(id="gala", label="Gala", kind="banquet", frequency="monthly", ok=True))
    return run


@pytest.mark.asyncio
async def test_job_runs_engine_and_summary():
    engine = MagicMock()
    engine.run = AsyncMock(return_value=_run())
    summary_sender = AsyncMock(return_value=True)
    job = ChairReportJob(engine=engine, summary_sender=summary_sender)

    result = await job.run_once(trigger="test")

    assert result["sent"] == 1
    assert result["summary_sent"] is True
    summary_sender.assert_awaited_once()
    assert job.is_running is False
    assert job.get_job_status()["last_run_time"] is not None


@pytest.mark.asyncio
async def test_job_summary_failure_does_not_fail_run():
    engine = MagicMock()
    engine.run = AsyncMock(return_value=_run())
    job = ChairReportJob(engine=engine, summary_sender=AsyncMock(side_effect=RuntimeError("smtp")))

    result = await job.run_once()

    assert result["summary_sent"] is False


@pytest.mark.asyncio
async def test_job_refuses_overlapping_runs():
    release = asyncio.Event()

    async def slow_run(now=None):
        await release.wait()
        return _run()

    engine = MagicMock()
    engine.run = slow_run
    job = ChairReportJob(engine=engine, summary_sender=AsyncMock(return_value=False))

    first = asyncio.create_task(job.run_once())
    await asyncio.sleep(0)
    overlapping = await job.run_once()
    release.set()
    finished = await first

    assert overlapping == {"skipped": True, "reason": "already_running"}
    assert finished["sent"] == 1
