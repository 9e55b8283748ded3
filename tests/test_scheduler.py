"""Scheduler wiring for the periodic all-agents sync."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from arena.config import Settings
from arena.engine import scheduler as sched
from arena.engine.wallet_sync import AgentSyncOutcome, BatchSyncResult


@pytest.mark.parametrize("interval,expected", [
    ("15m", timedelta(minutes=15)),
    ("5m", timedelta(minutes=5)),
    ("1h", timedelta(hours=1)),
    ("1d", timedelta(hours=24)),
])
def test_interval_trigger(interval, expected):
    assert sched._get_trigger(interval).interval == expected


def test_add_sync_job_replaces_existing():
    try:
        sched.add_sync_job("15m")
        sched.add_sync_job("1h")
        jobs = [j for j in sched.scheduler.get_jobs() if j.id == sched.SYNC_JOB_ID]
        assert len(jobs) == 1
        assert jobs[0].trigger.interval == timedelta(hours=1)
        assert jobs[0].max_instances == 1
    finally:
        sched.scheduler.remove_job(sched.SYNC_JOB_ID)


@pytest.mark.asyncio
async def test_run_sync_job_runs_batch():
    service = MagicMock()
    service.sync_all = AsyncMock(return_value=BatchSyncResult(
        synced=1, failed=1,
        results=[
            AgentSyncOutcome(wallet="w1", name="alpha", success=True, equity=10.0),
            AgentSyncOutcome(wallet="w2", name="beta", success=False, error="Agent not found"),
        ],
    ))

    with patch("arena.engine.wallet_sync.get_sync_service", return_value=service):
        await sched.run_sync_job()

    service.sync_all.assert_awaited_once()


@pytest.mark.asyncio
async def test_run_sync_job_logs_crash(caplog):
    service = MagicMock()
    service.sync_all = AsyncMock(side_effect=RuntimeError("boom"))

    with patch("arena.engine.wallet_sync.get_sync_service", return_value=service):
        await sched.run_sync_job()

    assert "Scheduled sync crashed: boom" in caplog.text


@pytest.mark.parametrize("interval", ["15m", "45m", "4h", "1d"])
def test_settings_accepts_sync_interval(interval):
    assert Settings(sync_interval=interval).sync_interval == interval


@pytest.mark.parametrize("interval", ["", "0m", "3h", "weekly"])
def test_settings_rejects_sync_interval(interval):
    with pytest.raises(ValidationError):
        Settings(sync_interval=interval)
