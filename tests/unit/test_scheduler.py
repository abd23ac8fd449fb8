"""Unit tests for the background scheduler"""

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ddm_jewellers.services.scheduler import BackgroundScheduler


async def test_failed_tick_does_not_stop_the_loop():
    calls = []

    async def job():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("provider outage")
        if len(calls) == 3:
            raise asyncio.CancelledError()

    scheduler = BackgroundScheduler(MagicMock(), rate_interval=1, autopay_interval=1)
    with pytest.raises(asyncio.CancelledError):
        await scheduler._every("test", 0, job)

    assert len(calls) == 3


@patch("ddm_jewellers.services.scheduler.process_autopayments", return_value={"processed": 1, "completed": 0, "failed": 0})
async def test_autopay_job_uses_own_session(mock_process):
    session = MagicMock()
    scheduler = BackgroundScheduler(MagicMock(return_value=session))

    await scheduler.run_autopay()

    mock_process.assert_called_once_with(session)
    session.close.assert_called_once()


async def test_autopay_sweep_runs_off_the_event_loop():
    loop_thread = threading.get_ident()
    sweep_threads = []

    def sweep(db):
        sweep_threads.append(threading.get_ident())
        return {"processed": 0, "completed": 0, "failed": 0}

    scheduler = BackgroundScheduler(MagicMock())
    with patch("ddm_jewellers.services.scheduler.process_autopayments", side_effect=sweep):
        await scheduler.run_autopay()

    assert len(sweep_threads) == 1
    assert sweep_threads[0] != loop_thread


@patch("ddm_jewellers.services.scheduler.MarketRateService")
async def test_rate_job_closes_session_on_failure(mock_service_cls):
    mock_service_cls.return_value.update_rates = AsyncMock(side_effect=RuntimeError("boom"))
    session = MagicMock()
    scheduler = BackgroundScheduler(MagicMock(return_value=session))

    with pytest.raises(RuntimeError):
        await scheduler.refresh_rates()

    session.close.assert_called_once()


async def test_start_and_stop():
    scheduler = BackgroundScheduler(MagicMock(), rate_interval=3600, autopay_interval=3600)
    scheduler.refresh_rates = AsyncMock()
    scheduler.run_autopay = AsyncMock()

    scheduler.start()
    await asyncio.sleep(0.01)
    await scheduler.stop()

    scheduler.refresh_rates.assert_awaited_once()
    scheduler.run_autopay.assert_awaited_once()
