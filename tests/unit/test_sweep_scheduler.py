from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from caseload.modules.assignment.application.results import EscalationReport, RebalanceReport
from caseload.workers.sweep_scheduler import ESCALATION, REBALANCE, SweepSchedulerWorker


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _engine():
    engine = MagicMock()
    engine.check_and_escalate_overdue = AsyncMock(
        return_value=EscalationReport(started_at=datetime.now(timezone.utc), completed=True)
    )
    engine.rebalance_workload = AsyncMock(return_value=RebalanceReport(completed=True))
    return engine


def _worker(engine, clock, sleep=None):
    return SweepSchedulerWorker(
        engine,
        escalation_interval=60,
        rebalance_interval=300,
        monotonic=clock,
        sleep=sleep or AsyncMock(),
    )


@pytest.mark.asyncio
async def test_both_sweeps_run_on_start():
    engine = _engine()
    worker = _worker(engine, FakeClock())

    assert await worker.run_once() == [ESCALATION, REBALANCE]
    engine.check_and_escalate_overdue.assert_awaited_once()
    engine.rebalance_workload.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweeps_follow_their_own_interval():
    engine = _engine()
    clock = FakeClock()
    worker = _worker(engine, clock)
    await worker.run_once()

    clock.now += 30
    assert await worker.run_once() == []
    assert worker.seconds_until_next(clock.now) == 30

    clock.now += 30
    assert await worker.run_once() == [ESCALATION]

    clock.now += 240
    assert await worker.run_once() == [ESCALATION, REBALANCE]


@pytest.mark.asyncio
async def test_crashed_sweep_is_rescheduled():
    engine = _engine()
    engine.check_and_escalate_overdue.side_effect = RuntimeError("boom")
    clock = FakeClock()
    worker = _worker(engine, clock)

    assert await worker.run_once() == [ESCALATION, REBALANCE]
    assert worker.due_sweeps(clock.now) == []
    engine.rebalance_workload.assert_awaited_once()


@pytest.mark.asyncio
async def test_incomplete_sweep_does_not_stop_the_worker():
    engine = _engine()
    engine.rebalance_workload.return_value = RebalanceReport(completed=False, error="down")
    worker = _worker(engine, FakeClock())

    assert await worker.run_once() == [ESCALATION, REBALANCE]
    assert worker.running is True


@pytest.mark.asyncio
async def test_run_sleeps_until_next_sweep_and_stops():
    engine = _engine()
    clock = FakeClock()
    worker = None

    async def _sleep(seconds):
        assert seconds == 60
        worker.stop()

    worker = _worker(engine, clock, sleep=_sleep)
    await worker.start()

    assert worker.running is False
    engine.check_and_escalate_overdue.assert_awaited_once()
