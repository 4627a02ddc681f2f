"""
Sweep Scheduler Worker.
Runs the escalation sweep and the rebalance sweep on fixed intervals,
one at a time; a sweep never overlaps another sweep of this worker.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

from caseload.core.config import settings
from caseload.core.logging import setup_logging
from caseload.modules.assignment.application.workload_engine import WorkloadEngine
from caseload.modules.assignment.container import build_engine
from caseload.workers.base import BaseWorker

logger = structlog.get_logger()

ESCALATION = "escalation"
REBALANCE = "rebalance"


class SweepSchedulerWorker(BaseWorker):

    def __init__(
        self,
        engine: WorkloadEngine,
        *,
        escalation_interval: float | None = None,
        rebalance_interval: float | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__("sweep_scheduler")
        self._engine = engine
        self._intervals = {
            ESCALATION: settings.ESCALATION_SWEEP_INTERVAL_SECONDS if escalation_interval is None else escalation_interval,
            REBALANCE: settings.REBALANCE_SWEEP_INTERVAL_SECONDS if rebalance_interval is None else rebalance_interval,
        }
        self._monotonic = monotonic
        self._sleep = sleep
        # both sweeps are due immediately on start
        self._next_run = {name: 0.0 for name in self._intervals}

    def due_sweeps(self, now: float) -> list[str]:
        return [name for name, at in self._next_run.items() if at <= now]

    def seconds_until_next(self, now: float) -> float:
        return max(0.0, min(self._next_run.values()) - now)

    async def run_once(self) -> list[str]:
        """Run every due sweep sequentially; returns the names that ran."""
        ran = []
        for name in self.due_sweeps(self._monotonic()):
            structlog.contextvars.bind_contextvars(sweep=name)
            try:
                if name == ESCALATION:
                    report = await self._engine.check_and_escalate_overdue()
                else:
                    report = await self._engine.rebalance_workload()
                if not report.completed:
                    logger.warning("sweep_incomplete")
            except Exception:
                logger.exception("sweep_crashed")
            finally:
                structlog.contextvars.unbind_contextvars("sweep")
            self._next_run[name] = self._monotonic() + self._intervals[name]
            ran.append(name)
        return ran

    async def run(self):
        while self._running:
            try:
                await self.run_once()
                await self._sleep(self.seconds_until_next(self._monotonic()))
            except asyncio.CancelledError:
                break


if __name__ == "__main__":
    setup_logging()
    asyncio.run(SweepSchedulerWorker(build_engine(settings)).start())
