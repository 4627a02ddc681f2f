"""Rebalance Application Service — move excess items off overloaded caseworkers."""
from __future__ import annotations

import math

import structlog

from caseload.core.config import settings
from caseload.core.observability import metrics_registry
from caseload.modules.assignment.application.assignment_service import AssignmentService
from caseload.modules.assignment.application.results import (
    RebalanceReport,
    ReassignmentOutcome,
    ReassignmentStatus,
)
from caseload.modules.assignment.domain.models import WorkItem
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore
from caseload.modules.assignment.domain.snapshot import WorkloadSnapshot

logger = structlog.get_logger()


def overload_threshold(snapshot: WorkloadSnapshot, factor: float, minimum: float) -> tuple[float, float]:
    """(average workload, threshold) for a snapshot. Staff count floored at 1."""
    average = snapshot.total_open_items / max(len(snapshot.staff), 1)
    return average, max(average * factor, minimum)


class RebalanceService:
    """Single-pass rebalance over one snapshot.

    Every decision of the sweep uses the snapshot taken at its start, so a
    caseworker receiving moved items is not re-checked for overload within
    the same run.
    """

    def __init__(
        self,
        store: WorkItemStore,
        assignments: AssignmentService,
        *,
        factor: float | None = None,
        min_threshold: float | None = None,
    ) -> None:
        self._store = store
        self._assignments = assignments
        self._factor = settings.REBALANCE_FACTOR if factor is None else factor
        self._min_threshold = settings.REBALANCE_MIN_THRESHOLD if min_threshold is None else min_threshold

    async def rebalance_workload(self) -> RebalanceReport:
        report = RebalanceReport()
        metrics_registry.inc("caseload_rebalance_sweeps_total")

        try:
            snapshot = await self._assignments.load_snapshot()
        except Exception as e:
            logger.exception("rebalance_snapshot_load_failed")
            report.error = str(e)
            return report

        average, threshold = overload_threshold(snapshot, self._factor, self._min_threshold)
        report.staff_count = len(snapshot.staff)
        report.total_open_items = snapshot.total_open_items
        report.average_workload = average
        report.threshold = threshold
        metrics_registry.set_gauge("caseload_rebalance_threshold", threshold)

        keep = math.floor(threshold)
        for staff in snapshot.staff:
            items = snapshot.items_for(staff.id)
            if len(items) <= threshold:
                continue
            report.overloaded_staff.append(staff.id)
            logger.info("staff_overloaded", staff_id=staff.id, workload=len(items), threshold=threshold)

            for item in items[keep:]:
                report.outcomes.append(await self._move(item, staff.id, snapshot))

        report.completed = True
        logger.info(
            "rebalance_sweep_finished",
            staff_count=report.staff_count,
            threshold=threshold,
            overloaded=len(report.overloaded_staff),
            moved=len(report.moved),
        )
        return report

    async def _move(self, item: WorkItem, owner_id: str, snapshot: WorkloadSnapshot) -> ReassignmentOutcome:
        workitem_id = item.id
        try:
            target = await self._assignments.find_best_staff(item, snapshot)
            if not target or target == owner_id:
                return ReassignmentOutcome(workitem_id, owner_id, ReassignmentStatus.KEPT, to_staff_id=target)

            written = await self._store.set_assignee(workitem_id, target, expected_assignee_id=owner_id)
        except Exception as e:
            logger.exception("rebalance_item_failed", workitem_id=workitem_id, from_staff_id=owner_id)
            metrics_registry.inc("caseload_sweep_item_failures_total")
            return ReassignmentOutcome(workitem_id, owner_id, ReassignmentStatus.FAILED, detail=str(e))

        if not written:
            logger.warning("rebalance_conflict", workitem_id=workitem_id, from_staff_id=owner_id, to_staff_id=target)
            metrics_registry.inc("caseload_assign_conflict_total")
            return ReassignmentOutcome(
                workitem_id, owner_id, ReassignmentStatus.CONFLICT, to_staff_id=target,
                detail="assignee changed since snapshot",
            )

        metrics_registry.inc("caseload_rebalance_moves_total")
        logger.info("workitem_rebalanced", workitem_id=workitem_id, from_staff_id=owner_id, to_staff_id=target)
        return ReassignmentOutcome(workitem_id, owner_id, ReassignmentStatus.MOVED, to_staff_id=target)
