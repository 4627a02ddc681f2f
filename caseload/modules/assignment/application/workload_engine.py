"""Workload Engine — facade over the assignment, escalation and rebalance services.

Constructed explicitly around one store and one directory and passed to
whoever triggers the operations (HTTP routes, the sweep scheduler, an
item-created hook). Holds no state between calls.
"""
from __future__ import annotations

from caseload.core.config import Settings, settings as default_settings
from caseload.modules.assignment.application.assignment_service import AssignmentService
from caseload.modules.assignment.application.escalation_service import Clock, EscalationService
from caseload.modules.assignment.application.rebalance_service import RebalanceService
from caseload.modules.assignment.application.results import (
    AssignmentResult,
    EscalationReport,
    RebalanceReport,
)
from caseload.modules.assignment.domain.models import WorkItem
from caseload.modules.assignment.domain.repositories.staff_directory import StaffDirectory
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore
from caseload.modules.assignment.domain.scoring import ScoreBreakdown


class WorkloadEngine:

    def __init__(
        self,
        store: WorkItemStore,
        directory: StaffDirectory,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        cfg = settings or default_settings
        self.store = store
        self.directory = directory
        self.assignments = AssignmentService(store, directory, caseworker_role=cfg.CASEWORKER_ROLE)
        self.escalations = EscalationService(
            store,
            pending_hours=cfg.ESCALATION_PENDING_HOURS,
            high_priority_hours=cfg.ESCALATION_HIGH_PRIORITY_HOURS,
            clock=clock,
        )
        self.rebalancer = RebalanceService(
            store,
            self.assignments,
            factor=cfg.REBALANCE_FACTOR,
            min_threshold=cfg.REBALANCE_MIN_THRESHOLD,
        )

    async def find_best_staff(self, item: WorkItem) -> str | None:
        return await self.assignments.find_best_staff(item)

    async def rank_candidates(self, workitem_id: str) -> list[ScoreBreakdown]:
        return await self.assignments.rank_candidates(workitem_id)

    async def auto_assign(self, workitem_id: str) -> AssignmentResult:
        return await self.assignments.auto_assign(workitem_id)

    async def check_and_escalate_overdue(self) -> EscalationReport:
        return await self.escalations.check_and_escalate_overdue()

    async def rebalance_workload(self) -> RebalanceReport:
        return await self.rebalancer.rebalance_workload()
