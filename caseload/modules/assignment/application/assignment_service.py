"""Assignment Application Service — pick the best caseworker and assign."""
from __future__ import annotations

import structlog

from caseload.core.config import settings
from caseload.core.observability import metrics_registry
from caseload.modules.assignment.application.results import AssignmentResult, AssignmentStatus
from caseload.modules.assignment.domain.errors import WorkItemNotFound
from caseload.modules.assignment.domain.models import OPEN_STATUSES, WorkItem
from caseload.modules.assignment.domain.repositories.staff_directory import StaffDirectory
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore
from caseload.modules.assignment.domain.scoring import ScoreBreakdown, rank_staff
from caseload.modules.assignment.domain.snapshot import WorkloadSnapshot

logger = structlog.get_logger()


class AssignmentService:
    """Greedy per-item assignment against a frozen workload snapshot."""

    def __init__(
        self,
        store: WorkItemStore,
        directory: StaffDirectory,
        *,
        caseworker_role: str | None = None,
    ) -> None:
        self._store = store
        self._directory = directory
        self._role = caseworker_role or settings.CASEWORKER_ROLE

    async def load_snapshot(self) -> WorkloadSnapshot:
        staff = await self._directory.list_staff(self._role)
        items = await self._store.list_open_items(OPEN_STATUSES)
        return WorkloadSnapshot.build(staff, items)

    async def find_best_staff(
        self, item: WorkItem, snapshot: WorkloadSnapshot | None = None
    ) -> str | None:
        """Best caseworker id for ``item``, or None when nobody can take it.

        Without a snapshot a fresh one is loaded; a load failure is logged
        and reported as None. When every caseworker scores zero the first
        one in directory order is returned instead of None.
        """
        if snapshot is None:
            try:
                snapshot = await self.load_snapshot()
            except Exception:
                logger.exception("snapshot_load_failed", workitem_id=item.id)
                return None

        if not snapshot.has_staff:
            logger.warning("no_caseworkers_available", workitem_id=item.id, role=self._role)
            return None

        ranked = rank_staff(item, snapshot)
        best = ranked[0]
        if best.total > 0:
            return best.staff_id

        fallback = snapshot.staff[0].id
        logger.info("assignment_fallback_first_staff", workitem_id=item.id, staff_id=fallback)
        return fallback

    async def rank_candidates(self, workitem_id: str) -> list[ScoreBreakdown]:
        """Scores of every caseworker for one item, best first. Raises on I/O errors."""
        item = await self._store.get_item(workitem_id)
        snapshot = await self.load_snapshot()
        return rank_staff(item, snapshot)

    async def auto_assign(self, workitem_id: str) -> AssignmentResult:
        """Assign an unassigned open item to the best caseworker.

        Never overwrites an existing assignee: the write is conditional on
        the item still being unassigned, and a lost race is reported as
        CONFLICT rather than retried.
        """
        try:
            item = await self._store.get_item(workitem_id)
        except WorkItemNotFound as e:
            logger.warning("auto_assign_item_not_found", workitem_id=workitem_id)
            return AssignmentResult(workitem_id, AssignmentStatus.NOT_FOUND, detail=e.message)
        except Exception as e:
            logger.exception("auto_assign_load_failed", workitem_id=workitem_id)
            metrics_registry.inc("caseload_assign_failed_total")
            return AssignmentResult(workitem_id, AssignmentStatus.FAILED, detail=str(e))

        if item.assigned_to:
            logger.info("auto_assign_already_assigned", workitem_id=workitem_id, staff_id=item.assigned_to)
            return AssignmentResult(workitem_id, AssignmentStatus.ALREADY_ASSIGNED, staff_id=item.assigned_to)

        if not item.is_open:
            logger.info("auto_assign_item_not_open", workitem_id=workitem_id, status=item.status.value)
            return AssignmentResult(workitem_id, AssignmentStatus.NOT_OPEN)

        try:
            snapshot = await self.load_snapshot()
        except Exception as e:
            logger.exception("snapshot_load_failed", workitem_id=workitem_id)
            metrics_registry.inc("caseload_assign_failed_total")
            return AssignmentResult(workitem_id, AssignmentStatus.FAILED, detail=str(e))

        staff_id = await self.find_best_staff(item, snapshot)
        if not staff_id:
            logger.warning("auto_assign_no_staff", workitem_id=workitem_id)
            return AssignmentResult(workitem_id, AssignmentStatus.NO_STAFF)

        try:
            written = await self._store.set_assignee(workitem_id, staff_id, expected_assignee_id=None)
        except Exception as e:
            logger.exception("auto_assign_write_failed", workitem_id=workitem_id, staff_id=staff_id)
            metrics_registry.inc("caseload_assign_failed_total")
            return AssignmentResult(workitem_id, AssignmentStatus.FAILED, staff_id=staff_id, detail=str(e))

        if not written:
            logger.warning("auto_assign_conflict", workitem_id=workitem_id, staff_id=staff_id)
            metrics_registry.inc("caseload_assign_conflict_total")
            return AssignmentResult(
                workitem_id,
                AssignmentStatus.CONFLICT,
                detail="assigned concurrently by another writer",
            )

        metrics_registry.inc("caseload_auto_assign_total")
        logger.info("auto_assigned", workitem_id=workitem_id, staff_id=staff_id)
        return AssignmentResult(workitem_id, AssignmentStatus.ASSIGNED, staff_id=staff_id)
