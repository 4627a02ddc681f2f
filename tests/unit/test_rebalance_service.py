"""Unit tests for RebalanceService.rebalance_workload."""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from caseload.modules.assignment.application.assignment_service import AssignmentService
from caseload.modules.assignment.application.rebalance_service import RebalanceService, overload_threshold
from caseload.modules.assignment.application.results import ReassignmentStatus
from caseload.modules.assignment.domain.errors import StoreUnavailable
from caseload.modules.assignment.domain.models import (
    OPEN_STATUSES,
    StaffMember,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
)
from caseload.modules.assignment.domain.repositories.staff_directory import StaffDirectory
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore
from caseload.modules.assignment.domain.snapshot import WorkloadSnapshot
from caseload.modules.assignment.infrastructure.repositories.memory_store import (
    InMemoryStaffDirectory,
    InMemoryWorkItemStore,
)

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _load(staff_id: str | None, count: int, *, prefix: str | None = None) -> list[WorkItem]:
    prefix = prefix or staff_id or "unassigned"
    return [
        WorkItem(
            id=f"{prefix}-{i}",
            category="roads",
            priority=WorkItemPriority.MEDIUM,
            status=WorkItemStatus.IN_PROGRESS,
            created_at=NOW - timedelta(hours=count - i),
            assigned_to=staff_id,
        )
        for i in range(count)
    ]


def _staff(*ids: str) -> list[StaffMember]:
    return [StaffMember(i, "staff") for i in ids]


class ResolvedAfterReadStore(InMemoryWorkItemStore):
    """Every item listed is resolved by another writer before the sweep acts on it."""

    async def list_open_items(self, statuses=OPEN_STATUSES):
        items = await super().list_open_items(statuses)
        for item in items:
            self.add(replace(item, status=WorkItemStatus.RESOLVED))
        return items


def _rebalancer(store: WorkItemStore, directory: StaffDirectory) -> RebalanceService:
    assignments = AssignmentService(store, directory, caseworker_role="staff")
    return RebalanceService(store, assignments, factor=1.5, min_threshold=8)


class TestThreshold:
    def test_floor_of_eight(self):
        snapshot = WorkloadSnapshot.build(_staff("a", "b", "c"), _load("a", 6) + _load("b", 6))
        assert overload_threshold(snapshot, 1.5, 8) == (4.0, 8)

    def test_scales_with_average(self):
        snapshot = WorkloadSnapshot.build(_staff("a", "b"), _load("a", 10) + _load("b", 10))
        assert overload_threshold(snapshot, 1.5, 8) == (10.0, 15.0)

    def test_no_staff_divides_by_one(self):
        snapshot = WorkloadSnapshot.build([], _load(None, 20))
        assert overload_threshold(snapshot, 1.5, 8) == (20.0, 30.0)


class TestRebalance:
    @pytest.mark.asyncio
    async def test_balanced_team_is_left_alone(self):
        ids = ["cw-1", "cw-2", "cw-3", "cw-4", "cw-5"]
        items = [item for sid in ids for item in _load(sid, 8)]
        store = InMemoryWorkItemStore(items)

        report = await _rebalancer(store, InMemoryStaffDirectory(_staff(*ids))).rebalance_workload()

        assert report.completed is True
        assert report.average_workload == 8
        assert report.threshold == 12
        assert report.overloaded_staff == []
        assert report.outcomes == []
        assert store.assignments == []

    @pytest.mark.asyncio
    async def test_exactly_at_threshold_is_not_rebalanced(self):
        store = InMemoryWorkItemStore(_load("cw-a", 8) + _load("cw-b", 2) + _load("cw-c", 2))
        report = await _rebalancer(store, InMemoryStaffDirectory(_staff("cw-a", "cw-b", "cw-c"))).rebalance_workload()

        assert report.threshold == 8
        assert report.overloaded_staff == []
        assert store.assignments == []

    @pytest.mark.asyncio
    async def test_one_over_threshold_moves_the_tail_item(self):
        store = InMemoryWorkItemStore(_load("cw-a", 9) + _load("cw-b", 2) + _load("cw-c", 1))
        report = await _rebalancer(store, InMemoryStaffDirectory(_staff("cw-a", "cw-b", "cw-c"))).rebalance_workload()

        assert report.threshold == 8
        assert report.overloaded_staff == ["cw-a"]
        assert [(o.workitem_id, o.to_staff_id, o.status) for o in report.outcomes] == [
            ("cw-a-8", "cw-c", ReassignmentStatus.MOVED)
        ]
        assert store.snapshot_of("cw-a-8").assigned_to == "cw-c"
        assert store.snapshot_of("cw-a-7").assigned_to == "cw-a"

    @pytest.mark.asyncio
    async def test_decisions_use_the_sweep_snapshot(self):
        # every excess item lands on the same idle caseworker because the
        # snapshot is not refreshed after each move
        store = InMemoryWorkItemStore(_load("cw-a", 11) + _load("cw-c", 1))
        report = await _rebalancer(store, InMemoryStaffDirectory(_staff("cw-a", "cw-b", "cw-c"))).rebalance_workload()

        assert [o.workitem_id for o in report.moved] == ["cw-a-8", "cw-a-9", "cw-a-10"]
        assert {o.to_staff_id for o in report.moved} == {"cw-b"}

    @pytest.mark.asyncio
    async def test_unassigned_items_raise_the_average(self):
        store = InMemoryWorkItemStore(_load("cw-a", 9) + _load(None, 21))
        report = await _rebalancer(store, InMemoryStaffDirectory(_staff("cw-a", "cw-b"))).rebalance_workload()

        assert report.total_open_items == 30
        assert report.threshold == 22.5
        assert report.moved == []

    @pytest.mark.asyncio
    async def test_same_owner_is_kept(self):
        store = InMemoryWorkItemStore(_load("cw-a", 9) + _load("cw-b", 1))
        directory = InMemoryStaffDirectory(_staff("cw-a", "cw-b"))
        assignments = AssignmentService(store, directory, caseworker_role="staff")
        assignments.find_best_staff = AsyncMock(return_value="cw-a")
        rebalancer = RebalanceService(store, assignments, factor=1.5, min_threshold=8)

        report = await rebalancer.rebalance_workload()

        assert [o.status for o in report.outcomes] == [ReassignmentStatus.KEPT]
        assert store.assignments == []

    @pytest.mark.asyncio
    async def test_conflicting_write_is_recorded(self):
        items = _load("cw-a", 9)
        store = AsyncMock(spec=WorkItemStore)
        store.list_open_items.return_value = items
        store.set_assignee.return_value = False

        report = await _rebalancer(store, InMemoryStaffDirectory(_staff("cw-a", "cw-b"))).rebalance_workload()

        assert [o.status for o in report.outcomes] == [ReassignmentStatus.CONFLICT]
        store.set_assignee.assert_awaited_once_with("cw-a-8", "cw-b", expected_assignee_id="cw-a")

    @pytest.mark.asyncio
    async def test_item_failure_does_not_abort_sweep(self):
        store = AsyncMock(spec=WorkItemStore)
        store.list_open_items.return_value = _load("cw-a", 10)
        store.set_assignee.side_effect = [StoreUnavailable("set_assignee", "boom"), True]

        report = await _rebalancer(store, InMemoryStaffDirectory(_staff("cw-a", "cw-b"))).rebalance_workload()

        assert report.completed is True
        assert [o.status for o in report.outcomes] == [ReassignmentStatus.FAILED, ReassignmentStatus.MOVED]

    @pytest.mark.asyncio
    async def test_snapshot_failure_marks_sweep_incomplete(self):
        directory = AsyncMock(spec=StaffDirectory)
        directory.list_staff.side_effect = StoreUnavailable("list_staff", "down")

        report = await _rebalancer(InMemoryWorkItemStore(), directory).rebalance_workload()

        assert report.completed is False
        assert "down" in report.error

    @pytest.mark.asyncio
    async def test_no_staff_is_a_completed_no_op(self):
        store = InMemoryWorkItemStore(_load(None, 5))
        report = await _rebalancer(store, InMemoryStaffDirectory()).rebalance_workload()
        assert report.completed is True
        assert report.outcomes == []

    @pytest.mark.asyncio
    async def test_item_resolved_after_snapshot_is_not_moved(self):
        store = ResolvedAfterReadStore(_load("cw-a", 9))
        report = await _rebalancer(store, InMemoryStaffDirectory(_staff("cw-a", "cw-b"))).rebalance_workload()

        assert [(o.workitem_id, o.status) for o in report.outcomes] == [("cw-a-8", ReassignmentStatus.CONFLICT)]
        assert store.snapshot_of("cw-a-8").status == WorkItemStatus.RESOLVED
        assert store.snapshot_of("cw-a-8").assigned_to == "cw-a"
        assert store.assignments == []
