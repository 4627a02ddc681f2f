"""In-process store and directory, for local runs and tests."""
from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from caseload.modules.assignment.domain.errors import WorkItemNotFound
from caseload.modules.assignment.domain.models import (
    OPEN_STATUSES,
    StaffMember,
    WorkItem,
    WorkItemStatus,
)
from caseload.modules.assignment.domain.repositories.staff_directory import StaffDirectory
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore


class InMemoryWorkItemStore(WorkItemStore):
    """Keeps items in insertion order; escalations are an append-only log."""

    def __init__(self, items: Iterable[WorkItem] = ()):
        self._items: dict[str, WorkItem] = {}
        self._lock = asyncio.Lock()
        self.escalations: list[tuple[str, str, datetime]] = []
        self.assignments: list[tuple[str, str]] = []
        for item in items:
            self.add(item)

    def add(self, item: WorkItem) -> None:
        self._items[item.id] = item

    def snapshot_of(self, workitem_id: str) -> WorkItem | None:
        return self._items.get(workitem_id)

    async def list_open_items(
        self, statuses: Iterable[WorkItemStatus] = OPEN_STATUSES
    ) -> list[WorkItem]:
        wanted = set(statuses)
        return [item for item in self._items.values() if item.status in wanted]

    async def get_item(self, workitem_id: str) -> WorkItem:
        item = self._items.get(workitem_id)
        if item is None:
            raise WorkItemNotFound(workitem_id)
        return item

    async def set_assignee(
        self, workitem_id: str, staff_id: str, *, expected_assignee_id: str | None
    ) -> bool:
        async with self._lock:
            item = self._items.get(workitem_id)
            if item is None:
                raise WorkItemNotFound(workitem_id)
            if not item.is_open or item.assigned_to != expected_assignee_id:
                return False
            self._items[workitem_id] = replace(item, assigned_to=staff_id)
            self.assignments.append((workitem_id, staff_id))
            return True

    async def record_escalation(self, workitem_id: str, reason: str) -> bool:
        if workitem_id not in self._items:
            raise WorkItemNotFound(workitem_id)
        self.escalations.append((workitem_id, reason, datetime.now(timezone.utc)))
        return True


class InMemoryStaffDirectory(StaffDirectory):

    def __init__(self, members: Iterable[StaffMember] = ()):
        self._members = list(members)

    def add(self, member: StaffMember) -> None:
        self._members.append(member)

    async def list_staff(self, role: str) -> list[StaffMember]:
        return [m for m in self._members if m.role == role]
