"""Point-in-time workload view shared by every decision of one operation."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from caseload.modules.assignment.domain.models import StaffMember, WorkItem


@dataclass(frozen=True)
class WorkloadSnapshot:
    """Caseworkers plus all open work items, partitioned by assignee.

    Built once per operation and never updated while it runs, so a
    reassignment made mid-sweep is not visible to later decisions of the
    same sweep. Item order inside each partition is the store's order.
    """

    staff: tuple[StaffMember, ...]
    open_items: tuple[WorkItem, ...]
    by_assignee: Mapping[str, tuple[WorkItem, ...]] = field(repr=False)

    @classmethod
    def build(cls, staff: Iterable[StaffMember], items: Iterable[WorkItem]) -> WorkloadSnapshot:
        open_items = tuple(item for item in items if item.is_open)
        partitions: dict[str, list[WorkItem]] = {}
        for item in open_items:
            if item.assigned_to:
                partitions.setdefault(item.assigned_to, []).append(item)
        return cls(
            staff=tuple(staff),
            open_items=open_items,
            by_assignee=MappingProxyType({k: tuple(v) for k, v in partitions.items()}),
        )

    def items_for(self, staff_id: str) -> tuple[WorkItem, ...]:
        return self.by_assignee.get(staff_id, ())

    def workload_of(self, staff_id: str) -> int:
        return len(self.items_for(staff_id))

    @property
    def total_open_items(self) -> int:
        return len(self.open_items)

    @property
    def has_staff(self) -> bool:
        return bool(self.staff)
