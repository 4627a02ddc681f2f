"""ORM → Domain mappers for work items and staff."""
from __future__ import annotations

from caseload.modules.assignment.domain.models import (
    StaffMember,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
)
from caseload.modules.assignment.infrastructure.orm_models import StaffMember as StaffMemberORM
from caseload.modules.assignment.infrastructure.orm_models import WorkItem as WorkItemORM


class WorkItemMapper:

    @staticmethod
    def to_domain(orm: WorkItemORM) -> WorkItem:
        return WorkItem(
            id=orm.id,
            title=orm.title or "",
            category=orm.category,
            priority=WorkItemPriority(orm.priority or "medium"),
            status=WorkItemStatus(orm.status),
            assigned_to=orm.assigned_to,
            created_at=orm.created_at,
        )

    @staticmethod
    def to_new_orm(domain: WorkItem) -> WorkItemORM:
        return WorkItemORM(
            id=domain.id,
            title=domain.title,
            category=domain.category,
            priority=domain.priority.value,
            status=domain.status.value,
            assigned_to=domain.assigned_to,
            created_at=domain.created_at,
        )


class StaffMemberMapper:

    @staticmethod
    def to_domain(orm: StaffMemberORM) -> StaffMember:
        return StaffMember(id=orm.id, role=orm.role, display_name=orm.display_name or "")

    @staticmethod
    def to_new_orm(domain: StaffMember) -> StaffMemberORM:
        return StaffMemberORM(id=domain.id, role=domain.role, display_name=domain.display_name)
