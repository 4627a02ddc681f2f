"""SQLAlchemy implementation of WorkItemStore and StaffDirectory."""
from __future__ import annotations

from functools import wraps
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from caseload.modules.assignment.domain.errors import StoreUnavailable, WorkItemNotFound
from caseload.modules.assignment.domain.models import (
    OPEN_STATUSES,
    StaffMember,
    WorkItem,
    WorkItemStatus,
)
from caseload.modules.assignment.domain.repositories.staff_directory import StaffDirectory
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore
from caseload.modules.assignment.infrastructure.mappers.work_item_mapper import (
    StaffMemberMapper,
    WorkItemMapper,
)
from caseload.modules.assignment.infrastructure.orm_models import Escalation as EscalationORM
from caseload.modules.assignment.infrastructure.orm_models import StaffMember as StaffMemberORM
from caseload.modules.assignment.infrastructure.orm_models import WorkItem as WorkItemORM


def db_errors_as(operation: str):
    """Re-raise driver/ORM failures as StoreUnavailable."""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                raise StoreUnavailable(operation, str(e)) from e
        return wrapper
    return decorator


class SQLAlchemyWorkItemStore(WorkItemStore):
    """Store backed by a SQL database via SQLAlchemy async.

    Each call runs in its own session and commits on its own; the engine
    never holds a transaction across store calls.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._mapper = WorkItemMapper()

    @db_errors_as("list_open_items")
    async def list_open_items(
        self, statuses: Iterable[WorkItemStatus] = OPEN_STATUSES
    ) -> list[WorkItem]:
        values = [WorkItemStatus(s).value for s in statuses]
        stmt = (
            select(WorkItemORM)
            .where(WorkItemORM.status.in_(values))
            .order_by(WorkItemORM.created_at.asc(), WorkItemORM.id.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._mapper.to_domain(orm) for orm in result.scalars()]

    @db_errors_as("get_item")
    async def get_item(self, workitem_id: str) -> WorkItem:
        async with self._session_factory() as session:
            orm = await session.get(WorkItemORM, workitem_id)
            if orm is None:
                raise WorkItemNotFound(workitem_id)
            return self._mapper.to_domain(orm)

    @db_errors_as("set_assignee")
    async def set_assignee(
        self, workitem_id: str, staff_id: str, *, expected_assignee_id: str | None
    ) -> bool:
        # Single conditional UPDATE: the row changes only if it is still open
        # and nobody moved it since the caller read it.
        if expected_assignee_id is None:
            condition = WorkItemORM.assigned_to.is_(None)
        else:
            condition = WorkItemORM.assigned_to == expected_assignee_id
        stmt = (
            update(WorkItemORM)
            .where(
                WorkItemORM.id == workitem_id,
                WorkItemORM.status.in_([s.value for s in OPEN_STATUSES]),
                condition,
            )
            .values(assigned_to=staff_id)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            if result.rowcount == 1:
                await session.commit()
                return True
            exists = await session.scalar(select(WorkItemORM.id).where(WorkItemORM.id == workitem_id))
            if exists is None:
                raise WorkItemNotFound(workitem_id)
            return False

    @db_errors_as("record_escalation")
    async def record_escalation(self, workitem_id: str, reason: str) -> bool:
        async with self._session_factory() as session:
            exists = await session.scalar(select(WorkItemORM.id).where(WorkItemORM.id == workitem_id))
            if exists is None:
                raise WorkItemNotFound(workitem_id)
            session.add(EscalationORM(workitem_id=workitem_id, reason=reason))
            await session.commit()
            return True

    async def add_all(self, items: Iterable[WorkItem]) -> None:
        """Seed helper for local runs and tests."""
        async with self._session_factory() as session:
            session.add_all([self._mapper.to_new_orm(item) for item in items])
            await session.commit()

    async def escalations_for(self, workitem_id: str) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EscalationORM.reason)
                .where(EscalationORM.workitem_id == workitem_id)
                .order_by(EscalationORM.id.asc())
            )
            return list(result.scalars())


class SQLAlchemyStaffDirectory(StaffDirectory):

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._mapper = StaffMemberMapper()

    @db_errors_as("list_staff")
    async def list_staff(self, role: str) -> list[StaffMember]:
        stmt = (
            select(StaffMemberORM)
            .where(StaffMemberORM.role == role)
            .order_by(StaffMemberORM.joined_at.asc(), StaffMemberORM.id.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [self._mapper.to_domain(orm) for orm in result.scalars()]

    async def add_all(self, members: Iterable[StaffMember]) -> None:
        async with self._session_factory() as session:
            session.add_all([self._mapper.to_new_orm(m) for m in members])
            await session.commit()
