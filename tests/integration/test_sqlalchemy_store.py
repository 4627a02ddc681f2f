"""SQLAlchemy store against a throwaway SQLite database (aiosqlite driver)."""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from caseload.core.config import Settings
from caseload.core.database import get_sessionmaker, init_database
from caseload.modules.assignment.application.results import AssignmentStatus
from caseload.modules.assignment.application.workload_engine import WorkloadEngine
from caseload.modules.assignment.domain.errors import StoreUnavailable, WorkItemNotFound
from caseload.modules.assignment.domain.models import (
    StaffMember,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
)
from caseload.modules.assignment.infrastructure.repositories.sqlalchemy_store import (
    SQLAlchemyStaffDirectory,
    SQLAlchemyWorkItemStore,
)

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _item(id, hours_old, *, status=WorkItemStatus.PENDING, assigned_to=None, priority=WorkItemPriority.LOW):
    return WorkItem(
        id=id,
        category="noise",
        priority=priority,
        status=status,
        created_at=NOW - timedelta(hours=hours_old),
        assigned_to=assigned_to,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'caseload.db'}")
    await init_database(engine)
    yield get_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def store(session_factory):
    store = SQLAlchemyWorkItemStore(session_factory)
    await store.add_all([
        _item("wi-new", 1),
        _item("wi-old", 80),
        _item("wi-mine", 5, status=WorkItemStatus.IN_PROGRESS, assigned_to="cw-a"),
        _item("wi-done", 100, status=WorkItemStatus.CLOSED, assigned_to="cw-a"),
    ])
    return store


@pytest_asyncio.fixture
async def directory(session_factory):
    directory = SQLAlchemyStaffDirectory(session_factory)
    await directory.add_all([
        StaffMember("cw-a", "staff", "Ana"),
        StaffMember("cw-b", "staff", "Ben"),
        StaffMember("adm-1", "admin", "Root"),
    ])
    return directory


@pytest.mark.asyncio
async def test_list_open_items_oldest_first(store):
    items = await store.list_open_items()
    assert [i.id for i in items] == ["wi-old", "wi-mine", "wi-new"]
    assert all(i.created_at.tzinfo is not None for i in items)


@pytest.mark.asyncio
async def test_get_item(store):
    item = await store.get_item("wi-mine")
    assert item.assigned_to == "cw-a"
    assert item.status == WorkItemStatus.IN_PROGRESS

    with pytest.raises(WorkItemNotFound):
        await store.get_item("nope")


@pytest.mark.asyncio
async def test_set_assignee_only_when_expected_owner_matches(store):
    assert await store.set_assignee("wi-new", "cw-b", expected_assignee_id=None) is True
    assert await store.set_assignee("wi-new", "cw-a", expected_assignee_id=None) is False
    assert (await store.get_item("wi-new")).assigned_to == "cw-b"

    assert await store.set_assignee("wi-mine", "cw-b", expected_assignee_id="cw-x") is False
    assert await store.set_assignee("wi-mine", "cw-b", expected_assignee_id="cw-a") is True
    assert (await store.get_item("wi-mine")).assigned_to == "cw-b"


@pytest.mark.asyncio
async def test_set_assignee_unknown_item(store):
    with pytest.raises(WorkItemNotFound):
        await store.set_assignee("nope", "cw-a", expected_assignee_id=None)


@pytest.mark.asyncio
async def test_record_escalation_appends(store):
    assert await store.record_escalation("wi-old", "first") is True
    assert await store.record_escalation("wi-old", "second") is True
    assert await store.escalations_for("wi-old") == ["first", "second"]
    assert (await store.get_item("wi-old")).status == WorkItemStatus.PENDING

    with pytest.raises(WorkItemNotFound):
        await store.record_escalation("nope", "reason")


@pytest.mark.asyncio
async def test_directory_filters_role(directory):
    members = await directory.list_staff("staff")
    assert {m.id for m in members} == {"cw-a", "cw-b"}
    assert await directory.list_staff("nobody") == []


@pytest.mark.asyncio
async def test_database_errors_become_store_unavailable(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    try:
        store = SQLAlchemyWorkItemStore(get_sessionmaker(engine))
        with pytest.raises(StoreUnavailable):
            await store.list_open_items()
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_engine_on_sql_backend(store, directory):
    engine = WorkloadEngine(store, directory, settings=Settings(), clock=lambda: NOW)

    result = await engine.auto_assign("wi-new")
    assert result.status == AssignmentStatus.ASSIGNED
    assert result.staff_id == "cw-b"

    report = await engine.check_and_escalate_overdue()
    assert [r.workitem_id for r in report.escalations] == ["wi-old"]
    assert len(await store.escalations_for("wi-old")) == 1


@pytest.mark.asyncio
async def test_set_assignee_refuses_closed_items(store):
    assert await store.set_assignee("wi-done", "cw-b", expected_assignee_id="cw-a") is False
    assert (await store.get_item("wi-done")).assigned_to == "cw-a"
