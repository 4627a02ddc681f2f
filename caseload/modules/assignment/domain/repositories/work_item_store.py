"""WorkItem store interface — defined in domain layer, implemented in infrastructure."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from caseload.modules.assignment.domain.models import OPEN_STATUSES, WorkItem, WorkItemStatus


class WorkItemStore(ABC):
    """Access to the work items owned by the external store.

    The engine reads items and writes only the assignee and escalation
    records; everything else belongs to the store.
    """

    @abstractmethod
    async def list_open_items(
        self, statuses: Iterable[WorkItemStatus] = OPEN_STATUSES
    ) -> list[WorkItem]:
        """Items whose status is in ``statuses``, in the store's natural order."""
        ...

    @abstractmethod
    async def get_item(self, workitem_id: str) -> WorkItem:
        """Load a single item. Raises WorkItemNotFound."""
        ...

    @abstractmethod
    async def set_assignee(
        self, workitem_id: str, staff_id: str, *, expected_assignee_id: str | None
    ) -> bool:
        """Compare-and-set the assignee.

        Writes ``staff_id`` only if the item is still open (pending or
        in-progress) and its current assignee equals ``expected_assignee_id``
        (None = currently unassigned). Returns False when either condition
        did not hold and nothing was written.
        """
        ...

    @abstractmethod
    async def record_escalation(self, workitem_id: str, reason: str) -> bool:
        """Append an escalation entry. Does not touch the item's status."""
        ...
