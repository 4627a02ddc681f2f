"""Work items, caseworkers and the records the engine produces.

Invariants:
1. RESOLVED/CLOSED items are never candidates for assignment, escalation
   or rebalancing (``is_open``)
2. ``created_at`` is timezone-aware and never changes
3. The engine writes only ``assigned_to`` and escalation records
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class WorkItemStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class WorkItemPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


OPEN_STATUSES: tuple[WorkItemStatus, ...] = (WorkItemStatus.PENDING, WorkItemStatus.IN_PROGRESS)


@dataclass(frozen=True)
class WorkItem:
    id: str
    category: str
    priority: WorkItemPriority
    status: WorkItemStatus
    created_at: datetime
    assigned_to: str | None = None
    title: str = ""

    def __post_init__(self) -> None:
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=timezone.utc))

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def is_pending(self) -> bool:
        return self.status == WorkItemStatus.PENDING

    def age(self, now: datetime):
        return now - self.created_at


@dataclass(frozen=True)
class StaffMember:
    id: str
    role: str
    display_name: str = ""


class EscalationRule(str, Enum):
    EXTENDED_PENDING = "EXTENDED_PENDING"
    HIGH_PRIORITY_PENDING = "HIGH_PRIORITY_PENDING"


@dataclass(frozen=True)
class EscalationRecord:
    workitem_id: str
    rule: EscalationRule
    reason: str
    escalated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
