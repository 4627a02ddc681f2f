"""Per-call and per-sweep outcomes returned to whoever triggered the operation."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from caseload.modules.assignment.domain.models import EscalationRecord


class AssignmentStatus(str, Enum):
    ASSIGNED = "ASSIGNED"
    ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
    NOT_OPEN = "NOT_OPEN"
    NOT_FOUND = "NOT_FOUND"
    NO_STAFF = "NO_STAFF"
    CONFLICT = "CONFLICT"
    FAILED = "FAILED"


@dataclass(frozen=True)
class AssignmentResult:
    workitem_id: str
    status: AssignmentStatus
    staff_id: str | None = None
    detail: str = ""

    @property
    def assigned(self) -> bool:
        return self.status == AssignmentStatus.ASSIGNED

    def as_dict(self) -> dict:
        return {
            "workitem_id": self.workitem_id,
            "status": self.status.value,
            "assigned": self.assigned,
            "staff_id": self.staff_id,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class ItemFailure:
    workitem_id: str
    error: str

    def as_dict(self) -> dict:
        return {"workitem_id": self.workitem_id, "error": self.error}


@dataclass
class EscalationReport:
    started_at: datetime
    completed: bool = False
    scanned: int = 0
    escalations: list[EscalationRecord] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)
    error: str | None = None

    def as_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "completed": self.completed,
            "scanned": self.scanned,
            "escalations": [
                {
                    "workitem_id": rec.workitem_id,
                    "rule": rec.rule.value,
                    "reason": rec.reason,
                    "escalated_at": rec.escalated_at.isoformat(),
                }
                for rec in self.escalations
            ],
            "failures": [f.as_dict() for f in self.failures],
            "error": self.error,
        }


class ReassignmentStatus(str, Enum):
    MOVED = "MOVED"
    KEPT = "KEPT"
    CONFLICT = "CONFLICT"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ReassignmentOutcome:
    workitem_id: str
    from_staff_id: str
    status: ReassignmentStatus
    to_staff_id: str | None = None
    detail: str = ""

    def as_dict(self) -> dict:
        return {
            "workitem_id": self.workitem_id,
            "from_staff_id": self.from_staff_id,
            "to_staff_id": self.to_staff_id,
            "status": self.status.value,
            "detail": self.detail,
        }


@dataclass
class RebalanceReport:
    completed: bool = False
    staff_count: int = 0
    total_open_items: int = 0
    average_workload: float = 0.0
    threshold: float = 0.0
    overloaded_staff: list[str] = field(default_factory=list)
    outcomes: list[ReassignmentOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def moved(self) -> list[ReassignmentOutcome]:
        return [o for o in self.outcomes if o.status == ReassignmentStatus.MOVED]

    def as_dict(self) -> dict:
        return {
            "completed": self.completed,
            "staff_count": self.staff_count,
            "total_open_items": self.total_open_items,
            "average_workload": self.average_workload,
            "threshold": self.threshold,
            "overloaded_staff": list(self.overloaded_staff),
            "moved": len(self.moved),
            "outcomes": [o.as_dict() for o in self.outcomes],
            "error": self.error,
        }
