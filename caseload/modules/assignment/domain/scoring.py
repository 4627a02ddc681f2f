"""Caseworker suitability scoring.

Pure functions over a WorkloadSnapshot, no I/O. Higher is better, never
below zero. The heuristic weighs three goals against each other:
spread load, prefer staff already handling the same category, and push
high-priority work towards lightly loaded staff.
"""
from __future__ import annotations

from dataclasses import dataclass

from caseload.modules.assignment.domain.models import StaffMember, WorkItem, WorkItemPriority
from caseload.modules.assignment.domain.snapshot import WorkloadSnapshot

BASE_SCORE = 100
WORKLOAD_PENALTY_PER_ITEM = 10
CATEGORY_BONUS_PER_ITEM = 5
CATEGORY_BONUS_CAP = 25
HIGH_PRIORITY_BONUS = 20
OVERLOAD_ITEM_LIMIT = 10
OVERLOAD_PENALTY = 50
PENDING_PENALTY_PER_ITEM = 5


@dataclass(frozen=True)
class ScoreBreakdown:
    """Individual score components; ``total`` is already clamped at zero."""

    staff_id: str
    workload_penalty: int
    category_bonus: int
    priority_adjustment: int
    overload_penalty: int
    pending_penalty: int

    @property
    def raw(self) -> int:
        return (
            BASE_SCORE
            - self.workload_penalty
            + self.category_bonus
            + self.priority_adjustment
            - self.overload_penalty
            - self.pending_penalty
        )

    @property
    def total(self) -> int:
        return max(self.raw, 0)

    def as_dict(self) -> dict:
        return {
            "staff_id": self.staff_id,
            "score": self.total,
            "components": {
                "base": BASE_SCORE,
                "workload_penalty": -self.workload_penalty,
                "category_bonus": self.category_bonus,
                "priority_adjustment": self.priority_adjustment,
                "overload_penalty": -self.overload_penalty,
                "pending_penalty": -self.pending_penalty,
            },
        }


def score_breakdown(staff: StaffMember, item: WorkItem, snapshot: WorkloadSnapshot) -> ScoreBreakdown:
    active = snapshot.items_for(staff.id)
    workload = len(active)
    workload_penalty = workload * WORKLOAD_PENALTY_PER_ITEM

    same_category = sum(1 for other in active if other.category == item.category)
    category_bonus = min(same_category * CATEGORY_BONUS_PER_ITEM, CATEGORY_BONUS_CAP)

    priority_adjustment = 0
    if item.priority == WorkItemPriority.HIGH:
        # half the workload penalty again, so high priority favours light loads
        priority_adjustment = HIGH_PRIORITY_BONUS - workload_penalty // 2

    overload_penalty = OVERLOAD_PENALTY if workload >= OVERLOAD_ITEM_LIMIT else 0

    pending = sum(1 for other in active if other.is_pending)
    pending_penalty = pending * PENDING_PENALTY_PER_ITEM

    return ScoreBreakdown(
        staff_id=staff.id,
        workload_penalty=workload_penalty,
        category_bonus=category_bonus,
        priority_adjustment=priority_adjustment,
        overload_penalty=overload_penalty,
        pending_penalty=pending_penalty,
    )


def score_staff(staff: StaffMember, item: WorkItem, snapshot: WorkloadSnapshot) -> int:
    """Suitability of ``staff`` for ``item`` given the snapshot, >= 0."""
    return score_breakdown(staff, item, snapshot).total


def rank_staff(item: WorkItem, snapshot: WorkloadSnapshot) -> list[ScoreBreakdown]:
    """Score every caseworker, best first. Ties keep directory order."""
    scored = [score_breakdown(staff, item, snapshot) for staff in snapshot.staff]
    # sorted() is stable, so equal totals stay in directory order
    return sorted(scored, key=lambda s: s.total, reverse=True)
