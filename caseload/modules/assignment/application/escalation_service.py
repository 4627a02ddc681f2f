"""Escalation Application Service — flag open items that breached their SLA age."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog

from caseload.core.config import settings
from caseload.core.observability import metrics_registry
from caseload.modules.assignment.application.results import EscalationReport, ItemFailure
from caseload.modules.assignment.domain.models import (
    OPEN_STATUSES,
    EscalationRecord,
    EscalationRule,
    WorkItem,
    WorkItemPriority,
)
from caseload.modules.assignment.domain.repositories.work_item_store import WorkItemStore

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EscalationService:
    """Escalates pending items older than the configured thresholds.

    Two independent rules, evaluated in order for every open item:
      1. pending for longer than ``pending_hours``
      2. high priority and pending for longer than ``high_priority_hours``
    Both can fire for the same item in one sweep. Escalation is an
    annotation only; item status is never changed, and nothing is
    de-duplicated across sweeps.
    """

    def __init__(
        self,
        store: WorkItemStore,
        *,
        pending_hours: float | None = None,
        high_priority_hours: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._pending_after = timedelta(
            hours=settings.ESCALATION_PENDING_HOURS if pending_hours is None else pending_hours
        )
        self._high_priority_after = timedelta(
            hours=settings.ESCALATION_HIGH_PRIORITY_HOURS if high_priority_hours is None else high_priority_hours
        )
        self._clock = clock or utc_now

    def _reason(self, rule: EscalationRule) -> str:
        if rule == EscalationRule.EXTENDED_PENDING:
            hours = self._pending_after.total_seconds() / 3600
            return f"Automatically escalated due to extended pending time (>{hours:g} hours)"
        hours = self._high_priority_after.total_seconds() / 3600
        return f"Automatically escalated: high priority pending >{hours:g} hours"

    def rules_for(self, item: WorkItem, now: datetime) -> list[EscalationRule]:
        """Rules ``item`` breaches at ``now``, in evaluation order."""
        if not item.is_pending:
            return []
        age = item.age(now)
        rules = []
        if age > self._pending_after:
            rules.append(EscalationRule.EXTENDED_PENDING)
        if item.priority == WorkItemPriority.HIGH and age > self._high_priority_after:
            rules.append(EscalationRule.HIGH_PRIORITY_PENDING)
        return rules

    async def check_and_escalate_overdue(self) -> EscalationReport:
        now = self._clock()
        report = EscalationReport(started_at=now)
        metrics_registry.inc("caseload_escalation_sweeps_total")

        try:
            items = await self._store.list_open_items(OPEN_STATUSES)
        except Exception as e:
            logger.exception("escalation_sweep_load_failed")
            report.error = str(e)
            return report

        for item in items:
            if not item.is_open:
                continue
            report.scanned += 1
            try:
                for rule in self.rules_for(item, now):
                    reason = self._reason(rule)
                    if not await self._store.record_escalation(item.id, reason):
                        logger.warning("escalation_rejected", workitem_id=item.id, rule=rule.value)
                        report.failures.append(ItemFailure(item.id, f"{rule.value} rejected by store"))
                        continue
                    report.escalations.append(
                        EscalationRecord(workitem_id=item.id, rule=rule, reason=reason, escalated_at=now)
                    )
                    metrics_registry.inc("caseload_escalations_total")
                    logger.info("workitem_escalated", workitem_id=item.id, rule=rule.value)
            except Exception as e:
                logger.exception("escalation_item_failed", workitem_id=item.id)
                metrics_registry.inc("caseload_sweep_item_failures_total")
                report.failures.append(ItemFailure(item.id, str(e)))

        report.completed = True
        logger.info(
            "escalation_sweep_finished",
            scanned=report.scanned,
            escalated=len(report.escalations),
            failed=len(report.failures),
        )
        return report
