from __future__ import annotations

from collections import defaultdict


class MetricsRegistry:
    def __init__(self) -> None:
        self._counters: dict[str, float] = defaultdict(float)
        self._gauges: dict[str, float] = defaultdict(float)

    def inc(self, name: str, value: float = 1.0) -> None:
        self._counters[name] += value

    def set_gauge(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def get_counter(self, name: str) -> float:
        return self._counters.get(name, 0.0)

    def get_gauge(self, name: str) -> float:
        return self._gauges.get(name, 0.0)

    def reset(self) -> None:
        self._counters.clear()
        self._gauges.clear()

    def render_prometheus(self) -> str:
        lines = [
            # ── Assignment ──
            "# HELP caseload_auto_assign_total Work items auto-assigned",
            "# TYPE caseload_auto_assign_total counter",
            f"caseload_auto_assign_total {self.get_counter('caseload_auto_assign_total')}",
            "# HELP caseload_assign_conflict_total Conditional assignee writes lost to a concurrent writer",
            "# TYPE caseload_assign_conflict_total counter",
            f"caseload_assign_conflict_total {self.get_counter('caseload_assign_conflict_total')}",
            "# HELP caseload_assign_failed_total Auto-assign attempts failed on store I/O",
            "# TYPE caseload_assign_failed_total counter",
            f"caseload_assign_failed_total {self.get_counter('caseload_assign_failed_total')}",
            # ── Escalation ──
            "# HELP caseload_escalations_total Escalations recorded",
            "# TYPE caseload_escalations_total counter",
            f"caseload_escalations_total {self.get_counter('caseload_escalations_total')}",
            "# HELP caseload_escalation_sweeps_total Escalation sweeps run",
            "# TYPE caseload_escalation_sweeps_total counter",
            f"caseload_escalation_sweeps_total {self.get_counter('caseload_escalation_sweeps_total')}",
            # ── Rebalance ──
            "# HELP caseload_rebalance_moves_total Work items moved off overloaded staff",
            "# TYPE caseload_rebalance_moves_total counter",
            f"caseload_rebalance_moves_total {self.get_counter('caseload_rebalance_moves_total')}",
            "# HELP caseload_rebalance_sweeps_total Rebalance sweeps run",
            "# TYPE caseload_rebalance_sweeps_total counter",
            f"caseload_rebalance_sweeps_total {self.get_counter('caseload_rebalance_sweeps_total')}",
            "# HELP caseload_rebalance_threshold Overload threshold computed by the last rebalance sweep",
            "# TYPE caseload_rebalance_threshold gauge",
            f"caseload_rebalance_threshold {self.get_gauge('caseload_rebalance_threshold')}",
            # ── Failures ──
            "# HELP caseload_sweep_item_failures_total Per-item failures skipped during sweeps",
            "# TYPE caseload_sweep_item_failures_total counter",
            f"caseload_sweep_item_failures_total {self.get_counter('caseload_sweep_item_failures_total')}",
        ]
        return "\n".join(lines)


metrics_registry = MetricsRegistry()
