"""Derived stability metrics over raw usage counters."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from .models import Project

MetricType = Literal["user", "session"]

USERS_SEEN = "accumulative_daily_users_seen"
USERS_WITH_UNHANDLED = "accumulative_daily_users_with_unhandled"
TOTAL_SESSIONS = "total_sessions_count"
UNHANDLED_SESSIONS = "unhandled_sessions_count"


class StabilityTargets(BaseModel):
    model_config = ConfigDict(frozen=True)

    metric_type: MetricType = "user"
    target: float = 0.0
    critical: float = 0.0

    @classmethod
    def from_project(cls, project: Project) -> StabilityTargets:
        return cls(
            metric_type=project.stability_target_type,
            target=project.target_stability.value if project.target_stability else 0.0,
            critical=project.critical_stability.value if project.critical_stability else 0.0,
        )


def _count(record: Mapping[str, Any], key: str) -> float:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return max(0.0, float(value))


def _ratio(total: float, failing: float) -> float:
    if total == 0:
        return 0.0
    return max(0.0, min(1.0, (total - failing) / total))


def decorate(record: Mapping[str, Any], targets: StabilityTargets) -> dict[str, Any]:
    """Return a copy of `record` with stability ratios and threshold checks added.

    Missing, negative or non-numeric counters count as zero and ratios are
    clamped to [0, 1]. Threshold comparisons are inclusive.

    Example:
        >>> out = decorate(
        ...     {"accumulative_daily_users_seen": 0, "total_sessions_count": 100, "unhandled_sessions_count": 10},
        ...     StabilityTargets(metric_type="user", target=0.99, critical=0.85),
        ... )
        >>> out["session_stability"], out["meets_target_stability"]
        (0.9, False)
    """
    user_stability = _ratio(_count(record, USERS_SEEN), _count(record, USERS_WITH_UNHANDLED))
    session_stability = _ratio(_count(record, TOTAL_SESSIONS), _count(record, UNHANDLED_SESSIONS))
    comparator = user_stability if targets.metric_type == "user" else session_stability
    return {
        **record,
        "user_stability": user_stability,
        "session_stability": session_stability,
        "stability_target_type": targets.metric_type,
        "target_stability": targets.target,
        "critical_stability": targets.critical,
        "meets_target_stability": comparator >= targets.target,
        "meets_critical_stability": comparator >= targets.critical,
    }


class StabilityCalculator:
    """Binds a project's thresholds so records can be decorated in bulk."""

    __slots__ = ("_targets",)

    def __init__(self, targets: StabilityTargets) -> None:
        self._targets = targets

    @classmethod
    def for_project(cls, project: Project) -> StabilityCalculator:
        return cls(StabilityTargets.from_project(project))

    @property
    def targets(self) -> StabilityTargets:
        return self._targets

    def decorate(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return decorate(record, self._targets)

    def decorate_all(self, records: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
        return [decorate(r, self._targets) for r in records]
