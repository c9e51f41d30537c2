"""Usage tracking and metrics reporting for routed models.

UsageTracker keeps per-model counters for the lifetime of a router
instance:
- request count
- accumulated cost (tokens x costPerUnit, added at each tracked call)
- success / total tallies

MetricsReporter turns the tracker state into a MetricsSnapshot with usage
and cost shares, success rates, and a projected monthly cost.

State is in-memory only and is never persisted. All tracker mutations and
reads go through a single threading.Lock, so concurrent callers never lose
increments. Callers only ever receive snapshot copies.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace

import structlog
from pydantic import BaseModel, ConfigDict

from task_router.model_router.strategy import RoutingStrategy

log = structlog.get_logger(__name__)

_TASK_PREVIEW_MAX_CHARS = 80

# Multiplier from the accumulated window to a month. Assumes the tracked
# window covers roughly one day of activity.
DEFAULT_COST_PROJECTION_DAYS = 30.0


def _truncate(text: str, max_chars: int = _TASK_PREVIEW_MAX_CHARS) -> str:
    """Truncate text to max_chars, appending '...' if truncated."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def _percentage(part: float, whole: float) -> str:
    """Format part/whole as a two-decimal percentage string ("0.00" for zero whole)."""
    if whole <= 0:
        return "0.00"
    return f"{part / whole * 100:.2f}"


@dataclass
class ModelUsage:
    """Mutable counters for one model. Owned by UsageTracker."""

    request_count: int = 0
    accumulated_cost: float = 0.0
    total: int = 0
    success: int = 0


class ModelStats(BaseModel):
    """Per-model view inside a MetricsSnapshot."""

    model_config = ConfigDict(frozen=True)

    usage: int
    usage_percentage: str
    cost: float
    cost_percentage: str
    success_rate: str


class MetricsSnapshot(BaseModel):
    """Point-in-time metrics for a router instance.

    Attributes:
        total_requests: All tracked requests across models
        total_cost: Sum of accumulated cost across models
        model_stats: Model key -> ModelStats
        estimated_monthly_cost: total_cost x cost_projection_days
        cost_projection_days: Multiplier used for the monthly estimate
    """

    model_config = ConfigDict(frozen=True)

    total_requests: int
    total_cost: float
    model_stats: dict[str, ModelStats]
    estimated_monthly_cost: float
    cost_projection_days: float


class UsageTracker:
    """Thread-safe in-memory usage counters keyed by model profile key."""

    def __init__(self, strategy: RoutingStrategy) -> None:
        """Initialize usage tracker.

        Args:
            strategy: Routing strategy used to price tracked tokens
        """
        self._strategy = strategy
        self._lock = threading.Lock()
        self._total_requests = 0
        self._usage: dict[str, ModelUsage] = {}

    def track_usage(
        self,
        model_name: str,
        task: str,
        tokens: int = 0,
        success: bool = True,
    ) -> None:
        """Record one request against a model.

        Unknown model names are still counted; cost accrual is skipped
        because there is no profile to price against.

        Args:
            model_name: Profile key (primary, complex, planning, ...)
            task: Task description, used only for logging
            tokens: Tokens consumed by the request
            success: Whether the request succeeded
        """
        profile = self._strategy.profile(model_name)

        cost = 0.0
        if tokens > 0:
            if profile is None:
                log.warning(
                    "usage_tracker.unpriced_model",
                    model=model_name,
                    tokens=tokens,
                )
            else:
                cost = tokens * profile.cost_per_unit

        with self._lock:
            self._total_requests += 1
            usage = self._usage.setdefault(model_name, ModelUsage())
            usage.request_count += 1
            usage.accumulated_cost += cost
            usage.total += 1
            if success:
                usage.success += 1

        log.debug(
            "usage_tracker.recorded",
            model=model_name,
            task_preview=_truncate(task),
            tokens=tokens,
            cost=cost,
            success=success,
        )

    def request_count(self, model_name: str) -> int:
        with self._lock:
            usage = self._usage.get(model_name)
            return usage.request_count if usage else 0

    def snapshot(self) -> tuple[int, dict[str, ModelUsage]]:
        """Return (total_requests, copies of per-model counters)."""
        with self._lock:
            return self._total_requests, {
                name: replace(usage) for name, usage in self._usage.items()
            }


class MetricsReporter:
    """Aggregates UsageTracker state into MetricsSnapshots."""

    def __init__(
        self,
        tracker: UsageTracker,
        cost_projection_days: float = DEFAULT_COST_PROJECTION_DAYS,
    ) -> None:
        if cost_projection_days <= 0:
            raise ValueError("cost_projection_days must be positive")
        self._tracker = tracker
        self._cost_projection_days = cost_projection_days

    def get_metrics(self) -> MetricsSnapshot:
        """Build a snapshot from the tracker's current counters.

        Percentages are computed against the totals at call time.
        """
        total_requests, usage_by_model = self._tracker.snapshot()
        total_cost = sum(usage.accumulated_cost for usage in usage_by_model.values())

        model_stats = {
            name: ModelStats(
                usage=usage.request_count,
                usage_percentage=_percentage(usage.request_count, total_requests),
                cost=usage.accumulated_cost,
                cost_percentage=_percentage(usage.accumulated_cost, total_cost),
                success_rate=_percentage(usage.success, usage.total),
            )
            for name, usage in usage_by_model.items()
        }

        return MetricsSnapshot(
            total_requests=total_requests,
            total_cost=total_cost,
            model_stats=model_stats,
            estimated_monthly_cost=total_cost * self._cost_projection_days,
            cost_projection_days=self._cost_projection_days,
        )
