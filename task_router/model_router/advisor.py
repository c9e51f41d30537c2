"""Advisory recommendations from accumulated routing metrics.

The OptimizationAdvisor inspects a MetricsSnapshot and suggests routing
adjustments. It never changes routing itself; output is meant for a human
or a separate control loop.
"""

from __future__ import annotations

from enum import StrEnum

import structlog
from pydantic import BaseModel, ConfigDict

from task_router.model_router.metrics import MetricsSnapshot
from task_router.model_router.strategy import COMPLEX_PROFILE

log = structlog.get_logger(__name__)


class RecommendationType(StrEnum):
    PERFORMANCE = "performance"
    COST = "cost"


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: RecommendationType
    model: str
    issue: str
    suggestion: str


class OptimizationAdvisor:
    """Flags models with low success rates or an outsized cost share."""

    def __init__(
        self,
        low_success_rate_threshold: float = 80.0,
        high_cost_share_threshold: float = 50.0,
        cost_watch_model: str = COMPLEX_PROFILE,
    ) -> None:
        """Initialize optimization advisor.

        Args:
            low_success_rate_threshold: Success rate (percent) below which a
                performance recommendation is emitted
            high_cost_share_threshold: Cost share (percent) above which the
                watched model gets a cost recommendation
            cost_watch_model: Profile key whose cost share is watched
        """
        self._low_success_rate = low_success_rate_threshold
        self._high_cost_share = high_cost_share_threshold
        self._cost_watch_model = cost_watch_model

    def recommend(self, metrics: MetricsSnapshot) -> list[Recommendation]:
        recommendations: list[Recommendation] = []

        for model_name, stats in metrics.model_stats.items():
            if float(stats.success_rate) < self._low_success_rate:
                recommendations.append(
                    Recommendation(
                        type=RecommendationType.PERFORMANCE,
                        model=model_name,
                        issue="Low success rate",
                        suggestion="Consider routing more tasks to higher-accuracy model",
                    )
                )

            if (
                model_name == self._cost_watch_model
                and float(stats.cost_percentage) > self._high_cost_share
            ):
                recommendations.append(
                    Recommendation(
                        type=RecommendationType.COST,
                        model=model_name,
                        issue="High cost contribution",
                        suggestion=(
                            "Review task routing to ensure only complex tasks use this model"
                        ),
                    )
                )

        log.info(
            "optimization_advisor.recommendations",
            count=len(recommendations),
            models=sorted({r.model for r in recommendations}),
        )

        return recommendations
