"""Model router - task classification to backend model profile.

The router analyzes a task, maps its classification to one of the
configured model profiles, and records usage for metrics:

- planning -> models.planning
- complex  -> models.complex
- anything else (simple, unrecognized) -> models.primary

Lookups never fail at runtime. An unknown profile key resolves to primary
with a warning; a strategy missing one of the three routed profiles is
rejected when it is loaded.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from task_router.model_router.advisor import OptimizationAdvisor, Recommendation
from task_router.model_router.complexity import (
    Classification,
    TaskAnalysis,
    TaskAnalyzer,
    TaskContext,
)
from task_router.model_router.metrics import (
    DEFAULT_COST_PROJECTION_DAYS,
    MetricsReporter,
    MetricsSnapshot,
    UsageTracker,
)
from task_router.model_router.strategy import (
    COMPLEX_PROFILE,
    PLANNING_PROFILE,
    PRIMARY_PROFILE,
    ModelProfile,
    RoutingStrategy,
    load_strategy,
)

if TYPE_CHECKING:
    from task_router.config import Settings

log = structlog.get_logger(__name__)

ROUTING_TABLE: dict[str, str] = {
    Classification.PLANNING: PLANNING_PROFILE,
    Classification.COMPLEX: COMPLEX_PROFILE,
}

_INTEGRATION_EXPORT_KEY = "clineConfiguration"


@dataclass(frozen=True)
class ModelSelection:
    """Outcome of select_model.

    Attributes:
        model: Selected model profile
        model_key: Profile key the model was resolved from
        reasoning: Reasoning lines from the task analysis
        confidence: Classification confidence
        analysis: Full task analysis
    """

    model: ModelProfile
    model_key: str
    reasoning: tuple[str, ...]
    confidence: float
    analysis: TaskAnalysis


class ModelRouter:
    """Routes tasks to model profiles and tracks their usage.

    One instance owns its usage metrics; they live for the lifetime of the
    instance and are never persisted.
    """

    def __init__(
        self,
        strategy: RoutingStrategy,
        *,
        analyzer: TaskAnalyzer | None = None,
        advisor: OptimizationAdvisor | None = None,
        cost_projection_days: float = DEFAULT_COST_PROJECTION_DAYS,
    ) -> None:
        """Initialize model router with a loaded strategy.

        Args:
            strategy: Validated routing strategy
            analyzer: Optional TaskAnalyzer. Defaults to the built-in rules.
            advisor: Optional OptimizationAdvisor with custom thresholds
            cost_projection_days: Multiplier for estimated monthly cost
        """
        self._strategy = strategy
        self._analyzer = analyzer or TaskAnalyzer()
        self._advisor = advisor or OptimizationAdvisor()
        self._tracker = UsageTracker(strategy)
        self._reporter = MetricsReporter(self._tracker, cost_projection_days)

        log.info(
            "model_router.initialized",
            profiles={key: profile.name for key, profile in strategy.models.items()},
            cost_projection_days=cost_projection_days,
        )

    @classmethod
    def from_config_file(cls, path: Path | str, **kwargs: Any) -> ModelRouter:
        """Load a strategy file and build a router from it.

        Raises:
            ConfigLoadError: If the strategy cannot be loaded
        """
        return cls(load_strategy(path), **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> ModelRouter:
        """Build a router from process settings.

        Raises:
            ConfigLoadError: If the configured strategy cannot be loaded
        """
        advisor = OptimizationAdvisor(
            low_success_rate_threshold=settings.low_success_rate_threshold,
            high_cost_share_threshold=settings.high_cost_share_threshold,
        )
        return cls.from_config_file(
            settings.router_config_path,
            advisor=advisor,
            cost_projection_days=settings.cost_projection_days,
        )

    @property
    def strategy(self) -> RoutingStrategy:
        return self._strategy

    @property
    def tracker(self) -> UsageTracker:
        return self._tracker

    # ------------------------------------------------------------------ #
    # Routing
    # ------------------------------------------------------------------ #

    def resolve_or_default(self, model_key: str) -> tuple[str, ModelProfile]:
        """Resolve a profile key, falling back to primary if it is unknown.

        Returns:
            Tuple of (resolved key, profile)
        """
        profile = self._strategy.profile(model_key)
        if profile is not None:
            return model_key, profile

        log.warning(
            "model_router.unknown_profile",
            requested=model_key,
            fallback=PRIMARY_PROFILE,
        )
        return PRIMARY_PROFILE, self._strategy.models[PRIMARY_PROFILE]

    def route_key(self, analysis: TaskAnalysis) -> str:
        """Map an analysis classification to a profile key."""
        classification = analysis.classification
        key = ROUTING_TABLE.get(classification)
        if key is not None:
            return key

        if classification != Classification.SIMPLE:
            log.warning(
                "model_router.unrecognized_classification",
                classification=str(classification),
                fallback=PRIMARY_PROFILE,
            )
        return PRIMARY_PROFILE

    def route(self, analysis: TaskAnalysis) -> ModelProfile:
        """Select the model profile for an analysis. Never fails."""
        _, profile = self.resolve_or_default(self.route_key(analysis))
        return profile

    def analyze(
        self,
        text: str,
        context: TaskContext | Mapping[str, Any] | None = None,
    ) -> TaskAnalysis:
        return self._analyzer.analyze(text, context)

    def select_model(
        self,
        text: str,
        context: TaskContext | Mapping[str, Any] | None = None,
    ) -> ModelSelection:
        """Analyze a task, route it, and record the request.

        The request is tracked against the selected profile with zero
        tokens; callers report real token counts and outcomes through
        track_usage once the model call completes.

        Args:
            text: Free-text task description
            context: Optional TaskContext or camelCase mapping

        Returns:
            ModelSelection with the profile, reasoning and confidence
        """
        analysis = self.analyze(text, context)
        model_key, profile = self.resolve_or_default(self.route_key(analysis))

        self._tracker.track_usage(model_key, text)

        log.info(
            "model_router.route_selected",
            classification=str(analysis.classification),
            complexity_score=analysis.complexity_score,
            task_type=str(analysis.task_type),
            model_key=model_key,
            model=profile.name,
            confidence=analysis.confidence,
        )

        return ModelSelection(
            model=profile,
            model_key=model_key,
            reasoning=analysis.reasoning,
            confidence=analysis.confidence,
            analysis=analysis,
        )

    # ------------------------------------------------------------------ #
    # Configuration lookups
    # ------------------------------------------------------------------ #

    def get_model_config(self, model_name: str) -> ModelProfile:
        """Get a profile by key, falling back to primary if unknown."""
        _, profile = self.resolve_or_default(model_name)
        return profile

    def check_model_availability(self, model_name: str) -> bool:
        """Advisory rate-limit check.

        Compares the requests tracked so far for the model against its
        configured requests-per-minute limit. Unknown models are
        unavailable; unbounded models are always available. The check is
        not atomic with any later track_usage call and select_model does
        not consult it.
        """
        profile = self._strategy.profile(model_name)
        if profile is None:
            return False

        if profile.rate_limits.is_unbounded:
            return True

        current_usage = self._tracker.request_count(model_name)
        available = current_usage < profile.rate_limits.requests_per_minute
        if not available:
            log.info(
                "model_router.rate_limit_reached",
                model=model_name,
                current_usage=current_usage,
                limit=profile.rate_limits.requests_per_minute,
            )
        return available

    # ------------------------------------------------------------------ #
    # Usage, metrics and advice
    # ------------------------------------------------------------------ #

    def track_usage(
        self,
        model_name: str,
        task: str,
        tokens: int = 0,
        success: bool = True,
    ) -> None:
        """Record the outcome of a model call. See UsageTracker.track_usage."""
        self._tracker.track_usage(model_name, task, tokens=tokens, success=success)

    def get_metrics(self) -> MetricsSnapshot:
        return self._reporter.get_metrics()

    def optimize_selection(self) -> list[Recommendation]:
        """Advisory recommendations from the current metrics. No action is taken."""
        return self._advisor.recommend(self.get_metrics())

    def export_config(self) -> dict[str, Any]:
        """Export the strategy for downstream tooling.

        Returns:
            Dict with models, routing, optimization and integration. The
            integration entry is integrationSettings.clineConfiguration
            when present, otherwise the whole integration section.
        """
        integration = self._strategy.integration_settings
        if integration is not None and _INTEGRATION_EXPORT_KEY in integration:
            integration = integration[_INTEGRATION_EXPORT_KEY]

        return {
            "models": {
                key: profile.model_dump(by_alias=True)
                for key, profile in self._strategy.models.items()
            },
            "routing": copy.deepcopy(self._strategy.routing_strategy),
            "optimization": copy.deepcopy(self._strategy.cost_optimization),
            "integration": copy.deepcopy(integration),
        }
