"""Tests for ModelRouter.

Tests cover:
- Routing table and primary fallback for unknown classifications
- select_model end to end, including usage recording
- get_model_config fallback and its warning diagnostic
- Advisory rate-limit availability checks
- Config export and construction from files and settings
"""

from __future__ import annotations

import dataclasses

import pytest
from structlog.testing import capture_logs

from task_router.config import Settings
from task_router.model_router.complexity import Classification
from task_router.model_router.router import ModelRouter, ModelSelection
from task_router.model_router.strategy import ConfigLoadError, parse_strategy


# ------------------------------------------------------------------ #
# Routing
# ------------------------------------------------------------------ #


@pytest.mark.parametrize(
    ("classification", "expected_key"),
    [
        (Classification.PLANNING, "planning"),
        (Classification.COMPLEX, "complex"),
        (Classification.SIMPLE, "primary"),
        ("unrecognized", "primary"),
    ],
)
def test_route_table(router, strategy, classification, expected_key):
    """Test each classification maps to its profile, unknown ones to primary."""
    analysis = router.analyze("Say hello")
    analysis = dataclasses.replace(analysis, classification=classification)

    assert router.route_key(analysis) == expected_key
    assert router.route(analysis) == strategy.models[expected_key]


def test_route_unrecognized_classification_logs_warning(router):
    """Test an unrecognized classification is routed to primary with a warning."""
    analysis = dataclasses.replace(router.analyze("Say hello"), classification="bogus")

    with capture_logs() as logs:
        profile = router.route(analysis)

    assert profile.name == "claude-3-5-sonnet"
    assert any(
        entry["event"] == "model_router.unrecognized_classification"
        and entry["log_level"] == "warning"
        for entry in logs
    )


def test_select_model_planning_scenario(router):
    """Test a roadmap task selects the planning profile."""
    selection = router.select_model("Plan the implementation roadmap for FCRA compliance features", {})

    assert isinstance(selection, ModelSelection)
    assert selection.model_key == "planning"
    assert selection.model.name == "o1-preview"
    assert selection.confidence == pytest.approx(0.90)
    assert selection.reasoning == ("Task involves strategic planning or analysis",)


def test_select_model_simple_task_uses_primary(router):
    """Test a task without complexity signals selects primary."""
    selection = router.select_model("Fix the typo in the login page header", {"fileCount": 1})

    assert selection.model_key == "primary"
    assert selection.model.name == "claude-3-5-sonnet"
    assert selection.confidence == pytest.approx(0.85)


def test_select_model_complex_task(router):
    """Test a high-scoring task selects the complex profile."""
    selection = router.select_model(
        "Refactor the security and performance integration for the migration"
    )

    assert selection.model_key == "complex"
    assert selection.analysis.complexity_score == 10


def test_select_model_records_usage(router):
    """Test select_model tracks one zero-token request for the selected profile."""
    router.select_model("Draft a roadmap")
    router.select_model("Say hello")

    metrics = router.get_metrics()
    assert metrics.total_requests == 2
    assert metrics.model_stats["planning"].usage == 1
    assert metrics.model_stats["primary"].usage == 1
    assert metrics.total_cost == 0.0


# ------------------------------------------------------------------ #
# Lookups
# ------------------------------------------------------------------ #


def test_get_model_config_known(router):
    """Test known profile keys resolve to their profile."""
    assert router.get_model_config("complex").name == "claude-opus-4"


def test_get_model_config_unknown_falls_back_to_primary(router):
    """Test unknown profile keys resolve to primary and emit a warning."""
    with capture_logs() as logs:
        profile = router.get_model_config("nonexistent")

    assert profile.name == "claude-3-5-sonnet"
    warnings = [entry for entry in logs if entry["event"] == "model_router.unknown_profile"]
    assert warnings
    assert warnings[0]["requested"] == "nonexistent"
    assert warnings[0]["fallback"] == "primary"


def test_resolve_or_default_returns_resolved_key(router):
    """Test the fallback policy reports which key was actually used."""
    assert router.resolve_or_default("planning")[0] == "planning"
    assert router.resolve_or_default("nonexistent")[0] == "primary"


# ------------------------------------------------------------------ #
# Availability
# ------------------------------------------------------------------ #


def test_unknown_model_is_unavailable(router):
    """Test availability is False for models absent from configuration."""
    assert router.check_model_availability("nonexistent") is False


def test_unbounded_model_always_available(router):
    """Test a profile without rate limits stays available."""
    for _ in range(100):
        router.track_usage("primary", "task")

    assert router.check_model_availability("primary") is True


def test_rate_limited_model_becomes_unavailable(router):
    """Test availability flips once tracked requests reach the limit."""
    assert router.check_model_availability("planning") is True

    router.track_usage("planning", "task")
    assert router.check_model_availability("planning") is True

    router.track_usage("planning", "task")
    assert router.check_model_availability("planning") is False


def test_select_model_does_not_consult_availability(router):
    """Test routing stays deterministic even when the limit is exhausted."""
    for _ in range(5):
        selection = router.select_model("Draft a roadmap")
        assert selection.model_key == "planning"

    assert router.check_model_availability("planning") is False


# ------------------------------------------------------------------ #
# Export and construction
# ------------------------------------------------------------------ #


def test_export_config(router):
    """Test export_config passes strategy sections through for downstream tools."""
    exported = router.export_config()

    assert set(exported) == {"models", "routing", "optimization", "integration"}
    assert exported["models"]["complex"]["costPerUnit"] == pytest.approx(0.000015)
    assert exported["models"]["complex"]["rateLimits"] == {"requestsPerMinute": 20}
    assert exported["models"]["primary"]["provider"] == "anthropic"
    assert exported["routing"] == {"default": "primary", "complexityThreshold": 7}
    assert exported["optimization"] == {"monthlyBudgetUsd": 500}
    assert exported["integration"] == {"autoSelectModel": True, "showModelReasoning": True}


def test_export_config_returns_copies(router):
    """Test mutating the export does not affect the router's strategy."""
    exported = router.export_config()
    exported["routing"]["default"] = "complex"

    assert router.strategy.routing_strategy["default"] == "primary"


def test_export_config_without_cline_section(strategy_document):
    """Test the whole integration section is exported when no Cline entry exists."""
    strategy_document["integrationSettings"] = {"webhook": "https://example.invalid"}
    router = ModelRouter(parse_strategy(strategy_document))

    assert router.export_config()["integration"] == {"webhook": "https://example.invalid"}


def test_from_config_file(strategy_path):
    """Test a router can be built straight from a strategy file."""
    router = ModelRouter.from_config_file(strategy_path)
    assert router.get_model_config("planning").name == "o1-preview"


def test_from_config_file_missing_aborts(tmp_path):
    """Test router construction fails fast when the strategy is missing."""
    with pytest.raises(ConfigLoadError):
        ModelRouter.from_config_file(tmp_path / "missing.json")


def test_from_settings(strategy_path):
    """Test settings supply the strategy path and tuning knobs."""
    settings = Settings(
        router_config_path=str(strategy_path),
        cost_projection_days=7,
        low_success_rate_threshold=95.0,
    )
    router = ModelRouter.from_settings(settings)

    router.track_usage("primary", "task", tokens=1000, success=True)
    router.track_usage("primary", "task", tokens=1000, success=False)
    metrics = router.get_metrics()

    assert metrics.cost_projection_days == 7
    assert metrics.estimated_monthly_cost == pytest.approx(metrics.total_cost * 7)
    assert [r.model for r in router.optimize_selection()] == ["primary"]
