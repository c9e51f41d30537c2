"""
Shared test fixtures for pytest.

Provides common test data for all test modules:
- strategy_document: Routing strategy payload (camelCase, as on disk)
- strategy_path: The same payload written to a temporary JSON file
- strategy: Validated RoutingStrategy
- router: Fresh ModelRouter with empty metrics
"""

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from task_router.config import get_settings
from task_router.model_router.router import ModelRouter
from task_router.model_router.strategy import RoutingStrategy, parse_strategy

STRATEGY_DOCUMENT: dict[str, Any] = {
    "models": {
        "primary": {
            "name": "claude-3-5-sonnet",
            "provider": "anthropic",
            "costPerUnit": 0.000003,
        },
        "complex": {
            "name": "claude-opus-4",
            "provider": "anthropic",
            "costPerUnit": 0.000015,
            "rateLimits": {"requestsPerMinute": 20},
        },
        "planning": {
            "name": "o1-preview",
            "provider": "openai",
            "costPerUnit": 0.00006,
            "rateLimits": {"requestsPerMinute": 2},
        },
    },
    "routingStrategy": {"default": "primary", "complexityThreshold": 7},
    "costOptimization": {"monthlyBudgetUsd": 500},
    "integrationSettings": {
        "clineConfiguration": {"autoSelectModel": True, "showModelReasoning": True},
    },
}


# ------------------------------------------------------------------ #
# Session-scoped: clear settings cache between test sessions
# ------------------------------------------------------------------ #

@pytest.fixture(autouse=True, scope="session")
def _clear_settings_cache():
    """Clear the lru_cache on get_settings so test overrides take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ------------------------------------------------------------------ #
# Strategy fixtures
# ------------------------------------------------------------------ #

@pytest.fixture
def strategy_document() -> dict[str, Any]:
    """Mutable copy of the test routing strategy."""
    return copy.deepcopy(STRATEGY_DOCUMENT)


@pytest.fixture
def strategy_path(tmp_path: Path, strategy_document: dict[str, Any]) -> Path:
    """Routing strategy written to a temporary JSON file."""
    path = tmp_path / "multi-model-strategy.json"
    path.write_text(json.dumps(strategy_document), encoding="utf-8")
    return path


@pytest.fixture
def strategy(strategy_document: dict[str, Any]) -> RoutingStrategy:
    """Validated routing strategy."""
    return parse_strategy(strategy_document)


@pytest.fixture
def router(strategy: RoutingStrategy) -> ModelRouter:
    """Fresh router with no tracked usage."""
    return ModelRouter(strategy)
