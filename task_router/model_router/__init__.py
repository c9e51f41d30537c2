"""Task routing across configured AI model profiles.

This package selects which backend model profile should handle a task,
based on a rule-driven analysis of the task text and context:
- Task analysis (complexity score, task type, domains, classification)
- Deterministic routing table with a primary fallback
- In-memory usage and cost tracking
- Metrics snapshots and advisory optimization recommendations

Metrics live only for the lifetime of a ModelRouter instance.
"""

from __future__ import annotations

from task_router.model_router.advisor import OptimizationAdvisor, Recommendation
from task_router.model_router.complexity import TaskAnalysis, TaskAnalyzer, TaskContext
from task_router.model_router.metrics import MetricsSnapshot, UsageTracker
from task_router.model_router.router import ModelRouter, ModelSelection
from task_router.model_router.strategy import ConfigLoadError, RoutingStrategy

__all__ = [
    "ConfigLoadError",
    "MetricsSnapshot",
    "ModelRouter",
    "ModelSelection",
    "OptimizationAdvisor",
    "Recommendation",
    "RoutingStrategy",
    "TaskAnalysis",
    "TaskAnalyzer",
    "TaskContext",
    "UsageTracker",
]
