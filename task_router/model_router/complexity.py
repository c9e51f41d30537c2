"""Task analysis for model routing.

The TaskAnalyzer turns a free-text task description plus an optional
context into a TaskAnalysis. Classification precedence is planning, then
complex, then simple, so a planning keyword wins however high the
complexity score is.

All keyword matching is substring matching on the lower-cased text, so
"planning" matches "plan" and "tests" matches "test".
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

log = structlog.get_logger(__name__)

MAX_COMPLEXITY_SCORE = 10
COMPLEX_SCORE_THRESHOLD = 7


class TaskType(StrEnum):
    CODE_GENERATION = "code_generation"
    TEST_CREATION = "test_creation"
    DOCUMENTATION = "documentation"
    DEBUGGING = "debugging"
    REFACTORING = "refactoring"
    ANALYSIS = "analysis"
    GENERAL = "general"


class Classification(StrEnum):
    PLANNING = "planning"
    COMPLEX = "complex"
    SIMPLE = "simple"


# ------------------------------------------------------------------ #
# Keyword tables
# ------------------------------------------------------------------ #

ARCHITECTURAL_KEYWORDS = (
    "architecture",
    "refactor",
    "optimize",
    "security",
    "compliance",
    "performance",
    "integration",
    "migration",
)

DOMAIN_KEYWORDS = (
    "credit",
    "fcra",
    "facta",
    "compliance",
    "audit",
    "dispute",
    "financial",
    "pii",
    "encryption",
)

PLANNING_KEYWORDS = (
    "plan",
    "strategy",
    "roadmap",
    "assessment",
    "analysis",
    "design",
    "architecture",
    "approach",
    "requirements",
    "specification",
    "breakdown",
    "estimate",
)

# Checked in this order; the first category with a hit wins
TASK_TYPE_KEYWORDS: dict[TaskType, tuple[str, ...]] = {
    TaskType.CODE_GENERATION: ("create", "implement", "build", "develop", "generate"),
    TaskType.TEST_CREATION: ("test", "spec", "coverage", "unittest", "e2e"),
    TaskType.DOCUMENTATION: ("document", "readme", "guide", "explain", "comment"),
    TaskType.DEBUGGING: ("debug", "fix", "error", "bug", "issue", "troubleshoot"),
    TaskType.REFACTORING: ("refactor", "restructure", "reorganize", "optimize"),
    TaskType.ANALYSIS: ("analyze", "review", "assess", "evaluate", "examine"),
}

DOMAIN_TAG_KEYWORDS: dict[str, tuple[str, ...]] = {
    "financial": ("credit", "score", "report", "financial", "loan"),
    "compliance": ("fcra", "facta", "compliance", "audit", "regulation"),
    "security": ("security", "encryption", "pii", "auth", "privacy"),
    "performance": ("performance", "optimize", "cache", "memory", "speed"),
}

COMPLEX_TASK_PATTERNS = (
    re.compile(r"credit\s+(score|report|analysis)", re.IGNORECASE),
    re.compile(r"dispute\s+(resolution|processing)", re.IGNORECASE),
    re.compile(r"compliance\s+(validation|review)", re.IGNORECASE),
    re.compile(r"security\s+(audit|review)", re.IGNORECASE),
    re.compile(r"performance\s+(optimization|analysis)", re.IGNORECASE),
)


# ------------------------------------------------------------------ #
# Input / output types
# ------------------------------------------------------------------ #


class TaskContext(BaseModel):
    """Optional structured context describing the task.

    Accepts camelCase keys (``fileCount``, ``requiresComplianceReview``)
    as sent by the orchestration scripts, or snake_case field names.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    file_count: int | None = Field(default=None, ge=0)
    requires_compliance_review: bool = False
    affects_multiple_services: bool = False
    has_security_implications: bool = False
    urgency: Literal["low", "normal", "high"] = "normal"
    user_experience: str = "intermediate"
    budget_constraint: bool = False
    quality_requirement: str = "standard"

    @field_validator("*", mode="before")
    @classmethod
    def null_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        # JSON callers forward null for fields they did not set
        if value is None:
            return cls.model_fields[info.field_name].get_default()
        return value

    @property
    def effective_file_count(self) -> int:
        # Unset (or zero) counts as a single-file change
        return self.file_count or 1


@dataclass(frozen=True)
class TaskAnalysis:
    """Result of analyzing a task description.

    Attributes:
        complexity_score: Clamped complexity score (0-10)
        task_type: First matching task category
        domain_tags: Every domain keyword group that matched
        classification: Routing category
        confidence: Fixed confidence for the classification
        reasoning: Human-readable explanation, in evaluation order
        context_factors: Read-only informational context (urgency, experience,
            budget, quality). Excluded from the hash.
    """

    complexity_score: int
    task_type: TaskType
    domain_tags: frozenset[str]
    classification: Classification
    confidence: float
    reasoning: tuple[str, ...] = ()
    context_factors: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def __post_init__(self) -> None:
        """Validate score and confidence ranges."""
        if not 0 <= self.complexity_score <= MAX_COMPLEXITY_SCORE:
            raise ValueError(
                f"Complexity score must be 0-{MAX_COMPLEXITY_SCORE}, got {self.complexity_score}"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")


# ------------------------------------------------------------------ #
# Rule tables
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class ScoringRule:
    """Adds ``weight`` to the complexity score when ``applies`` is true."""

    name: str
    weight: int
    applies: Callable[[str, TaskContext], bool]


@dataclass(frozen=True)
class ClassificationRule:
    """Assigns a classification when ``matches`` is true.

    ``matches`` receives the raw task text, the context and the
    complexity score. ``reason`` renders the reasoning line from the score.
    """

    classification: Classification
    confidence: float
    matches: Callable[[str, TaskContext, int], bool]
    reason: Callable[[int], str]


def _keyword_rules(prefix: str, keywords: tuple[str, ...], weight: int) -> list[ScoringRule]:
    return [
        ScoringRule(
            name=f"{prefix}:{keyword}",
            weight=weight,
            applies=lambda text, _ctx, keyword=keyword: keyword in text,
        )
        for keyword in keywords
    ]


SCORING_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("file_count:many", 3, lambda _text, ctx: ctx.effective_file_count > 5),
    ScoringRule("file_count:several", 1, lambda _text, ctx: 2 < ctx.effective_file_count <= 5),
    *_keyword_rules("architectural", ARCHITECTURAL_KEYWORDS, 2),
    *_keyword_rules("domain", DOMAIN_KEYWORDS, 1),
    ScoringRule("requires_compliance_review", 3, lambda _text, ctx: ctx.requires_compliance_review),
    ScoringRule("affects_multiple_services", 2, lambda _text, ctx: ctx.affects_multiple_services),
    ScoringRule("has_security_implications", 2, lambda _text, ctx: ctx.has_security_implications),
)


def is_planning_task(text: str) -> bool:
    """Return True if the text contains any planning keyword."""
    text_lower = text.lower()
    return any(keyword in text_lower for keyword in PLANNING_KEYWORDS)


def is_complex_task(text: str, context: TaskContext) -> bool:
    """Structural complexity check, independent of the numeric score.

    True for multi-file work (more than 3 files), compliance review,
    security implications, or text matching a complex domain phrase.
    """
    if context.effective_file_count > 3:
        return True
    if context.requires_compliance_review or context.has_security_implications:
        return True
    return any(pattern.search(text) for pattern in COMPLEX_TASK_PATTERNS)


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        classification=Classification.PLANNING,
        confidence=0.90,
        matches=lambda text, _ctx, _score: is_planning_task(text),
        reason=lambda _score: "Task involves strategic planning or analysis",
    ),
    ClassificationRule(
        classification=Classification.COMPLEX,
        confidence=0.80,
        matches=lambda text, ctx, score: (
            score >= COMPLEX_SCORE_THRESHOLD or is_complex_task(text, ctx)
        ),
        reason=lambda score: f"High complexity score: {score}",
    ),
    ClassificationRule(
        classification=Classification.SIMPLE,
        confidence=0.85,
        matches=lambda _text, _ctx, _score: True,
        reason=lambda _score: "Standard task with established patterns",
    ),
)


# ------------------------------------------------------------------ #
# Analysis functions
# ------------------------------------------------------------------ #


def coerce_context(context: TaskContext | Mapping[str, Any] | None) -> TaskContext:
    """Accept a TaskContext, a plain mapping, or None."""
    if context is None:
        return TaskContext()
    if isinstance(context, TaskContext):
        return context
    return TaskContext.model_validate(dict(context))


def calculate_complexity(
    text: str,
    context: TaskContext,
    rules: tuple[ScoringRule, ...] = SCORING_RULES,
) -> int:
    """Sum the weights of every matching scoring rule, clamped to 0-10."""
    text_lower = text.lower()
    score = sum(rule.weight for rule in rules if rule.applies(text_lower, context))
    return max(0, min(score, MAX_COMPLEXITY_SCORE))


def classify_task_type(text: str) -> TaskType:
    text_lower = text.lower()
    for task_type, keywords in TASK_TYPE_KEYWORDS.items():
        if any(keyword in text_lower for keyword in keywords):
            return task_type
    return TaskType.GENERAL


def detect_domains(text: str) -> frozenset[str]:
    text_lower = text.lower()
    return frozenset(
        domain
        for domain, keywords in DOMAIN_TAG_KEYWORDS.items()
        if any(keyword in text_lower for keyword in keywords)
    )


def context_factors(context: TaskContext) -> dict[str, Any]:
    return {
        "urgency": context.urgency,
        "user_experience": context.user_experience,
        "budget_constraint": context.budget_constraint,
        "quality_requirement": context.quality_requirement,
    }


class TaskAnalyzer:
    """Classifies tasks for routing using the rule tables above.

    The analyzer is stateless; one instance can be shared across threads.
    """

    def __init__(
        self,
        scoring_rules: tuple[ScoringRule, ...] = SCORING_RULES,
        classification_rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
    ) -> None:
        """Initialize task analyzer.

        Args:
            scoring_rules: Ordered complexity scoring rules
            classification_rules: Ordered classification rules. The last
                rule should always match.
        """
        self._scoring_rules = scoring_rules
        self._classification_rules = classification_rules

    def analyze(
        self,
        text: str,
        context: TaskContext | Mapping[str, Any] | None = None,
    ) -> TaskAnalysis:
        """Analyze a task description.

        Args:
            text: Free-text task description
            context: Optional TaskContext or camelCase mapping

        Returns:
            TaskAnalysis with score, type, domains and classification
        """
        ctx = coerce_context(context)
        score = calculate_complexity(text, ctx, self._scoring_rules)

        rule = next(
            (r for r in self._classification_rules if r.matches(text, ctx, score)),
            self._classification_rules[-1],
        )

        analysis = TaskAnalysis(
            complexity_score=score,
            task_type=classify_task_type(text),
            domain_tags=detect_domains(text),
            classification=rule.classification,
            confidence=rule.confidence,
            reasoning=(rule.reason(score),),
            context_factors=MappingProxyType(context_factors(ctx)),
        )

        log.debug(
            "task_analyzer.analyzed",
            complexity_score=analysis.complexity_score,
            task_type=analysis.task_type.value,
            domains=sorted(analysis.domain_tags),
            classification=analysis.classification.value,
            confidence=analysis.confidence,
        )

        return analysis
