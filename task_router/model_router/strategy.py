"""Routing strategy loading and validation.

The routing strategy is a JSON document describing the backend model
profiles the router can select from. It is read once when the router is
constructed and treated as immutable afterwards.

Accepted shapes::

    {"models": {"primary": {...}, "complex": {...}, "planning": {...}}, ...}

or the same payload wrapped in ``aiModelStrategy`` (the layout written to
``cline_config/multi-model-strategy.json`` by the setup scripts).

Each profile carries a ``name``, a ``costPerUnit`` (``costPerToken`` is
accepted as a legacy alias) and optional ``rateLimits.requestsPerMinute``.
A missing, null, or zero per-minute limit means the profile is unbounded.

Loading is fail-fast: any read, parse, or validation problem raises
ConfigLoadError and no router is built.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

log = structlog.get_logger(__name__)

# Profiles the routing table addresses directly
PRIMARY_PROFILE = "primary"
COMPLEX_PROFILE = "complex"
PLANNING_PROFILE = "planning"
REQUIRED_PROFILES = (PRIMARY_PROFILE, COMPLEX_PROFILE, PLANNING_PROFILE)

_WRAPPER_KEY = "aiModelStrategy"


class ConfigLoadError(Exception):
    """Raised when the routing strategy cannot be read or validated."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load routing strategy from {path}: {reason}")


class RateLimits(BaseModel):
    """Per-profile request limits."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    requests_per_minute: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("requestsPerMinute", "requests_per_minute"),
        serialization_alias="requestsPerMinute",
    )

    @property
    def is_unbounded(self) -> bool:
        return not self.requests_per_minute


class ModelProfile(BaseModel):
    """A named backend model configuration.

    Unknown keys (provider, maxTokens, ...) are kept so that
    export_config() can hand the profile to downstream tooling unchanged.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str = Field(min_length=1)
    cost_per_unit: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("costPerUnit", "costPerToken", "cost_per_unit"),
        serialization_alias="costPerUnit",
    )
    rate_limits: RateLimits = Field(
        default_factory=RateLimits,
        validation_alias=AliasChoices("rateLimits", "rate_limits"),
        serialization_alias="rateLimits",
    )

    @field_validator("rate_limits", mode="before")
    @classmethod
    def _null_rate_limits(cls, value: Any) -> Any:
        return {} if value is None else value


class RoutingStrategy(BaseModel):
    """Validated routing strategy document.

    Attributes:
        models: Profile key -> ModelProfile. Always contains primary,
            complex and planning.
        routing_strategy: Free-form routing section, passed through
        cost_optimization: Free-form cost section, passed through
        integration_settings: Free-form integration section, passed through
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    models: dict[str, ModelProfile]
    routing_strategy: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("routingStrategy", "routing_strategy"),
        serialization_alias="routingStrategy",
    )
    cost_optimization: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("costOptimization", "cost_optimization"),
        serialization_alias="costOptimization",
    )
    integration_settings: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("integrationSettings", "integration_settings"),
        serialization_alias="integrationSettings",
    )

    @model_validator(mode="after")
    def _require_routed_profiles(self) -> RoutingStrategy:
        missing = [key for key in REQUIRED_PROFILES if key not in self.models]
        if missing:
            raise ValueError(f"models is missing required profiles: {', '.join(missing)}")
        return self

    def profile(self, key: str) -> ModelProfile | None:
        """Look up a profile by key without any fallback."""
        return self.models.get(key)


def parse_strategy(document: Any, path: Path | str = "<memory>") -> RoutingStrategy:
    """Validate an already-decoded strategy document.

    Args:
        document: Decoded JSON payload
        path: Source path, used only for error messages

    Returns:
        Validated RoutingStrategy

    Raises:
        ConfigLoadError: If the document does not describe a valid strategy
    """
    path = Path(path)

    if isinstance(document, dict) and _WRAPPER_KEY in document:
        document = document[_WRAPPER_KEY]

    if not isinstance(document, dict):
        log.error("routing_strategy.invalid_document", path=str(path))
        raise ConfigLoadError(path, "top-level value must be a JSON object")

    try:
        strategy = RoutingStrategy.model_validate(document)
    except ValidationError as exc:
        log.error(
            "routing_strategy.validation_failed",
            path=str(path),
            errors=exc.error_count(),
        )
        raise ConfigLoadError(path, str(exc)) from exc

    log.info(
        "routing_strategy.loaded",
        path=str(path),
        profiles=sorted(strategy.models),
    )
    return strategy


def load_strategy(path: Path | str) -> RoutingStrategy:
    """Read and validate a routing strategy JSON file.

    Args:
        path: Location of the strategy document

    Returns:
        Validated RoutingStrategy

    Raises:
        ConfigLoadError: If the file is missing, unreadable, not JSON, or
            does not describe a valid strategy
    """
    path = Path(path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        log.error("routing_strategy.read_failed", path=str(path), error=str(exc))
        raise ConfigLoadError(path, str(exc)) from exc

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        log.error("routing_strategy.parse_failed", path=str(path), error=str(exc))
        raise ConfigLoadError(path, f"invalid JSON: {exc}") from exc

    return parse_strategy(document, path)
