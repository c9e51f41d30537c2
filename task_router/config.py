"""
Process configuration via pydantic-settings.

Settings are loaded from environment variables (or a .env file in dev).
The routing strategy itself (model profiles, rate limits, costs) lives in a
separate JSON document whose path is configured here; see
task_router.model_router.strategy.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEV = "dev"
    PROD = "prod"
    TEST = "test"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Application
    # ------------------------------------------------------------------ #
    environment: Environment = Environment.DEV
    log_level: str = Field(
        default="INFO",
        description="Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of the dev console format",
    )

    # ------------------------------------------------------------------ #
    # Model Routing
    # ------------------------------------------------------------------ #
    router_config_path: str = Field(
        default="cline_config/multi-model-strategy.json",
        description="Path to the JSON routing strategy (model profiles, costs, limits)",
    )
    cost_projection_days: float = Field(
        default=30.0,
        gt=0,
        description=(
            "Multiplier applied to accumulated cost to estimate monthly spend. "
            "Assumes the tracked window covers roughly one day of activity."
        ),
    )

    # ------------------------------------------------------------------ #
    # Optimization Advisor
    # ------------------------------------------------------------------ #
    low_success_rate_threshold: float = Field(
        default=80.0,
        ge=0,
        le=100,
        description="Success rate (percent) below which a performance recommendation fires",
    )
    high_cost_share_threshold: float = Field(
        default=50.0,
        ge=0,
        le=100,
        description="Cost share (percent) above which the complex model gets a cost recommendation",
    )

    @property
    def is_dev(self) -> bool:
        return self.environment in (Environment.DEV, Environment.TEST)

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PROD


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings singleton.

    Call directly from startup code or scripts; tests should call
    get_settings.cache_clear() after changing the environment.
    """
    return Settings()
