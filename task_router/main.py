"""Process entry point: settings, logging, and the shared router."""

from __future__ import annotations

import structlog

from task_router.config import Settings, get_settings
from task_router.model_router import ModelRouter
from task_router.telemetry.logging import configure_logging

log = structlog.get_logger(__name__)


def create_router(settings: Settings | None = None) -> ModelRouter:
    """Router factory.

    Configures logging before anything else logs, then loads the strategy
    file named by ``settings.router_config_path``.

    Raises:
        ConfigLoadError: If the configured strategy cannot be loaded
    """
    settings = settings or get_settings()

    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)

    log.info(
        "task_router.starting",
        environment=settings.environment,
        router_config_path=settings.router_config_path,
    )

    return ModelRouter.from_settings(settings)
