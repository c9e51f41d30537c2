"""Logging setup for the task router."""

from task_router.telemetry.logging import clear_context, configure_logging

__all__ = ["clear_context", "configure_logging"]
