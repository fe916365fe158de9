"""
Logging setup and error tracking.
structlog for structured logs, Sentry for exceptions.
"""

import logging
import sys
from typing import Optional

import sentry_sdk
import structlog
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from copysensei.core.config import settings

logger = structlog.get_logger(__name__)

_sentry_initialized = False


def configure_logging() -> None:
    """Configure structlog renderers and level from settings."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def init_sentry() -> None:
    """Initialize Sentry error tracking."""
    global _sentry_initialized

    if _sentry_initialized or not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.sentry_environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        # Don't send PII
        send_default_pii=False,
    )

    _sentry_initialized = True
    logger.info(
        "Sentry initialized",
        environment=settings.sentry_environment,
        sample_rate=settings.sentry_traces_sample_rate,
    )


def capture_exception(error: Exception, context: Optional[dict] = None) -> None:
    """
    Capture an exception to Sentry with additional context.

    Args:
        error: The exception to capture
        context: Additional context to attach
    """
    if not settings.sentry_dsn:
        return

    if context:
        sentry_sdk.set_context("additional", context)

    sentry_sdk.capture_exception(error)


def set_user_context(user_id: str, email: Optional[str] = None) -> None:
    """Set user context for Sentry."""
    if not settings.sentry_dsn:
        return

    sentry_sdk.set_user({"id": user_id, "email": email})
