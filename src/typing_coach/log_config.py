"""structlog configuration for hosts embedding the engine."""

import logging
import os

import structlog


def configure_logging(json_output: bool | None = None, level: int | None = None) -> None:
    """Configure structlog for the host process.

    The engine never configures logging on import; call this once at startup.

    Args:
        json_output: Render JSON lines. Defaults to True when ENV=production.
        level: Minimum log level. Defaults to INFO in production, DEBUG otherwise.
    """
    is_production = os.getenv("ENV", "development").lower() == "production"
    if json_output is None:
        json_output = is_production
    if level is None:
        level = logging.INFO if is_production else logging.DEBUG

    if json_output:
        # Production: JSON format for machine parsing
        renderer = structlog.processors.JSONRenderer()
    else:
        # Development: console format for human readability
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
