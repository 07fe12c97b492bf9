"""
Structured logging setup for the source poller.
"""

import logging

import structlog

from .config import PollerSettings, get_settings


def setup_logging(settings: PollerSettings | None = None) -> None:
    """Configure structured logging."""
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level), format="%(message)s"
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if settings.log_format == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
