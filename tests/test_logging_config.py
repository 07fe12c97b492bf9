"""
Tests for structured logging setup.
"""

import pytest
import structlog

from source_poller.config import PollerSettings
from source_poller.logging_config import setup_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.mark.parametrize(
    "log_format,renderer",
    [
        ("json", structlog.processors.JSONRenderer),
        ("console", structlog.dev.ConsoleRenderer),
    ],
)
def test_setup_logging_selects_renderer(log_format, renderer):
    """Test that the configured log format picks the final renderer."""
    setup_logging(PollerSettings(log_format=log_format, log_level="DEBUG"))

    config = structlog.get_config()
    assert structlog.is_configured()
    assert isinstance(config["processors"][-1], renderer)
    assert config["wrapper_class"] is structlog.stdlib.BoundLogger
