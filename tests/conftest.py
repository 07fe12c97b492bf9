"""
Pytest configuration and fixtures for source poller tests.
"""

import pytest

from source_poller.config import PollingConfig, reset_settings
from source_poller.models import Source, SourceStatus


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make sure cached settings never leak between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fast_config() -> PollingConfig:
    """Polling configuration with millisecond delays."""
    return PollingConfig(
        initial_delay=0.001,
        backoff_factor=2.0,
        max_delay=0.004,
        constant_attempts=1,
        max_attempts=5,
    )


@pytest.fixture
def slow_config() -> PollingConfig:
    """Polling configuration whose timers never fire during a test."""
    return PollingConfig(initial_delay=30.0, max_delay=60.0, max_attempts=5)


@pytest.fixture
def pending_source() -> Source:
    return Source(id="src_123", status=SourceStatus.PENDING, client_secret="src_client_secret_abc")


@pytest.fixture
def chargeable_source() -> Source:
    return Source(
        id="src_123",
        status=SourceStatus.CHARGEABLE,
        client_secret="src_client_secret_abc",
        amount=1099,
        currency="eur",
        type="three_d_secure",
    )
