"""
Source Poller

Polls a remote payment source until it reaches a terminal status, with
bounded backoff and race-free cancellation.
"""

__version__ = "0.1.0"

from .config import PollerSettings, PollingConfig, get_settings
from .exceptions import (
    AttemptsExceededError,
    ConfigurationError,
    FetchError,
    SourcePollerError,
)
from .models import PollOutcome, PollState, Source, SourceStatus, is_terminal_status
from .polling import BackoffPolicy, CallbackFetcher, SourceFetcher, SourcePoller

__all__ = [
    "AttemptsExceededError",
    "BackoffPolicy",
    "CallbackFetcher",
    "ConfigurationError",
    "FetchError",
    "PollOutcome",
    "PollState",
    "PollerSettings",
    "PollingConfig",
    "Source",
    "SourceFetcher",
    "SourcePoller",
    "SourcePollerError",
    "SourceStatus",
    "get_settings",
    "is_terminal_status",
]
