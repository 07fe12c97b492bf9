"""
Polling components for the source poller.

This package contains the poller state machine, its backoff policy and the
fetcher capability it consumes.
"""

from .backoff import BackoffPolicy
from .fetcher import CallbackFetcher, SourceFetcher
from .poller import SourcePoller

__all__ = ["BackoffPolicy", "CallbackFetcher", "SourceFetcher", "SourcePoller"]
