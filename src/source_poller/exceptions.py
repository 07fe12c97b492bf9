"""
Custom exceptions for the source poller.

This module defines the error taxonomy delivered through the poller's
completion channel. Stopping a poller is silent and never produces an error.
"""

from typing import Any


class SourcePollerError(Exception):
    """Base exception for source poller errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "SOURCE_POLLER_ERROR"
        self.context = context or {}


class FetchError(SourcePollerError):
    """Exception for a failed source lookup (network, auth, not-found, decode)."""

    def __init__(
        self,
        message: str,
        source_id: str | None = None,
        retryable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "FETCH_ERROR", context)
        self.source_id = source_id
        self.retryable = retryable


class AttemptsExceededError(SourcePollerError):
    """Exception raised when a source never reached a terminal state."""

    def __init__(
        self,
        attempts: int,
        last_resource: Any | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"Source did not reach a terminal state after {attempts} attempts",
            "ATTEMPTS_EXCEEDED",
            context,
        )
        self.attempts = attempts
        self.last_resource = last_resource


class ConfigurationError(SourcePollerError):
    """Exception for invalid poller construction arguments."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "CONFIGURATION_ERROR", context)
