"""
Domain models for the source poller.

Sources are Pydantic models; the poll outcome is a frozen dataclass.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceStatus(str, Enum):
    """Lifecycle status reported for a payment source."""

    PENDING = "pending"
    CHARGEABLE = "chargeable"
    CONSUMED = "consumed"
    CANCELED = "canceled"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "SourceStatus":
        """Map a raw status value to a known status, falling back to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


class Source(BaseModel):
    """A remote payment source as returned by the fetcher."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., description="Source identifier")
    status: SourceStatus = Field(
        default=SourceStatus.UNKNOWN, description="Current source status"
    )
    client_secret: str | None = Field(default=None, description="Client secret")
    amount: int | None = Field(default=None, description="Amount in minor units")
    currency: str | None = Field(default=None, description="ISO currency code")
    type: str | None = Field(default=None, description="Source type, e.g. card")
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> SourceStatus:
        """Accept unrecognised status strings instead of failing validation."""
        return SourceStatus.parse(v)


def is_terminal_status(status: Any) -> bool:
    """
    Default classifier: only a pending source is still expected to change.

    Failed and canceled sources are terminal too; the caller inspects the
    delivered resource's status to tell them apart from success.
    """
    return SourceStatus.parse(status) is not SourceStatus.PENDING


class PollState(str, Enum):
    """Lifecycle state of a poller."""

    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_final(self) -> bool:
        return self is not PollState.POLLING


@dataclass(frozen=True)
class PollOutcome:
    """Final result of a polling run."""

    state: PollState
    resource: Any | None = None
    error: Exception | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        """True when a terminal resource was delivered."""
        return self.state is PollState.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        return self.state is PollState.CANCELLED
