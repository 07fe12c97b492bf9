"""
Backoff policy for the source poller.

Polls at a fixed interval for the first few attempts, then grows the
interval geometrically until it reaches a ceiling.
"""

from collections.abc import Iterator

from ..config import PollingConfig


class BackoffPolicy:
    """Computes the delay before the next poll from the attempts made so far."""

    def __init__(
        self,
        initial_delay: float,
        backoff_factor: float,
        max_delay: float,
        constant_attempts: int = 0,
    ):
        """
        Initialize the backoff policy.

        Args:
            initial_delay: Delay in seconds used for the first attempts
            backoff_factor: Growth factor once backoff starts (>= 1)
            max_delay: Upper bound for any delay (>= initial_delay)
            constant_attempts: Attempts polled at ``initial_delay`` before growth
        """
        if initial_delay <= 0:
            raise ValueError(f"initial_delay must be > 0, got {initial_delay}")
        if backoff_factor < 1.0:
            raise ValueError(f"backoff_factor must be >= 1, got {backoff_factor}")
        if max_delay < initial_delay:
            raise ValueError(
                f"max_delay ({max_delay}) must be >= initial_delay ({initial_delay})"
            )
        if constant_attempts < 0:
            raise ValueError(
                f"constant_attempts must be >= 0, got {constant_attempts}"
            )

        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.constant_attempts = constant_attempts

    @classmethod
    def from_config(cls, config: PollingConfig) -> "BackoffPolicy":
        """Build a policy from polling configuration."""
        return cls(
            initial_delay=config.initial_delay,
            backoff_factor=config.backoff_factor,
            max_delay=config.max_delay,
            constant_attempts=config.constant_attempts,
        )

    def delay(self, poll_count: int) -> float:
        """
        Get the delay before the next poll.

        Args:
            poll_count: Number of fetches issued so far

        Returns:
            Delay in seconds, never above ``max_delay``
        """
        if poll_count <= self.constant_attempts:
            return self.initial_delay

        exponent = poll_count - self.constant_attempts
        try:
            delay = self.initial_delay * self.backoff_factor**exponent
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def delays(self, count: int) -> Iterator[float]:
        """Yield the delays following each of the first ``count`` polls."""
        for poll_count in range(1, count + 1):
            yield self.delay(poll_count)

    def __repr__(self) -> str:
        return (
            f"BackoffPolicy(initial_delay={self.initial_delay}, "
            f"backoff_factor={self.backoff_factor}, max_delay={self.max_delay}, "
            f"constant_attempts={self.constant_attempts})"
        )
