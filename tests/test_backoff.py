"""
Tests for the polling backoff policy.
"""

import pytest

from source_poller.config import PollingConfig
from source_poller.polling.backoff import BackoffPolicy


class TestBackoffPolicy:
    """Test the BackoffPolicy delay curve."""

    def test_default_curve(self):
        """Test the delays produced by the default configuration."""
        policy = BackoffPolicy.from_config(PollingConfig())

        assert list(policy.delays(8)) == [1.5, 1.5, 1.5, 3.0, 6.0, 12.0, 24.0, 24.0]

    def test_constant_phase(self):
        """Test that the first attempts use the initial delay."""
        policy = BackoffPolicy(
            initial_delay=2.0, backoff_factor=3.0, max_delay=100.0, constant_attempts=4
        )

        assert [policy.delay(n) for n in range(1, 5)] == [2.0, 2.0, 2.0, 2.0]
        assert policy.delay(5) == 6.0
        assert policy.delay(6) == 18.0

    def test_no_constant_phase(self):
        """Test that growth starts at once when constant_attempts is zero."""
        policy = BackoffPolicy(initial_delay=1.0, backoff_factor=2.0, max_delay=10.0)

        assert policy.delay(0) == 1.0
        assert policy.delay(1) == 2.0
        assert policy.delay(3) == 8.0
        assert policy.delay(4) == 10.0

    def test_factor_of_one_is_fixed_interval(self):
        """Test that a factor of one keeps a fixed polling interval."""
        policy = BackoffPolicy(initial_delay=5.0, backoff_factor=1.0, max_delay=5.0)

        assert set(policy.delays(50)) == {5.0}

    @pytest.mark.parametrize(
        "initial_delay,backoff_factor,max_delay,constant_attempts",
        [
            (1.5, 2.0, 24.0, 3),
            (0.1, 1.1, 0.5, 0),
            (1.0, 10.0, 1000.0, 1),
            (3.0, 1.0, 3.0, 5),
            (0.25, 1.5, 60.0, 10),
        ],
    )
    def test_monotonic_and_bounded(
        self, initial_delay, backoff_factor, max_delay, constant_attempts
    ):
        """Test delay(n+1) >= delay(n) and delay(n) <= max_delay."""
        policy = BackoffPolicy(
            initial_delay, backoff_factor, max_delay, constant_attempts
        )
        delays = list(policy.delays(200))

        assert all(later >= earlier for earlier, later in zip(delays, delays[1:]))
        assert all(delay <= max_delay for delay in delays)
        assert delays[0] >= initial_delay

    def test_huge_poll_count_stays_at_ceiling(self):
        """Test that very large attempt counts do not overflow."""
        policy = BackoffPolicy(initial_delay=1.0, backoff_factor=2.0, max_delay=30.0)

        assert policy.delay(100_000) == 30.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"initial_delay": 0, "backoff_factor": 2.0, "max_delay": 10.0},
            {"initial_delay": 1.0, "backoff_factor": 0.5, "max_delay": 10.0},
            {"initial_delay": 5.0, "backoff_factor": 2.0, "max_delay": 1.0},
            {
                "initial_delay": 1.0,
                "backoff_factor": 2.0,
                "max_delay": 10.0,
                "constant_attempts": -1,
            },
        ],
    )
    def test_invalid_parameters(self, kwargs):
        """Test that parameters breaking monotonicity or bounds are rejected."""
        with pytest.raises(ValueError):
            BackoffPolicy(**kwargs)

    def test_from_config(self):
        """Test building a policy from polling configuration."""
        config = PollingConfig(
            initial_delay=0.5, backoff_factor=1.5, max_delay=4.0, constant_attempts=2
        )
        policy = BackoffPolicy.from_config(config)

        assert policy.initial_delay == 0.5
        assert policy.backoff_factor == 1.5
        assert policy.max_delay == 4.0
        assert policy.constant_attempts == 2
        assert "max_delay=4.0" in repr(policy)
