"""Tests for the submission retry backoff."""

from fulfillment.submission.job import RetryPolicy


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.min_delay == 1.0
        assert policy.factor == 2
        assert policy.max_delay == 10.0

    def test_exponential_backoff(self):
        policy = RetryPolicy()
        assert [policy.delay_for(attempt) for attempt in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        policy = RetryPolicy()
        assert policy.delay_for(5) == 10.0
        assert policy.delay_for(12) == 10.0
