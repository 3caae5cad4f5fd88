"""Tests for the retry decorator."""
from __future__ import annotations

import pytest

from jobmatch.retry import RetryPolicy, retry


def test_retries_with_exponential_backoff():
    delays: list[float] = []
    calls = {"n": 0}

    @retry(max_attempts=4, base_delay=1.0, jitter=False, sleep=delays.append)
    def flaky():
        calls["n"] += 1
        if calls["n"] < 4:
            raise ConnectionError("boom")
        return "ok"

    assert flaky() == "ok"
    assert delays == [1.0, 2.0, 4.0]


def test_non_retryable_errors_propagate_immediately():
    calls = {"n": 0}

    @retry(max_attempts=3, retryable=(ConnectionError,), sleep=lambda _: None)
    def broken():
        calls["n"] += 1
        raise KeyError("x")

    with pytest.raises(KeyError):
        broken()
    assert calls["n"] == 1


def test_last_error_is_raised_when_attempts_run_out():
    @retry(max_attempts=2, sleep=lambda _: None)
    def always_fails():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        always_fails()


def test_policy_delay_is_capped():
    policy = RetryPolicy(base_delay=2.0, max_delay=5.0, jitter=False)
    assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [2.0, 4.0, 5.0, 5.0]
