"""Retry with exponential backoff for durable event dispatch.

The inline AI call is never retried; a failure there falls back to the
rule-based ranking.
"""
from __future__ import annotations

import functools
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Tuple, Type

from jobmatch.log import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number *attempt* (1-based)."""
        delay = min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


DISPATCH_POLICY = RetryPolicy()


def retry(
    policy: RetryPolicy | None = None,
    *,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    **overrides: Any,
) -> Callable:
    """Decorator: re-call the wrapped function on *retryable* errors.

    Keyword overrides (``max_attempts=5``) adjust a copy of *policy*. The
    last error is re-raised once attempts run out.
    """
    policy = policy or DISPATCH_POLICY
    if overrides:
        policy = RetryPolicy(**{**policy.__dict__, **overrides})

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt >= policy.max_attempts:
                        log.error("%s gave up after %d attempts: %s", fn.__qualname__, attempt, exc)
                        raise
                    delay = policy.delay_for(attempt)
                    log.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, policy.max_attempts, exc, delay,
                    )
                    sleep(delay)
                    attempt += 1

        return wrapper

    return decorator
