"""Matching strategies: how (and whether) AI refines the pre-ranked pool.

rule-based  pre-ranker output only
inline      AI re-rank in the request, bounded by a wall-clock timeout
durable     pre-ranker output now, AI re-rank later via a dispatched event
"""
from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

import requests

from jobmatch.ai import SAMPLING_TOP, ReRanker, rerank_candidates
from jobmatch.config import MatchingSettings, TierSettings
from jobmatch.errors import DispatchError, ReRankerError
from jobmatch.log import get_logger
from jobmatch.models import (
    DistributionResult,
    JobPosting,
    ScoredMatch,
    UserPreferences,
)
from jobmatch.retry import DISPATCH_POLICY, RetryPolicy, retry

log = get_logger(__name__)

METHOD_RULE_BASED = "rule-based"
METHOD_AI = "ai"
RERANK_EVENT = "matching/rerank.requested"


@dataclass
class StrategyResult:
    matches: list[ScoredMatch]
    method: str = METHOD_RULE_BASED
    ticket: str | None = None


class MatchingStrategy(ABC):
    name: str = ""

    @abstractmethod
    def apply(
        self,
        ranked: list[ScoredMatch],
        prefs: UserPreferences,
        tier: TierSettings | None = None,
    ) -> StrategyResult:
        """Return the pool the quality filter and distributor should see."""


class RuleBasedStrategy(MatchingStrategy):
    name = "rule-based"

    def apply(self, ranked, prefs, tier=None) -> StrategyResult:
        return StrategyResult(matches=list(ranked), method=METHOD_RULE_BASED)


class InlineStrategy(MatchingStrategy):
    """AI re-rank inside the request; any failure yields the rule-based pool."""

    name = "inline"

    def __init__(
        self,
        reranker: ReRanker,
        timeout_seconds: float = 15.0,
        candidate_limit: int | None = None,
        sampling: str | None = None,
    ) -> None:
        self.reranker = reranker
        self.timeout_seconds = timeout_seconds
        self.candidate_limit = candidate_limit
        self.sampling = sampling

    def _limits(self, tier: TierSettings | None) -> tuple[int, str]:
        limit = self.candidate_limit
        if limit is None:
            limit = tier.ai_candidate_limit if tier else 50
        sampling = self.sampling or (tier.ai_sampling if tier else SAMPLING_TOP)
        return limit, sampling

    def apply(self, ranked, prefs, tier=None) -> StrategyResult:
        fallback = StrategyResult(matches=list(ranked), method=METHOD_RULE_BASED)
        if not ranked:
            return fallback
        if tier is not None and not tier.use_ai:
            return fallback

        limit, sampling = self._limits(tier)
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rerank")
        start = time.monotonic()
        future = pool.submit(rerank_candidates, ranked, prefs, self.reranker, limit, sampling)
        try:
            merged = future.result(timeout=self.timeout_seconds)
        except FutureTimeout:
            log.warning(
                "AI re-rank timed out after %.1fs — using rule-based ranking",
                self.timeout_seconds,
            )
            return fallback
        except ReRankerError as exc:
            log.warning("AI re-rank unavailable (%s) — using rule-based ranking", exc)
            return fallback
        except Exception as exc:
            log.warning("AI re-rank failed (%s: %s) — using rule-based ranking", type(exc).__name__, exc)
            return fallback
        finally:
            # Don't block on a stuck model call; the worker thread is abandoned
            pool.shutdown(wait=False, cancel_futures=True)

        if not merged:
            log.warning("AI re-rank returned nothing — using rule-based ranking")
            return fallback
        log.info("AI re-rank finished in %.2fs", time.monotonic() - start)
        return StrategyResult(matches=merged, method=METHOD_AI)


class EventDispatcher(ABC):
    @abstractmethod
    def dispatch(self, event: dict[str, Any]) -> None:
        """Hand the event to the background system; raise DispatchError on failure."""


class HttpEventDispatcher(EventDispatcher):
    """POST events as JSON to an event-ingest endpoint, with retry."""

    def __init__(
        self,
        url: str,
        key: str = "",
        *,
        timeout: float = 10.0,
        policy: RetryPolicy = DISPATCH_POLICY,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.url = url
        self.key = key
        self.timeout = timeout
        self.session = session or requests.Session()
        self._post = retry(policy, retryable=(requests.RequestException,), sleep=sleep)(self._post_once)

    def _post_once(self, event: dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        if self.key:
            headers["Authorization"] = f"Bearer {self.key}"
        r = self.session.post(self.url, json=event, headers=headers, timeout=self.timeout)
        r.raise_for_status()

    def dispatch(self, event: dict[str, Any]) -> None:
        if not self.url:
            raise DispatchError("no durable event URL configured")
        try:
            self._post(event)
        except requests.RequestException as exc:
            raise DispatchError(f"could not dispatch {event.get('name')}: {exc}") from exc
        log.info("Dispatched %s (ticket %s)", event.get("name"), event.get("data", {}).get("ticket"))


def build_rerank_event(
    ticket: str,
    ranked: list[ScoredMatch],
    prefs: UserPreferences,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "name": RERANK_EVENT,
        "id": ticket,
        "data": {
            "ticket": ticket,
            "preferences": prefs.to_dict(),
            "job_hashes": [m.job_hash for m in ranked],
            "requested_at": now.isoformat(),
        },
    }


class DurableStrategy(MatchingStrategy):
    """Answer now with rule-based output; ask a background worker to re-rank."""

    name = "durable"

    def __init__(self, dispatcher: EventDispatcher, now: Callable[[], datetime] | None = None) -> None:
        self.dispatcher = dispatcher
        self._now = now or (lambda: datetime.now(timezone.utc))

    def apply(self, ranked, prefs, tier=None) -> StrategyResult:
        result = StrategyResult(matches=list(ranked), method=METHOD_RULE_BASED)
        if not ranked or (tier is not None and not tier.use_ai):
            return result
        ticket = uuid.uuid4().hex
        try:
            self.dispatcher.dispatch(build_rerank_event(ticket, ranked, prefs, self._now()))
        except DispatchError as exc:
            log.warning("Durable re-rank not scheduled: %s", exc)
            return result
        result.ticket = ticket
        return result


def process_rerank_event(
    event: dict[str, Any],
    jobs: list[JobPosting],
    reranker: ReRanker,
    deliver: Callable[[str, DistributionResult], None],
    settings: MatchingSettings | None = None,
    now: datetime | None = None,
) -> DistributionResult:
    """Background worker for ``matching/rerank.requested``.

    Re-runs the pipeline over *jobs* with inline AI semantics and hands the
    result (same shape as the synchronous one) to *deliver*.
    """
    from jobmatch.config import load_settings
    from jobmatch.pipeline import match_jobs

    if event.get("name") != RERANK_EVENT:
        raise ValueError(f"unexpected event: {event.get('name')!r}")
    data = event.get("data") or {}
    ticket = str(data.get("ticket") or event.get("id") or "")
    prefs = UserPreferences.from_dict(data.get("preferences") or {})
    settings = settings or load_settings()

    wanted = set(data.get("job_hashes") or [])
    pool = [j for j in jobs if j.job_hash in wanted] if wanted else list(jobs)
    if not pool:
        pool = list(jobs)

    strategy = InlineStrategy(reranker, timeout_seconds=settings.ai_timeout_seconds)
    result = match_jobs(pool, prefs, settings=settings, strategy=strategy, now=now)
    result.ai_ticket = ticket
    log.info("Re-rank %s done: %d matches via %s", ticket, len(result.matches), result.method)
    deliver(ticket, result)
    return result


def build_strategy(
    settings: MatchingSettings,
    reranker: ReRanker | None = None,
    dispatcher: EventDispatcher | None = None,
) -> MatchingStrategy:
    """Pick the strategy named in settings, degrading to rule-based when its collaborator is missing."""
    if settings.strategy == "inline":
        if reranker is None:
            log.info("No AI re-ranker configured — matching is rule-based")
            return RuleBasedStrategy()
        return InlineStrategy(reranker, timeout_seconds=settings.ai_timeout_seconds)
    if settings.strategy == "durable":
        if dispatcher is None and settings.durable_event_url:
            dispatcher = HttpEventDispatcher(
                settings.durable_event_url, settings.durable_event_key, policy=settings.dispatch_retry
            )
        if dispatcher is None:
            log.warning("Durable strategy selected but no event URL configured — matching is rule-based")
            return RuleBasedStrategy()
        return DurableStrategy(dispatcher)
    return RuleBasedStrategy()
