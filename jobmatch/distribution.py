"""Pick the final N matches: best scores first, balanced across cities,
work environments and companies."""
from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable

from jobmatch.locations import match_target_city
from jobmatch.log import get_logger
from jobmatch.models import ScoredMatch, WorkEnvironment
from jobmatch.scorer import sort_key

log = get_logger(__name__)

OTHER_BUCKET = "other"


@dataclass(frozen=True)
class DistributionConstraints:
    target_count: int
    target_cities: tuple[str, ...] = ()
    max_per_source: int | None = None
    target_work_environments: tuple[str, ...] = ()
    ensure_city_balance: bool = True
    ensure_work_environment_balance: bool = True

    @property
    def source_cap(self) -> int:
        if self.max_per_source is not None:
            return max(1, self.max_per_source)
        return max(1, math.ceil(self.target_count / 3))


def _source_key(match: ScoredMatch) -> str:
    job = match.job
    return (job.company or job.source or "unknown").strip().lower()


def dedupe(matches: Iterable[ScoredMatch]) -> list[ScoredMatch]:
    """One entry per job_hash (the best-scoring one), in score order."""
    best: dict[str, ScoredMatch] = {}
    for m in sorted(matches, key=sort_key):
        best.setdefault(m.job_hash, m)
    return sorted(best.values(), key=sort_key)


def _env_key(match: ScoredMatch, envs: tuple[str, ...]) -> str:
    env = match.job.effective_work_environment
    if env is WorkEnvironment.UNKNOWN:
        env = WorkEnvironment.ON_SITE
    return env.value if env.value in envs else OTHER_BUCKET


def _buckets(
    ordered: list[ScoredMatch], c: DistributionConstraints
) -> "OrderedDict[str, OrderedDict[str, list[ScoredMatch]]]":
    """city -> work environment -> matches, each list in score order."""
    cities = list(c.target_cities) if c.ensure_city_balance else []
    envs = tuple(c.target_work_environments) if c.ensure_work_environment_balance else ()

    buckets: OrderedDict[str, OrderedDict[str, list[ScoredMatch]]] = OrderedDict()
    for city in cities:
        buckets[city] = OrderedDict((e, []) for e in envs)
    buckets[OTHER_BUCKET] = OrderedDict((e, []) for e in envs)

    for m in ordered:
        city = match_target_city(m.job, cities) if cities else None
        sub = buckets[city or OTHER_BUCKET]
        env = _env_key(m, envs) if envs else OTHER_BUCKET
        sub.setdefault(env, []).append(m)
    return buckets


def distribute(
    matches: Iterable[ScoredMatch], constraints: DistributionConstraints
) -> list[ScoredMatch]:
    """Round-robin across city buckets (rotating each city's environments), then fill.

    Returns exactly min(target_count, distinct jobs) matches, sorted by score.
    """
    c = constraints
    ordered = dedupe(matches)
    if c.target_count <= 0 or not ordered:
        return []
    if len(ordered) <= c.target_count:
        return ordered

    cap = c.source_cap
    if len({_source_key(m) for m in ordered}) < 2:
        cap = c.target_count

    buckets = _buckets(ordered, c)
    env_turn = {city: 0 for city in buckets}
    picked: list[ScoredMatch] = []
    picked_hashes: set[str] = set()
    per_source: dict[str, int] = {}

    def take_from(candidates: list[ScoredMatch]) -> bool:
        for m in candidates:
            if m.job_hash in picked_hashes:
                continue
            key = _source_key(m)
            if per_source.get(key, 0) >= cap:
                continue
            picked.append(m)
            picked_hashes.add(m.job_hash)
            per_source[key] = per_source.get(key, 0) + 1
            return True
        return False

    progress = True
    while len(picked) < c.target_count and progress:
        progress = False
        for city, envs in buckets.items():
            if len(picked) >= c.target_count:
                break
            keys = [k for k, v in envs.items() if v]
            if not keys:
                continue
            # Rotate through this city's environments, starting where we left off
            for step in range(len(keys)):
                env = keys[(env_turn[city] + step) % len(keys)]
                if take_from(envs[env]):
                    env_turn[city] = (env_turn[city] + step + 1) % len(keys)
                    progress = True
                    break

    if len(picked) < c.target_count:
        log.debug("Balanced pass picked %d/%d — filling by score", len(picked), c.target_count)
        for m in ordered:
            if len(picked) >= c.target_count:
                break
            if m.job_hash not in picked_hashes:
                picked.append(m)
                picked_hashes.add(m.job_hash)

    return sorted(picked, key=sort_key)
