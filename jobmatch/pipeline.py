"""
Job matching pipeline.

Runs: validate → gate (with relaxation) → pre-rank → strategy (AI or not)
→ quality policy → diversity distribution → DistributionResult.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Sequence

from jobmatch.ai import build_reranker
from jobmatch.config import MatchingSettings, load_settings
from jobmatch.distribution import DistributionConstraints, distribute
from jobmatch.errors import InvalidMatchRequest
from jobmatch.gates import filter_jobs
from jobmatch.locations import match_target_city
from jobmatch.log import for_request, get_logger
from jobmatch.models import (
    MAX_TARGET_CITIES,
    DistributionResult,
    JobPosting,
    MatchStatus,
    OneOf,
    RelaxationLevel,
    ScoredMatch,
    UserPreferences,
)
from jobmatch.quality import apply_quality_policy, quality_metrics
from jobmatch.relaxation import RelaxationController, gate_params_for
from jobmatch.scorer import rank
from jobmatch.strategies import MatchingStrategy, build_strategy

log = get_logger(__name__)

NO_MATCHES_MESSAGE = "No matches found. Try different cities or career paths."


def validate_request(jobs: Sequence[JobPosting], prefs: UserPreferences) -> list[JobPosting]:
    """Check the input before the pipeline runs; returns the jobs that may be scored.

    Jobs without a job_hash are dropped (they can't be deduplicated or persisted).
    """
    errors: list[str] = []
    if not isinstance(prefs, UserPreferences):
        errors.append("preferences are missing or not a UserPreferences record")
    elif len(prefs.target_cities) > MAX_TARGET_CITIES:
        errors.append(f"at most {MAX_TARGET_CITIES} target cities allowed")
    if not jobs:
        errors.append("job pool is empty")
    if errors:
        raise InvalidMatchRequest(errors)

    valid = [j for j in jobs if j.job_hash]
    dropped = len(jobs) - len(valid)
    if dropped:
        log.warning("Dropped %d job(s) with no job_hash before scoring", dropped)
    if not valid:
        raise InvalidMatchRequest(["no job in the pool has a job_hash"])
    return valid


def _suggestions(prefs: UserPreferences) -> list[str]:
    out: list[str] = []
    if isinstance(prefs.target_cities, OneOf):
        out.append("Try different or additional target cities")
    if isinstance(prefs.career_path, OneOf):
        out.append("Try broadening your career paths")
    if isinstance(prefs.work_environment, OneOf):
        out.append("Consider more work environments (remote, hybrid, on-site)")
    if prefs.visa_status.needs_sponsorship:
        out.append("Fewer roles offer visa sponsorship; more cities improve your chances")
    out.append("New jobs are added daily, so check back soon")
    return out


def _city_counts(matches: list[ScoredMatch], prefs: UserPreferences) -> dict[str, int]:
    targets = list(prefs.target_cities)
    counts: Counter[str] = Counter()
    for m in matches:
        city = match_target_city(m.job, targets) if targets else None
        counts[city or m.job.city or "other"] += 1
    return dict(counts)


def _env_counts(matches: list[ScoredMatch]) -> dict[str, int]:
    return dict(Counter(m.job.effective_work_environment.value for m in matches))


def _no_matches(prefs: UserPreferences) -> DistributionResult:
    return DistributionResult(
        status=MatchStatus.NO_MATCHES,
        matches=[],
        relaxation_level=RelaxationLevel.EXHAUSTED,
        ladder_exhausted=True,
        quality_filter_applied=False,
        message=NO_MATCHES_MESSAGE,
        suggestions=_suggestions(prefs),
    )


def match_jobs(
    jobs: Sequence[JobPosting],
    prefs: UserPreferences,
    settings: MatchingSettings | None = None,
    strategy: MatchingStrategy | None = None,
    now: datetime | None = None,
) -> DistributionResult:
    """Match one user against a job pool. Raises InvalidMatchRequest on bad input only."""
    pool = validate_request(jobs, prefs)
    settings = settings or load_settings()
    now = now or datetime.now(timezone.utc)
    tier = settings.for_tier(prefs.tier)
    rlog = for_request(log, user=prefs.email, tier=prefs.tier.value)
    if strategy is None:
        strategy = build_strategy(settings, reranker=build_reranker(settings))

    # 1. Gates, relaxing until the pool is viable
    controller = RelaxationController(settings.min_viable_jobs)
    outcome = controller.run(
        lambda level: filter_jobs(pool, prefs, gate_params_for(level, tier, settings), now)
    )
    if not outcome.jobs:
        rlog.info("No eligible jobs after %d relaxation attempt(s)", len(outcome.attempts))
        return _no_matches(prefs)

    # 2. Pre-rank, then let the strategy refine
    ranked = rank(outcome.jobs, prefs, now)
    chosen = strategy.apply(ranked, prefs, tier)

    # 3. Quality threshold with fallback
    quality = apply_quality_policy(chosen.matches, tier.quality_threshold, tier.max_matches)

    # 4. Diversity distribution
    constraints = DistributionConstraints(
        target_count=tier.max_matches,
        target_cities=tuple(prefs.target_cities),
        target_work_environments=tuple(prefs.work_environment),
    )
    final = distribute(quality.matches, constraints)
    if not final:
        return _no_matches(prefs)

    avg, lo, hi = quality_metrics(final)
    rlog.info(
        "Matched %d/%d jobs (relaxation=%s, method=%s, avg=%.1f)",
        len(final), len(pool), outcome.level.value, chosen.method, avg,
    )
    return DistributionResult(
        status=MatchStatus.MATCHED,
        matches=final,
        relaxation_level=outcome.level,
        ladder_exhausted=outcome.exhausted,
        quality_filter_applied=quality.applied,
        method=chosen.method,
        average_score=avg,
        min_score=lo,
        max_score=hi,
        city_counts=_city_counts(final, prefs),
        work_environment_counts=_env_counts(final),
        ai_ticket=chosen.ticket,
    )
