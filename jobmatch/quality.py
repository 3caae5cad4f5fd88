"""Tier quality threshold with a keep-something fallback."""
from __future__ import annotations

from dataclasses import dataclass

from jobmatch.log import get_logger
from jobmatch.models import ScoredMatch
from jobmatch.scorer import sort_key

log = get_logger(__name__)


@dataclass
class QualityOutcome:
    matches: list[ScoredMatch]
    applied: bool


def filter_by_quality(matches: list[ScoredMatch], threshold: int) -> list[ScoredMatch]:
    return [m for m in matches if m.match_score >= threshold]


def apply_quality_policy(
    matches: list[ScoredMatch], threshold: int, required_count: int
) -> QualityOutcome:
    """Threshold the pool, or fall back to all of it if that leaves too few.

    Lower-quality matches beat returning fewer jobs than the tier promises.
    """
    ordered = sorted(matches, key=sort_key)
    kept = filter_by_quality(ordered, threshold)
    if len(kept) >= required_count:
        return QualityOutcome(matches=kept, applied=True)
    log.info(
        "Quality filter kept %d/%d (>= %d), below the %d required — using unfiltered pool",
        len(kept), len(ordered), threshold, required_count,
    )
    return QualityOutcome(matches=ordered, applied=False)


def quality_metrics(matches: list[ScoredMatch]) -> tuple[float, int, int]:
    """(average, min, max) score; zeros for an empty list."""
    if not matches:
        return 0.0, 0, 0
    scores = [m.match_score for m in matches]
    return round(sum(scores) / len(scores), 1), min(scores), max(scores)
