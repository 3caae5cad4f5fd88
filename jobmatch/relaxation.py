"""Loosen the hard gates step by step when the eligible pool is too small."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Sequence, TypeVar

from jobmatch.config import MatchingSettings, TierSettings
from jobmatch.gates import LOCATION_CITY, LOCATION_COUNTRY, GateParams
from jobmatch.log import get_logger
from jobmatch.models import RelaxationLevel

log = get_logger(__name__)

T = TypeVar("T")

# Entered strictly in this order; each step keeps the previous relaxations.
LADDER: tuple[RelaxationLevel, ...] = (
    RelaxationLevel.NONE,
    RelaxationLevel.DROP_CAREER_PATH,
    RelaxationLevel.DROP_VISA_FILTER,
    RelaxationLevel.BROADEN_RECENCY,
    RelaxationLevel.COUNTRY_ONLY_LOCATION,
)


def gate_params_for(
    level: RelaxationLevel, tier: TierSettings, settings: MatchingSettings
) -> GateParams:
    if level is RelaxationLevel.EXHAUSTED:
        level = LADDER[-1]
    step = LADDER.index(level)
    recency = tier.recency_days
    if step >= LADDER.index(RelaxationLevel.BROADEN_RECENCY):
        recency = max(recency, settings.broadened_recency_days)
    return GateParams(
        apply_career_path=step < LADDER.index(RelaxationLevel.DROP_CAREER_PATH),
        apply_visa=step < LADDER.index(RelaxationLevel.DROP_VISA_FILTER),
        max_age_days=recency,
        location_mode=(
            LOCATION_COUNTRY
            if step >= LADDER.index(RelaxationLevel.COUNTRY_ONLY_LOCATION)
            else LOCATION_CITY
        ),
    )


@dataclass
class RelaxationAttempt:
    level: RelaxationLevel
    pool_size: int


@dataclass
class RelaxationOutcome(Generic[T]):
    level: RelaxationLevel
    jobs: list[T]
    exhausted: bool = False
    attempts: list[RelaxationAttempt] = field(default_factory=list)


class RelaxationController:
    """Walks the ladder once, stopping at the first level with a viable pool."""

    def __init__(self, min_viable: int = 3, ladder: Sequence[RelaxationLevel] = LADDER) -> None:
        self.min_viable = max(1, min_viable)
        self.ladder = tuple(ladder)
        self.history: list[RelaxationAttempt] = []
        self._index = 0

    @property
    def level(self) -> RelaxationLevel:
        if self._index >= len(self.ladder):
            return RelaxationLevel.EXHAUSTED
        return self.ladder[self._index]

    def advance(self) -> RelaxationLevel:
        """Move to the next level; EXHAUSTED once the ladder runs out."""
        if self._index < len(self.ladder):
            self._index += 1
        return self.level

    def run(self, evaluate: Callable[[RelaxationLevel], list[T]]) -> RelaxationOutcome[T]:
        if self.history:
            raise RuntimeError("RelaxationController instances are single-use")

        best: tuple[RelaxationLevel, list[T]] | None = None
        while self.level is not RelaxationLevel.EXHAUSTED:
            level = self.level
            pool = evaluate(level)
            self.history.append(RelaxationAttempt(level, len(pool)))
            if len(pool) >= self.min_viable:
                if level is not RelaxationLevel.NONE:
                    log.info("Relaxed to %s: %d eligible jobs", level.value, len(pool))
                return RelaxationOutcome(level, pool, attempts=list(self.history))
            if best is None or len(pool) > len(best[1]):
                best = (level, pool)
            log.info(
                "Only %d eligible jobs at %s (need %d) — relaxing",
                len(pool), level.value, self.min_viable,
            )
            self.advance()

        if best is None or not best[1]:
            log.info("Relaxation ladder exhausted with no eligible jobs")
            return RelaxationOutcome(
                RelaxationLevel.EXHAUSTED, [], exhausted=True, attempts=list(self.history)
            )
        level, pool = best
        log.info("Relaxation ladder exhausted — using %d jobs from %s", len(pool), level.value)
        return RelaxationOutcome(level, pool, exhausted=True, attempts=list(self.history))
