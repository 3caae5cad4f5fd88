"""Hard eligibility gates: binary predicates that remove jobs outright."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jobmatch.categories import career_matches
from jobmatch.locations import matches_city, matches_country
from jobmatch.log import get_logger
from jobmatch.models import JobPosting, OneOf, UserPreferences

log = get_logger(__name__)

LOCATION_CITY = "city"
LOCATION_COUNTRY = "country"


@dataclass(frozen=True)
class GateParams:
    """Which gates run and how strictly; the relaxation ladder loosens these."""

    apply_career_path: bool = True
    apply_visa: bool = True
    max_age_days: int | None = None
    location_mode: str = LOCATION_CITY


def passes_visa(job: JobPosting, prefs: UserPreferences) -> bool:
    if not prefs.visa_status.needs_sponsorship:
        return True
    return job.visa_friendly


def passes_career_path(job: JobPosting, prefs: UserPreferences) -> bool:
    return career_matches(job.categories, prefs.career_path)


def passes_entry_level(job: JobPosting, prefs: UserPreferences) -> bool:
    if prefs.accepts_experienced:
        return True
    return job.is_entry_level


def passes_language(job: JobPosting, prefs: UserPreferences) -> bool:
    """At least one required language must be spoken; no requirement or no preference passes."""
    if not isinstance(prefs.languages_spoken, OneOf) or not job.language_requirements:
        return True
    return any(lang in prefs.languages_spoken for lang in job.language_requirements)


def passes_location(job: JobPosting, prefs: UserPreferences, mode: str = LOCATION_CITY) -> bool:
    if not isinstance(prefs.target_cities, OneOf):
        return True
    for city in prefs.target_cities:
        if matches_city(job, city):
            return True
        if mode == LOCATION_COUNTRY and matches_country(job, city):
            return True
    return False


def passes_recency(job: JobPosting, max_age_days: int | None, now: datetime) -> bool:
    if max_age_days is None or job.posted_at is None:
        return True
    return now - job.posted_at <= timedelta(days=max_age_days)


def filter_jobs(
    jobs: list[JobPosting],
    prefs: UserPreferences,
    params: GateParams | None = None,
    now: datetime | None = None,
) -> list[JobPosting]:
    """Keep the jobs that pass every enabled gate, in input order.

    An empty list is an ordinary result; the caller decides whether to relax.
    """
    params = params or GateParams()
    now = now or datetime.now(timezone.utc)

    remaining = list(jobs)
    stages = [
        ("location", lambda j: passes_location(j, prefs, params.location_mode)),
        ("recency", lambda j: passes_recency(j, params.max_age_days, now)),
        ("entry_level", lambda j: passes_entry_level(j, prefs)),
        ("language", lambda j: passes_language(j, prefs)),
    ]
    if params.apply_career_path:
        stages.append(("career_path", lambda j: passes_career_path(j, prefs)))
    if params.apply_visa:
        stages.append(("visa", lambda j: passes_visa(j, prefs)))

    for name, predicate in stages:
        before = len(remaining)
        remaining = [j for j in remaining if predicate(j)]
        log.debug("gate %-11s %d -> %d", name, before, len(remaining))

    return remaining
