"""Rule-based pre-ranking of gated jobs against a user's preferences."""
from __future__ import annotations

from datetime import datetime, timezone

from jobmatch.categories import career_matches, is_open_ended
from jobmatch.locations import match_target_city, matches_country
from jobmatch.log import get_logger
from jobmatch.models import (
    JobPosting,
    OneOf,
    ScoredMatch,
    UserPreferences,
    WorkEnvironment,
    clamp_score,
)

log = get_logger(__name__)

# Lookback over which the recency component decays to zero
RECENCY_LOOKBACK_DAYS = 60

ROLE_MAX = 40
LOCATION_MAX = 25
WORK_ENV_MAX = 15
RECENCY_MAX = 20
BONUS_MAX = 10

# Which job environments are an acceptable second choice for each preference
_COMPATIBLE_ENVS: dict[str, set[WorkEnvironment]] = {
    "remote": {WorkEnvironment.HYBRID},
    "hybrid": {WorkEnvironment.REMOTE, WorkEnvironment.ON_SITE},
    "on-site": {WorkEnvironment.HYBRID},
}


def _normalize(s: str) -> str:
    return (s or "").lower().strip()


def _clamp(value: float, upper: int) -> int:
    return int(round(max(0.0, min(float(upper), value))))


def _word_overlap_ratio(role: str, text: str) -> float:
    """Share of a selected role's words found in the job title.

    Multi-word roles need two shared words; "Marketing Assistant" does not
    match "Sales Assistant" on "assistant" alone.
    """
    wanted = set(_normalize(role).split())
    if not wanted:
        return 0.0
    shared = len(wanted & set(_normalize(text).split()))
    needed = 1 if len(wanted) == 1 else 2
    return shared / len(wanted) if shared >= needed else 0.0


def _best_role_match(title: str, desc: str, roles: list[str]) -> tuple[int, str]:
    """Best (points, role) over the user's selected roles.

    Role in job TITLE (exact substring)   -> 30
    Role in title (word overlap >= 60%)   -> 24
    Role in description only              -> 12
    """
    title_norm = _normalize(title)
    desc_norm = _normalize(desc)
    best_points, best_role = 0, ""
    for role_raw in roles:
        role = role_raw.lower()
        if role in title_norm:
            points = 30
        elif _word_overlap_ratio(role, title_norm) >= 0.6:
            points = 24
        elif role in desc_norm:
            points = 12
        else:
            continue
        if points > best_points:
            best_points, best_role = points, role_raw
    return best_points, best_role


def _role_component(job: JobPosting, prefs: UserPreferences, reasons: list[str]) -> int:
    points = 0
    if isinstance(prefs.roles_selected, OneOf):
        role_points, role = _best_role_match(job.title, job.description, list(prefs.roles_selected))
        if role:
            reasons.append(f"Role match: {role}")
        points += role_points
    else:
        points += 15

    if is_open_ended(prefs.career_path):
        points += 5
    elif career_matches(job.categories, prefs.career_path):
        points += 10
        reasons.append("Career path match")
    return _clamp(points, ROLE_MAX)


def _location_component(job: JobPosting, prefs: UserPreferences, reasons: list[str]) -> int:
    if not isinstance(prefs.target_cities, OneOf):
        return 15
    targets = list(prefs.target_cities)
    city = match_target_city(job, targets)
    if city:
        reasons.append(f"City match: {city}")
        return LOCATION_MAX
    if any(matches_country(job, c) for c in targets):
        reasons.append("Country match")
        return 12
    return 0


def _work_env_component(job: JobPosting, prefs: UserPreferences, reasons: list[str]) -> int:
    neutral = WORK_ENV_MAX // 2 + 1
    if not isinstance(prefs.work_environment, OneOf):
        return neutral
    job_env = job.effective_work_environment
    if job_env is WorkEnvironment.UNKNOWN:
        return neutral
    if job_env.value in prefs.work_environment:
        reasons.append(f"Work environment: {job_env.value}")
        return WORK_ENV_MAX
    if any(job_env in _COMPATIBLE_ENVS.get(p, set()) for p in prefs.work_environment):
        return neutral
    return 0


def _recency_component(job: JobPosting, now: datetime, reasons: list[str]) -> int:
    if job.posted_at is None:
        return RECENCY_MAX // 2
    age_days = max(0.0, (now - job.posted_at).total_seconds() / 86400)
    if age_days <= 3:
        reasons.append("Fresh posting")
    return _clamp(RECENCY_MAX * (1 - age_days / RECENCY_LOOKBACK_DAYS), RECENCY_MAX)


def _bonus_component(job: JobPosting, prefs: UserPreferences, reasons: list[str]) -> int:
    points = 0
    if isinstance(prefs.company_types, OneOf):
        text = _normalize(job.company) + " " + _normalize(job.description)
        if any(t.lower() in text for t in prefs.company_types):
            points += 5
            reasons.append("Company type match")
    if isinstance(prefs.languages_spoken, OneOf) and job.language_requirements:
        if any(lang in prefs.languages_spoken for lang in job.language_requirements):
            points += 5
            reasons.append("Language match")
    return _clamp(points, BONUS_MAX)


def score_job(job: JobPosting, prefs: UserPreferences, now: datetime | None = None) -> ScoredMatch:
    now = now or datetime.now(timezone.utc)
    reasons: list[str] = []

    components = {
        "role": _role_component(job, prefs, reasons),
        "location": _location_component(job, prefs, reasons),
        "work_environment": _work_env_component(job, prefs, reasons),
        "recency": _recency_component(job, now, reasons),
        "bonus": _bonus_component(job, prefs, reasons),
    }
    score = clamp_score(sum(components.values()))

    return ScoredMatch(
        job=job,
        match_score=score,
        match_reason="; ".join(reasons) or "General match",
        components=components,
        method="rule-based",
    )


def sort_key(match: ScoredMatch) -> tuple:
    """Score descending, then most recent posting, then job_hash for a total order."""
    posted = match.job.posted_at
    ts = posted.timestamp() if posted else float("-inf")
    return (-match.match_score, -ts, match.job_hash)


def rank(
    jobs: list[JobPosting], prefs: UserPreferences, now: datetime | None = None
) -> list[ScoredMatch]:
    now = now or datetime.now(timezone.utc)
    scored = sorted((score_job(j, prefs, now) for j in jobs), key=sort_key)
    if scored:
        log.info(
            "Pre-ranked %d jobs (top=%d, bottom=%d)",
            len(scored), scored[0].match_score, scored[-1].match_score,
        )
    return scored
