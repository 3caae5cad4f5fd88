"""Data models for jobs, preferences and match results."""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Iterator, Union

from jobmatch.errors import InvalidMatchRequest

MAX_TARGET_CITIES = 3


class WorkEnvironment(str, Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ON_SITE = "on-site"
    UNKNOWN = "unknown"

    @classmethod
    def normalize(cls, value: Any) -> "WorkEnvironment":
        """Map form and scraper spellings ("Office", "onsite", "WFH") onto the enum."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        return _WORK_ENV_ALIASES.get(key, cls.UNKNOWN)


_WORK_ENV_ALIASES: dict[str, WorkEnvironment] = {
    "remote": WorkEnvironment.REMOTE,
    "fully remote": WorkEnvironment.REMOTE,
    "work from home": WorkEnvironment.REMOTE,
    "wfh": WorkEnvironment.REMOTE,
    "hybrid": WorkEnvironment.HYBRID,
    "on-site": WorkEnvironment.ON_SITE,
    "onsite": WorkEnvironment.ON_SITE,
    "on site": WorkEnvironment.ON_SITE,
    "office": WorkEnvironment.ON_SITE,
    "in-office": WorkEnvironment.ON_SITE,
}


class VisaStatus(str, Enum):
    EU_CITIZEN = "eu-citizen"
    NEEDS_SPONSORSHIP = "need-sponsorship"
    OTHER = "other"

    @property
    def needs_sponsorship(self) -> bool:
        return self is VisaStatus.NEEDS_SPONSORSHIP

    @classmethod
    def normalize(cls, value: Any) -> "VisaStatus":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("_", "-")
        if not key or key in ("other", "unknown", "non-eu"):
            return cls.OTHER
        if "sponsor" in key or key.startswith("need"):
            return cls.NEEDS_SPONSORSHIP
        if "citizen" in key or "permanent" in key or key in ("eu", "eea"):
            return cls.EU_CITIZEN
        raise ValueError(f"unknown visa status: {value!r}")


class Tier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"

    @classmethod
    def normalize(cls, value: Any) -> "Tier":
        if isinstance(value, cls):
            return value
        key = str(value or "free").strip().lower()
        if key == "free":
            return cls.FREE
        if key.startswith("premium"):
            return cls.PREMIUM
        raise ValueError(f"unknown subscription tier: {value!r}")


class EntryLevel(str, Enum):
    INTERNSHIP = "internship"
    WORKING_STUDENT = "working-student"
    GRADUATE = "graduate"
    ENTRY_LEVEL = "entry-level"
    EXPERIENCED = "experienced"

    @classmethod
    def normalize(cls, value: Any) -> "EntryLevel":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        level = _ENTRY_LEVEL_ALIASES.get(key)
        if level is None:
            raise ValueError(f"unknown entry level: {value!r}")
        return level


_ENTRY_LEVEL_ALIASES: dict[str, EntryLevel] = {
    "intern": EntryLevel.INTERNSHIP,
    "internship": EntryLevel.INTERNSHIP,
    "working student": EntryLevel.WORKING_STUDENT,
    "working-student": EntryLevel.WORKING_STUDENT,
    "werkstudent": EntryLevel.WORKING_STUDENT,
    "graduate": EntryLevel.GRADUATE,
    "graduate programme": EntryLevel.GRADUATE,
    "graduate program": EntryLevel.GRADUATE,
    "entry level": EntryLevel.ENTRY_LEVEL,
    "entry-level": EntryLevel.ENTRY_LEVEL,
    "early career": EntryLevel.ENTRY_LEVEL,
    "junior": EntryLevel.ENTRY_LEVEL,
    "experienced": EntryLevel.EXPERIENCED,
    "mid-level": EntryLevel.EXPERIENCED,
    "any": EntryLevel.EXPERIENCED,
}


# --- Preference constraints ---------------------------------------------


class Unconstrained:
    """No preference on a dimension: every value is acceptable."""

    _instance: "Unconstrained | None" = None
    is_constrained = False
    values: tuple[str, ...] = ()

    def __new__(cls) -> "Unconstrained":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __contains__(self, item: object) -> bool:
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(())

    def __len__(self) -> int:
        return 0

    def __repr__(self) -> str:
        return "UNCONSTRAINED"


UNCONSTRAINED = Unconstrained()


@dataclass(frozen=True)
class OneOf:
    """An explicit, ordered, non-empty set of accepted values."""

    values: tuple[str, ...]
    is_constrained = True

    def __post_init__(self) -> None:
        if not self.values:
            raise ValueError("OneOf needs at least one value; use UNCONSTRAINED instead")

    def __contains__(self, item: object) -> bool:
        return str(item).casefold() in {v.casefold() for v in self.values}

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


Constraint = Union[Unconstrained, OneOf]


def constraint_from(values: Iterable[Any] | str | None) -> Constraint:
    """Empty or missing input means unconstrained, never "match nothing"."""
    if isinstance(values, (OneOf, Unconstrained)):
        return values
    if values is None:
        return UNCONSTRAINED
    if isinstance(values, str):
        values = values.split(",")
    seen: set[str] = set()
    clean: list[str] = []
    for v in values:
        s = str(v or "").strip()
        if s and s.casefold() not in seen:
            seen.add(s.casefold())
            clean.append(s)
    return OneOf(tuple(clean)) if clean else UNCONSTRAINED


# --- Jobs ----------------------------------------------------------------


def compute_job_hash(title: str, company: str, location: str, url: str) -> str:
    """Content-derived identifier: one hash per distinct (title, company, location, url)."""
    key = "|".join((s or "").strip().lower() for s in (title, company, location, url))
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]


def parse_datetime(value: Any) -> datetime | None:
    """Parse ISO timestamps; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


@dataclass(frozen=True)
class JobPosting:
    job_hash: str
    title: str
    company: str
    location: str = ""
    city: str = ""
    country: str = ""
    url: str = ""
    description: str = ""
    work_environment: WorkEnvironment = WorkEnvironment.UNKNOWN
    categories: frozenset[str] = frozenset()
    is_internship: bool = False
    is_graduate: bool = False
    is_early_career: bool = False
    visa_friendly: bool = False
    posted_at: datetime | None = None
    source: str = "unknown"
    language_requirements: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # naive timestamps are UTC
        if self.posted_at is not None and self.posted_at.tzinfo is None:
            object.__setattr__(self, "posted_at", parse_datetime(self.posted_at))

    @property
    def is_entry_level(self) -> bool:
        return (
            self.is_internship
            or self.is_graduate
            or self.is_early_career
            or "early-career" in self.categories
        )

    @property
    def effective_work_environment(self) -> WorkEnvironment:
        """Structured field first, then remote/hybrid hints in the location text."""
        if self.work_environment is not WorkEnvironment.UNKNOWN:
            return self.work_environment
        loc = self.location.lower()
        if any(t in loc for t in ("remote", "work from home", "wfh")):
            return WorkEnvironment.REMOTE
        if "hybrid" in loc:
            return WorkEnvironment.HYBRID
        return WorkEnvironment.UNKNOWN

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobPosting":
        title = str(data.get("title") or "")
        company = str(data.get("company") or "")
        location = str(data.get("location") or "")
        url = str(data.get("job_url") or data.get("url") or "")
        job_hash = str(data.get("job_hash") or "")
        if not job_hash and title and company:
            job_hash = compute_job_hash(title, company, location, url)
        return cls(
            job_hash=job_hash,
            title=title,
            company=company,
            location=location,
            city=str(data.get("city") or ""),
            country=str(data.get("country") or ""),
            url=url,
            description=str(data.get("description") or ""),
            work_environment=WorkEnvironment.normalize(data.get("work_environment")),
            categories=frozenset(c.lower() for c in _as_list(data.get("categories"))),
            is_internship=bool(data.get("is_internship")),
            is_graduate=bool(data.get("is_graduate")),
            is_early_career=bool(data.get("is_early_career")),
            visa_friendly=bool(data.get("visa_friendly") or data.get("visa_sponsorship")),
            posted_at=parse_datetime(data.get("posted_at") or data.get("created_at")),
            source=str(data.get("source") or "unknown"),
            language_requirements=tuple(_as_list(data.get("language_requirements"))),
        )


# --- Preferences ---------------------------------------------------------


@dataclass(frozen=True)
class UserPreferences:
    """One user's matching criteria, snapshotted for a single pipeline run."""

    email: str = ""
    target_cities: Constraint = UNCONSTRAINED
    career_path: Constraint = UNCONSTRAINED
    roles_selected: Constraint = UNCONSTRAINED
    entry_level: Constraint = UNCONSTRAINED
    work_environment: Constraint = UNCONSTRAINED
    visa_status: VisaStatus = VisaStatus.OTHER
    languages_spoken: Constraint = UNCONSTRAINED
    company_types: Constraint = UNCONSTRAINED
    tier: Tier = Tier.FREE

    @property
    def accepts_experienced(self) -> bool:
        return isinstance(self.entry_level, OneOf) and EntryLevel.EXPERIENCED.value in self.entry_level

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserPreferences":
        """Build preferences from a user record; raises InvalidMatchRequest on bad input."""
        if not isinstance(data, dict):
            raise InvalidMatchRequest(["preferences must be a mapping"])
        errors: list[str] = []

        cities = _as_list(data.get("target_cities") or data.get("cities"))
        if len(cities) > MAX_TARGET_CITIES:
            errors.append(f"at most {MAX_TARGET_CITIES} target cities allowed, got {len(cities)}")

        try:
            visa = VisaStatus.normalize(data.get("visa_status"))
        except ValueError as exc:
            errors.append(str(exc))
            visa = VisaStatus.OTHER

        try:
            tier = Tier.normalize(data.get("subscription_tier") or data.get("tier"))
        except ValueError as exc:
            errors.append(str(exc))
            tier = Tier.FREE

        levels: list[str] = []
        for raw in _as_list(data.get("entry_level_preference") or data.get("entry_level")):
            try:
                levels.append(EntryLevel.normalize(raw).value)
            except ValueError as exc:
                errors.append(str(exc))

        envs: list[str] = []
        for raw in _as_list(data.get("work_environment")):
            if raw.lower() == "unclear":
                continue
            env = WorkEnvironment.normalize(raw)
            if env is WorkEnvironment.UNKNOWN:
                errors.append(f"unknown work environment: {raw!r}")
            else:
                envs.append(env.value)

        if errors:
            raise InvalidMatchRequest(errors)

        return cls(
            email=str(data.get("email") or ""),
            target_cities=constraint_from(cities),
            career_path=constraint_from(data.get("career_path")),
            roles_selected=constraint_from(data.get("roles_selected")),
            entry_level=constraint_from(levels),
            work_environment=constraint_from(envs),
            visa_status=visa,
            languages_spoken=constraint_from(data.get("languages_spoken")),
            company_types=constraint_from(data.get("company_types")),
            tier=tier,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "target_cities": list(self.target_cities),
            "career_path": list(self.career_path),
            "roles_selected": list(self.roles_selected),
            "entry_level_preference": list(self.entry_level),
            "work_environment": list(self.work_environment),
            "visa_status": self.visa_status.value,
            "languages_spoken": list(self.languages_spoken),
            "company_types": list(self.company_types),
            "subscription_tier": self.tier.value,
        }


# --- Results -------------------------------------------------------------


def clamp_score(value: Any) -> int:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    if score != score:  # NaN
        return 0
    return int(round(max(0.0, min(100.0, score))))


@dataclass
class ScoredMatch:
    job: JobPosting
    match_score: int
    match_reason: str
    components: dict[str, int] = field(default_factory=dict)
    method: str = "rule-based"

    def __post_init__(self) -> None:
        self.match_score = clamp_score(self.match_score)

    @property
    def job_hash(self) -> str:
        return self.job.job_hash


class RelaxationLevel(str, Enum):
    NONE = "none"
    DROP_CAREER_PATH = "drop-career-path"
    DROP_VISA_FILTER = "drop-visa-filter"
    BROADEN_RECENCY = "broaden-recency"
    COUNTRY_ONLY_LOCATION = "country-only-location"
    EXHAUSTED = "exhausted"


class MatchStatus(str, Enum):
    MATCHED = "matched"
    NO_MATCHES = "no-matches"


@dataclass
class DistributionResult:
    status: MatchStatus
    matches: list[ScoredMatch]
    relaxation_level: RelaxationLevel
    ladder_exhausted: bool = False
    quality_filter_applied: bool = True
    method: str = "rule-based"
    average_score: float = 0.0
    min_score: int = 0
    max_score: int = 0
    city_counts: dict[str, int] = field(default_factory=dict)
    work_environment_counts: dict[str, int] = field(default_factory=dict)
    ai_ticket: str | None = None
    message: str = ""
    suggestions: list[str] = field(default_factory=list)

    @property
    def jobs(self) -> list[JobPosting]:
        return [m.job for m in self.matches]

    @property
    def matched(self) -> bool:
        return self.status is MatchStatus.MATCHED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "matches": [
                {
                    "job_hash": m.job_hash,
                    "title": m.job.title,
                    "company": m.job.company,
                    "city": m.job.city,
                    "match_score": m.match_score,
                    "match_reason": m.match_reason,
                    "method": m.method,
                }
                for m in self.matches
            ],
            "relaxation_level": self.relaxation_level.value,
            "ladder_exhausted": self.ladder_exhausted,
            "quality_filter_applied": self.quality_filter_applied,
            "method": self.method,
            "average_score": self.average_score,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "city_counts": dict(self.city_counts),
            "work_environment_counts": dict(self.work_environment_counts),
            "ai_ticket": self.ai_ticket,
            "message": self.message,
            "suggestions": list(self.suggestions),
        }
