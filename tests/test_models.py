"""Tests for data models and preference constraints."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from jobmatch.errors import InvalidMatchRequest
from jobmatch.models import (
    UNCONSTRAINED,
    JobPosting,
    OneOf,
    ScoredMatch,
    Tier,
    UserPreferences,
    VisaStatus,
    WorkEnvironment,
    clamp_score,
    compute_job_hash,
    constraint_from,
)

from factories import make_job


def test_empty_preference_is_unconstrained():
    assert constraint_from(None) is UNCONSTRAINED
    assert constraint_from([]) is UNCONSTRAINED
    assert constraint_from(["", "  "]) is UNCONSTRAINED
    assert "anything" in UNCONSTRAINED


def test_one_of_dedupes_and_matches_case_insensitively():
    c = constraint_from(["Dublin", "dublin", "Vienna"])
    assert isinstance(c, OneOf)
    assert c.values == ("Dublin", "Vienna")
    assert "VIENNA" in c
    assert "Berlin" not in c


def test_one_of_rejects_empty():
    with pytest.raises(ValueError):
        OneOf(())


def test_job_hash_is_content_derived():
    a = compute_job_hash("Analyst", "Acme", "Dublin", "https://x/1")
    b = compute_job_hash(" analyst ", "ACME", "dublin", "https://x/1")
    c = compute_job_hash("Analyst", "Acme", "Dublin", "https://x/2")
    assert a == b
    assert a != c


def test_job_from_dict_derives_hash_and_parses_fields():
    job = JobPosting.from_dict({
        "title": "Junior Analyst",
        "company": "Acme",
        "location": "Wien, Austria",
        "job_url": "https://acme.example/1",
        "work_environment": "Office",
        "categories": ["Finance-Investment", "early-career"],
        "posted_at": "2025-02-27T09:00:00Z",
    })
    assert job.job_hash == compute_job_hash("Junior Analyst", "Acme", "Wien, Austria", "https://acme.example/1")
    assert job.work_environment is WorkEnvironment.ON_SITE
    assert job.categories == frozenset({"finance-investment", "early-career"})
    assert job.is_entry_level
    assert job.posted_at is not None and job.posted_at.tzinfo is not None


def test_job_from_dict_without_title_has_no_hash():
    assert JobPosting.from_dict({"company": "Acme"}).job_hash == ""


def test_effective_work_environment_reads_location_hints():
    job = make_job(location="Remote - Ireland", work_environment=WorkEnvironment.UNKNOWN)
    assert job.effective_work_environment is WorkEnvironment.REMOTE


def test_preferences_from_dict_normalizes_values():
    prefs = UserPreferences.from_dict({
        "email": "a@example.com",
        "target_cities": ["Dublin", "Vienna"],
        "career_path": [],
        "entry_level_preference": ["Graduate", "Internship"],
        "work_environment": ["Office", "Hybrid"],
        "visa_status": "Need sponsorship",
        "subscription_tier": "premium_pending",
    })
    assert prefs.career_path is UNCONSTRAINED
    assert prefs.work_environment.values == ("on-site", "hybrid")
    assert prefs.visa_status is VisaStatus.NEEDS_SPONSORSHIP
    assert prefs.tier is Tier.PREMIUM
    assert not prefs.accepts_experienced


def test_preferences_from_dict_collects_all_errors():
    with pytest.raises(InvalidMatchRequest) as exc:
        UserPreferences.from_dict({
            "target_cities": ["Dublin", "Paris", "Berlin", "Madrid"],
            "subscription_tier": "gold",
            "entry_level_preference": ["wizard"],
        })
    assert len(exc.value.errors) == 3


def test_preferences_round_trip_through_dict():
    prefs = UserPreferences.from_dict({
        "email": "a@example.com",
        "target_cities": ["Dublin"],
        "career_path": ["marketing"],
        "visa_status": "eu-citizen",
    })
    assert UserPreferences.from_dict(prefs.to_dict()) == prefs


@pytest.mark.parametrize("raw,expected", [(-5, 0), (150, 100), (72.6, 73), ("x", 0), (float("nan"), 0)])
def test_clamp_score(raw, expected):
    assert clamp_score(raw) == expected


def test_scored_match_clamps_on_creation():
    assert ScoredMatch(job=make_job(), match_score=140, match_reason="").match_score == 100


def test_naive_posted_at_is_taken_as_utc():
    job = JobPosting(job_hash="h", title="Intern", company="Co", posted_at=datetime(2025, 2, 27))
    assert job.posted_at == datetime(2025, 2, 27, tzinfo=timezone.utc)
