"""Tests for the rule-based pre-ranker."""
from __future__ import annotations

from jobmatch.models import WorkEnvironment
from jobmatch.scorer import rank, score_job

from factories import NOW, make_job, make_prefs


def test_city_match_scores_higher_than_country_match():
    prefs = make_prefs(target_cities=["Dublin"])
    city = score_job(make_job(city="Dublin"), prefs, NOW)
    country = score_job(make_job(city="Cork", country="Ireland"), prefs, NOW)
    assert city.components["location"] > country.components["location"] > 0


def test_title_role_match_beats_description_match():
    prefs = make_prefs(roles_selected=["Data Analyst"])
    in_title = score_job(make_job(title="Junior Data Analyst"), prefs, NOW)
    in_desc = score_job(make_job(title="Graduate Programme", description="data analyst track"), prefs, NOW)
    none = score_job(make_job(title="Barista"), prefs, NOW)
    assert in_title.components["role"] > in_desc.components["role"] > none.components["role"]
    assert "Role match: Data Analyst" in in_title.match_reason


def test_no_work_environment_preference_is_neutral_not_zero():
    job = make_job(work_environment=WorkEnvironment.REMOTE)
    neutral = score_job(job, make_prefs(), NOW).components["work_environment"]
    exact = score_job(job, make_prefs(work_environment=["remote"]), NOW).components["work_environment"]
    mismatch = score_job(job, make_prefs(work_environment=["office"]), NOW).components["work_environment"]
    assert exact > neutral > mismatch == 0


def test_recency_decays_smoothly():
    prefs = make_prefs()
    scores = [score_job(make_job(days_old=d), prefs, NOW).components["recency"] for d in (0, 15, 30, 59, 90)]
    assert scores == sorted(scores, reverse=True)
    assert scores[0] == 20
    assert scores[-1] == 0


def test_scores_are_bounded():
    prefs = make_prefs(
        target_cities=["Dublin"], roles_selected=["Marketing"], career_path=["marketing"],
        work_environment=["office"], company_types=["Company"], languages_spoken=["English"],
    )
    jobs = [
        make_job(title="Marketing Graduate", language_requirements=("English",)),
        make_job(title="x", city="Nowhere", days_old=400),
        make_job(days_old=-3),
    ]
    for m in rank(jobs, prefs, NOW):
        assert 0 <= m.match_score <= 100


def test_rank_puts_best_first_and_breaks_ties_by_hash():
    prefs = make_prefs()
    undated_a = make_job(days_old=None)
    undated_b = make_job(days_old=None)
    best = make_job(days_old=0)
    ranked = rank([undated_a, undated_b, best], prefs, NOW)
    assert ranked[0].job is best
    # Equal scores fall back to job_hash for a stable order
    tail = ranked[1:]
    assert [m.job_hash for m in tail] == sorted(m.job_hash for m in tail)


def test_fresher_job_wins_a_score_tie():
    prefs = make_prefs()
    a = make_job(days_old=1)
    b = make_job(days_old=1.2)
    ranked = rank([b, a], prefs, NOW)
    assert ranked[0].match_score == ranked[1].match_score
    assert ranked[0].job is a


def test_rank_is_deterministic():
    prefs = make_prefs(target_cities=["Dublin"], career_path=["marketing"])
    jobs = [make_job(days_old=d % 7) for d in range(12)]
    first = [(m.job_hash, m.match_score, m.match_reason) for m in rank(jobs, prefs, NOW)]
    second = [(m.job_hash, m.match_score, m.match_reason) for m in rank(list(reversed(jobs)), prefs, NOW)]
    assert first == second
