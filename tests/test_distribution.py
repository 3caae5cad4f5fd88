"""Tests for the diversity distributor."""
from __future__ import annotations

import pytest

from jobmatch.distribution import DistributionConstraints, distribute
from jobmatch.models import WorkEnvironment

from factories import make_job, make_match


def _constraints(count: int, **kw) -> DistributionConstraints:
    return DistributionConstraints(target_count=count, **kw)


@pytest.mark.parametrize("pool_size,target", [(0, 5), (2, 5), (5, 5), (12, 5), (30, 15), (4, 0)])
def test_returns_min_of_target_and_pool(pool_size, target):
    matches = [make_match(make_job(), 90 - i) for i in range(pool_size)]
    out = distribute(matches, _constraints(target, target_cities=("Dublin",)))
    assert len(out) == min(target, pool_size)


def test_duplicates_count_once():
    job = make_job()
    out = distribute([make_match(job, 80), make_match(job, 70), make_match(make_job(), 60)], _constraints(5))
    assert [m.match_score for m in out] == [80, 60]


def test_output_is_sorted_by_score_with_fresher_first_on_ties():
    old = make_match(make_job(days_old=10), 70)
    new = make_match(make_job(days_old=1), 70)
    top = make_match(make_job(), 90)
    out = distribute([old, top, new, make_match(make_job(), 10)], _constraints(3))
    assert out == [top, new, old]


def test_balances_across_target_cities():
    dublin = [make_match(make_job(city="Dublin"), 95 - i) for i in range(6)]
    paris = [make_match(make_job(city="Paris"), 60 - i) for i in range(6)]
    out = distribute(dublin + paris, _constraints(4, target_cities=("Dublin", "Paris")))
    cities = [m.job.city for m in out]
    assert cities.count("Dublin") == 2
    assert cities.count("Paris") == 2
    # Within each city the best jobs were taken
    assert {m.match_score for m in out} == {95, 94, 60, 59}


def test_native_city_names_land_in_the_right_bucket():
    vienna = [make_match(make_job(city="Wien"), 50 - i) for i in range(3)]
    dublin = [make_match(make_job(city="Dublin"), 90 - i) for i in range(3)]
    out = distribute(dublin + vienna, _constraints(2, target_cities=("Dublin", "Vienna")))
    assert sorted(m.job.city for m in out) == ["Dublin", "Wien"]


def test_rotates_work_environments_within_a_city():
    onsite = [make_match(make_job(work_environment=WorkEnvironment.ON_SITE), 90 - i) for i in range(4)]
    remote = [make_match(make_job(work_environment=WorkEnvironment.REMOTE), 50 - i) for i in range(4)]
    out = distribute(
        onsite + remote,
        _constraints(4, target_cities=("Dublin",), target_work_environments=("on-site", "remote")),
    )
    envs = [m.job.work_environment for m in out]
    assert envs.count(WorkEnvironment.ON_SITE) == 2
    assert envs.count(WorkEnvironment.REMOTE) == 2


def test_company_cap_limits_repeats_while_alternatives_exist():
    acme = [make_match(make_job(company="Acme"), 95 - i) for i in range(5)]
    others = [make_match(make_job(), 50 - i) for i in range(5)]
    out = distribute(acme + others, _constraints(5, max_per_source=2))
    assert sum(1 for m in out if m.job.company == "Acme") == 2


def test_default_cap_is_a_third_of_the_target():
    assert _constraints(5).source_cap == 2
    assert _constraints(15).source_cap == 5


def test_fill_ignores_cap_when_pool_is_sparse():
    acme = [make_match(make_job(company="Acme"), 90 - i) for i in range(4)]
    other = [make_match(make_job(company="Other"), 40)]
    out = distribute(acme + other, _constraints(4, max_per_source=1))
    assert len(out) == 4
    assert sum(1 for m in out if m.job.company == "Acme") == 3


def test_sparse_pool_returns_what_exists():
    matches = [make_match(make_job(), 80), make_match(make_job(), 70)]
    out = distribute(matches, _constraints(5, target_cities=("Dublin", "Paris")))
    assert [m.match_score for m in out] == [80, 70]
