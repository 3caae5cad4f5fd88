"""Tests for city and country matching."""
from __future__ import annotations

from jobmatch.locations import (
    canonical_city,
    country_for_city,
    match_target_city,
    matches_city,
    matches_country,
)

from factories import make_job


def test_native_names_map_to_canonical_city():
    assert canonical_city("Wien") == "vienna"
    assert canonical_city("München") == "munich"
    assert canonical_city("Atlantis") == "atlantis"


def test_city_field_matches_native_variant():
    assert matches_city(make_job(city="Wien"), "Vienna")
    assert matches_city(make_job(city="Vienna"), "wien")


def test_location_string_matches_on_word_boundary():
    assert matches_city(make_job(city="", location="Greater London, UK"), "London")
    assert not matches_city(make_job(city="", location="New Londonderry"), "London")


def test_match_target_city_respects_preference_order():
    job = make_job(city="Dublin")
    assert match_target_city(job, ["Paris", "Dublin"]) == "Dublin"
    assert match_target_city(job, ["Paris"]) is None


def test_country_match_uses_city_country():
    assert country_for_city("Wien") == "austria"
    assert matches_country(make_job(city="Graz", country="Austria"), "Vienna")
    assert matches_country(make_job(city="", location="Cork, Ireland"), "Dublin")
    assert not matches_country(make_job(city="Lyon", country="France"), "Dublin")
