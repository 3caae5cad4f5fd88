"""City and country matching with native-name and metro-area variants."""
from __future__ import annotations

import re
from functools import lru_cache

from jobmatch.models import JobPosting

# Canonical (English, lowercase) city -> every spelling a scraper may emit.
CITY_ALIASES: dict[str, list[str]] = {
    "london": [
        "greater london", "central london", "city of london", "north london",
        "south london", "east london", "west london", "london area",
    ],
    "manchester": ["greater manchester", "manchester area"],
    "birmingham": ["greater birmingham", "birmingham area"],
    "dublin": ["baile átha cliath", "county dublin", "dublin area", "greater dublin"],
    "belfast": ["greater belfast", "belfast area", "belfast city"],
    "paris": ["greater paris", "paris region", "île-de-france", "ile-de-france"],
    "amsterdam": ["greater amsterdam", "amsterdam area"],
    "brussels": ["bruxelles", "brussel", "brussels-capital", "greater brussels", "brussels area"],
    "berlin": ["greater berlin", "berlin area"],
    "hamburg": ["greater hamburg", "hamburg area", "hansestadt hamburg"],
    "munich": ["münchen", "muenchen", "greater munich", "munich area"],
    "frankfurt": ["frankfurt am main", "greater frankfurt", "frankfurt area"],
    "madrid": ["greater madrid", "comunidad de madrid", "madrid area"],
    "barcelona": ["greater barcelona", "barcelona area"],
    "milan": ["milano", "greater milan", "milan area"],
    "rome": ["roma", "greater rome", "rome area"],
    "lisbon": ["lisboa", "greater lisbon", "lisbon area"],
    "zurich": ["zürich", "zuerich", "greater zurich", "zurich area"],
    "stockholm": ["stockholms län", "greater stockholm", "stockholm area"],
    "copenhagen": ["københavn", "kobenhavn", "greater copenhagen", "copenhagen area"],
    "oslo": ["greater oslo", "oslo area"],
    "helsinki": ["helsingfors", "greater helsinki", "helsinki area"],
    "vienna": ["wien", "greater vienna", "vienna area"],
    "prague": ["praha", "greater prague", "prague area"],
    "warsaw": ["warszawa", "greater warsaw", "warsaw area"],
}

CITY_COUNTRY: dict[str, str] = {
    "london": "united kingdom",
    "manchester": "united kingdom",
    "birmingham": "united kingdom",
    "belfast": "united kingdom",
    "dublin": "ireland",
    "paris": "france",
    "amsterdam": "netherlands",
    "brussels": "belgium",
    "berlin": "germany",
    "hamburg": "germany",
    "munich": "germany",
    "frankfurt": "germany",
    "madrid": "spain",
    "barcelona": "spain",
    "milan": "italy",
    "rome": "italy",
    "lisbon": "portugal",
    "zurich": "switzerland",
    "stockholm": "sweden",
    "copenhagen": "denmark",
    "oslo": "norway",
    "helsinki": "finland",
    "vienna": "austria",
    "prague": "czech republic",
    "warsaw": "poland",
}

COUNTRY_ALIASES: dict[str, list[str]] = {
    "united kingdom": ["uk", "gb", "great britain", "england", "scotland", "wales", "northern ireland"],
    "ireland": ["ie", "éire", "eire"],
    "france": ["fr"],
    "netherlands": ["nl", "the netherlands", "holland"],
    "belgium": ["be", "belgië", "belgique"],
    "germany": ["de", "deutschland"],
    "spain": ["es", "españa", "espana"],
    "italy": ["it", "italia"],
    "portugal": ["pt"],
    "switzerland": ["ch", "schweiz", "suisse"],
    "sweden": ["se", "sverige"],
    "denmark": ["dk", "danmark"],
    "norway": ["no", "norge"],
    "finland": ["fi", "suomi"],
    "austria": ["at", "österreich", "oesterreich"],
    "czech republic": ["cz", "czechia", "česko"],
    "poland": ["pl", "polska"],
}


def _norm(s: str) -> str:
    return (s or "").strip().lower()


@lru_cache(maxsize=None)
def _name_index() -> dict[str, str]:
    index: dict[str, str] = {}
    for canonical, aliases in CITY_ALIASES.items():
        index[canonical] = canonical
        for alias in aliases:
            index[alias] = canonical
    return index


def canonical_city(city: str) -> str:
    """"Wien" -> "vienna"; unknown names come back lowercased."""
    key = _norm(city)
    return _name_index().get(key, key)


def city_variants(city: str) -> tuple[str, ...]:
    canonical = canonical_city(city)
    if not canonical:
        return ()
    return (canonical, *CITY_ALIASES.get(canonical, []))


@lru_cache(maxsize=512)
def _word_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)")


def _contains_term(text: str, term: str) -> bool:
    return bool(text) and bool(_word_pattern(term).search(text))


def matches_city(job: JobPosting, target_city: str) -> bool:
    """Case-insensitive city match on the city field or inside the location string."""
    variants = city_variants(target_city)
    if not variants:
        return False
    job_city = canonical_city(job.city)
    if job_city and job_city == variants[0]:
        return True
    loc = _norm(job.location)
    return any(_contains_term(loc, v) for v in variants)


def match_target_city(job: JobPosting, targets: list[str] | tuple[str, ...]) -> str | None:
    """First target city (in preference order) the job is in, if any."""
    for target in targets:
        if matches_city(job, target):
            return target
    return None


def country_for_city(city: str) -> str | None:
    return CITY_COUNTRY.get(canonical_city(city))


def _country_names(country: str) -> tuple[str, ...]:
    return (country, *COUNTRY_ALIASES.get(country, []))


def matches_country(job: JobPosting, target_city: str) -> bool:
    """True when the job sits in the country of ``target_city``."""
    country = country_for_city(target_city)
    if not country:
        return False
    names = _country_names(country)
    if _norm(job.country) in names:
        return True
    # Short codes are too ambiguous to search for inside free text
    loc = _norm(job.location)
    return any(len(n) > 3 and _contains_term(loc, n) for n in names)
