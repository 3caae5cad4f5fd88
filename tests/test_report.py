"""Tests for the markdown match report."""
from __future__ import annotations

from jobmatch.models import DistributionResult, MatchStatus, RelaxationLevel
from jobmatch.report import build_match_report, write_match_report

from factories import NOW, make_job, make_match, make_prefs


def test_report_lists_matches_and_relaxation_note():
    match = make_match(make_job(title="Marketing Graduate", company="Acme", url="https://www.acme.io/j/1"), 81)
    result = DistributionResult(
        status=MatchStatus.MATCHED,
        matches=[match],
        relaxation_level=RelaxationLevel.DROP_CAREER_PATH,
        average_score=81.0, min_score=81, max_score=81,
        city_counts={"Dublin": 1},
    )
    report = build_match_report(result, make_prefs(email="a@example.com"), now=NOW)
    assert report.startswith("# Job Matches for a@example.com — 2025-03-01")
    assert "### Marketing Graduate @ Acme" in report
    assert "[Acme](https://www.acme.io/j/1)" in report
    assert "related paths are included" in report


def test_no_matches_report_shows_suggestions():
    result = DistributionResult(
        status=MatchStatus.NO_MATCHES, matches=[], relaxation_level=RelaxationLevel.EXHAUSTED,
        message="No matches found.", suggestions=["Try different cities"],
    )
    report = build_match_report(result, make_prefs(), now=NOW)
    assert "**No matches found.**" in report
    assert "- Try different cities" in report


def test_write_report_uses_dated_filename(tmp_path):
    path = write_match_report("# hi", reports_dir=tmp_path, now=NOW)
    assert path.name == "matches_2025-03-01.md"
    assert path.read_text(encoding="utf-8") == "# hi"
