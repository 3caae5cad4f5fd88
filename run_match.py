#!/usr/bin/env python3
"""Entry point: match one user's preferences against a job pool.

Usage: python run_match.py <preferences.yaml> [jobs.json]
"""
from __future__ import annotations

import sys
from pathlib import Path

import yaml

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobmatch.config import ensure_dirs, load_settings
from jobmatch.errors import InvalidMatchRequest
from jobmatch.log import get_logger
from jobmatch.models import UserPreferences

log = get_logger(__name__)


def _load_preferences(path: Path) -> UserPreferences:
    with open(path, "r", encoding="utf-8") as f:
        return UserPreferences.from_dict(yaml.safe_load(f) or {})


def main(argv: list[str]) -> int:
    if not argv or argv[0] in ("-h", "--help"):
        print(__doc__.strip())
        return 0 if argv else 1

    prefs_path = Path(argv[0])
    if not prefs_path.exists():
        log.error("Preferences file not found: %s", prefs_path)
        return 1

    from jobmatch.pipeline import match_jobs
    from jobmatch.report import build_match_report, write_match_report
    from jobmatch.sources import get_source
    from jobmatch.store import MatchStore

    ensure_dirs()
    settings = load_settings()
    try:
        prefs = _load_preferences(prefs_path)
        jobs = get_source(argv[1] if len(argv) > 1 else None).fetch()
        result = match_jobs(jobs, prefs, settings=settings)
    except InvalidMatchRequest as exc:
        for err in exc.errors:
            log.error("Invalid request: %s", err)
        return 2
    except OSError as exc:
        log.error("Could not read job pool: %s", exc)
        return 1

    report = build_match_report(result, prefs)
    print(report)
    write_match_report(report)

    if result.matched and prefs.email:
        MatchStore().save_result(result, prefs.email)

    log.info(
        "Run complete — status=%s, matches=%d, relaxation=%s, method=%s",
        result.status.value, len(result.matches), result.relaxation_level.value, result.method,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
