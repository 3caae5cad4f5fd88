"""Persist delivered matches in a CSV table with file locking.

Rows are keyed by (user_email, job_hash): saving the same result twice
updates rows in place instead of duplicating them.
"""
from __future__ import annotations

import csv
import fcntl
from datetime import datetime, timezone
from pathlib import Path

from jobmatch.config import DATA_DIR
from jobmatch.log import get_logger
from jobmatch.models import DistributionResult

log = get_logger(__name__)

MATCHES_CSV: Path = DATA_DIR / "matches.csv"
HEADERS: list[str] = [
    "user_email", "job_hash", "title", "company", "city", "url",
    "match_score", "match_reason", "method", "relaxation_level", "matched_at",
]


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class MatchStore:
    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path else MATCHES_CSV

    def _ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            with open(self.path, "w", newline="", encoding="utf-8") as f:
                _lock(f)
                csv.writer(f).writerow(HEADERS)
                _unlock(f)
            log.info("Created match store → %s", self.path.name)

    def _read(self) -> list[dict[str, str]]:
        self._ensure()
        with open(self.path, "r", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            rows = list(csv.DictReader(f))
            _unlock(f)
        return rows

    def save_result(
        self, result: DistributionResult, user_email: str, now: datetime | None = None
    ) -> int:
        """Upsert every match in *result* for *user_email*; returns rows written."""
        if not user_email:
            raise ValueError("user_email is required to store matches")
        matched_at = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M")
        new_rows: dict[str, dict[str, str]] = {}
        for m in result.matches:
            if not m.job_hash:
                continue
            new_rows[m.job_hash] = {
                "user_email": user_email,
                "job_hash": m.job_hash,
                "title": m.job.title,
                "company": m.job.company,
                "city": m.job.city,
                "url": m.job.url,
                # 0–100 in the pipeline, 0–1 in storage
                "match_score": f"{m.match_score / 100:.2f}",
                "match_reason": m.match_reason,
                "method": m.method,
                "relaxation_level": result.relaxation_level.value,
                "matched_at": matched_at,
            }
        if not new_rows:
            return 0

        self._ensure()
        with open(self.path, "r+", newline="", encoding="utf-8") as f:
            _lock(f)
            rows = list(csv.DictReader(f))
            for r in rows:
                if r.get("user_email") == user_email and r.get("job_hash") in new_rows:
                    r.update(new_rows.pop(r["job_hash"]))
            written = len(rows)
            rows.extend(new_rows.values())
            f.seek(0)
            f.truncate()
            w = csv.DictWriter(f, fieldnames=HEADERS)
            w.writeheader()
            w.writerows(rows)
            _unlock(f)
        log.debug("Stored %d match(es) for %s (%d new)", len(result.matches), user_email, len(rows) - written)
        return len(result.matches)

    def get_matches(self, user_email: str | None = None) -> list[dict[str, str]]:
        rows = self._read()
        if user_email is None:
            return rows
        return [r for r in rows if r.get("user_email") == user_email]
