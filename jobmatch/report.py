"""Render a DistributionResult as a markdown match report."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from jobmatch.config import REPORTS_DIR
from jobmatch.log import get_logger
from jobmatch.models import DistributionResult, RelaxationLevel, UserPreferences

log = get_logger(__name__)

_RELAXATION_NOTES: dict[RelaxationLevel, str] = {
    RelaxationLevel.DROP_CAREER_PATH: "No jobs matched your career path exactly, so related paths are included.",
    RelaxationLevel.DROP_VISA_FILTER: "Too few sponsorship-friendly roles; some roles may not sponsor visas.",
    RelaxationLevel.BROADEN_RECENCY: "Older postings are included to widen the pool.",
    RelaxationLevel.COUNTRY_ONLY_LOCATION: "Too few jobs in your cities; nearby jobs in the same country are included.",
}


def _short_url_label(url: str) -> str:
    host = (urlparse(url).hostname or "").replace("www.", "")
    parts = host.split(".")
    return parts[0].capitalize() if parts and parts[0] else "Link"


def _truncate(text: str, n: int) -> str:
    return text[:n] + ("…" if len(text) > n else "")


def build_match_report(
    result: DistributionResult, prefs: UserPreferences, now: datetime | None = None
) -> str:
    date = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    who = prefs.email or "you"
    lines: list[str] = [f"# Job Matches for {who} — {date}", ""]

    if not result.matched:
        lines.append(f"**{result.message or 'No matches found.'}**")
        lines.append("")
        for s in result.suggestions:
            lines.append(f"- {s}")
        lines.append("")
        log.info("Built no-matches report for %s", who)
        return "\n".join(lines)

    lines.append(
        f"**{len(result.matches)}** matches | tier **{prefs.tier.value}** | "
        f"avg score **{result.average_score:.0f}** (min {result.min_score}, max {result.max_score}) | "
        f"ranked by **{result.method}**"
    )
    lines.append("")
    note = _RELAXATION_NOTES.get(result.relaxation_level)
    if note:
        lines.append(f"> {note}")
        lines.append("")
    if not result.quality_filter_applied:
        lines.append("> Few jobs met the quality bar, so the best available are shown.")
        lines.append("")

    lines.append("## Matches")
    lines.append("")
    for m in result.matches:
        job = m.job
        lines.append(f"### {job.title} @ {job.company}")
        lines.append(f"- **Score:** {m.match_score}/100")
        lines.append(f"- **Location:** {job.city or job.location} ({job.effective_work_environment.value})")
        lines.append(f"- **Why:** {m.match_reason}")
        if job.url:
            lines.append(f"- **Apply:** [{_short_url_label(job.url)}]({job.url})")
        lines.append("")

    lines.append("---")
    lines.append("")
    lines.append("| # | Role | Company | City | Score |")
    lines.append("|--:|------|---------|------|------:|")
    for i, m in enumerate(result.matches, 1):
        lines.append(
            f"| {i} | {_truncate(m.job.title, 40)} | {_truncate(m.job.company, 22)} "
            f"| {m.job.city or '—'} | {m.match_score} |"
        )
    lines.append("")

    spread = ", ".join(f"{c}: {n}" for c, n in sorted(result.city_counts.items()))
    envs = ", ".join(f"{e}: {n}" for e, n in sorted(result.work_environment_counts.items()))
    lines.append(f"_Cities: {spread or 'n/a'} — Work environments: {envs or 'n/a'}_")
    if result.ai_ticket:
        lines.append("")
        lines.append(f"_AI re-ranking in progress (ticket `{result.ai_ticket}`)._")
    lines.append("")

    log.info("Built match report: %d jobs for %s", len(result.matches), who)
    return "\n".join(lines)


def write_match_report(content: str, reports_dir: Path | None = None, now: datetime | None = None) -> Path:
    reports_dir = reports_dir or REPORTS_DIR
    reports_dir.mkdir(parents=True, exist_ok=True)
    date = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    path = reports_dir / f"matches_{date}.md"
    path.write_text(content, encoding="utf-8")
    log.info("Report written → %s", path)
    return path
