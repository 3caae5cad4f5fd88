"""AI re-ranking through an OpenAI-compatible chat API (OpenAI or Groq)."""
from __future__ import annotations

import hashlib
import json
from abc import ABC, abstractmethod
from typing import Any

from jobmatch.cache import TTLCache
from jobmatch.config import MatchingSettings, get_env
from jobmatch.errors import ReRankerError, ReRankerUnavailable
from jobmatch.log import get_logger
from jobmatch.models import JobPosting, ScoredMatch, Tier, UserPreferences
from jobmatch.scorer import sort_key

log = get_logger(__name__)

SAMPLING_TOP = "top"
SAMPLING_STRIDED = "strided"

_SYSTEM_MESSAGE = (
    "You are a professional career advisor providing evidence-based job matching. "
    "Every claim must be tied to specific keywords in the job description or the "
    "user's profile. Never use generic phrases like \"Good match\"."
)


class ReRanker(ABC):
    """Capability: refine scores for a bounded candidate set."""

    @abstractmethod
    def score(self, jobs: list[JobPosting], prefs: UserPreferences) -> list[ScoredMatch]:
        pass


def _describe_prefs(prefs: UserPreferences) -> str:
    def fmt(values) -> str:
        return ", ".join(values) or "any"

    return (
        f"Target cities: {fmt(prefs.target_cities)}\n"
        f"Career paths: {fmt(prefs.career_path)}\n"
        f"Roles: {fmt(prefs.roles_selected)}\n"
        f"Entry level: {fmt(prefs.entry_level)}\n"
        f"Work environment: {fmt(prefs.work_environment)}\n"
        f"Visa status: {prefs.visa_status.value}\n"
        f"Languages: {fmt(prefs.languages_spoken)}"
    )


def build_prompt(jobs: list[JobPosting], prefs: UserPreferences) -> str:
    depth = 600 if prefs.tier is Tier.PREMIUM else 250
    lines = ["USER PROFILE:", _describe_prefs(prefs), "", "JOBS:"]
    for i, job in enumerate(jobs, 1):
        lines.append(
            f"{i}. [{job.job_hash}] {job.title} @ {job.company} — {job.city or job.location} "
            f"({job.effective_work_environment.value}) tags={','.join(sorted(job.categories))}\n"
            f"   {job.description[:depth]}"
        )
    lines.append(
        f"""
Return a JSON array of the jobs that fit this user, ranked by score (highest first):
[{{"job_index": 1, "job_hash": "hash-from-list", "match_score": 85, "match_reason": "2-3 evidence-based sentences"}}]
- job_index: 1-{len(jobs)} (the number in the list)
- job_hash: must exactly match the hash in brackets
- match_score: 0-100
Valid JSON only, no markdown."""
    )
    return "\n".join(lines)


def _strip_fences(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_response(content: str, jobs: list[JobPosting]) -> list[ScoredMatch]:
    """Turn the model's JSON into ScoredMatch rows; invalid rows are dropped."""
    try:
        parsed = json.loads(_strip_fences(content))
    except json.JSONDecodeError as exc:
        raise ReRankerError(f"AI response is not JSON: {exc}") from exc
    if isinstance(parsed, dict):
        parsed = parsed.get("matches", [])
    if not isinstance(parsed, list):
        raise ReRankerError(f"AI response has unexpected shape: {type(parsed).__name__}")

    by_hash = {j.job_hash: j for j in jobs}
    out: list[ScoredMatch] = []
    seen: set[str] = set()
    for row in parsed:
        if not isinstance(row, dict):
            continue
        job = by_hash.get(str(row.get("job_hash") or ""))
        idx = row.get("job_index")
        if job is None and isinstance(idx, int) and 1 <= idx <= len(jobs):
            job = jobs[idx - 1]
        score = row.get("match_score")
        if job is None or not isinstance(score, (int, float)) or isinstance(score, bool):
            continue
        if job.job_hash in seen:
            continue
        seen.add(job.job_hash)
        out.append(
            ScoredMatch(
                job=job,
                match_score=score,
                match_reason=str(row.get("match_reason") or "AI analyzed match"),
                components={"ai": int(max(0, min(100, score)))},
                method="ai",
            )
        )
    return out


class OpenAIReRanker(ReRanker):
    def __init__(
        self,
        api_key: str = "",
        *,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 15.0,
        cache: TTLCache | None = None,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.cache = cache
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise ReRankerUnavailable("no AI API key configured")
        from openai import OpenAI

        self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def _cache_key(self, jobs: list[JobPosting], prefs: UserPreferences) -> str:
        raw = json.dumps(prefs.to_dict(), sort_keys=True) + "|" + "|".join(sorted(j.job_hash for j in jobs))
        return f"{self.model}:{hashlib.sha256(raw.encode('utf-8')).hexdigest()}"

    def _call_model(self, prompt: str) -> str:
        client = self._get_client()
        r = client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": _SYSTEM_MESSAGE},
                {"role": "user", "content": prompt},
            ],
            max_tokens=2000,
            temperature=0.3,
        )
        if not r.choices:
            raise ReRankerError("AI response had no choices")
        return (r.choices[0].message.content or "").strip()

    def score(self, jobs: list[JobPosting], prefs: UserPreferences) -> list[ScoredMatch]:
        if not jobs:
            return []
        key = self._cache_key(jobs, prefs) if self.cache is not None else ""
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                log.debug("AI re-rank cache hit for %d jobs", len(jobs))
                return list(cached)

        content = self._call_model(build_prompt(jobs, prefs))
        if not content:
            raise ReRankerError("AI response was empty")
        matches = parse_response(content, jobs)
        log.info("AI re-ranked %d candidates -> %d scored", len(jobs), len(matches))

        if self.cache is not None and matches:
            self.cache.set(key, list(matches))
        return matches


GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_DEFAULT_MODEL = "llama-3.3-70b-versatile"


def build_reranker(settings: MatchingSettings, cache: TTLCache | None = None) -> OpenAIReRanker | None:
    """OpenAI when OPENAI_API_KEY is set, else Groq's OpenAI-compatible endpoint; None without a key."""
    openai_key = get_env("OPENAI_API_KEY")
    groq_key = get_env("GROQ_API_KEY")
    if openai_key:
        return OpenAIReRanker(
            openai_key,
            model=settings.ai_model,
            base_url=settings.ai_base_url,
            timeout=settings.ai_timeout_seconds,
            cache=cache,
        )
    if groq_key:
        return OpenAIReRanker(
            groq_key,
            model=get_env("GROQ_LLM_MODEL", GROQ_DEFAULT_MODEL),
            base_url=settings.ai_base_url or GROQ_BASE_URL,
            timeout=settings.ai_timeout_seconds,
            cache=cache,
        )
    log.debug("No OPENAI_API_KEY or GROQ_API_KEY — AI re-ranking disabled")
    return None


def select_candidates(
    ranked: list[ScoredMatch], limit: int, sampling: str = SAMPLING_TOP
) -> list[ScoredMatch]:
    """Top-N by score, or an evenly strided sample across the whole pool."""
    if limit <= 0:
        return []
    if len(ranked) <= limit or sampling != SAMPLING_STRIDED:
        return ranked[:limit]
    step = len(ranked) / limit
    return [ranked[int(i * step)] for i in range(limit)]


def rerank_candidates(
    ranked: list[ScoredMatch],
    prefs: UserPreferences,
    reranker: ReRanker,
    limit: int = 50,
    sampling: str = SAMPLING_TOP,
) -> list[ScoredMatch]:
    """Score the candidates with AI and merge the refined scores over the ranked pool.

    Raises ReRankerError (or whatever the re-ranker raises) on failure; callers
    fall back to ``ranked``.
    """
    candidates = select_candidates(ranked, limit, sampling)
    if not candidates:
        raise ReRankerError("no candidates to re-rank")

    ai_matches = reranker.score([c.job for c in candidates], prefs)
    allowed = {c.job_hash for c in candidates}
    ai_by_hash = {m.job_hash: m for m in ai_matches if m.job_hash in allowed}
    if not ai_by_hash:
        raise ReRankerError("AI returned no usable matches")

    # Candidates the model saw but left out rank below everything it scored
    floor = min(m.match_score for m in ai_by_hash.values()) - 1
    merged: list[ScoredMatch] = []
    for rule in ranked:
        ai = ai_by_hash.get(rule.job_hash)
        if ai is None:
            if rule.job_hash in allowed and rule.match_score > floor:
                rule = ScoredMatch(
                    job=rule.job,
                    match_score=floor,
                    match_reason=rule.match_reason,
                    components={**rule.components, "rule_score": rule.match_score, "ai_omitted": 1},
                    method=rule.method,
                )
            merged.append(rule)
            continue
        merged.append(
            ScoredMatch(
                job=rule.job,
                match_score=ai.match_score,
                match_reason=ai.match_reason,
                components={**rule.components, "rule_score": rule.match_score, "ai": ai.match_score},
                method="ai",
            )
        )
    return sorted(merged, key=sort_key)
