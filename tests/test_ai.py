"""Tests for AI re-ranking: response parsing, candidate selection, merging."""
from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from jobmatch.ai import (
    GROQ_BASE_URL,
    OpenAIReRanker,
    ReRanker,
    build_prompt,
    build_reranker,
    parse_response,
    rerank_candidates,
    select_candidates,
)
from jobmatch.cache import TTLCache
from jobmatch.config import MatchingSettings
from jobmatch.errors import ReRankerError, ReRankerUnavailable
from jobmatch.scorer import rank

from factories import NOW, make_job, make_match, make_prefs


class FakeCompletions:
    def __init__(self, content: str) -> None:
        self.content = content
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(content: str):
    completions = FakeCompletions(content)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class FixedReRanker(ReRanker):
    def __init__(self, scores: dict[str, int]) -> None:
        self.scores = scores
        self.seen: list[str] = []

    def score(self, jobs, prefs):
        self.seen = [j.job_hash for j in jobs]
        return [make_match(j, self.scores[j.job_hash], "ai reason") for j in jobs if j.job_hash in self.scores]


def test_parse_response_handles_fences_and_drops_invalid_rows():
    jobs = [make_job(), make_job()]
    payload = [
        {"job_index": 1, "job_hash": jobs[0].job_hash, "match_score": 130, "match_reason": "Strong fit"},
        {"job_index": 2, "job_hash": "unknown", "match_score": 70},
        {"job_index": 9, "job_hash": "nope", "match_score": 50},
        {"job_index": 1, "job_hash": jobs[0].job_hash, "match_score": 10},
        {"job_hash": jobs[1].job_hash, "match_score": "high"},
        "garbage",
    ]
    content = "```json\n" + json.dumps(payload) + "\n```"
    out = parse_response(content, jobs)
    assert [(m.job_hash, m.match_score) for m in out] == [(jobs[0].job_hash, 100), (jobs[1].job_hash, 70)]
    assert all(m.method == "ai" for m in out)


def test_parse_response_rejects_non_json():
    with pytest.raises(ReRankerError):
        parse_response("I think job 1 is great", [make_job()])


def test_prompt_lists_every_job_with_its_hash():
    jobs = [make_job(title="Analyst"), make_job(title="Marketer")]
    prompt = build_prompt(jobs, make_prefs(target_cities=["Dublin"]))
    for i, job in enumerate(jobs, 1):
        assert f"{i}. [{job.job_hash}] {job.title}" in prompt


def test_reranker_without_key_is_unavailable():
    with pytest.raises(ReRankerUnavailable):
        OpenAIReRanker("").score([make_job()], make_prefs())


def test_reranker_calls_client_and_caches_result():
    job = make_job()
    client, completions = fake_client(json.dumps([{"job_index": 1, "job_hash": job.job_hash, "match_score": 88}]))
    reranker = OpenAIReRanker("key", client=client, cache=TTLCache())
    prefs = make_prefs()
    first = reranker.score([job], prefs)
    second = reranker.score([job], prefs)
    assert first[0].match_score == second[0].match_score == 88
    assert len(completions.calls) == 1
    assert completions.calls[0]["messages"][0]["role"] == "system"


def test_empty_model_reply_is_an_error():
    client, _ = fake_client("")
    with pytest.raises(ReRankerError):
        OpenAIReRanker("key", client=client).score([make_job()], make_prefs())


def test_select_candidates_top_and_strided():
    ranked = [make_match(make_job(), 100 - i) for i in range(10)]
    assert select_candidates(ranked, 3) == ranked[:3]
    strided = select_candidates(ranked, 5, "strided")
    assert strided == [ranked[i] for i in (0, 2, 4, 6, 8)]
    assert select_candidates(ranked[:2], 5, "strided") == ranked[:2]


def test_rerank_candidates_merges_ai_scores_over_rule_scores():
    prefs = make_prefs()
    jobs = [make_job(days_old=d) for d in (0, 5, 10, 20)]
    ranked = rank(jobs, prefs, NOW)
    last = ranked[-1]
    reranker = FixedReRanker({ranked[0].job_hash: 40, last.job_hash: 99})
    merged = rerank_candidates(ranked, prefs, reranker, limit=4)
    assert merged[0].job_hash == last.job_hash
    assert merged[0].method == "ai"
    assert merged[0].components["rule_score"] == last.match_score
    untouched = [m for m in merged if m.method == "rule-based"]
    assert len(untouched) == 2
    assert len(merged) == len(ranked)


def test_rerank_candidates_ranks_omitted_candidates_below_scored_ones():
    prefs = make_prefs()
    ranked = rank([make_job(days_old=d) for d in (0, 1, 2)], prefs, NOW)
    low = ranked[-1]
    merged = rerank_candidates(ranked, prefs, FixedReRanker({low.job_hash: 20}), limit=3)
    assert merged[0].job_hash == low.job_hash
    omitted = merged[1:]
    assert all(m.match_score <= 19 and m.method == "rule-based" for m in omitted)


def test_rerank_candidates_only_sends_the_candidate_limit():
    prefs = make_prefs()
    ranked = rank([make_job(days_old=d) for d in range(6)], prefs, NOW)
    reranker = FixedReRanker({ranked[0].job_hash: 90})
    rerank_candidates(ranked, prefs, reranker, limit=2)
    assert reranker.seen == [m.job_hash for m in ranked[:2]]


def test_rerank_candidates_with_no_usable_scores_raises():
    prefs = make_prefs()
    ranked = rank([make_job()], prefs, NOW)
    with pytest.raises(ReRankerError):
        rerank_candidates(ranked, prefs, FixedReRanker({}), limit=5)


def test_build_reranker_prefers_openai_then_groq(monkeypatch):
    settings = MatchingSettings()
    assert build_reranker(settings) is None
    monkeypatch.setenv("GROQ_API_KEY", "gsk")
    groq = build_reranker(settings)
    assert groq is not None and groq.base_url == GROQ_BASE_URL
    monkeypatch.setenv("OPENAI_API_KEY", "sk")
    openai = build_reranker(settings)
    assert openai is not None and openai.api_key == "sk" and openai.model == settings.ai_model
