"""Load matching configuration from config/matching.yaml and the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobmatch.log import get_logger
from jobmatch.models import Tier
from jobmatch.retry import DISPATCH_POLICY, RetryPolicy

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "matching.yaml"
REPORTS_DIR: Path = ROOT_DIR / "reports"
DATA_DIR: Path = ROOT_DIR / "data"

STRATEGIES: tuple[str, ...] = ("rule-based", "inline", "durable")
SAMPLING_MODES: tuple[str, ...] = ("top", "strided")


@dataclass(frozen=True)
class TierSettings:
    max_matches: int
    quality_threshold: int
    recency_days: int
    use_ai: bool = True
    ai_candidate_limit: int = 50
    ai_sampling: str = "top"


@dataclass(frozen=True)
class MatchingSettings:
    tiers: dict[Tier, TierSettings] = field(default_factory=dict)
    broadened_recency_days: int = 60
    min_viable_jobs: int = 3
    ai_timeout_seconds: float = 15.0
    ai_model: str = "gpt-4o-mini"
    ai_base_url: str | None = None
    strategy: str = "inline"
    durable_event_url: str = ""
    durable_event_key: str = ""
    dispatch_retry: RetryPolicy = DISPATCH_POLICY

    def for_tier(self, tier: Tier) -> TierSettings:
        return self.tiers.get(tier) or DEFAULT_TIERS[tier]


# Free tier: 5 matches, 30-day window. Premium: 15 matches, 7-day window, higher bar.
DEFAULT_TIERS: dict[Tier, TierSettings] = {
    Tier.FREE: TierSettings(
        max_matches=5,
        quality_threshold=55,
        recency_days=30,
        ai_candidate_limit=20,
    ),
    Tier.PREMIUM: TierSettings(
        max_matches=15,
        quality_threshold=65,
        recency_days=7,
        ai_candidate_limit=50,
    ),
}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _tier_from_dict(raw: dict[str, Any], base: TierSettings) -> TierSettings:
    sampling = str(raw.get("ai_sampling", base.ai_sampling)).lower()
    if sampling not in SAMPLING_MODES:
        log.warning("Unknown ai_sampling %r — using %r", sampling, base.ai_sampling)
        sampling = base.ai_sampling
    return TierSettings(
        max_matches=int(raw.get("max_matches", base.max_matches)),
        quality_threshold=int(raw.get("quality_threshold", base.quality_threshold)),
        recency_days=int(raw.get("recency_days", base.recency_days)),
        use_ai=bool(raw.get("use_ai", base.use_ai)),
        ai_candidate_limit=int(raw.get("ai_candidate_limit", base.ai_candidate_limit)),
        ai_sampling=sampling,
    )


def settings_from_dict(data: dict[str, Any]) -> MatchingSettings:
    tiers = dict(DEFAULT_TIERS)
    for name, raw in (data.get("tiers") or {}).items():
        tier = Tier.normalize(name)
        tiers[tier] = _tier_from_dict(raw or {}, DEFAULT_TIERS[tier])

    ai = data.get("ai") or {}
    durable = data.get("durable") or {}
    retry_raw = durable.get("retry") or {}
    strategy = str(data.get("strategy", "inline")).lower()
    if strategy not in STRATEGIES:
        log.warning("Unknown strategy %r — falling back to inline", strategy)
        strategy = "inline"

    return MatchingSettings(
        tiers=tiers,
        broadened_recency_days=int(data.get("broadened_recency_days", 60)),
        min_viable_jobs=int(data.get("min_viable_jobs", 3)),
        ai_timeout_seconds=float(ai.get("timeout_seconds", 15.0)),
        ai_model=str(ai.get("model", "gpt-4o-mini")),
        ai_base_url=ai.get("base_url") or None,
        strategy=strategy,
        durable_event_url=str(durable.get("event_url", "")),
        durable_event_key=str(durable.get("event_key", "")),
        dispatch_retry=RetryPolicy(
            max_attempts=int(retry_raw.get("max_attempts", DISPATCH_POLICY.max_attempts)),
            base_delay=float(retry_raw.get("base_delay", DISPATCH_POLICY.base_delay)),
            max_delay=float(retry_raw.get("max_delay", DISPATCH_POLICY.max_delay)),
        ),
    )


def _apply_env(settings: MatchingSettings) -> MatchingSettings:
    overrides: dict[str, Any] = {}
    strategy = get_env("MATCHING_STRATEGY").lower()
    if strategy in STRATEGIES:
        overrides["strategy"] = strategy
    timeout = get_env("AI_TIMEOUT_SECONDS")
    if timeout:
        try:
            overrides["ai_timeout_seconds"] = float(timeout)
        except ValueError:
            log.warning("Ignoring non-numeric AI_TIMEOUT_SECONDS=%r", timeout)
    if get_env("AI_MODEL"):
        overrides["ai_model"] = get_env("AI_MODEL")
    if get_env("AI_BASE_URL"):
        overrides["ai_base_url"] = get_env("AI_BASE_URL")
    if get_env("DURABLE_EVENT_URL"):
        overrides["durable_event_url"] = get_env("DURABLE_EVENT_URL")
    if get_env("DURABLE_EVENT_KEY"):
        overrides["durable_event_key"] = get_env("DURABLE_EVENT_KEY")
    return replace(settings, **overrides) if overrides else settings


def load_settings(path: Path | None = None) -> MatchingSettings:
    """Read matching.yaml (if present) and layer environment overrides on top."""
    path = path or SETTINGS_PATH
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        log.debug("No settings file at %s — using built-in defaults", path)
    return _apply_env(settings_from_dict(data))


def ensure_dirs() -> None:
    for d in (REPORTS_DIR, DATA_DIR):
        d.mkdir(parents=True, exist_ok=True)
