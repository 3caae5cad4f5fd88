import os

import pytest

# Keep test runs off the real log directory; set before jobmatch.log configures handlers.
os.environ.setdefault("JOBMATCH_LOG_FILE", "false")

_ENV_OVERRIDES = (
    "OPENAI_API_KEY",
    "GROQ_API_KEY",
    "MATCHING_STRATEGY",
    "AI_TIMEOUT_SECONDS",
    "AI_MODEL",
    "AI_BASE_URL",
    "DURABLE_EVENT_URL",
    "DURABLE_EVENT_KEY",
)


@pytest.fixture(autouse=True)
def _clear_matching_env(monkeypatch) -> None:
    for key in _ENV_OVERRIDES:
        monkeypatch.delenv(key, raising=False)
