"""Job pool snapshot from a JSON or YAML file exported by the ingestion side."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from jobmatch.log import get_logger
from jobmatch.models import JobPosting
from jobmatch.sources.base import JobPoolSource

log = get_logger(__name__)


class FileSource(JobPoolSource):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _load(self) -> Any:
        with open(self.path, "r", encoding="utf-8") as f:
            if self.path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)

    def fetch(self) -> list[JobPosting]:
        data = self._load() or []
        if isinstance(data, dict):
            data = data.get("jobs", [])
        if not isinstance(data, list):
            raise ValueError(f"{self.path.name}: expected a list of jobs or a 'jobs' key")

        jobs: list[JobPosting] = []
        skipped = 0
        for raw in data:
            if not isinstance(raw, dict):
                skipped += 1
                continue
            jobs.append(JobPosting.from_dict(raw))
        if skipped:
            log.warning("[%s] skipped %d non-object entries", self.path.name, skipped)
        log.info("[%s] loaded %d jobs", self.path.name, len(jobs))
        return jobs
