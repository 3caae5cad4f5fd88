from pathlib import Path

from .base import JobPoolSource
from .file import FileSource
from .mock import MockSource

from jobmatch.log import get_logger

log = get_logger(__name__)

__all__ = ["JobPoolSource", "FileSource", "MockSource", "get_source"]


def get_source(path: Path | str | None = None) -> JobPoolSource:
    if path:
        log.info("Using job snapshot: %s", path)
        return FileSource(path)
    log.info("No job snapshot given — using MockSource")
    return MockSource()
