"""Logging setup for the matching engine — stdlib only.

Library callers get named loggers that configure a stdout handler on first
use. The CLI calls ``configure_logging`` explicitly to add the dated file log.
"""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, MutableMapping

_DEFAULT_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_configured = False


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def configure_logging(
    level: str | None = None,
    log_dir: Path | None = None,
    to_file: bool | None = None,
) -> None:
    """Attach handlers to the root logger once; later calls only adjust the level."""
    global _configured
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    numeric = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric)
    if _configured:
        return
    _configured = True

    if not root.handlers:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
        root.addHandler(console)

    if to_file is None:
        to_file = _env_flag("JOBMATCH_LOG_FILE", True)
    if not to_file:
        return
    log_dir = log_dir or Path(os.environ.get("JOBMATCH_LOG_DIR", _DEFAULT_LOG_DIR))
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / f"matching_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
    except OSError as exc:
        root.warning("File logging disabled: %s", exc)
        return
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
    root.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


class RequestLogger(logging.LoggerAdapter):
    """Prefixes messages with the user and tier of the match request being served."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        ctx = " ".join(f"{k}={v}" for k, v in self.extra.items() if v)
        return (f"[{ctx}] {msg}" if ctx else msg), kwargs


def for_request(logger: logging.Logger, **context: Any) -> RequestLogger:
    return RequestLogger(logger, context)
