from __future__ import annotations

import hashlib
import logging
import re
import sys
import threading
import urllib.parse
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from . import config

LOGGER = logging.getLogger("harvester")
LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LOGGER_LOCK = threading.Lock()
_LOGGER_INITIALISED = False
_CURRENT_LOG_FILE: Path = config.LOG_FILE

_WHITESPACE_RE = re.compile(r"\s+")


def _build_handlers(log_path: Path) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: List[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_path, encoding="utf-8"),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _configure_logger(log_path: Path) -> None:
    """Point the shared ``harvester`` logger at stdout and ``log_path``.

    Partition threads all log through this one logger, so handlers are
    swapped under a lock and earlier file handlers are closed.
    """

    global _LOGGER_INITIALISED, _CURRENT_LOG_FILE

    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    with _LOGGER_LOCK:
        for handler in list(LOGGER.handlers):
            LOGGER.removeHandler(handler)
            try:
                handler.close()
            except OSError:
                continue
        for handler in _build_handlers(log_path):
            LOGGER.addHandler(handler)
        LOGGER.setLevel(logging.INFO)
        LOGGER.propagate = False
        _CURRENT_LOG_FILE = log_path
        _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    if not _LOGGER_INITIALISED:
        _configure_logger(config.LOG_FILE)


def setup_run_logger() -> Path:
    """Start a fresh ``harvest_<UTC timestamp>.log`` for the current run."""

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_path = Path(config.LOG_DIR) / f"harvest_{stamp}.log"
    _configure_logger(log_path)
    LOGGER.info("Logging to %s", log_path)
    return log_path


def get_current_log_path() -> Path:
    _ensure_logger()
    return _CURRENT_LOG_FILE


def ensure_dirs() -> None:
    """Create the data, output and log directories if missing."""

    for directory in (config.DATA_DIR, config.OUTPUT_DIR, config.LOG_DIR):
        Path(directory).mkdir(parents=True, exist_ok=True)


def log_line(message: str) -> None:
    """Write a timestamped line to stdout and the active run log."""

    _ensure_logger()
    LOGGER.info(message)


def clean_string(value: str | None) -> str:
    """Collapse whitespace runs (newlines, tabs, CRs included) and trim."""

    return _WHITESPACE_RE.sub(" ", value or "").strip()


def clean_location(value: str | None) -> str:
    """Normalise an address: whitespace plus spacing around ``- , ( )``."""

    cleaned = clean_string(value)
    cleaned = re.sub(r"\s*-\s*", " - ", cleaned)
    cleaned = re.sub(r"\s*,\s*", ", ", cleaned)
    cleaned = re.sub(r"\s*\(\s*", " (", cleaned)
    cleaned = re.sub(r"\s*\)\s*", ")", cleaned)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def output_filename(source_url: str) -> str:
    """Return the CSV file name shared by every partition of ``source_url``.

    The readable part comes from the last URL path segment; the SHA-1 suffix
    keeps two searches with similar slugs from landing in the same file.
    """

    segment = source_url.rstrip("/").split("/")[-1]
    slug = urllib.parse.unquote(segment)
    slug = re.sub(r"[^a-zA-Z0-9]+", "_", slug).strip("_").lower() or "search"
    digest = hashlib.sha1(source_url.encode("utf-8")).hexdigest()[:8]
    return f"{slug}_{digest}.csv"


def destination_path(source_url: str, output_dir: Path | None = None) -> Path:
    """Return the destination CSV path for ``source_url`` under ``output_dir``."""

    return Path(output_dir or config.OUTPUT_DIR) / output_filename(source_url)


__all__ = [
    "LOGGER",
    "setup_run_logger",
    "get_current_log_path",
    "ensure_dirs",
    "log_line",
    "clean_string",
    "clean_location",
    "output_filename",
    "destination_path",
]
