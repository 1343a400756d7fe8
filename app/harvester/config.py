"""Configuration constants for the listing harvester."""
from __future__ import annotations

import os
from pathlib import Path

DATA_DIR: Path = Path(os.getenv("HARVESTER_DATA_DIR", "data"))
OUTPUT_DIR: Path = Path(os.getenv("HARVESTER_OUTPUT_DIR", str(DATA_DIR / "output")))
LOG_DIR: Path = DATA_DIR / "logs"
LOG_FILE: Path = LOG_DIR / "latest.log"
RUNS_DIR: Path = DATA_DIR / "runs"
EXPORTS_DIR: Path = DATA_DIR / "exports"
MAX_EXPORTS: int = int(os.getenv("HARVESTER_EXPORTS_KEEP_MAX", "5"))

# Automation backend: "playwright", "selenium" or "snapshot".
HARVEST_BACKEND: str = os.getenv("HARVESTER_BACKEND", "playwright").strip().lower() or "playwright"
HEADLESS: bool = os.getenv("HARVESTER_HEADLESS", "true").strip().lower() not in {"0", "false"}
CHROMIUM_BINARY: str = os.getenv("HARVESTER_CHROMIUM_BINARY", "")
SNAPSHOT_DIR: Path = Path(os.getenv("HARVESTER_SNAPSHOT_DIR", str(DATA_DIR / "snapshots")))

# Resume and pagination limits
FLUSH_THRESHOLD: int = int(os.getenv("HARVESTER_FLUSH_THRESHOLD", "20"))
MAX_EMPTY_HARVESTS: int = int(os.getenv("HARVESTER_MAX_EMPTY_HARVESTS", "4"))
RESUME_CEILING: int = int(os.getenv("HARVESTER_RESUME_CEILING", "100"))
PARTITION_RECORD_CAP: int = int(os.getenv("HARVESTER_PARTITION_RECORD_CAP", "200"))
MAX_RESUME_ADVANCES: int = int(os.getenv("HARVESTER_MAX_RESUME_ADVANCES", "50"))

# Concurrency controls
WAVE_WIDTH: int = int(os.getenv("HARVESTER_WAVE_WIDTH", "5"))
WAVE_PACING_SECONDS: float = float(os.getenv("HARVESTER_WAVE_PACING_SECONDS", "1.0"))


def _parse_timeout_seconds(env_var: str, default: int, *, minimum: int = 1) -> int:
    """Parse a timeout value in seconds from the environment with bounds."""

    try:
        value = int(os.getenv(env_var, str(default)))
    except ValueError:
        return default
    return max(minimum, value)


# Navigation timeout for page loads.
NAV_TIMEOUT_SECONDS: int = _parse_timeout_seconds("HARVESTER_NAV_TIMEOUT_SECONDS", 30)
# Wait for listings to render after clicking the next-page control, in
# milliseconds to match the Playwright API.
APPEARANCE_TIMEOUT_MS: int = int(os.getenv("HARVESTER_APPEARANCE_TIMEOUT_MS", "2000"))

# Short sleeps (seconds) for reveal and pagination settle
REVEAL_SETTLE_SECONDS: float = float(os.getenv("HARVESTER_REVEAL_SETTLE_SECONDS", "0.5"))
ADVANCE_SETTLE_SECONDS: float = float(os.getenv("HARVESTER_ADVANCE_SETTLE_SECONDS", "1.0"))
RESUME_ADVANCE_SETTLE_SECONDS: float = float(
    os.getenv("HARVESTER_RESUME_ADVANCE_SETTLE_SECONDS", "0.0")
)

VIEWPORT: dict[str, int] = {"width": 1366, "height": 768}
USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
BROWSER_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
)
BLOCKED_RESOURCE_TYPES: frozenset[str] = frozenset({"image", "stylesheet", "font"})

KNOWN_BACKENDS: tuple[str, ...] = ("playwright", "selenium", "snapshot")


def is_snapshot_backend(backend: str) -> bool:
    """Return ``True`` when ``backend`` selects the offline snapshot surface."""

    return str(backend).strip().lower() == "snapshot"
