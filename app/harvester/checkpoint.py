"""Derive a partition's resume position from its destination CSV."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from . import config
from .error_codes import PersistenceFailure
from .persister import destination_lock
from .utils import log_line


def count_matching_rows(text: str, partition_key: Optional[str] = None) -> int:
    """Count data lines in ``text`` that mention ``partition_key``.

    The first line is the header. Matching is a plain substring test, so a
    key that also appears in another partition's row (a city name inside an
    address, say) is counted too, and a quoted field spanning two lines counts
    twice. Resume positions inherit that imprecision.
    """

    lines = text.split("\n")[1:]
    count = 0
    for line in lines:
        if not line.strip():
            continue
        if partition_key and partition_key not in line:
            continue
        count += 1
    return count


def resolve_checkpoint(path: Path, partition_key: Optional[str] = None) -> int:
    """Return how many rows of ``path`` belong to ``partition_key`` (0 if absent)."""

    path = Path(path)
    with destination_lock(path):
        if not path.exists():
            return 0
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceFailure(f"Cannot read {path}: {exc}") from exc
    return count_matching_rows(text, partition_key)


def is_saturated(count: int, ceiling: Optional[int] = None) -> bool:
    """Return ``True`` when a previous run already harvested enough rows."""

    limit = config.RESUME_CEILING if ceiling is None else ceiling
    if count > limit:
        log_line(f"[CHECKPOINT] {count} rows already saved (ceiling {limit}); partition complete.")
        return True
    return False


__all__ = ["count_matching_rows", "resolve_checkpoint", "is_saturated"]
