"""Per-run harvest telemetry written as one JSON document per run."""

from __future__ import annotations

import json
import threading
import time
import uuid
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .models import PartitionResult


def _new_run_id() -> str:
    return f"{time.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


class RunTelemetry:
    """Collect per-partition outcomes for one harvest run.

    ``add_result`` may be called from worker threads; the JSON document is
    written once by :meth:`finalize`.
    """

    def __init__(self, mode: str) -> None:
        self.run_id = _new_run_id()
        self.mode = mode
        self.started_at = time.time()
        self.entries: List[Dict[str, Any]] = []
        self.statuses: Counter[str] = Counter()
        self.per_search: Dict[str, Dict[str, int]] = {}
        self._lock = threading.Lock()

    def add(self, status: str, reason: Optional[str], meta: Dict[str, Any]) -> None:
        with self._lock:
            self.entries.append({"status": status, "reason": reason, **meta})
            self.statuses[status] += 1

    def add_result(self, result: PartitionResult) -> None:
        partition = result.partition
        self.add(
            result.status,
            result.error_code,
            {
                "source_url": partition.source_url,
                "city": partition.city,
                "checkpoint": result.checkpoint,
                "harvested": result.harvested,
                "flushed": result.flushed,
                "error": result.error,
            },
        )
        with self._lock:
            totals = self.per_search.setdefault(
                partition.source_url, {"partitions": 0, "harvested": 0, "flushed": 0}
            )
            totals["partitions"] += 1
            totals["harvested"] += result.harvested
            totals["flushed"] += result.flushed

    def summary(self) -> Dict[str, Any]:
        with self._lock:
            counts = {f"count_{status}": n for status, n in sorted(self.statuses.items())}
            return {
                **counts,
                "harvested": sum(t["harvested"] for t in self.per_search.values()),
                "flushed": sum(t["flushed"] for t in self.per_search.values()),
            }

    def finalize(self, extra: Optional[Dict[str, Any]] = None) -> str:
        payload = {
            "run_id": self.run_id,
            "mode": self.mode,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "summary": self.summary(),
            "searches": self.per_search,
            "entries": self.entries,
            **(extra or {}),
        }
        runs_dir = Path(config.RUNS_DIR)
        runs_dir.mkdir(parents=True, exist_ok=True)
        path = runs_dir / f"run_{self.run_id}.json"
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        return str(path)


def prune_old_exports(keep: Optional[Path] = None) -> List[Path]:
    """Delete the oldest workbooks beyond ``MAX_EXPORTS``; return what was removed.

    Age is the file modification time. ``keep`` (usually the workbook just
    written) is never removed.
    """

    exports_dir = Path(config.EXPORTS_DIR)
    if not exports_dir.is_dir():
        return []
    workbooks = sorted(exports_dir.glob("*.xlsx"), key=lambda p: (p.stat().st_mtime_ns, p.name))
    excess = max(0, len(workbooks) - config.MAX_EXPORTS)
    if keep is not None:
        keep = Path(keep).resolve()
        workbooks = [p for p in workbooks if p.resolve() != keep]
    removed: List[Path] = []
    for old in workbooks[:excess]:
        try:
            old.unlink()
        except OSError:
            continue
        removed.append(old)
    return removed


__all__ = [
    "RunTelemetry",
    "prune_old_exports",
]
