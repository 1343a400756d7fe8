from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from . import config
from .error_codes import ErrorCode
from .logging_utils import _harvest_event
from .models import Partition, PartitionResult, PartitionStatus
from .utils import log_line

PartitionWorker = Callable[[Partition], PartitionResult]


def _guarded(worker: PartitionWorker, partition: Partition) -> PartitionResult:
    try:
        return worker(partition)
    except Exception as exc:  # noqa: BLE001
        _harvest_event(
            "error",
            phase="partition",
            partition=partition.label,
            error_code=getattr(exc, "error_code", ErrorCode.INTERNAL),
            error=str(exc),
        )
        return PartitionResult(
            partition=partition,
            status=PartitionStatus.FAILED,
            error_code=getattr(exc, "error_code", ErrorCode.INTERNAL),
            error=str(exc),
        )


def waves(partitions: Sequence[Partition], width: int) -> List[List[Partition]]:
    """Split ``partitions`` into consecutive groups of at most ``width``."""

    size = max(1, width)
    return [list(partitions[i : i + size]) for i in range(0, len(partitions), size)]


def run_partitions(
    partitions: Sequence[Partition],
    worker: PartitionWorker,
    *,
    width: Optional[int] = None,
    pacing_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[PartitionResult]:
    """Run ``worker`` over ``partitions`` a wave at a time.

    Every partition of a wave runs on its own thread; the next wave starts
    only when the whole wave has finished and ``pacing_seconds`` have passed.
    A partition that raises becomes a ``failed`` result without affecting
    its siblings. Results come back in partition order.
    """

    wave_width = config.WAVE_WIDTH if width is None else width
    pacing = config.WAVE_PACING_SECONDS if pacing_seconds is None else pacing_seconds
    groups = waves(partitions, wave_width)
    results: List[PartitionResult] = []

    for index, group in enumerate(groups, start=1):
        log_line(f"=== Processing wave {index}/{len(groups)} ({len(group)} partitions) ===")
        with ThreadPoolExecutor(max_workers=len(group)) as executor:
            futures = [executor.submit(_guarded, worker, partition) for partition in group]
            results.extend(future.result() for future in futures)

        if index < len(groups) and pacing > 0:
            sleep(pacing)

    return results


__all__ = ["run_partitions", "waves", "PartitionWorker"]
