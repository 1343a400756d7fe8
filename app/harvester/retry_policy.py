from __future__ import annotations

from typing import Optional

from . import config
from .logging_utils import _harvest_event

ACTIVE = "active"
EXHAUSTED = "exhausted"


class EmptyHarvestRetry:
    """Tolerate a bounded run of empty harvests before giving up on a partition.

    The next-page control can stay visible while a click renders nothing new,
    so a single empty harvest is not proof that the source is done. Once the
    count of consecutive empty harvests exceeds ``cap`` the controller is
    exhausted for good.
    """

    def __init__(self, cap: Optional[int] = None, *, label: str = "") -> None:
        self.cap = config.MAX_EMPTY_HARVESTS if cap is None else max(0, cap)
        self.label = label
        self.consecutive_empty = 0
        self.state = ACTIVE

    @property
    def exhausted(self) -> bool:
        return self.state == EXHAUSTED

    def observe(self, new_records: int) -> bool:
        """Record one harvest; return ``True`` while the partition should go on."""

        if self.exhausted:
            return False

        if new_records > 0:
            self.consecutive_empty = 0
            return True

        self.consecutive_empty += 1
        if self.consecutive_empty > self.cap:
            self.state = EXHAUSTED
            kind = "exhausted"
        else:
            kind = "empty_retry"

        _harvest_event(
            "state",
            phase="retry_decision",
            kind=kind,
            partition=self.label,
            consecutive_empty=self.consecutive_empty,
            cap=self.cap,
            will_retry=not self.exhausted,
        )
        return not self.exhausted


__all__ = ["EmptyHarvestRetry", "ACTIVE", "EXHAUSTED"]
