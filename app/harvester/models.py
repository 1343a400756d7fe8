"""Records and partition identities flowing through a harvest."""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Listing:
    """One business listing, normalised and immutable once harvested."""

    name: str
    category: str
    location: str
    phone_numbers: Tuple[str, ...] = ()
    whatsapp_link: Optional[str] = None
    business_url: str = ""


@dataclass(frozen=True)
class Partition:
    """One independent crawl stream: a search URL narrowed to a city.

    Every partition of the same ``source_url`` writes to the same destination
    file; rows are told apart only by the city text they contain.
    """

    source_url: str
    city: str

    @property
    def address(self) -> str:
        return f"{self.source_url.rstrip('/')}/{urllib.parse.quote(self.city)}"

    @property
    def label(self) -> str:
        return f"{self.source_url.rstrip('/').split('/')[-1]}/{self.city}"


@dataclass
class PartitionResult:
    partition: Partition
    status: str
    checkpoint: int = 0
    harvested: int = 0
    flushed: int = 0
    error_code: Optional[str] = None
    error: Optional[str] = None
    sample: list[Listing] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != "failed"


class PartitionStatus:
    COMPLETED = "completed"
    EXHAUSTED = "exhausted"
    CAPPED = "capped"
    SKIPPED = "skipped"
    FAILED = "failed"


__all__ = ["Listing", "Partition", "PartitionResult", "PartitionStatus"]
