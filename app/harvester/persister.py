"""Buffered, append-only CSV output for harvested listings."""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from . import config
from .error_codes import PersistenceFailure
from .logging_utils import _harvest_event
from .models import Listing

CSV_HEADER = "Name,Industry,Location,Mobile,Phone1,Phone2,Phone3,WhatsApp Link,Business URL"

_WHATSAPP_RE = re.compile(r"wa\.me/(\+?)(\d+)")
_MOBILE_PREFIXES = ("3", "+393", "00393")

_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def destination_lock(path: Path) -> threading.Lock:
    """Return the process-wide lock serialising access to ``path``."""

    key = str(Path(path).resolve())
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[key] = lock
        return lock


def escape_csv_field(value: Optional[str]) -> str:
    text = value or ""
    if "," in text or '"' in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def extract_mobile_number(listing: Listing) -> str:
    """Return the best mobile number for ``listing``, or ``""``.

    A WhatsApp deep link wins (its leading ``+`` preserved); otherwise the
    first phone number carrying an Italian mobile prefix is used.
    """

    if listing.whatsapp_link:
        match = _WHATSAPP_RE.search(listing.whatsapp_link)
        if match:
            return match.group(1) + match.group(2)

    for phone in listing.phone_numbers:
        compact = re.sub(r"\s+", "", phone)
        if compact.startswith(_MOBILE_PREFIXES):
            return compact
    return ""


def listing_to_row(listing: Listing) -> str:
    phones = list(listing.phone_numbers[:3]) + [""] * max(0, 3 - len(listing.phone_numbers))
    fields = [
        listing.name,
        listing.category,
        listing.location,
        extract_mobile_number(listing),
        phones[0],
        phones[1],
        phones[2],
        listing.whatsapp_link or "",
        listing.business_url,
    ]
    return ",".join(escape_csv_field(field) for field in fields)


def append_rows(path: Path, listings: Iterable[Listing]) -> int:
    """Append ``listings`` to ``path``, writing the header when the file is new.

    Must be called with :func:`destination_lock` held for ``path``. Returns the
    number of rows written.
    """

    rows = [listing_to_row(listing) for listing in listings]
    if not rows:
        return 0

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fresh = not path.exists() or path.stat().st_size == 0
        with path.open("a", encoding="utf-8", newline="") as handle:
            if fresh:
                handle.write(CSV_HEADER + "\n")
            handle.write("\n".join(rows) + "\n")
    except OSError as exc:
        raise PersistenceFailure(f"Cannot write {path}: {exc}") from exc
    return len(rows)


class BatchPersister:
    """Buffer listings for one partition and flush them in batches.

    The buffer is flushed when it reaches ``threshold`` and once more at the
    end of the partition. Records still buffered when the process dies are
    lost; at most ``threshold - 1`` of them per partition.
    """

    def __init__(self, destination: Path, *, threshold: Optional[int] = None, label: str = "") -> None:
        self.destination = Path(destination)
        self.threshold = max(1, threshold if threshold is not None else config.FLUSH_THRESHOLD)
        self.label = label
        self.flushed = 0
        self.flush_count = 0
        self._buffer: List[Listing] = []
        self._lock = destination_lock(self.destination)

    @property
    def pending(self) -> List[Listing]:
        return list(self._buffer)

    def extend(self, listings: Iterable[Listing]) -> int:
        """Buffer ``listings``; flush if the threshold is reached. Returns rows flushed."""

        self._buffer.extend(listings)
        if len(self._buffer) >= self.threshold:
            return self.flush()
        return 0

    def flush(self) -> int:
        if not self._buffer:
            return 0
        with self._lock:
            written = append_rows(self.destination, self._buffer)
        self._buffer.clear()
        self.flushed += written
        self.flush_count += 1
        _harvest_event(
            "flush",
            partition=self.label,
            destination=str(self.destination),
            rows=written,
            flushed_total=self.flushed,
        )
        return written


__all__ = [
    "CSV_HEADER",
    "BatchPersister",
    "append_rows",
    "destination_lock",
    "escape_csv_field",
    "extract_mobile_number",
    "listing_to_row",
]
