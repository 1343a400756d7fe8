"""Offline automation surface over saved search result pages.

Each snapshot is the HTML of one "page" of results. Clicking the next-page
control appends the following snapshot to the document, the way the live
"show more results" button does, so a captured crawl can be replayed through
the same orchestration code without a browser.
"""
from __future__ import annotations

import re
import urllib.parse
from pathlib import Path
from typing import List, Optional, Sequence, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from .error_codes import AutomationFailure, AutomationTimeout, ErrorCode
from .page_selectors import PAGINE_GIALLE_SELECTORS
from .utils import log_line

SnapshotSource = Union[str, Path]


def snapshot_key(address: str) -> str:
    """Return the snapshot sub-directory name used for ``address``."""

    segment = urllib.parse.unquote(address.rstrip("/").split("/")[-1])
    return re.sub(r"[^a-zA-Z0-9]+", "_", segment).strip("_").lower()


class SnapshotSurface:
    def __init__(
        self,
        sources: Sequence[SnapshotSource] = (),
        *,
        root: Optional[Path] = None,
        advance_selector: str = PAGINE_GIALLE_SELECTORS.next_page,
    ) -> None:
        self._root = Path(root) if root is not None else None
        self._sources: List[SnapshotSource] = list(sources)
        self._advance_selector = advance_selector
        self._documents: List[BeautifulSoup] = []
        self._next_source = 0
        self.clicks = 0
        self.pauses: List[float] = []
        self.closed = False

    @classmethod
    def from_directory(cls, root: Path) -> "SnapshotSurface":
        return cls(root=root)

    @classmethod
    def from_html(cls, pages: Sequence[str], **kwargs) -> "SnapshotSurface":
        return cls(list(pages), **kwargs)

    def _resolve_sources(self, address: str) -> List[SnapshotSource]:
        if self._root is None:
            return self._sources
        directory = self._root / snapshot_key(address)
        if not directory.is_dir():
            directory = self._root
        return sorted(directory.glob("*.html"))

    def _load(self, source: SnapshotSource) -> BeautifulSoup:
        if isinstance(source, Path):
            try:
                text = source.read_text(encoding="utf-8")
            except OSError as exc:
                raise AutomationFailure(ErrorCode.NAVIGATION, f"Cannot read {source}: {exc}") from exc
        else:
            text = source
        return BeautifulSoup(text, "html.parser")

    def _append_next(self) -> bool:
        if self._next_source >= len(self._sources):
            return False
        # The live page replaces its next-page control; keep only the newest.
        for document in self._documents:
            for control in document.select(self._advance_selector):
                control.decompose()
        self._documents.append(self._load(self._sources[self._next_source]))
        self._next_source += 1
        return True

    def navigate(self, address: str) -> None:
        self._sources = list(self._resolve_sources(address))
        self._documents = []
        self._next_source = 0
        if not self._append_next():
            raise AutomationFailure(ErrorCode.NAVIGATION, f"No snapshots for {address!r}")
        log_line(f"[SNAPSHOT] Loaded {len(self._sources)} snapshot page(s) for {address}")

    def query_all(self, scope, selector: str) -> Sequence[Tag]:
        if scope is not None:
            return scope.select(selector)
        matches: List[Tag] = []
        for document in self._documents:
            matches.extend(document.select(selector))
        return matches

    def text_of(self, element: Tag) -> str:
        return element.get_text()

    def attribute(self, element: Tag, name: str) -> Optional[str]:
        value = element.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def click(self, element: Tag) -> None:
        self.clicks += 1
        controls = self.query_all(None, self._advance_selector)
        if any(element is control for control in controls):
            self._append_next()

    def exists(self, scope, selector: str) -> bool:
        return len(self.query_all(scope, selector)) > 0

    def await_appearance(self, selector: str, timeout_ms: int) -> None:
        if not self.exists(None, selector):
            raise AutomationTimeout(f"{selector!r} did not appear within {timeout_ms}ms")

    def pause(self, seconds: float) -> None:
        self.pauses.append(seconds)

    def close(self) -> None:
        self.closed = True


__all__ = ["SnapshotSurface", "snapshot_key"]
