from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from . import config
from .logging_utils import _harvest_event
from .page_selectors import ListingSelectors
from .surface import AutomationSurface, first_element


@dataclass(frozen=True)
class CursorPosition:
    """Where the live source stands after replaying pagination for a resume."""

    target: int
    visible: int
    advances: int
    reached: bool


def reconstruct_cursor(
    surface: AutomationSurface,
    target: int,
    selectors: ListingSelectors,
    *,
    max_advances: Optional[int] = None,
    settle_seconds: Optional[float] = None,
    label: str = "",
) -> CursorPosition:
    """Click "next page" until at least ``target`` listings are rendered.

    Stops early when the next-page control disappears (the source is shorter
    than the saved output) or after ``max_advances`` clicks, which bounds the
    loop even when clicking stops loading anything.
    """

    limit = config.MAX_RESUME_ADVANCES if max_advances is None else max(0, max_advances)
    settle = config.RESUME_ADVANCE_SETTLE_SECONDS if settle_seconds is None else settle_seconds

    visible = len(surface.query_all(None, selectors.listing))
    advances = 0
    stop_reason = "reached"
    while visible < target:
        if advances >= limit:
            stop_reason = "advance_limit"
            break
        if not surface.exists(None, selectors.next_page):
            stop_reason = "no_more_pages"
            break
        surface.click(first_element(surface, None, selectors.next_page))
        advances += 1
        surface.pause(settle)
        visible = len(surface.query_all(None, selectors.listing))

    position = CursorPosition(
        target=target,
        visible=visible,
        advances=advances,
        reached=visible >= target,
    )
    _harvest_event(
        "resume",
        partition=label,
        target=target,
        visible=visible,
        advances=advances,
        reached=position.reached,
        stop_reason=stop_reason,
    )
    return position


__all__ = ["CursorPosition", "reconstruct_cursor"]
