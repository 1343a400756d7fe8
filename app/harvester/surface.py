from __future__ import annotations

"""The browser automation capability the harvester drives.

The orchestration code never touches Playwright or Selenium directly: it goes
through :class:`AutomationSurface`, which the backends below implement and
which tests replace with in-memory fakes.
"""

from typing import Any, Callable, Optional, Protocol, Sequence

from . import config

Element = Any


class AutomationSurface(Protocol):
    """One isolated browser session.

    ``scope`` arguments accept ``None`` for the whole document or an element
    previously returned by :meth:`query_all`. Backends raise
    :class:`~app.harvester.error_codes.AutomationFailure` for navigation,
    query and click failures and
    :class:`~app.harvester.error_codes.AutomationTimeout` when
    :meth:`await_appearance` expires.
    """

    def navigate(self, address: str) -> None: ...

    def query_all(self, scope: Optional[Element], selector: str) -> Sequence[Element]: ...

    def text_of(self, element: Element) -> str: ...

    def attribute(self, element: Element, name: str) -> Optional[str]: ...

    def click(self, element: Element) -> None: ...

    def exists(self, scope: Optional[Element], selector: str) -> bool: ...

    def await_appearance(self, selector: str, timeout_ms: int) -> None: ...

    def pause(self, seconds: float) -> None: ...

    def close(self) -> None: ...


SurfaceFactory = Callable[[], AutomationSurface]


def first_element(
    surface: AutomationSurface, scope: Optional[Element], selector: str
) -> Optional[Element]:
    """Return the first match for ``selector`` under ``scope``, if any."""

    matches = surface.query_all(scope, selector)
    return matches[0] if matches else None


def surface_factory_for(backend: Optional[str] = None) -> SurfaceFactory:
    """Return a zero-argument factory opening a fresh session for ``backend``.

    Backends are imported lazily so that a machine with only one automation
    library installed can still use it.
    """

    name = (backend or config.HARVEST_BACKEND).strip().lower()
    if name == "playwright":
        from .playwright_surface import PlaywrightSurface

        return PlaywrightSurface.launch
    if name == "selenium":
        from .selenium_surface import SeleniumSurface

        return SeleniumSurface.launch
    if config.is_snapshot_backend(name):
        from .snapshot_surface import SnapshotSurface

        return lambda: SnapshotSurface.from_directory(config.SNAPSHOT_DIR)
    raise ValueError(f"Unknown automation backend {name!r}")


__all__ = [
    "AutomationSurface",
    "Element",
    "SurfaceFactory",
    "first_element",
    "surface_factory_for",
]
