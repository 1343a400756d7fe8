# app/harvester/playwright_surface.py
from __future__ import annotations

from typing import Optional, Sequence

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Error as PWError,
    Page,
    Playwright,
    Route,
    TimeoutError as PWTimeout,
    sync_playwright,
)

from . import config
from .error_codes import AutomationFailure, AutomationTimeout, ErrorCode
from .logging_utils import _harvest_event


def _is_target_closed_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return "target closed" in message or "has been closed" in message


def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in config.BLOCKED_RESOURCE_TYPES:
        route.abort()
    else:
        route.continue_()


class PlaywrightSurface:
    """Automation surface backed by a headless Chromium page.

    Each instance owns its own ``sync_playwright`` driver, so instances must
    be created, used and closed on the same thread.
    """

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page

    @classmethod
    def launch(cls, *, headless: Optional[bool] = None) -> "PlaywrightSurface":
        pw = sync_playwright().start()
        try:
            browser = pw.chromium.launch(
                headless=config.HEADLESS if headless is None else headless,
                args=list(config.BROWSER_ARGS),
            )
            context = browser.new_context(
                user_agent=config.USER_AGENT,
                viewport=dict(config.VIEWPORT),
            )
            page = context.new_page()
            page.route("**/*", _block_heavy_resources)
        except PWError as exc:
            pw.stop()
            raise AutomationFailure(ErrorCode.SESSION, f"Browser launch failed: {exc}") from exc
        return cls(pw, browser, context, page)

    def navigate(self, address: str) -> None:
        _harvest_event("nav", step="goto", url=address)
        try:
            self._page.goto(
                address,
                wait_until="domcontentloaded",
                timeout=config.NAV_TIMEOUT_SECONDS * 1000,
            )
        except PWTimeout as exc:
            raise AutomationTimeout(f"goto({address!r}) timed out: {exc}") from exc
        except PWError as exc:
            raise AutomationFailure(ErrorCode.NAVIGATION, f"goto({address!r}) failed: {exc}") from exc

    def query_all(self, scope, selector: str) -> Sequence:
        root = self._page if scope is None else scope
        try:
            return root.query_selector_all(selector)
        except PWError as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"query {selector!r} failed: {exc}") from exc

    def text_of(self, element) -> str:
        try:
            return element.text_content() or ""
        except PWError as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"text_content failed: {exc}") from exc

    def attribute(self, element, name: str) -> Optional[str]:
        try:
            return element.get_attribute(name)
        except PWError as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"get_attribute({name!r}) failed: {exc}") from exc

    def click(self, element) -> None:
        # DOM click: the reveal and next-page controls are often off-screen.
        try:
            element.evaluate("el => el.click()")
        except PWError as exc:
            raise AutomationFailure(ErrorCode.CLICK, f"click failed: {exc}") from exc

    def exists(self, scope, selector: str) -> bool:
        root = self._page if scope is None else scope
        try:
            return root.query_selector(selector) is not None
        except PWError as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"query {selector!r} failed: {exc}") from exc

    def await_appearance(self, selector: str, timeout_ms: int) -> None:
        try:
            self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PWTimeout as exc:
            raise AutomationTimeout(f"{selector!r} did not appear within {timeout_ms}ms") from exc
        except PWError as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"wait for {selector!r} failed: {exc}") from exc

    def pause(self, seconds: float) -> None:
        if seconds is None or seconds <= 0:
            return
        try:
            if not self._page.is_closed():
                self._page.wait_for_timeout(int(seconds * 1000))
        except PWError as exc:
            raise AutomationFailure(ErrorCode.SESSION, f"pause failed: {exc}") from exc

    def close(self) -> None:
        for closer in (self._context.close, self._browser.close, self._playwright.stop):
            try:
                closer()
            except PWError as exc:
                if not _is_target_closed_error(exc):
                    _harvest_event("error", phase="session", step="close", error=str(exc))
            except Exception as exc:  # noqa: BLE001
                _harvest_event("error", phase="session", step="close", error=str(exc))


__all__ = ["PlaywrightSurface"]
