"""Selenium backend for the automation surface."""
from __future__ import annotations

import time
from typing import Optional, Sequence

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from . import config
from .error_codes import AutomationFailure, AutomationTimeout, ErrorCode
from .logging_utils import _harvest_event


def make_driver() -> WebDriver:
    """Instantiate a Chrome WebDriver configured like the Playwright backend."""

    chrome_options = Options()
    if config.CHROMIUM_BINARY:
        chrome_options.binary_location = config.CHROMIUM_BINARY
    if config.HEADLESS:
        chrome_options.add_argument("--headless=new")
    for arg in config.BROWSER_ARGS:
        chrome_options.add_argument(arg)
    chrome_options.add_argument(
        f"--window-size={config.VIEWPORT['width']},{config.VIEWPORT['height']}"
    )
    chrome_options.add_argument(f"--user-agent={config.USER_AGENT}")
    # Skip images; stylesheets and fonts cannot be blocked through prefs.
    chrome_options.add_experimental_option(
        "prefs", {"profile.managed_default_content_settings.images": 2}
    )
    driver = webdriver.Chrome(options=chrome_options)
    driver.set_page_load_timeout(config.NAV_TIMEOUT_SECONDS)
    return driver


class SeleniumSurface:
    """Automation surface backed by a Selenium Chrome session."""

    def __init__(self, driver: WebDriver) -> None:
        self._driver = driver

    @classmethod
    def launch(cls) -> "SeleniumSurface":
        try:
            return cls(make_driver())
        except WebDriverException as exc:
            raise AutomationFailure(ErrorCode.SESSION, f"WebDriver launch failed: {exc}") from exc

    def navigate(self, address: str) -> None:
        _harvest_event("nav", step="goto", url=address)
        try:
            self._driver.get(address)
        except TimeoutException as exc:
            raise AutomationTimeout(f"get({address!r}) timed out: {exc}") from exc
        except WebDriverException as exc:
            raise AutomationFailure(ErrorCode.NAVIGATION, f"get({address!r}) failed: {exc}") from exc

    def query_all(self, scope, selector: str) -> Sequence:
        root = self._driver if scope is None else scope
        try:
            return root.find_elements(By.CSS_SELECTOR, selector)
        except WebDriverException as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"query {selector!r} failed: {exc}") from exc

    def text_of(self, element) -> str:
        # textContent keeps text hidden by CSS, matching the Playwright backend.
        try:
            return element.get_attribute("textContent") or ""
        except WebDriverException as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"textContent failed: {exc}") from exc

    def attribute(self, element, name: str) -> Optional[str]:
        try:
            return element.get_dom_attribute(name)
        except WebDriverException as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"attribute {name!r} failed: {exc}") from exc

    def click(self, element) -> None:
        try:
            self._driver.execute_script("arguments[0].click();", element)
        except WebDriverException as exc:
            raise AutomationFailure(ErrorCode.CLICK, f"click failed: {exc}") from exc

    def exists(self, scope, selector: str) -> bool:
        return len(self.query_all(scope, selector)) > 0

    def await_appearance(self, selector: str, timeout_ms: int) -> None:
        try:
            WebDriverWait(self._driver, max(timeout_ms, 1) / 1000).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, selector))
            )
        except TimeoutException as exc:
            raise AutomationTimeout(f"{selector!r} did not appear within {timeout_ms}ms") from exc
        except WebDriverException as exc:
            raise AutomationFailure(ErrorCode.QUERY, f"wait for {selector!r} failed: {exc}") from exc

    def pause(self, seconds: float) -> None:
        if seconds and seconds > 0:
            time.sleep(seconds)

    def close(self) -> None:
        try:
            self._driver.quit()
        except Exception as exc:  # noqa: BLE001
            _harvest_event("error", phase="session", step="close", error=str(exc))


__all__ = ["make_driver", "SeleniumSurface"]
