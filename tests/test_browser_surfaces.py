import pytest
from playwright.sync_api import Error as PWError, TimeoutError as PWTimeout
from selenium.common.exceptions import TimeoutException, WebDriverException

from app.harvester.error_codes import AutomationFailure, AutomationTimeout, ErrorCode
from app.harvester.playwright_surface import PlaywrightSurface
from app.harvester.selenium_surface import SeleniumSurface


class _FakePage:
    def __init__(self):
        self.gotos = []
        self.waits = []
        self.goto_error = None
        self.wait_error = None
        self.pause_error = None

    def goto(self, address, wait_until, timeout):
        self.gotos.append((address, wait_until, timeout))
        if self.goto_error:
            raise self.goto_error

    def wait_for_selector(self, selector, timeout):
        if self.wait_error:
            raise self.wait_error

    def wait_for_timeout(self, ms):
        if self.pause_error:
            raise self.pause_error
        self.waits.append(ms)

    def is_closed(self):
        return False

    def query_selector_all(self, selector):
        return []


class _FakeElement:
    def __init__(self, error=None):
        self.error = error
        self.scripts = []

    def evaluate(self, script):
        if self.error:
            raise self.error
        self.scripts.append(script)


class _Closer:
    def __init__(self, error=None):
        self.error = error
        self.calls = 0

    def close(self):
        self.calls += 1
        if self.error:
            raise self.error

    stop = close


def _playwright_surface(page):
    return PlaywrightSurface(_Closer(), _Closer(), _Closer(), page)


def test_playwright_navigate_maps_timeout():
    page = _FakePage()
    page.goto_error = PWTimeout("Timeout 30000ms exceeded")
    surface = _playwright_surface(page)

    with pytest.raises(AutomationTimeout) as excinfo:
        surface.navigate("https://www.paginegialle.it/ricerca/Notai/Roma")

    assert excinfo.value.error_code == ErrorCode.TIMEOUT


def test_playwright_navigate_maps_error():
    page = _FakePage()
    page.goto_error = PWError("net::ERR_NAME_NOT_RESOLVED")

    with pytest.raises(AutomationFailure) as excinfo:
        _playwright_surface(page).navigate("https://example.invalid")

    assert excinfo.value.error_code == ErrorCode.NAVIGATION


def test_playwright_await_appearance_timeout():
    page = _FakePage()
    page.wait_error = PWTimeout("Timeout 2000ms exceeded")

    with pytest.raises(AutomationTimeout):
        _playwright_surface(page).await_appearance(".search-itm", 2000)


def test_playwright_click_uses_dom_click():
    element = _FakeElement()

    _playwright_surface(_FakePage()).click(element)

    assert element.scripts == ["el => el.click()"]


def test_playwright_click_failure():
    with pytest.raises(AutomationFailure) as excinfo:
        _playwright_surface(_FakePage()).click(_FakeElement(PWError("Element is detached")))

    assert excinfo.value.error_code == ErrorCode.CLICK


def test_playwright_pause_and_close():
    page = _FakePage()
    context, browser, driver = _Closer(), _Closer(PWError("Target closed")), _Closer()
    surface = PlaywrightSurface(driver, browser, context, page)

    surface.pause(0.5)
    surface.pause(0)
    surface.close()

    assert page.waits == [500]
    assert (context.calls, browser.calls, driver.calls) == (1, 1, 1)


def test_playwright_pause_failure_is_session_error():
    page = _FakePage()
    page.pause_error = PWError("Target page, context or browser has been closed")

    with pytest.raises(AutomationFailure) as excinfo:
        _playwright_surface(page).pause(0.5)

    assert excinfo.value.error_code == ErrorCode.SESSION


class _FakeDriver:
    def __init__(self, error=None):
        self.error = error
        self.scripts = []
        self.quit_calls = 0

    def get(self, address):
        if self.error:
            raise self.error

    def find_elements(self, by, selector):
        if self.error:
            raise self.error
        return ["a", "b"]

    def execute_script(self, script, element):
        if self.error:
            raise self.error
        self.scripts.append((script, element))

    def quit(self):
        self.quit_calls += 1


def test_selenium_navigate_maps_timeout():
    surface = SeleniumSurface(_FakeDriver(TimeoutException("page load")))

    with pytest.raises(AutomationTimeout):
        surface.navigate("https://www.paginegialle.it/ricerca/Notai/Roma")


def test_selenium_query_and_click():
    driver = _FakeDriver()
    surface = SeleniumSurface(driver)

    assert surface.exists(None, ".search-itm")
    surface.click("a")

    assert driver.scripts == [("arguments[0].click();", "a")]


def test_selenium_query_failure():
    surface = SeleniumSurface(_FakeDriver(WebDriverException("session deleted")))

    with pytest.raises(AutomationFailure) as excinfo:
        surface.query_all(None, ".search-itm")

    assert excinfo.value.error_code == ErrorCode.QUERY


def test_selenium_close_quits_driver():
    driver = _FakeDriver()

    SeleniumSurface(driver).close()

    assert driver.quit_calls == 1
