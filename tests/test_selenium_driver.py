# tests/test_selenium_driver.py
"""
Tests for the Selenium DriverPort adapter, against mocked WebDriver objects.
"""

import time
from unittest.mock import MagicMock

import pytest
from selenium.common.exceptions import (
    ElementClickInterceptedException,
    InvalidSelectorException,
    InvalidSessionIdException,
    NoSuchElementException,
    NoSuchWindowException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from uifragment.capabilities import Button
from uifragment.criteria import SearchCriteria
from uifragment.exceptions import (
    DriverConnectionError,
    InvalidCriteriaError,
    NotInteractableError,
    SessionLostError,
    StaleElementError,
)
from uifragment.selenium_driver import SeleniumDriverPort, SeleniumElementHandle, parse_selector


def web_element(text="", **attrs):
    element = MagicMock(name=f"WebElement({text})")
    element.text = text
    element.is_displayed.return_value = True
    element.get_attribute.side_effect = attrs.get
    element.find_elements.return_value = []
    return element


class TestParseSelector:
    """Tests for selector prefixes."""

    @pytest.mark.parametrize("selector, expected", [
        ("button.submit", (By.CSS_SELECTOR, "button.submit")),
        ("css=ul > li", (By.CSS_SELECTOR, "ul > li")),
        ("xpath=//a[@href]", (By.XPATH, "//a[@href]")),
        ("//a[@href]", (By.XPATH, "//a[@href]")),
        ("(//li)[2]", (By.XPATH, "(//li)[2]")),
        ("id=main", (By.ID, "main")),
        ("name = q", (By.NAME, "q")),
        ("link=Sign out", (By.LINK_TEXT, "Sign out")),
        ("a[href='x=y']", (By.CSS_SELECTOR, "a[href='x=y']")),
    ])
    def test_prefixes(self, selector, expected):
        """Known prefixes map onto Selenium locator strategies; anything else is CSS."""
        assert parse_selector(selector) == expected

    def test_empty_value(self):
        """A prefix without a value is rejected."""
        with pytest.raises(InvalidCriteriaError):
            parse_selector("id=")


class TestSeleniumDriverPort:
    """Tests for element lookup and error translation."""

    def test_find_elements_from_document(self):
        """Root lookups go through the WebDriver."""
        webdriver = MagicMock()
        first, second = web_element("a"), web_element("b")
        webdriver.find_elements.return_value = [first, second]

        handles = SeleniumDriverPort(webdriver).find_elements("li.item")

        webdriver.find_elements.assert_called_once_with(By.CSS_SELECTOR, "li.item")
        assert [h.raw for h in handles] == [first, second]
        assert [h.text() for h in handles] == ["a", "b"]

    def test_resolve_scoped_and_filtered(self):
        """Child criteria search inside the parent element and filter by text."""
        webdriver = MagicMock()
        form = web_element()
        go, cancel = web_element("Go"), web_element("Cancel")
        webdriver.find_elements.return_value = [form]
        form.find_elements.return_value = [cancel, go]

        criteria = SearchCriteria("form#login").child("xpath=.//button").with_text("Go")
        handles = SeleniumDriverPort(webdriver).resolve(criteria)

        form.find_elements.assert_called_once_with(By.XPATH, ".//button")
        assert [h.raw for h in handles] == [go]

    def test_within_foreign_handle(self):
        """Searching inside a handle from another driver is a programming error."""
        with pytest.raises(TypeError):
            SeleniumDriverPort(MagicMock()).find_elements("li", within=object())

    @pytest.mark.parametrize("raised, expected", [
        (StaleElementReferenceException("gone"), StaleElementError),
        (NoSuchElementException("vanished"), StaleElementError),
        (InvalidSelectorException("bad css"), InvalidCriteriaError),
        (InvalidSessionIdException("session deleted"), SessionLostError),
        (NoSuchWindowException("window closed"), SessionLostError),
        (WebDriverException("connection refused"), DriverConnectionError),
    ])
    def test_lookup_errors_are_translated(self, raised, expected):
        """Selenium failures map onto the framework's classification."""
        webdriver = MagicMock()
        webdriver.find_elements.side_effect = raised

        with pytest.raises(expected):
            SeleniumDriverPort(webdriver).find_elements("li")

    def test_click_intercepted_is_not_interactable(self):
        """An intercepted click is a transient NotInteractableError."""
        element = web_element()
        element.click.side_effect = ElementClickInterceptedException("overlay")

        with pytest.raises(NotInteractableError):
            SeleniumElementHandle(element, "button").click()

    def test_handle_operations(self):
        """Handle methods delegate to the WebElement."""
        element = web_element("Hello", value="typed")
        handle = SeleniumElementHandle(element, "input")

        handle.clear()
        handle.send_keys("abc")
        assert handle.get_attribute("value") == "typed"
        assert handle.is_displayed() is True
        element.clear.assert_called_once_with()
        element.send_keys.assert_called_once_with("abc")

    def test_handles_compare_by_element(self):
        """Two handles over the same WebElement are equal."""
        element = web_element()
        assert SeleniumElementHandle(element, "a") == SeleniumElementHandle(element, "b")
        assert SeleniumElementHandle(element, "a") != SeleniumElementHandle(web_element(), "a")

    def test_screenshot(self, tmp_path):
        """screenshot() returns the path only when Selenium wrote it."""
        webdriver = MagicMock()
        path = str(tmp_path / "shot.png")

        webdriver.save_screenshot.return_value = True
        assert SeleniumDriverPort(webdriver).screenshot(path) == path

        webdriver.save_screenshot.return_value = False
        assert SeleniumDriverPort(webdriver).screenshot(path) is None

        webdriver.save_screenshot.side_effect = WebDriverException("session gone")
        assert SeleniumDriverPort(webdriver).screenshot(path) is None


class TestWithFragments:
    """Fragments over the Selenium adapter."""

    def test_stale_click_is_retried(self):
        """A StaleElementReferenceException on click re-resolves and retries."""
        webdriver = MagicMock()
        stale, fresh = web_element("Save"), web_element("Save")
        stale.click.side_effect = StaleElementReferenceException("re-rendered")
        webdriver.find_elements.side_effect = [[stale], [fresh]]

        Button(SeleniumDriverPort(webdriver), "button.save").with_config(
            click_action={"interval": 0.01}).click()

        fresh.click.assert_called_once_with()
        assert webdriver.find_elements.call_count == 2

    def test_lost_session_fails_fast(self):
        """A dead session ends a verification on the first attempt."""
        webdriver = MagicMock()
        webdriver.find_elements.side_effect = InvalidSessionIdException("session deleted")

        start = time.monotonic()
        with pytest.raises(SessionLostError):
            Button(SeleniumDriverPort(webdriver), "button.save").verify_present(timeout=10)

        assert time.monotonic() - start < 1.0
        assert webdriver.find_elements.call_count == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
