"""
@file selenium_driver.py
@brief Selenium WebDriver implementation of the DriverPort interface.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Generator, List, Optional, Tuple

from selenium.common.exceptions import (ElementClickInterceptedException,
                                        ElementNotInteractableException,
                                        InvalidSelectorException,
                                        InvalidSessionIdException,
                                        NoSuchElementException,
                                        NoSuchWindowException,
                                        StaleElementReferenceException,
                                        WebDriverException)
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement

from .exceptions import (DriverConnectionError, InvalidCriteriaError,
                         NotInteractableError, SessionLostError,
                         StaleElementError)
from .interfaces import ElementHandle, LocatorDriverPort

logger = logging.getLogger(__name__)

SELECTOR_PREFIXES = {
    "css": By.CSS_SELECTOR,
    "xpath": By.XPATH,
    "id": By.ID,
    "name": By.NAME,
    "tag": By.TAG_NAME,
    "class": By.CLASS_NAME,
    "link": By.LINK_TEXT,
    "partial_link": By.PARTIAL_LINK_TEXT,
}


def parse_selector(selector: str) -> Tuple[str, str]:
    """
    Split ``kind=value`` into a Selenium (By, value) pair.

    Bare selectors are CSS. A leading ``/`` or ``(`` means XPath.
    """
    kind, sep, value = selector.partition("=")
    if sep and kind.strip() in SELECTOR_PREFIXES:
        value = value.strip()
        if not value:
            raise InvalidCriteriaError(f"Empty selector value in {selector!r}")
        return SELECTOR_PREFIXES[kind.strip()], value
    stripped = selector.strip()
    if stripped.startswith("/") or stripped.startswith("("):
        return By.XPATH, stripped
    return By.CSS_SELECTOR, stripped


@contextmanager
def _translated(what: str) -> Generator[None, None, None]:
    """Map Selenium exceptions onto the framework's retry classification."""
    try:
        yield
    except StaleElementReferenceException as e:
        raise StaleElementError(what, e.msg) from e
    except (ElementNotInteractableException, ElementClickInterceptedException) as e:
        raise NotInteractableError(what, e.msg) from e
    except InvalidSelectorException as e:
        raise InvalidCriteriaError(f"Invalid selector for {what}: {e.msg}") from e
    except (InvalidSessionIdException, NoSuchWindowException) as e:
        raise SessionLostError(f"Browser session lost during {what}: {e.msg}") from e
    except NoSuchElementException:
        # some drivers raise this when the node vanished between lookup and use
        raise StaleElementError(what, "node disappeared during the call")
    except WebDriverException as e:
        raise DriverConnectionError(f"WebDriver error during {what}: {e.msg}") from e


class SeleniumElementHandle(ElementHandle):
    """Wraps a Selenium WebElement and translates its failures."""

    def __init__(self, element: WebElement, selector: str):
        self._element = element
        self._selector = selector

    @property
    def raw(self) -> WebElement:
        """Access the underlying WebElement."""
        return self._element

    def text(self) -> str:
        with _translated(self._selector):
            return self._element.text or ""

    def is_displayed(self) -> bool:
        with _translated(self._selector):
            return bool(self._element.is_displayed())

    def click(self) -> None:
        with _translated(self._selector):
            self._element.click()

    def send_keys(self, text: str) -> None:
        with _translated(self._selector):
            self._element.send_keys(text)

    def clear(self) -> None:
        with _translated(self._selector):
            self._element.clear()

    def get_attribute(self, name: str) -> Optional[str]:
        with _translated(self._selector):
            return self._element.get_attribute(name)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SeleniumElementHandle):
            return NotImplemented
        return self._element == other._element

    def __hash__(self) -> int:
        return hash(self._element)

    def __repr__(self) -> str:
        return f"SeleniumElementHandle({self._selector!r}, id={self._element.id})"


class SeleniumDriverPort(LocatorDriverPort):
    """
    DriverPort backed by a Selenium WebDriver session.

    The session is owned by the caller; this adapter never starts or quits it.
    """

    def __init__(self, driver: WebDriver):
        self._driver = driver

    @property
    def driver(self) -> WebDriver:
        return self._driver

    def find_elements(self, selector: str, within: Optional[ElementHandle] = None) -> List[ElementHandle]:
        by, value = parse_selector(selector)
        if within is None:
            root: Any = self._driver
        elif isinstance(within, SeleniumElementHandle):
            root = within.raw
        else:
            raise TypeError(f"SeleniumDriverPort cannot search within {type(within).__name__}")
        with _translated(selector):
            found = root.find_elements(by, value)
        return [SeleniumElementHandle(el, selector) for el in found]

    def screenshot(self, path: str) -> Optional[str]:
        try:
            if self._driver.save_screenshot(path):
                return path
        except WebDriverException as e:
            logger.warning("Screenshot failed: %s", e.msg)
        return None
