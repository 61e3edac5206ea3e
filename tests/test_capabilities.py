# tests/test_capabilities.py
"""
Tests for capability mixins and the stock fragment types.
"""

import re

import pytest
from conftest import find
from uifragment.capabilities import (
    Button,
    Clickable,
    Displayed,
    ElementList,
    Label,
    TextField,
    Texted,
)
from uifragment.criteria import Contains
from uifragment.exceptions import (
    ActionError,
    CountMismatchError,
    NotFoundError,
    ValueMismatchError,
)
from uifragment.fragment import Fragment


class TestComposition:
    """Fragment types expose exactly the operations they compose."""

    def test_stock_types(self):
        """Stock types are built from the capability mixins."""
        assert issubclass(Button, Clickable) and issubclass(Button, Texted)
        assert not hasattr(Label, "click")
        assert not hasattr(Fragment, "text")
        assert hasattr(ElementList, "size") and hasattr(ElementList, "verify_texts")

    def test_custom_composition(self, driver, page):
        """A user type can mix any capabilities with Fragment."""
        class Link(Clickable, Displayed, Fragment):
            pass

        link = Fragment(driver, "button.submit").as_type(Link)
        link.click()
        assert link.is_displayed()
        assert find(page, "button.submit").clicks == 1


class TestClickable:
    """Tests for click."""

    def test_not_interactable_exhausts_to_action_error(self, driver, page):
        """An element that never becomes clickable fails with ActionError after the budget."""
        node = find(page, "button.submit")
        node.interactable = False
        button = Button(driver, "button.submit", name="submit").with_config(
            click_action={"retry_count": 2, "interval": 0.01})

        with pytest.raises(ActionError) as exc_info:
            button.click()

        assert exc_info.value.attempt_count == 2
        assert "click on 'submit'" in str(exc_info.value)

    def test_action_timeout_bounds_retries(self, driver, page):
        """A click stops retrying when its family's timeout runs out."""
        find(page, "button.submit").interactable = False
        button = Button(driver, "button.submit").with_config(
            click_action={"retry_count": 100, "interval": 0.02, "timeout": 0.1})

        with pytest.raises(ActionError) as exc_info:
            button.click()

        assert exc_info.value.attempt_count < 100

    def test_overlay_goes_away(self, driver, page):
        """A transient overlay is retried through."""
        node = find(page, "button.submit")
        node.interactable = False
        driver.after(2, lambda: setattr(node, "interactable", True))

        Button(driver, "button.submit").with_config(click_action={"interval": 0.01}).click()
        assert node.clicks == 1


class TestTexted:
    """Tests for text reads and text verifications."""

    def test_text_and_texts(self, driver):
        """text() reads the first match, texts() all of them."""
        items = ElementList(driver, "li.item")
        assert items.text() == "alpha"
        assert items.texts() == ["alpha", "beta"]

    def test_texts_survive_rerender_during_read(self, driver, page):
        """A match re-rendered between lookup and read is resolved again."""
        find(page, "li.item").stale_for = 1

        assert ElementList(driver, "li.item").texts() == ["alpha", "beta"]

    def test_text_of_missing_element(self, driver):
        """Reading text of nothing fails fast."""
        with pytest.raises(NotFoundError):
            Label(driver, "h1").text()

    def test_verify_text_waits_for_change(self, driver, page):
        """verify_text polls until the text matches."""
        node = find(page, "button.submit")
        node.text = "Loading"
        driver.after(3, lambda: setattr(node, "text", "Sign in"))

        assert Button(driver, "button.submit").verify_text("Sign in", timeout=5) == "Sign in"

    def test_verify_text_accepts_matchers(self, driver):
        """Contains and compiled patterns work as expectations."""
        button = Button(driver, "button.submit")
        assert button.verify_text(Contains("Sign"), timeout=1) == "Sign in"
        assert button.verify_text(re.compile(r"^Sign\s"), timeout=1) == "Sign in"

    def test_verify_text_mismatch_reports_last_text(self, driver):
        """ValueMismatchError carries expected and last observed text."""
        with pytest.raises(ValueMismatchError) as exc_info:
            Button(driver, "button.submit").verify_text("Log in", timeout=0.2)

        error = exc_info.value
        assert error.expected == "text='Log in'"
        assert error.observed == "Sign in"

    def test_verify_texts(self, driver, page):
        """verify_texts compares every match in order."""
        items = ElementList(driver, "li.item")
        assert items.verify_texts(["alpha", Contains("et")], timeout=1) == ["alpha", "beta"]

        with pytest.raises(ValueMismatchError) as exc_info:
            items.verify_texts(["beta", "alpha"], timeout=0.2)
        assert exc_info.value.observed == ["alpha", "beta"]


class TestTypeable:
    """Tests for typing and clearing."""

    def test_clear(self, driver, page):
        """clear() empties the input."""
        node = find(page, "input.user")
        node.value = "something"
        TextField(driver, "input.user").clear()
        assert node.value == ""


class TestAttributed:
    """Tests for attribute reads and verifications."""

    def test_attribute(self, driver):
        """attribute() returns the value or None."""
        field = TextField(driver, "input.user")
        assert field.attribute("name") == "user"
        assert field.attribute("placeholder") is None

    def test_verify_attribute(self, driver, page):
        """verify_attribute waits for the attribute to match."""
        node = find(page, "input.user")
        driver.after(2, lambda: node.attrs.update({"aria-invalid": "false"}))

        field = TextField(driver, "input.user")
        assert field.verify_attribute("aria-invalid", "false", timeout=5) == "false"

    def test_verify_attribute_missing(self, driver):
        """An attribute that never appears is a ValueMismatchError with observed None."""
        with pytest.raises(ValueMismatchError) as exc_info:
            TextField(driver, "input.user").verify_attribute("required", "true", timeout=0.1)
        assert exc_info.value.observed is None


class TestSized:
    """Tests for size queries."""

    def test_size(self, driver):
        """size() counts current matches."""
        assert ElementList(driver, "li.item").size() == 2
        assert ElementList(driver, "tr").size() == 0

    def test_verify_size_at_least(self, driver):
        """At-least verification passes on more matches and reports the count otherwise."""
        items = ElementList(driver, "li.item")
        assert items.verify_size_at_least(1, timeout=1) == 2

        with pytest.raises(CountMismatchError) as exc_info:
            items.verify_size_at_least(5, timeout=0.1)
        assert exc_info.value.observed == 2
        assert exc_info.value.expected == ">= 5"


class TestDisplayed:
    """Tests for visibility."""

    def test_is_displayed(self, driver, page):
        """is_displayed() is False for hidden or absent elements."""
        find(page, "input.user").displayed = False

        assert Button(driver, "button.submit").is_displayed()
        assert not TextField(driver, "input.user").is_displayed()
        assert not Label(driver, "h1").is_displayed()

    def test_verify_displayed(self, driver, page):
        """verify_displayed waits until the element is visible."""
        node = find(page, "button.submit")
        node.displayed = False
        driver.after(2, lambda: setattr(node, "displayed", True))

        Button(driver, "button.submit").verify_displayed(timeout=5)

    def test_verify_displayed_reports_hidden(self, driver, page):
        """A hidden element times out reporting what it looked like."""
        find(page, "button.submit").displayed = False

        with pytest.raises(ValueMismatchError) as exc_info:
            Button(driver, "button.submit").verify_displayed(timeout=0.1)
        assert exc_info.value.observed == "hidden"

    def test_verify_hidden(self, driver, page):
        """Absent counts as hidden."""
        Label(driver, "h1").verify_hidden(timeout=0.1)

        node = find(page, "button.submit")
        driver.after(2, lambda: setattr(node, "displayed", False))
        Button(driver, "button.submit").verify_hidden(timeout=5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
