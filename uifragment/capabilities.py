# uifragment/capabilities.py
"""
@file capabilities.py
@brief Independent operation sets a concrete Fragment type can compose.

Each mixin only relies on the Fragment core API (_act, wait_for,
find_all_instantly, read_instantly, name) and never on another mixin, so a concrete type
is a flat list of the capabilities it supports:

    class Button(Clickable, Texted, Displayed, Fragment): ...
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, List, Optional, Sequence

from .context import tracked
from .criteria import MatcherLike, as_matcher
from .exceptions import (CheckNotSatisfied, CountMismatchError, NotFoundError,
                         StaleElementError, ValueMismatchError)
from .fragment import Fragment

if TYPE_CHECKING:
    from .interfaces import ElementHandle

    _Base = Fragment
else:
    _Base = object


class Clickable(_Base):
    """Click the first match."""

    @tracked("click")
    def click(self, wait: Optional[float] = None) -> None:
        """
        Click the first match, retrying on staleness.

        @param wait Poll this many seconds for presence first; by default the
                    element must already be there
        """
        self._act("click", lambda h: h.click(), wait=wait)


class Typeable(_Base):
    """Type into and clear the first match."""

    @tracked("type_text")
    def type_text(self, text: str, clear_first: bool = True, wait: Optional[float] = None) -> None:
        def do_type(handle: ElementHandle) -> None:
            if clear_first:
                handle.clear()
            handle.send_keys(text)

        self._act("type_text", do_type, wait=wait)

    @tracked("clear")
    def clear(self, wait: Optional[float] = None) -> None:
        self._act("clear", lambda h: h.clear(), wait=wait)


class Texted(_Base):
    """Read and verify element text."""

    @tracked("text")
    def text(self, wait: Optional[float] = None) -> str:
        """Text of the first match, read from a fresh resolution."""
        return self._act("text", lambda h: h.text(), wait=wait)

    def texts(self) -> List[str]:
        """Texts of all current matches, one-shot."""
        return self.read_instantly(lambda handles: [h.text() for h in handles], f"read texts of '{self.name}'")

    @tracked("verify_text")
    def verify_text(self, expected: MatcherLike, timeout: Optional[float] = None) -> str:
        """
        Wait until the first match's text satisfies expected.

        @param expected Exact string, compiled regex, or TextMatcher
        @return The matching text
        @throws ValueMismatchError reporting the last observed text
        """
        matcher = as_matcher(expected)

        def check(handles: List[ElementHandle]) -> str:
            if not handles:
                raise CheckNotSatisfied(None, "no element matched")
            actual = handles[0].text()
            if not matcher.matches(actual):
                raise CheckNotSatisfied(actual)
            return actual

        return self.wait_for(
            check,
            f"'{self.name}' to have {matcher.describe()}",
            timeout,
            "text",
            functools.partial(ValueMismatchError, expected=matcher.describe()),
        )

    @tracked("verify_texts")
    def verify_texts(self, expected: Sequence[MatcherLike], timeout: Optional[float] = None) -> List[str]:
        """Wait until the matches' texts line up one-to-one with expected, in order."""
        matchers = [as_matcher(m) for m in expected]
        wanted = [m.describe() for m in matchers]

        def check(handles: List[ElementHandle]) -> List[str]:
            actual = [h.text() for h in handles]
            if len(actual) != len(matchers) or not all(m.matches(t) for m, t in zip(matchers, actual)):
                raise CheckNotSatisfied(actual)
            return actual

        return self.wait_for(
            check,
            f"'{self.name}' to have texts {wanted}",
            timeout,
            "text",
            functools.partial(ValueMismatchError, expected=wanted),
        )


class Attributed(_Base):
    """Read and verify DOM attributes."""

    @tracked("attribute")
    def attribute(self, name: str, wait: Optional[float] = None) -> Optional[str]:
        return self._act("attribute", lambda h: h.get_attribute(name), wait=wait)

    @tracked("verify_attribute")
    def verify_attribute(self, name: str, expected: MatcherLike, timeout: Optional[float] = None) -> str:
        matcher = as_matcher(expected)

        def check(handles: List[ElementHandle]) -> str:
            if not handles:
                raise CheckNotSatisfied(None, "no element matched")
            actual = handles[0].get_attribute(name)
            if actual is None or not matcher.matches(actual):
                raise CheckNotSatisfied(actual)
            return actual

        return self.wait_for(
            check,
            f"'{self.name}' attribute {name!r} to have {matcher.describe()}",
            timeout,
            "attribute",
            functools.partial(ValueMismatchError, expected=matcher.describe()),
        )


class Sized(_Base):
    """Count matches. verify_size() itself lives on the Fragment core."""

    def size(self) -> int:
        """Number of current matches, one-shot."""
        return len(self.find_all_instantly())

    @tracked("verify_size_at_least")
    def verify_size_at_least(self, n: int, timeout: Optional[float] = None) -> int:
        def check(handles: List[ElementHandle]) -> int:
            if len(handles) < n:
                raise CheckNotSatisfied(len(handles))
            return len(handles)

        return self.wait_for(
            check,
            f"'{self.name}' to have at least {n} match(es)",
            timeout,
            "size",
            functools.partial(CountMismatchError, expected=f">= {n}"),
        )


class Displayed(_Base):
    """Visibility queries and waits."""

    def is_displayed(self) -> bool:
        """True if the first match exists and is visible right now."""
        try:
            return self._act("is_displayed", lambda h: h.is_displayed())
        except NotFoundError:
            return False
        except StaleElementError:
            return False

    @tracked("verify_displayed")
    def verify_displayed(self, timeout: Optional[float] = None) -> None:
        def check(handles: List[ElementHandle]) -> None:
            if not handles:
                raise CheckNotSatisfied("absent")
            if not handles[0].is_displayed():
                raise CheckNotSatisfied("hidden")

        self.wait_for(
            check,
            f"'{self.name}' to be displayed",
            timeout,
            "display",
            functools.partial(ValueMismatchError, expected="displayed"),
        )

    @tracked("verify_hidden")
    def verify_hidden(self, timeout: Optional[float] = None) -> None:
        """Wait until the first match is hidden or nothing matches at all."""
        def check(handles: List[ElementHandle]) -> None:
            if handles and handles[0].is_displayed():
                raise CheckNotSatisfied("displayed")

        self.wait_for(
            check,
            f"'{self.name}' to be hidden",
            timeout,
            "display",
            functools.partial(ValueMismatchError, expected="hidden"),
        )


class Button(Clickable, Texted, Displayed, Fragment):
    pass


class TextField(Typeable, Texted, Attributed, Displayed, Fragment):
    """Editable input; ``value`` is read through the attribute capability."""

    def value(self) -> Optional[str]:
        return self.attribute("value")


class Label(Texted, Displayed, Fragment):
    pass


class ElementList(Sized, Texted, Fragment):
    """A group of similar elements, e.g. table rows or search results."""
    pass
