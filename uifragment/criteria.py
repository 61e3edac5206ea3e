# uifragment/criteria.py
"""
@file criteria.py
@brief Immutable, composable descriptions of how to locate elements.

Nothing in this module touches the browser. A SearchCriteria is a recipe:
a selector, optional text filter, optional index, and an optional parent
scope. Narrowing always returns a new value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from .exceptions import InvalidCriteriaError


class ScopeMode(str, Enum):
    """How a child criteria searches inside its parent's matches."""
    FIRST = "first"
    UNION = "each"


def _collapse(text: str) -> str:
    return " ".join(text.split())


@dataclass(frozen=True)
class TextMatcher:
    """Base class for text predicates applied to element text."""

    def matches(self, text: str) -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Exact(TextMatcher):
    value: str
    normalize_whitespace: bool = False

    def matches(self, text: str) -> bool:
        text = text or ""
        if self.normalize_whitespace:
            return _collapse(text) == _collapse(self.value)
        return text == self.value

    def describe(self) -> str:
        return f"text={self.value!r}"


@dataclass(frozen=True)
class Contains(TextMatcher):
    value: str
    normalize_whitespace: bool = False

    def matches(self, text: str) -> bool:
        text = text or ""
        if self.normalize_whitespace:
            return _collapse(self.value) in _collapse(text)
        return self.value in text

    def describe(self) -> str:
        return f"text*={self.value!r}"


@dataclass(frozen=True)
class Pattern(TextMatcher):
    """Regular-expression search over the element text."""
    regex: re.Pattern

    def __init__(self, regex: Union[str, re.Pattern], flags: int = 0):
        if isinstance(regex, str):
            try:
                regex = re.compile(regex, flags)
            except re.error as e:
                raise InvalidCriteriaError(f"Invalid text pattern {regex!r}: {e}") from e
        elif not isinstance(regex, re.Pattern):
            raise InvalidCriteriaError(
                f"Pattern expects a string or compiled regex, got {type(regex).__name__}"
            )
        object.__setattr__(self, "regex", regex)

    def matches(self, text: str) -> bool:
        return self.regex.search(text or "") is not None

    def describe(self) -> str:
        return f"text~=/{self.regex.pattern}/"


MatcherLike = Union[TextMatcher, str, re.Pattern]


def as_matcher(matcher: MatcherLike) -> TextMatcher:
    """
    Coerce a user-supplied matcher.

    A plain string means exact match and a compiled regex means pattern search.
    Anything else is a programmer error.
    """
    if isinstance(matcher, TextMatcher):
        return matcher
    if isinstance(matcher, str):
        return Exact(matcher)
    if isinstance(matcher, re.Pattern):
        return Pattern(matcher)
    raise InvalidCriteriaError(f"Unsupported text matcher: {matcher!r}")


@dataclass(frozen=True)
class SearchCriteria:
    """
    How to find zero or more elements relative to a scope.

    @param selector Opaque locator handed to the driver
    @param text Optional text filter
    @param index Optional 0-based ordinal among the filtered matches
    @param parent Parent criteria, or None for the document root
    @param scope_mode Whether to search in the first parent match or in all of them
    """
    selector: str
    text: Optional[TextMatcher] = None
    index: Optional[int] = None
    parent: Optional[SearchCriteria] = None
    scope_mode: ScopeMode = ScopeMode.FIRST

    def __post_init__(self) -> None:
        if not isinstance(self.selector, str):
            raise InvalidCriteriaError(f"Selector must be a string, got {type(self.selector).__name__}")

    def with_index(self, n: int) -> SearchCriteria:
        """Select only the n-th (0-based) match. Sign and range are checked at resolution time."""
        if isinstance(n, bool) or not isinstance(n, int):
            raise InvalidCriteriaError(f"Index must be an int, got {n!r}")
        return replace(self, index=n)

    def check_resolvable(self) -> None:
        """Raise InvalidCriteriaError if this level can never match anything."""
        if not self.selector.strip():
            raise InvalidCriteriaError(f"Empty selector in '{self.describe()}'")
        if self.index is not None and self.index < 0:
            raise InvalidCriteriaError(f"Index must be non-negative, got {self.index} in '{self.describe()}'")

    def with_text(self, matcher: MatcherLike) -> SearchCriteria:
        """Additionally filter candidates by their text."""
        return replace(self, text=as_matcher(matcher))

    def child(self, target: Union[str, SearchCriteria]) -> SearchCriteria:
        """Search within the first match of this criteria."""
        return self._scoped(target, ScopeMode.FIRST)

    def child_of_each(self, target: Union[str, SearchCriteria]) -> SearchCriteria:
        """Search within every match of this criteria, in parent order."""
        return self._scoped(target, ScopeMode.UNION)

    def _scoped(self, target: Union[str, SearchCriteria], mode: ScopeMode) -> SearchCriteria:
        if isinstance(target, str):
            return SearchCriteria(selector=target, parent=self, scope_mode=mode)
        if isinstance(target, SearchCriteria):
            return _reroot(target, self, mode)
        raise InvalidCriteriaError(f"Cannot scope {target!r}: expected selector string or SearchCriteria")

    def describe(self) -> str:
        """Human-readable path, e.g. ``form#login >> button[text='Go'][0]``."""
        own = self.selector
        if self.text is not None:
            own += f"[{self.text.describe()}]"
        if self.index is not None:
            own += f"[{self.index}]"
        if self.parent is None:
            return own
        joint = " >> " if self.scope_mode is ScopeMode.FIRST else " >>* "
        return self.parent.describe() + joint + own

    def __str__(self) -> str:
        return self.describe()


def _reroot(criteria: SearchCriteria, new_root: SearchCriteria, mode: ScopeMode) -> SearchCriteria:
    if criteria.parent is None:
        return replace(criteria, parent=new_root, scope_mode=mode)
    return replace(criteria, parent=_reroot(criteria.parent, new_root, mode))


def as_criteria(value: Union[str, SearchCriteria]) -> SearchCriteria:
    if isinstance(value, SearchCriteria):
        return value
    return SearchCriteria(selector=value)
