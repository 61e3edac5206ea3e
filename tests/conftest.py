"""
Shared fixtures: an in-memory DOM and a DriverPort over it.
"""

import re
from typing import Callable, List, Optional

import pytest

from uifragment.config import TimeConfig
from uifragment.context import ActionContextManager
from uifragment.exceptions import NotInteractableError, StaleElementError
from uifragment.interfaces import ElementHandle, LocatorDriverPort

_SELECTOR = re.compile(r"^(?P<tag>[\w-]+)?(?:#(?P<id>[\w-]+))?(?:\.(?P<cls>[\w-]+))?$")


class FakeNode:
    """A DOM node. Supports ``tag``, ``#id``, ``.class`` and combinations like ``li.item``."""

    def __init__(self, tag, text="", id=None, classes=(), attrs=None, displayed=True, children=()):
        self.tag = tag
        self.text = text
        self.attrs = dict(attrs or {})
        if id:
            self.attrs["id"] = id
        self.classes = set(classes)
        self.displayed = displayed
        self.interactable = True
        self.children: List["FakeNode"] = []
        self.parent: Optional["FakeNode"] = None
        self.attached = True
        self.stale_for = 0
        self.clicks = 0
        self.value = ""
        for child in children:
            self.append(child)

    def append(self, child):
        child.parent = self
        child._set_attached(self.attached)
        self.children.append(child)
        return child

    def remove(self):
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None
        self._set_attached(False)

    def _set_attached(self, attached):
        self.attached = attached
        for child in self.children:
            child._set_attached(attached)

    def descendants(self):
        for child in self.children:
            yield child
            yield from child.descendants()

    def matches(self, selector):
        m = _SELECTOR.match(selector.strip())
        if not m or not any(m.groupdict().values()):
            raise ValueError(f"unsupported fake selector: {selector}")
        if m.group("tag") and m.group("tag") != self.tag:
            return False
        if m.group("id") and self.attrs.get("id") != m.group("id"):
            return False
        if m.group("cls") and m.group("cls") not in self.classes:
            return False
        return True

    def __repr__(self):
        return f"FakeNode({self.tag!r}, {self.text!r})"


class FakeHandle(ElementHandle):
    def __init__(self, node: FakeNode):
        self.node = node

    def _check(self):
        if not self.node.attached:
            raise StaleElementError(self.node.tag, "node detached")
        if self.node.stale_for > 0:
            self.node.stale_for -= 1
            raise StaleElementError(self.node.tag, "node re-rendered")

    def text(self):
        self._check()
        return self.node.text

    def is_displayed(self):
        self._check()
        return self.node.displayed

    def click(self):
        self._check()
        if not self.node.interactable:
            raise NotInteractableError(self.node.tag, "covered by overlay")
        self.node.clicks += 1

    def send_keys(self, text):
        self._check()
        self.node.value += text

    def clear(self):
        self._check()
        self.node.value = ""

    def get_attribute(self, name):
        self._check()
        if name == "value":
            return self.node.value
        return self.node.attrs.get(name)

    def __eq__(self, other):
        return isinstance(other, FakeHandle) and other.node is self.node

    def __hash__(self):
        return id(self.node)


class FakeDriver(LocatorDriverPort):
    """
    LocatorDriverPort over a FakeNode tree.

    Counts find_elements() calls so tests can script DOM changes that happen
    "while the page is loading" and inject driver failures.
    """

    def __init__(self, root: Optional[FakeNode] = None):
        self.root = root or FakeNode("html")
        self.find_calls = 0
        self.screenshots: List[str] = []
        self._scheduled: List[tuple] = []
        self._failures: List[Exception] = []

    def after(self, calls: int, change: Callable[[], None]) -> None:
        """Run change() right before the find_elements call numbered ``calls + 1``."""
        self._scheduled.append((calls, change))

    def fail_next(self, *errors: Exception) -> None:
        self._failures.extend(errors)

    def find_elements(self, selector, within=None) -> List[ElementHandle]:
        due = [item for item in self._scheduled if item[0] <= self.find_calls]
        for item in due:
            self._scheduled.remove(item)
            item[1]()
        self.find_calls += 1
        if self._failures:
            raise self._failures.pop(0)
        if within is not None:
            within._check()
            scope = within.node
        else:
            scope = self.root
        return [FakeHandle(n) for n in scope.descendants() if n.matches(selector)]

    def screenshot(self, path):
        with open(path, "wb") as f:
            f.write(b"\x89PNG")
        self.screenshots.append(path)
        return path


@pytest.fixture(autouse=True)
def clean_state():
    """Reset thread-local config and action context between tests."""
    TimeConfig.reset()
    ActionContextManager.clear()
    yield
    TimeConfig.reset()
    ActionContextManager.clear()


@pytest.fixture
def page():
    """
    A small page::

        form#login
          input.user
          button.submit "Sign in"
        ul#results
          li.item "alpha"
          li.item "beta"
        div.card > span.title "one"
        div.card > span.title "two"
    """
    root = FakeNode("html", children=[
        FakeNode("form", id="login", children=[
            FakeNode("input", classes=["user"], attrs={"name": "user"}),
            FakeNode("button", "Sign in", classes=["submit"]),
        ]),
        FakeNode("ul", id="results", children=[
            FakeNode("li", "alpha", classes=["item"]),
            FakeNode("li", "beta", classes=["item"]),
        ]),
        FakeNode("div", classes=["card"], children=[FakeNode("span", "one", classes=["title"])]),
        FakeNode("div", classes=["card"], children=[FakeNode("span", "two", classes=["title"])]),
    ])
    return root


@pytest.fixture
def driver(page):
    return FakeDriver(page)


@pytest.fixture
def artifacts_dir(tmp_path):
    path = tmp_path / "artifacts"
    return str(path)


def find(root: FakeNode, selector: str) -> FakeNode:
    """First node under root matching selector."""
    for node in root.descendants():
        if node.matches(selector):
            return node
    raise LookupError(selector)
