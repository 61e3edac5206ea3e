"""
@file interfaces.py
@brief Abstract base classes for the browser driver the fragments run against.

Defines the interfaces a driver adapter must implement. The fragment core
never talks to a concrete browser library; it only asks a DriverPort to
resolve criteria into ElementHandles.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from .criteria import ScopeMode, SearchCriteria
from .exceptions import InvalidCriteriaError

logger = logging.getLogger(__name__)


class ElementHandle(ABC):
    """
    Live, possibly invalidated reference to a DOM node.

    Every method may raise StaleElementError once the node is detached, and
    action methods may raise NotInteractableError.
    """

    @abstractmethod
    def text(self) -> str:
        """
        Get the visible text of the element.

        Returns:
            Element text content
        """
        pass

    @abstractmethod
    def is_displayed(self) -> bool:
        """
        Check if the element is rendered visibly.

        Returns:
            True if visible, False otherwise
        """
        pass

    @abstractmethod
    def click(self) -> None:
        """Click the element."""
        pass

    @abstractmethod
    def send_keys(self, text: str) -> None:
        """
        Type text into the element.

        Args:
            text: Text to type
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear an editable element."""
        pass

    @abstractmethod
    def get_attribute(self, name: str) -> Optional[str]:
        """
        Read a DOM attribute or property.

        Args:
            name: Attribute name

        Returns:
            Attribute value, or None when absent
        """
        pass


class DriverPort(ABC):
    """
    Resolves search criteria against the live document.

    resolve() returns matches in a deterministic order, returns an empty list
    when nothing matches, and never raises for "not found". It may raise
    StaleElementError or DriverConnectionError (retried by the poller) and
    InvalidCriteriaError (never retried) for a blank selector or an index that
    is negative or out of range.
    """

    @abstractmethod
    def resolve(self, criteria: SearchCriteria) -> List[ElementHandle]:
        """
        Resolve criteria into element handles.

        Args:
            criteria: What to look for

        Returns:
            Ordered list of matching handles, possibly empty
        """
        pass

    def screenshot(self, path: str) -> Optional[str]:
        """
        Save a screenshot of the current page, if the driver can.

        Args:
            path: Target PNG file path

        Returns:
            Path written, or None when unsupported
        """
        return None


class LocatorDriverPort(DriverPort):
    """
    DriverPort that implements scoping, text filtering and indexing generically.

    Subclasses provide a single primitive, find_elements(), which interprets
    the selector string in whatever locator language the backend speaks.
    """

    @abstractmethod
    def find_elements(self, selector: str, within: Optional[ElementHandle] = None) -> List[ElementHandle]:
        """
        Find elements matching a selector.

        Args:
            selector: Backend-specific selector string
            within: Search the subtree of this handle instead of the document

        Returns:
            Matching handles in document order, possibly empty
        """
        pass

    def resolve(self, criteria: SearchCriteria) -> List[ElementHandle]:
        criteria.check_resolvable()
        if criteria.parent is None:
            candidates = self.find_elements(criteria.selector)
        else:
            scopes = self.resolve(criteria.parent)
            if not scopes:
                return []
            if criteria.scope_mode is ScopeMode.FIRST:
                scopes = scopes[:1]
            candidates = []
            for scope in scopes:
                for found in self.find_elements(criteria.selector, within=scope):
                    if found not in candidates:
                        candidates.append(found)

        if criteria.text is not None:
            candidates = [c for c in candidates if criteria.text.matches(c.text())]

        if criteria.index is not None:
            if criteria.index >= len(candidates):
                raise InvalidCriteriaError(
                    f"Index {criteria.index} out of range for {len(candidates)} matches "
                    f"of '{criteria.describe()}'"
                )
            candidates = [candidates[criteria.index]]

        logger.debug("resolved %s -> %d element(s)", criteria.describe(), len(candidates))
        return candidates
