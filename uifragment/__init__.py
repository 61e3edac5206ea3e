# uifragment/__init__.py
"""
UIFragment - Lazy, self-resynchronizing element references for browser automation.

This package provides:
- Criteria: Immutable search criteria and text matchers
- Fragment: Lazy element references with polled verifications and retried actions
- Capabilities: Click/type/text/attribute/size/display mixins and stock types
- Waits: Polling and retry utilities
- Config: Timeout presets and per-thread overrides
- Repository: YAML fragment maps
- Interfaces: Driver abstraction, with a Selenium adapter
"""

from uifragment.criteria import (Contains, Exact, Pattern, ScopeMode,
                                 SearchCriteria, TextMatcher)
from uifragment.fragment import Child, Fragment
from uifragment.capabilities import (Attributed, Button, Clickable, Displayed,
                                     ElementList, Label, Sized, Texted,
                                     TextField, Typeable)
from uifragment.config import TimeConfig, TimeoutSettings, load_config
from uifragment.waits import Condition, poll, retry, wait_until, wait_until_not
from uifragment.exceptions import (
    UIFragmentError,
    ConfigError,
    InvalidCriteriaError,
    StaleElementError,
    NotInteractableError,
    DriverConnectionError,
    SessionLostError,
    PollCancelledError,
    CheckNotSatisfied,
    TimeoutError,
    NotFoundError,
    StillPresentError,
    CountMismatchError,
    ValueMismatchError,
    ActionError,
    FailureReport,
)
from uifragment.interfaces import DriverPort, ElementHandle, LocatorDriverPort
from uifragment.repository import FragmentMap

__all__ = [
    "Contains",
    "Exact",
    "Pattern",
    "ScopeMode",
    "SearchCriteria",
    "TextMatcher",
    "Child",
    "Fragment",
    "Attributed",
    "Button",
    "Clickable",
    "Displayed",
    "ElementList",
    "Label",
    "Sized",
    "Texted",
    "TextField",
    "Typeable",
    "TimeConfig",
    "TimeoutSettings",
    "load_config",
    "Condition",
    "poll",
    "retry",
    "wait_until",
    "wait_until_not",
    "UIFragmentError",
    "ConfigError",
    "InvalidCriteriaError",
    "StaleElementError",
    "NotInteractableError",
    "DriverConnectionError",
    "SessionLostError",
    "PollCancelledError",
    "CheckNotSatisfied",
    "TimeoutError",
    "NotFoundError",
    "StillPresentError",
    "CountMismatchError",
    "ValueMismatchError",
    "ActionError",
    "FailureReport",
    "DriverPort",
    "ElementHandle",
    "LocatorDriverPort",
    "FragmentMap",
]

__version__ = "1.0.0"
