# uifragment/fragment.py
"""
@file fragment.py
@brief Lazy, self-resynchronizing reference to a named UI element or element group.

A Fragment holds search criteria and a driver, never a live element. Every
public operation resolves the criteria again, so a node replaced by a
re-render between two calls is simply found anew.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import (Any, Callable, List, Optional, Type, TypeVar, Union,
                    TYPE_CHECKING)

from .config import TimeConfig, TimeoutSettings
from .context import ActionContext, tracked
from .criteria import MatcherLike, SearchCriteria, as_criteria
from .exceptions import (ActionError, CheckNotSatisfied, CountMismatchError,
                         NotFoundError, StaleElementError, StillPresentError,
                         TimeoutError)
from .artifacts import capture_failure_artifacts
from .waits import poll, retry

if TYPE_CHECKING:
    from .interfaces import DriverPort, ElementHandle

logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F", bound="Fragment")

CriteriaLike = Union[str, SearchCriteria]


class Fragment:
    """
    Immutable description of "how to find this element" plus operations on it.

    Construction and narrowing are pure: no browser I/O, and no failures
    beyond unsupported matcher or index types. Verifications poll until
    their condition holds; actions resolve once and retry a bounded number
    of times on staleness.

    Subclasses compose capability mixins (see capabilities.py) and may
    declare named children with the Child descriptor. A subclass that
    overrides __init__ must keep this constructor's signature, because
    narrowing rebuilds fragments through it, and must set its own
    attributes before calling it: instances are sealed once constructed.
    """

    def __init__(
        self,
        driver: DriverPort,
        criteria: CriteriaLike,
        name: Optional[str] = None,
        config: Optional[TimeConfig] = None,
        cancel: Optional[threading.Event] = None,
    ):
        """
        @param driver DriverPort resolving criteria against the live page
        @param criteria SearchCriteria or a bare selector string
        @param name Logical name used in messages and logs
        @param config Timing snapshot; None reads TimeConfig.current() at call time
        @param cancel Event that aborts any running poll of this fragment when set
        """
        self._driver = driver
        self._criteria = as_criteria(criteria)
        self._name = name
        self._config = config
        self._cancel = cancel
        self._sealed = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False):
            raise AttributeError(f"{type(self).__name__} is immutable; derive a new fragment instead of setting {name!r}")
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable; cannot delete {name!r}")

    # --- Identity ---

    @property
    def criteria(self) -> SearchCriteria:
        return self._criteria

    @property
    def driver(self) -> DriverPort:
        return self._driver

    @property
    def name(self) -> str:
        return self._name or self._criteria.describe()

    @property
    def config(self) -> TimeConfig:
        return self._config if self._config is not None else TimeConfig.current()

    @property
    def cancel(self) -> Optional[threading.Event]:
        return self._cancel

    def __repr__(self) -> str:
        label = f"{self._name!r}, " if self._name else ""
        return f"{type(self).__name__}({label}{self._criteria.describe()!r})"

    # --- Narrowing (pure) ---

    def _derive(
        self,
        criteria: SearchCriteria,
        fragment_type: Optional[Type[F]] = None,
        name: Optional[str] = None,
        config: Optional[TimeConfig] = None,
    ) -> Fragment:
        cls = fragment_type or type(self)
        return cls(
            self._driver,
            criteria,
            name=name,
            config=config if config is not None else self._config,
            cancel=self._cancel,
        )

    def child(
        self,
        selector: CriteriaLike,
        fragment_type: Optional[Type[F]] = None,
        name: Optional[str] = None,
    ) -> Fragment:
        """
        Fragment for matches inside the first match of this fragment.

        @param selector Selector string or criteria, re-rooted under this one
        @param fragment_type Fragment subclass to build (plain Fragment by default)
        @param name Optional logical name
        """
        return self._derive(self._criteria.child(selector), fragment_type or Fragment, name)

    def child_of_each(
        self,
        selector: CriteriaLike,
        fragment_type: Optional[Type[F]] = None,
        name: Optional[str] = None,
    ) -> Fragment:
        """Fragment for matches inside every match of this fragment, in parent order."""
        return self._derive(self._criteria.child_of_each(selector), fragment_type or Fragment, name)

    def with_index(self, n: int) -> Fragment:
        """Same fragment type, restricted to the n-th (0-based) match."""
        name = f"{self._name}[{n}]" if self._name else None
        return self._derive(self._criteria.with_index(n), name=name)

    def with_text(self, matcher: MatcherLike) -> Fragment:
        """Same fragment type, restricted to matches whose text satisfies matcher."""
        criteria = self._criteria.with_text(matcher)
        name = f"{self._name}[{criteria.text.describe()}]" if self._name else None
        return self._derive(criteria, name=name)

    def as_type(self, fragment_type: Type[F], name: Optional[str] = None) -> F:
        """Re-wrap the same criteria in another Fragment type to switch capabilities."""
        return self._derive(self._criteria, fragment_type, name or self._name)  # type: ignore[return-value]

    def with_config(self, config: Optional[TimeConfig] = None, **overrides: Any) -> Fragment:
        """
        Same fragment bound to a timing snapshot.

        @param config Base snapshot (defaults to the current effective config)
        @param overrides TimeConfig field overrides, e.g. presence_wait={"timeout": 2}
        """
        snapshot = (config or self.config).with_overrides(**overrides)
        return self._derive(self._criteria, name=self._name, config=snapshot)

    # --- One-shot resolution ---

    def find_all_instantly(self) -> List[ElementHandle]:
        """
        Resolve once and return whatever matches right now, possibly nothing.

        Never polls. A resolution interrupted by a stale parent is re-run a
        bounded number of times, because a half-resolved scope says nothing
        about the page.
        """
        return self.read_instantly(lambda handles: handles, f"resolve '{self.name}'")

    def read_instantly(self, read: Callable[[List[ElementHandle]], T], description: str) -> T:
        """
        Resolve once and apply read to the current matches, never polling.

        Resolution and read run as one attempt: if a handle goes stale while
        being read, both are re-run within the ``read_action`` retry budget.
        """
        settings = self.config.get_action_settings("resolve")
        return retry(
            lambda: read(self._driver.resolve(self._criteria)),
            max_attempts=settings.retry_count or 1,
            interval=0,
            timeout=settings.timeout,
            description=description,
            fragment_name=self.name,
            cancel=self._cancel,
            stage="resolve",
        )

    def is_present(self) -> bool:
        """True if at least one element matches right now; a page that stays stale counts as absent."""
        try:
            return bool(self.find_all_instantly())
        except StaleElementError:
            return False

    # --- Polled verifications ---

    def _poll(
        self,
        attempt: Callable[[], T],
        description: str,
        kind: str,
        timeout: Optional[float],
        error_factory: Callable[[str], TimeoutError] = TimeoutError,
    ) -> T:
        settings: TimeoutSettings = self.config.wait_settings(kind)
        return poll(
            attempt,
            timeout=settings.timeout if timeout is None else timeout,
            interval=settings.interval,
            description=description,
            backoff=settings.backoff,
            max_interval=settings.max_interval,
            cancel=self._cancel,
            error_factory=error_factory,
            stage="verify",
        )

    def wait_for(
        self,
        check: Callable[[List[ElementHandle]], T],
        description: str,
        timeout: Optional[float] = None,
        kind: str = "custom",
        error_factory: Callable[[str], TimeoutError] = TimeoutError,
    ) -> T:
        """
        Poll a check against freshly resolved handles.

        The check receives the current matches and either returns a result
        (success) or raises CheckNotSatisfied(observation) to be called again.

        @param check Callable evaluated on every attempt
        @param description What is expected, e.g. "'submit' to be enabled"
        @param timeout Override timeout; None uses the ``<kind>_wait`` setting
        @param kind Timing family used for defaults
        @param error_factory TimeoutError subclass raised on timeout
        """
        return self._poll(
            lambda: check(self._driver.resolve(self._criteria)),
            description,
            kind,
            timeout,
            error_factory,
        )

    @tracked("verify_present")
    def verify_present(self, timeout: Optional[float] = None) -> List[ElementHandle]:
        """
        Wait until at least one element matches.

        @return The matches seen by the successful attempt
        @throws NotFoundError if nothing matched before the timeout
        """
        def check(handles: List[ElementHandle]) -> List[ElementHandle]:
            if not handles:
                raise CheckNotSatisfied(0)
            return handles

        return self.wait_for(check, f"'{self.name}' to be present", timeout, "presence", NotFoundError)

    @tracked("verify_absent")
    def verify_absent(self, timeout: Optional[float] = None) -> None:
        """
        Wait until nothing matches.

        @throws StillPresentError if matches remained until the timeout
        """
        def check(handles: List[ElementHandle]) -> None:
            if handles:
                raise CheckNotSatisfied(len(handles))

        self.wait_for(check, f"'{self.name}' to be absent", timeout, "absence", StillPresentError)

    @tracked("verify_size")
    def verify_size(self, n: int, timeout: Optional[float] = None) -> List[ElementHandle]:
        """
        Wait until exactly n elements match.

        @throws CountMismatchError carrying the last observed count
        """
        def check(handles: List[ElementHandle]) -> List[ElementHandle]:
            if len(handles) != n:
                raise CheckNotSatisfied(len(handles))
            return handles

        return self.wait_for(
            check,
            f"'{self.name}' to have exactly {n} match(es)",
            timeout,
            "size",
            functools.partial(CountMismatchError, expected=n),
        )

    # --- Action dispatch ---

    def _act(
        self,
        action_name: str,
        operation: Callable[[ElementHandle], T],
        wait: Optional[float] = None,
    ) -> T:
        """
        Resolve and run an operation on the first match.

        Existence is not polled unless ``wait`` is given. A stale or
        not-interactable failure re-resolves and retries up to the action's
        retry_count; a match vanishing between retries counts as staleness.

        @param action_name Key for get_action_settings and messages
        @param operation Callable receiving a freshly resolved handle
        @param wait Seconds to poll for presence first; None skips the poll
        @throws NotFoundError if nothing matches on the first resolution
        @throws StaleElementError once the retry budget is spent on staleness
        @throws ActionError once the budget is spent on other transient failures
        """
        if wait is not None:
            self.verify_present(timeout=wait)

        settings = self.config.get_action_settings(action_name)
        description = f"{action_name} on '{self.name}'"
        attempts = [0]

        def attempt() -> T:
            attempts[0] += 1
            handles = self._driver.resolve(self._criteria)
            if not handles:
                if attempts[0] == 1:
                    raise self._nothing_to_act_on(description)
                raise StaleElementError(self.name, f"no match left while retrying {action_name}")
            return operation(handles[0])

        return retry(
            attempt,
            max_attempts=settings.retry_count or 1,
            interval=settings.interval,
            timeout=settings.timeout,
            description=description,
            fragment_name=self.name,
            cancel=self._cancel,
            stage="execute",
        )

    def _nothing_to_act_on(self, description: str) -> NotFoundError:
        error = NotFoundError(f"No element matches '{self._criteria.describe()}' for {description}")
        error.description = description
        error.timeout = 0.0
        error.elapsed_time = 0.0
        error.attempt_count = 1
        error.last_observation = 0
        return error

    # --- Failure enrichment ---

    def _on_failure(self, exc: Exception, context: ActionContext) -> None:
        """Attach the action trace and, for synchronization failures, artifacts."""
        if not isinstance(exc, (TimeoutError, StaleElementError, ActionError)):
            return
        exc.action_trace = context.format_trace()
        if not getattr(exc, "artifacts", None):
            exc.artifacts = capture_failure_artifacts(self._driver, self.config.artifacts_dir, self.name)
        logger.debug("'%s' failed: %s", self.name, exc)


class Child:
    """
    Declares a named child fragment on a Fragment subclass.

    Example::

        class LoginForm(Fragment):
            username = Child("input[name=user]", TextField)
            submit = Child("button[type=submit]", Button)

    Each access builds a fresh child scoped under the owning instance; nothing
    is cached on the instance.
    """

    def __init__(
        self,
        selector: CriteriaLike,
        fragment_type: Optional[Type[Fragment]] = None,
        each: bool = False,
        name: Optional[str] = None,
    ):
        self.selector = selector
        self.fragment_type = fragment_type
        self.each = each
        self.name = name
        self.attr: Optional[str] = None

    def __set_name__(self, owner: type, attr: str) -> None:
        self.attr = attr

    def __get__(self, instance: Optional[Fragment], owner: type) -> Any:
        if instance is None:
            return self
        name = self.name or f"{instance.name}.{self.attr}"
        scope = instance.child_of_each if self.each else instance.child
        return scope(self.selector, self.fragment_type, name=name)
