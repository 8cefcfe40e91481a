"""Suite, Group, and Test: the registration-side model.

A Suite owns one Group of Tests, one Context, suite-local hooks and
traits, and an optional timeout override. Test timeouts and the grep
filter are resolved when a test is registered, never at execution time.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .context import Context
from .errors import InvalidArgumentError
from .hooks import Hook, HookRegistry
from .models import DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
TraitRegistration = Callable[..., Any] | str


def validate_timeout(ms: Any) -> int:
    """Return ms if it is a positive integer, else raise InvalidArgumentError."""
    if isinstance(ms, bool) or not isinstance(ms, int) or ms <= 0:
        raise InvalidArgumentError(f"timeout must be a positive integer (ms), got {ms!r}")
    return ms


def validate_trait(registration: Any) -> TraitRegistration:
    """Return registration if it is a callable or a binding name."""
    if callable(registration):
        return registration
    if isinstance(registration, str) and registration.strip():
        return registration
    raise InvalidArgumentError(
        f"trait must be a callable or a binding name, got {type(registration).__name__}"
    )


@dataclass
class RegistrationDefaults:
    """Runner-wide values consulted when a test is registered.

    Owned and mutated by the Runner; shared by reference with its suites.
    """

    timeout_ms: int | None = None
    grep: str | None = None

    def matches(self, title: str) -> bool:
        """True when no grep filter is set or title contains it."""
        return self.grep is None or self.grep in title


@dataclass(frozen=True)
class Test:
    """A single registered test.

    A None handler marks the test as a todo: it is reported but never run.
    """

    __test__ = False

    title: str
    handler: Handler | None
    timeout_ms: int

    @property
    def is_todo(self) -> bool:
        return self.handler is None


@dataclass
class Group:
    """Ordered tests belonging to one suite."""

    title: str
    tests: list[Test] = field(default_factory=list)

    def add(self, test: Test) -> None:
        self.tests.append(test)

    def __len__(self) -> int:
        return len(self.tests)


class Suite:
    """A named group of tests sharing one Context.

    Created only through Runner.suite(); configuration methods return the
    suite so calls can be chained.
    """

    def __init__(self, title: str, defaults: RegistrationDefaults):
        self.title = title
        self.group = Group(title)
        self.context = Context()
        self.hooks = HookRegistry(scope=f"suite '{title}'")
        self.traits: list[TraitRegistration] = []
        self._defaults = defaults
        self._timeout_ms: int | None = None

    def test(self, title: str, handler: Handler | None = None) -> Test | None:
        """Register a test, unless the active grep filter excludes it.

        Returns:
            The registered Test, or None when the title was filtered out.
        """
        if handler is not None and not callable(handler):
            raise InvalidArgumentError(
                f"handler for test '{title}' must be callable, got {type(handler).__name__}"
            )
        if not self._defaults.matches(title):
            logger.debug(f"Skipping test '{title}': does not match grep '{self._defaults.grep}'")
            return None

        test = Test(title=title, handler=handler, timeout_ms=self.resolve_timeout())
        self.group.add(test)
        return test

    def resolve_timeout(self) -> int:
        """Timeout a test registered now would get: suite, then runner, then default."""
        if self._timeout_ms is not None:
            return self._timeout_ms
        if self._defaults.timeout_ms is not None:
            return self._defaults.timeout_ms
        return DEFAULT_TIMEOUT_MS

    def timeout(self, ms: int) -> "Suite":
        """Override the timeout for tests registered on this suite from now on."""
        self._timeout_ms = validate_timeout(ms)
        return self

    def trait(self, registration: TraitRegistration) -> "Suite":
        """Append a trait that runs before this suite's tests."""
        self.traits.append(validate_trait(registration))
        return self

    def before(self, hook: Hook) -> "Suite":
        """Append a hook that runs before this suite's tests."""
        self.hooks.add_before(hook)
        return self

    def after(self, hook: Hook) -> "Suite":
        """Append a hook that runs after this suite's tests."""
        self.hooks.add_after(hook)
        return self

    @property
    def tests(self) -> tuple[Test, ...]:
        return tuple(self.group.tests)

    def __repr__(self) -> str:
        return f"Suite(title={self.title!r}, tests={len(self.group)})"
