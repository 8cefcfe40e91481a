"""Per-suite property bag handed to every test handler.

Traits define named getters on a suite's Context. Each test receives a
sealed view of that Context (see ``Context.spawn``) with its own cache,
so singleton getters are computed at most once per test.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from .errors import ContextSealedError, InvalidArgumentError

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class Getter:
    """Definition of one lazily computed context property."""

    name: str
    compute: Callable[[], Any]
    singleton: bool = False


class Context:
    """Named lazily computed properties, scoped to one suite.

    Properties are read with ``get(name)`` or attribute access
    (``ctx.foo``). Reading a property that was never defined returns
    None instead of raising, so handlers can probe optional
    capabilities.
    """

    def __init__(
        self,
        getters: dict[str, Getter] | None = None,
        sealed: bool = False,
    ):
        self._getters: dict[str, Getter] = dict(getters or {})
        self._cache: dict[str, Any] = {}
        self._sealed = sealed

    def getter(
        self,
        name: str,
        compute: Callable[[], Any],
        singleton: bool = False,
    ) -> "Context":
        """Define property name, computed by compute on access.

        Args:
            name: Property name. Redefining a name replaces the old getter.
            compute: Zero-argument callable producing the value.
            singleton: If True, compute runs once per test and the result
                is reused for later reads within that test.

        Raises:
            ContextSealedError: If called on a view given to a running test.
            InvalidArgumentError: If name is empty or shadowed by a Context
                attribute such as ``names``, or compute is not callable.
        """
        if self._sealed:
            raise ContextSealedError(
                f"Cannot define getter '{name}' while tests are running"
            )
        if not name or not isinstance(name, str):
            raise InvalidArgumentError("getter name must be a non-empty string")
        if hasattr(Context, name):
            raise InvalidArgumentError(
                f"getter name '{name}' is reserved by Context"
            )
        if not callable(compute):
            raise InvalidArgumentError(
                f"getter '{name}' expects a callable, got {type(compute).__name__}"
            )
        if name in self._getters:
            logger.debug(f"Redefining context getter '{name}'")
        self._getters[name] = Getter(name=name, compute=compute, singleton=singleton)
        self._cache.pop(name, None)
        return self

    def get(self, name: str, default: Any = None) -> Any:
        """Read property name, computing it if needed."""
        getter = self._getters.get(name)
        if getter is None:
            return default

        if not getter.singleton:
            return getter.compute()

        cached = self._cache.get(name, _MISSING)
        if cached is _MISSING:
            cached = getter.compute()
            self._cache[name] = cached
        return cached

    def has(self, name: str) -> bool:
        """True if a getter named name is defined."""
        return name in self._getters

    def names(self) -> tuple[str, ...]:
        """Defined property names in definition order."""
        return tuple(self._getters)

    def spawn(self) -> "Context":
        """Create a sealed view sharing these getters with an empty cache."""
        return Context(self._getters, sealed=True)

    @property
    def sealed(self) -> bool:
        """True for views handed to running tests."""
        return self._sealed

    def __contains__(self, name: object) -> bool:
        return name in self._getters

    def __iter__(self) -> Iterator[str]:
        return iter(self._getters)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal attribute lookup fails.
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __repr__(self) -> str:
        return f"Context(names={list(self._getters)!r}, sealed={self._sealed})"
