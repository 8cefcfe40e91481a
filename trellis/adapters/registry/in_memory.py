"""In-memory binding registry.

Implements BindingRegistryPort with a plain dict of factories, in the
manner of an IoC container: ``bind`` produces a fresh value on every
resolve, ``singleton`` builds once and reuses the value.
"""

import logging
from collections.abc import Callable
from typing import Any

from trellis.core.ports import BindingRegistryPort

logger = logging.getLogger(__name__)


class BindingNotFoundError(LookupError):
    """No binding exists under the requested name."""


class InMemoryBindingRegistry(BindingRegistryPort):
    """Name to factory registry used to resolve named traits."""

    def __init__(self) -> None:
        self._factories: dict[str, Callable[[], Any]] = {}
        self._singletons: set[str] = set()
        self._instances: dict[str, Any] = {}

    def bind(self, name: str, factory: Callable[[], Any]) -> None:
        """Bind name to factory; factory runs on every resolve."""
        self._register(name, factory)
        self._singletons.discard(name)

    def singleton(self, name: str, factory: Callable[[], Any]) -> None:
        """Bind name to factory; factory runs on first resolve only."""
        self._register(name, factory)
        self._singletons.add(name)

    def instance(self, name: str, value: Any) -> None:
        """Bind name directly to value."""
        self.singleton(name, lambda: value)

    def has(self, name: str) -> bool:
        return name in self._factories

    def unbind(self, name: str) -> None:
        """Remove a binding. Unknown names are ignored."""
        self._factories.pop(name, None)
        self._instances.pop(name, None)
        self._singletons.discard(name)

    def resolve(self, name: str) -> Any:
        """Produce the value bound under name.

        Raises:
            BindingNotFoundError: If name was never bound.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise BindingNotFoundError(f"No binding registered for '{name}'")

        if name not in self._singletons:
            return factory()

        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]

    def _register(self, name: str, factory: Callable[[], Any]) -> None:
        if not name:
            raise ValueError("binding name must be a non-empty string")
        if not callable(factory):
            raise ValueError(f"factory for '{name}' must be callable")
        if name in self._factories:
            logger.debug(f"Replacing binding '{name}'")
        self._factories[name] = factory
        self._instances.pop(name, None)
