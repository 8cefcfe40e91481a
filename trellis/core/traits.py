"""Trait resolution.

A trait registration is either a callable or the name of a binding in
an external registry. The resolver turns either form into a uniform
ResolvedTrait whose ``invoke`` runs the setup against a suite binding.
"""

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import TraitError, TraitResolutionError
from .invoke import call_with_optional
from .ports import BindingRegistryPort

if TYPE_CHECKING:
    from .context import Context
    from .hooks import Hook
    from .suite import Suite, TraitRegistration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraitBinding:
    """What a trait receives: the suite and its context.

    ``before`` and ``after`` register suite-local hooks, so a trait can
    be written as ``lambda binding: binding.before(...)``.
    """

    suite: "Suite"
    context: "Context"

    def before(self, hook: "Hook") -> None:
        self.suite.before(hook)

    def after(self, hook: "Hook") -> None:
        self.suite.after(hook)

    def getter(self, name: str, compute: Callable[[], Any], singleton: bool = False) -> None:
        self.context.getter(name, compute, singleton)


@dataclass(frozen=True)
class ResolvedTrait:
    """A trait ready to run, whatever form it was registered in."""

    label: str
    target: Any
    uses_handle: bool = False
    named: bool = False

    async def invoke(self, binding: TraitBinding) -> None:
        """Run the trait against binding.

        A callable target whose result is itself callable is treated as a
        factory: the produced callable is invoked with the same binding.
        """
        try:
            if self.uses_handle:
                await call_with_optional(self.target.handle, binding)
                return

            produced = await call_with_optional(self.target, binding)
            if self._is_factory_product(produced):
                await call_with_optional(produced, binding)
        except TraitError:
            raise
        except Exception as e:
            raise TraitError(f"Trait {self.label} failed: {e}", trait=self.target) from e

    def _is_factory_product(self, produced: Any) -> bool:
        # Factory indirection applies to named bindings only.
        return (
            self.named
            and callable(produced)
            and not inspect.isclass(produced)
        )


class TraitResolver:
    """Turns trait registrations into ResolvedTrait values."""

    def __init__(self, registry: BindingRegistryPort | None = None):
        """Initialize resolver.

        Args:
            registry: Registry for named traits. Without one, any named
                trait fails to resolve.
        """
        self.registry = registry

    def resolve(self, registration: "TraitRegistration") -> ResolvedTrait:
        """Resolve registration.

        Raises:
            TraitResolutionError: If a named trait is unknown or resolves to
                something that is neither callable nor has ``handle``.
        """
        if callable(registration):
            label = getattr(registration, "__qualname__", None) or repr(registration)
            return ResolvedTrait(label=label, target=registration)

        name = registration
        if self.registry is None:
            raise TraitResolutionError(
                f"Cannot resolve trait '{name}': no binding registry configured",
                trait=name,
            )

        try:
            resolved = self.registry.resolve(name)
        except LookupError as e:
            raise TraitResolutionError(
                f"Cannot resolve trait '{name}': {e}", trait=name
            ) from e

        if inspect.isclass(resolved):
            try:
                resolved = resolved()
            except Exception as e:
                raise TraitResolutionError(
                    f"Cannot instantiate trait class bound to '{name}': {e}", trait=name
                ) from e

        label = f"'{name}'"
        if callable(getattr(resolved, "handle", None)):
            logger.debug(f"Trait {label} resolved to handler object {type(resolved).__name__}")
            return ResolvedTrait(label=label, target=resolved, uses_handle=True, named=True)
        if callable(resolved):
            logger.debug(f"Trait {label} resolved to callable")
            return ResolvedTrait(label=label, target=resolved, named=True)

        raise TraitResolutionError(
            f"Trait '{name}' resolved to {type(resolved).__name__}, "
            "which is neither callable nor has a handle method",
            trait=name,
        )
