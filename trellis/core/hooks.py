"""Ordered before/after hook lists.

Used twice: once by the Runner for global hooks and once per Suite for
suite-local hooks. Before-hooks stop at the first error; after-hooks are
best-effort and report every error they collect.
"""

import logging
from collections.abc import Callable
from typing import Any

from .errors import HookFailure, InvalidArgumentError
from .invoke import call, call_with_optional

logger = logging.getLogger(__name__)

Hook = Callable[..., Any]


def hook_name(hook: Hook) -> str:
    """Readable name for a hook in logs and failure titles."""
    return getattr(hook, "__qualname__", None) or repr(hook)


class HookRegistry:
    """FIFO before and after hooks for one scope.

    Hooks may be sync or async. Each hook is called with the scope's
    binding if it declares a parameter, otherwise with no arguments.
    """

    def __init__(self, scope: str):
        """Initialize empty hook lists.

        Args:
            scope: Label used in log and error messages ("runner" or a suite title).
        """
        self.scope = scope
        self._before: list[Hook] = []
        self._after: list[Hook] = []

    def add_before(self, hook: Hook) -> None:
        """Append a before-hook."""
        self._before.append(self._check(hook))

    def add_after(self, hook: Hook) -> None:
        """Append an after-hook."""
        self._after.append(self._check(hook))

    @property
    def before_hooks(self) -> tuple[Hook, ...]:
        return tuple(self._before)

    @property
    def after_hooks(self) -> tuple[Hook, ...]:
        return tuple(self._after)

    async def run_before(self, binding: Any = None) -> None:
        """Run before-hooks in order, stopping at the first failure.

        Raises:
            HookFailure: Wrapping the first exception raised by a hook.
        """
        for hook in tuple(self._before):
            try:
                await self._invoke(hook, binding)
            except Exception as e:
                logger.error(
                    f"Before hook {hook_name(hook)} failed in {self.scope}: {e}",
                    exc_info=True,
                )
                raise HookFailure(
                    f"Before hook failed in {self.scope}: {e}", hook=hook
                ) from e

    async def run_after(self, binding: Any = None) -> list[HookFailure]:
        """Run every after-hook in order, even when earlier ones fail.

        Returns:
            One HookFailure per hook that raised, in hook order.
        """
        failures: list[HookFailure] = []
        for hook in tuple(self._after):
            try:
                await self._invoke(hook, binding)
            except Exception as e:
                logger.error(
                    f"After hook {hook_name(hook)} failed in {self.scope}: {e}",
                    exc_info=True,
                )
                failure = HookFailure(f"After hook failed in {self.scope}: {e}", hook=hook)
                failure.__cause__ = e
                failures.append(failure)
                # Continue with remaining hooks
        return failures

    @staticmethod
    async def _invoke(hook: Hook, binding: Any) -> None:
        if binding is None:
            await call(hook)
        else:
            await call_with_optional(hook, binding)

    def _check(self, hook: Hook) -> Hook:
        if not callable(hook):
            raise InvalidArgumentError(
                f"{self.scope} hook must be callable, got {type(hook).__name__}"
            )
        return hook
