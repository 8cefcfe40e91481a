"""Port interfaces for the Trellis orchestration engine.

These abstract base classes define the boundaries between core
orchestration logic and external collaborators. Implementations live
in the adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - ExecutionPort: Run a single test handler and report its outcome
   - BindingRegistryPort: Look up string-named traits
   - EventChannelPort: Deliver lifecycle events to reporters

2. **Driving Side**
   - Runner (core/runner.py) is called directly by whatever discovers
     test files and parses command lines; no port is needed for it.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from .context import Context
    from .suite import Test

Listener: TypeAlias = Callable[[Any], Any]


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class ExecutionPort(ABC):
    """Port for running one test handler against its context.

    Adapters implementing this port decide how a handler is invoked
    (direct return, awaitable, or completion signal) and enforce the
    test's resolved timeout.

    Implementations must:
    - Return normally when the handler succeeds
    - Raise the handler's own exception when it fails
    - Raise TestFailure when a completion signal reports an error
    - Raise TestTimeoutError when the timeout expires first
    """

    @abstractmethod
    async def execute(self, test: "Test", context: "Context") -> None:
        """Run the test handler bounded by test.timeout_ms.

        Args:
            test: The registered test, including its resolved timeout.
            context: The per-test context view to pass to the handler.

        Raises:
            Exception: Any failure of the handler, including timeout.
        """


class BindingRegistryPort(ABC):
    """Port for resolving named bindings.

    Used only by the trait resolver for traits registered by name.
    """

    @abstractmethod
    def resolve(self, name: str) -> Any:
        """Return the value bound under name.

        Args:
            name: The binding name, e.g. "App/Traits/Database".

        Returns:
            Whatever the binding produces: a trait callable, an object
            with a ``handle`` method, or a factory for either.

        Raises:
            LookupError: If nothing is bound under name.
        """


class EventChannelPort(ABC):
    """Port for publishing lifecycle events to subscribers.

    The runner is the single writer; reporters subscribe through the
    channel handed to their factory.
    """

    @abstractmethod
    def on(self, event: str, listener: Listener) -> None:
        """Subscribe listener to event. Listeners run in subscription order."""

    @abstractmethod
    def emit(self, event: str, payload: Any = None) -> None:
        """Invoke every listener subscribed to event with payload."""


def is_event_channel(candidate: object) -> bool:
    """Check whether candidate can stand in as an event channel.

    Accepts EventChannelPort subclasses and any object exposing callable
    ``on`` and ``emit`` (for example a pyee emitter).
    """
    if isinstance(candidate, EventChannelPort):
        return True
    return callable(getattr(candidate, "on", None)) and callable(
        getattr(candidate, "emit", None)
    )
