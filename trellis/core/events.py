"""Default in-process event channel.

Reporters subscribe to lifecycle events through the channel passed to
their factory. The runner is the only emitter.
"""

import logging
from collections import defaultdict
from typing import Any

from .models import RunEvent
from .ports import EventChannelPort, Listener

logger = logging.getLogger(__name__)


def _event_name(event: str | RunEvent) -> str:
    return event.value if isinstance(event, RunEvent) else event


class EventChannel(EventChannelPort):
    """Synchronous publish/subscribe keyed by event name.

    Listeners for one event run in subscription order. A listener that
    raises is logged and skipped; it never interrupts the run or the
    remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str | RunEvent, listener: Listener) -> None:
        """Subscribe listener to event."""
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        self._listeners[_event_name(event)].append(listener)

    def off(self, event: str | RunEvent, listener: Listener) -> None:
        """Remove the first subscription of listener to event, if any."""
        listeners = self._listeners.get(_event_name(event))
        if listeners and listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str | RunEvent, payload: Any = None) -> None:
        """Deliver payload to every listener of event."""
        name = _event_name(event)
        for listener in tuple(self._listeners.get(name, ())):
            try:
                listener(payload)
            except Exception as e:
                logger.error(f"Listener for '{name}' failed: {e}", exc_info=True)
                # Continue notifying remaining listeners

    def listener_count(self, event: str | RunEvent) -> int:
        """Number of listeners subscribed to event."""
        return len(self._listeners.get(_event_name(event), ()))
