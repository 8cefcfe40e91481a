"""Fake implementations of core ports for testing.

These in-memory implementations allow core orchestration logic to be
tested without the asyncio executor or a real registry:

- FakeExecutionPort: Calls handlers directly, with scripted failures
- FakeBindingRegistry: Dict-backed name lookup with call tracking
- FakeEventChannel: Records every emitted event for assertion
"""

from .channel import FakeEventChannel
from .execution import FakeExecutionPort
from .registry import FakeBindingRegistry

__all__ = [
    "FakeBindingRegistry",
    "FakeEventChannel",
    "FakeExecutionPort",
]
