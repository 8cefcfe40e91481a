"""Core orchestration logic for the Trellis test engine.

This package contains zero external dependencies and represents
the scheduling rules of the engine. Execution of individual handlers,
named-binding lookup, and reporting live behind the ports in ports.py.
"""

from .context import Context, Getter
from .errors import (
    ContextSealedError,
    HookFailure,
    InvalidArgumentError,
    ReporterError,
    RunFailedError,
    RunnerStateError,
    TestFailure,
    TestTimeoutError,
    TraitError,
    TraitResolutionError,
    TrellisError,
)
from .events import EventChannel
from .models import (
    DEFAULT_TIMEOUT_MS,
    FailureKind,
    FailureRecord,
    RunConfig,
    RunEvent,
    RunResult,
    TestStatus,
)
from .runner import Runner
from .suite import Group, Suite, Test
from .traits import TraitBinding, TraitResolver

__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "Context",
    "ContextSealedError",
    "EventChannel",
    "FailureKind",
    "FailureRecord",
    "Getter",
    "Group",
    "HookFailure",
    "InvalidArgumentError",
    "ReporterError",
    "RunConfig",
    "RunEvent",
    "RunFailedError",
    "RunResult",
    "Runner",
    "RunnerStateError",
    "Suite",
    "Test",
    "TestFailure",
    "TestStatus",
    "TestTimeoutError",
    "TraitBinding",
    "TraitError",
    "TraitResolutionError",
    "TraitResolver",
    "TrellisError",
]
