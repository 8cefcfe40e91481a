"""Domain models for the Trellis orchestration engine.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from dataclasses import dataclass
from enum import Enum

DEFAULT_TIMEOUT_MS = 2000


class RunEvent(str, Enum):
    """Lifecycle events emitted on the event channel.

    Emission order for one suite is strictly nested:
    GROUP_START, then TEST_START/TEST_END per test, then GROUP_END.
    """

    GROUP_START = "group:start"
    GROUP_END = "group:end"
    TEST_START = "test:start"
    TEST_END = "test:end"


class FailureKind(Enum):
    """What produced a failure record."""

    TEST = "test"
    TIMEOUT = "timeout"
    HOOK = "hook"


class TestStatus(Enum):
    """Outcome of a single test."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    TODO = "todo"


@dataclass(frozen=True)
class FailureRecord:
    """A failed test, timed-out test, or failed hook captured during a run."""

    title: str
    error: BaseException
    kind: FailureKind = FailureKind.TEST
    suite: str | None = None  # None for global hooks

    def __post_init__(self) -> None:
        """Validate failure record invariants on creation."""
        if not isinstance(self.error, BaseException):
            raise ValueError(
                f"error must be an exception instance, got {type(self.error).__name__}"
            )


@dataclass(frozen=True)
class RunConfig:
    """Immutable snapshot of runner configuration taken when a run starts."""

    timeout_ms: int | None
    grep: str | None
    bail: bool


@dataclass(frozen=True)
class RunResult:
    """Summary of a run execution."""

    suites: int  # suites that started
    tests: int  # tests that started
    passed: int
    todo: int
    failures: tuple[FailureRecord, ...]
    bailed: bool
    duration_ms: float

    @property
    def ok(self) -> bool:
        """True when the run produced no failure records."""
        return not self.failures


# ============================================================================
# Event payloads
# ============================================================================


@dataclass(frozen=True)
class GroupPayload:
    """Payload for group:start."""

    title: str


@dataclass(frozen=True)
class GroupEndPayload:
    """Payload for group:end."""

    title: str
    failed: bool


@dataclass(frozen=True)
class TestPayload:
    """Payload for test:start."""

    __test__ = False

    title: str
    suite: str


@dataclass(frozen=True)
class TestEndPayload:
    """Payload for test:end."""

    __test__ = False

    title: str
    suite: str
    status: TestStatus
    duration_ms: float
    error: BaseException | None = None
