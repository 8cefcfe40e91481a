"""Error hierarchy for the Trellis orchestration engine.

Setup-time errors (InvalidArgumentError, TraitError, ReporterError, a
failing global before-hook) are fatal to a run. Per-test errors are
collected into FailureRecords and surfaced together through
RunFailedError.
"""

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import FailureRecord, RunResult


class TrellisError(Exception):
    """Base class for all Trellis errors.

    When an error aborts a run, the runner attaches the failures recorded
    up to that point (global after-hook failures included) and the
    partial RunResult before re-raising it.
    """

    failures: "tuple[FailureRecord, ...]" = ()
    result: "RunResult | None" = None


class InvalidArgumentError(TrellisError, ValueError):
    """A registration call received a value it cannot use."""


class RunnerStateError(TrellisError):
    """The runner was used outside its one-run lifecycle."""


class ContextSealedError(TrellisError):
    """A getter was defined on a context view handed to a running test."""


class TraitError(TrellisError):
    """A trait raised while setting up its suite."""

    def __init__(self, message: str, trait: object = None):
        super().__init__(message)
        self.trait = trait


class TraitResolutionError(TraitError):
    """A trait registration could not be turned into something invocable."""


class HookFailure(TrellisError):
    """A before or after hook raised."""

    def __init__(self, message: str, hook: object = None):
        super().__init__(message)
        self.hook = hook


class ReporterError(TrellisError):
    """The reporter factory raised while subscribing to the event channel."""

    def __init__(self, message: str, reporter: object = None):
        super().__init__(message)
        self.reporter = reporter


class TestFailure(TrellisError):
    """A test handler reported an error through its completion signal."""

    __test__ = False


class TestTimeoutError(TestFailure, TimeoutError):
    """A test did not complete within its resolved timeout."""

    __test__ = False

    def __init__(self, title: str, timeout_ms: int):
        super().__init__(f"Test '{title}' timed out after {timeout_ms}ms")
        self.title = title
        self.timeout_ms = timeout_ms


class RunFailedError(TrellisError, Sequence):
    """A run finished with one or more failure records.

    Behaves as a read-only sequence of FailureRecord in the order
    the failures happened, so ``error[0].error`` is the first captured
    exception.
    """

    def __init__(
        self,
        failures: "Sequence[FailureRecord]",
        result: "RunResult | None" = None,
    ):
        self.failures: "tuple[FailureRecord, ...]" = tuple(failures)
        self.result = result
        count = len(self.failures)
        noun = "failure" if count == 1 else "failures"
        super().__init__(f"Run failed with {count} {noun}")

    def __getitem__(self, index):  # type: ignore[override]
        return self.failures[index]

    def __len__(self) -> int:
        return len(self.failures)

    def __iter__(self) -> "Iterator[FailureRecord]":
        return iter(self.failures)
