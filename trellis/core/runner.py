"""Run orchestration for the Trellis engine.

The Runner owns the ordered suites and the run-wide configuration
(timeout, grep, bail, global hooks and traits, event channel, reporter)
and drives the execution protocol:

1. Snapshot configuration and attach the reporter to the event channel
2. Run global before-hooks (a failure here is fatal)
3. For each suite: run traits, emit group:start, run suite before-hooks,
   run each test, run suite after-hooks, emit group:end
4. Run global after-hooks, always
5. Raise RunFailedError if anything failed, else return a RunResult
"""

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .errors import (
    HookFailure,
    InvalidArgumentError,
    ReporterError,
    RunFailedError,
    RunnerStateError,
    TestTimeoutError,
    TraitError,
    TrellisError,
)
from .events import EventChannel
from .hooks import Hook, HookRegistry, hook_name
from .invoke import call
from .models import (
    FailureKind,
    FailureRecord,
    GroupEndPayload,
    GroupPayload,
    RunConfig,
    RunEvent,
    RunResult,
    TestEndPayload,
    TestPayload,
    TestStatus,
)
from .ports import BindingRegistryPort, EventChannelPort, ExecutionPort, is_event_channel
from .suite import (
    RegistrationDefaults,
    Suite,
    Test,
    TraitRegistration,
    validate_timeout,
    validate_trait,
)
from .traits import TraitBinding, TraitResolver

logger = logging.getLogger(__name__)

ReporterFactory = Callable[[Any], Any]

REPORTER_KEY = "REPORTER"


@dataclass
class _RunState:
    """Mutable bookkeeping for one run."""

    config: RunConfig
    failures: list[FailureRecord] = field(default_factory=list)
    suites: int = 0
    tests: int = 0
    passed: int = 0
    todo: int = 0
    bailed: bool = False

    def record(self, failure: FailureRecord) -> None:
        self.failures.append(failure)
        if self.config.bail and not self.bailed:
            logger.info(f"Bail enabled: stopping after failure in '{failure.title}'")
            self.bailed = True

    def result(self, duration_ms: float) -> RunResult:
        return RunResult(
            suites=self.suites,
            tests=self.tests,
            passed=self.passed,
            todo=self.todo,
            failures=tuple(self.failures),
            bailed=self.bailed,
            duration_ms=duration_ms,
        )


class Runner:
    """Registers suites and runs them in order.

    A Runner lives for a single ``run()``. Configuration set before
    ``run()`` is snapshotted when the run starts.
    """

    def __init__(
        self,
        env: Mapping[str, Any] | None = None,
        executor: ExecutionPort | None = None,
        registry: BindingRegistryPort | None = None,
    ):
        """Initialize runner.

        Args:
            env: Configuration mapping. ``REPORTER`` names a callable used
                as the reporter when none is registered via ``reporter()``.
            executor: ExecutionPort that runs individual test handlers.
            registry: BindingRegistryPort for traits registered by name.

        Raises:
            InvalidArgumentError: If env provides a non-callable REPORTER.
        """
        env_reporter = (env or {}).get(REPORTER_KEY)
        if env_reporter is not None and not callable(env_reporter):
            raise InvalidArgumentError(
                f"{REPORTER_KEY} must be callable, got {type(env_reporter).__name__}"
            )

        self.executor = executor
        self.resolver = TraitResolver(registry)
        self._env_reporter: ReporterFactory | None = env_reporter
        self._reporter: ReporterFactory | None = None
        self._channel: EventChannelPort | Any | None = None
        self._suites: list[Suite] = []
        self._defaults = RegistrationDefaults()
        self._bail = False
        self._hooks = HookRegistry(scope="runner")
        self._traits: list[TraitRegistration] = []
        self._started = False

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def suite(self, title: str) -> Suite:
        """Create a suite, append it to the run order, and return it."""
        suite = Suite(title, self._defaults)
        self._suites.append(suite)
        return suite

    def timeout(self, ms: int) -> "Runner":
        """Set the default timeout for tests whose suite has no override."""
        self._defaults.timeout_ms = validate_timeout(ms)
        return self

    def grep(self, pattern: str | None) -> "Runner":
        """Only register tests whose title contains pattern. None clears it."""
        if pattern is not None and not isinstance(pattern, str):
            raise InvalidArgumentError(f"grep pattern must be a string, got {type(pattern).__name__}")
        self._defaults.grep = pattern
        return self

    def bail(self, flag: bool = True) -> "Runner":
        """Stop starting new tests and suites after the first failure."""
        self._bail = bool(flag)
        return self

    def before(self, hook: Hook) -> "Runner":
        """Append a global before-hook."""
        self._hooks.add_before(hook)
        return self

    def after(self, hook: Hook) -> "Runner":
        """Append a global after-hook."""
        self._hooks.add_after(hook)
        return self

    def trait(self, registration: TraitRegistration) -> "Runner":
        """Append a trait applied to every suite before its own traits."""
        self._traits.append(validate_trait(registration))
        return self

    def emitter(self, channel: EventChannelPort | Any) -> "Runner":
        """Replace the default event channel with channel."""
        if not is_event_channel(channel):
            raise InvalidArgumentError(
                f"emitter must provide on() and emit(), got {type(channel).__name__}"
            )
        self._channel = channel
        return self

    def reporter(self, factory: ReporterFactory) -> "Runner":
        """Register the reporter factory, called with the event channel on run.

        Raises:
            InvalidArgumentError: If factory is not callable.
        """
        if not callable(factory):
            raise InvalidArgumentError(
                f"reporter must be a callable, got {type(factory).__name__}"
            )
        self._reporter = factory
        return self

    @property
    def suites(self) -> tuple[Suite, ...]:
        return tuple(self._suites)

    @property
    def config(self) -> RunConfig:
        """Snapshot of the current run-wide configuration."""
        return RunConfig(
            timeout_ms=self._defaults.timeout_ms,
            grep=self._defaults.grep,
            bail=self._bail,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(self) -> RunResult:
        """Run every suite in registration order.

        Returns:
            RunResult when no failure was recorded.

        Raises:
            RunFailedError: Carrying the ordered failure records.
            ReporterError: If the reporter factory raised.
            HookFailure: If a global before-hook failed.
            TraitError: If a trait could not be resolved or raised.
            RunnerStateError: If run() was already called or no executor is set.

        Reporter, hook and trait errors are raised after global after-hooks
        ran, with ``failures`` and ``result`` set to what the run recorded.
        """
        if self._started:
            raise RunnerStateError("Runner.run() can only be called once")
        if self.executor is None:
            raise RunnerStateError("Runner has no executor configured")
        self._started = True

        state = _RunState(config=self.config)
        suites = tuple(self._suites)
        global_traits = tuple(self._traits)
        channel = self._channel if self._channel is not None else EventChannel()

        logger.info(
            f"Starting run: {len(suites)} suite(s), bail={state.config.bail}, "
            f"grep={state.config.grep!r}"
        )
        started = time.perf_counter()
        fatal: TrellisError | None = None

        try:
            await self._attach_reporter(channel)
            await self._hooks.run_before()
            for suite in suites:
                if state.bailed:
                    break
                await self._run_suite(suite, global_traits, channel, state)
        except (HookFailure, TraitError, ReporterError) as e:
            logger.error(f"Run aborted: {e}")
            fatal = e
        finally:
            for failure in await self._hooks.run_after():
                state.failures.append(self._hook_record(failure, suite=None))

        result = state.result((time.perf_counter() - started) * 1000)
        logger.info(
            f"Run finished: {result.passed} passed, {len(result.failures)} failed, "
            f"{result.todo} todo in {result.duration_ms:.1f}ms"
        )

        if fatal is not None:
            fatal.failures = result.failures
            fatal.result = result
            raise fatal
        if result.failures:
            raise RunFailedError(result.failures, result)
        return result

    async def _attach_reporter(self, channel: Any) -> None:
        factory = self._reporter or self._env_reporter
        if factory is None:
            logger.debug("No reporter registered")
            return
        try:
            await call(factory, channel)
        except Exception as e:
            raise ReporterError(f"Reporter failed to attach: {e}", reporter=factory) from e

    @staticmethod
    def _emit(channel: Any, event: RunEvent, payload: Any) -> None:
        """Publish payload, logging listener errors raised through a custom emitter."""
        try:
            channel.emit(event.value, payload)
        except Exception as e:
            logger.error(f"Listener for '{event.value}' failed: {e}", exc_info=True)

    async def _run_suite(
        self,
        suite: Suite,
        global_traits: tuple[TraitRegistration, ...],
        channel: Any,
        state: _RunState,
    ) -> None:
        """Apply traits, then run the suite's hooks and tests."""
        binding = TraitBinding(suite=suite, context=suite.context)
        for registration in (*global_traits, *suite.traits):
            trait = self.resolver.resolve(registration)
            await trait.invoke(binding)

        logger.debug(f"Running suite '{suite.title}' ({len(suite.group)} tests)")
        state.suites += 1
        failures_before = len(state.failures)
        self._emit(channel, RunEvent.GROUP_START, GroupPayload(title=suite.title))

        try:
            await suite.hooks.run_before(suite)
        except HookFailure as e:
            # Tests of this suite are skipped; after-hooks still run.
            state.record(self._hook_record(e, suite=suite.title))
        else:
            for test in suite.tests:
                if state.bailed:
                    break
                await self._run_test(suite, test, channel, state)

        for failure in await suite.hooks.run_after(suite):
            state.record(self._hook_record(failure, suite=suite.title))

        self._emit(
            channel,
            RunEvent.GROUP_END,
            GroupEndPayload(title=suite.title, failed=len(state.failures) > failures_before),
        )

    async def _run_test(
        self,
        suite: Suite,
        test: Test,
        channel: Any,
        state: _RunState,
    ) -> None:
        """Run one test and record its outcome."""
        self._emit(channel, RunEvent.TEST_START, TestPayload(title=test.title, suite=suite.title))
        state.tests += 1
        started = time.perf_counter()
        error: Exception | None = None

        if test.is_todo:
            status = TestStatus.TODO
            state.todo += 1
        else:
            try:
                # executor is checked in run()
                await self.executor.execute(test, suite.context.spawn())  # type: ignore[union-attr]
            except Exception as e:
                error = e
                kind = FailureKind.TIMEOUT if isinstance(e, TestTimeoutError) else FailureKind.TEST
                logger.warning(f"Test '{test.title}' in '{suite.title}' failed: {e}")
                state.record(
                    FailureRecord(title=test.title, error=e, kind=kind, suite=suite.title)
                )
                status = TestStatus.FAILED
            else:
                state.passed += 1
                status = TestStatus.PASSED

        self._emit(
            channel,
            RunEvent.TEST_END,
            TestEndPayload(
                title=test.title,
                suite=suite.title,
                status=status,
                duration_ms=(time.perf_counter() - started) * 1000,
                error=error,
            ),
        )

    @staticmethod
    def _hook_record(failure: HookFailure, suite: str | None) -> FailureRecord:
        return FailureRecord(
            title=f"hook {hook_name(failure.hook)}",
            error=failure,
            kind=FailureKind.HOOK,
            suite=suite,
        )
