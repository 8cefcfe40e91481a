"""Unit tests for the Runner execution protocol.

Tests use FakeExecutionPort so handler invocation is direct and
outcomes can be scripted per test title.
"""

from typing import Any

import pytest

from trellis.core.context import Context
from trellis.core.errors import (
    HookFailure,
    InvalidArgumentError,
    ReporterError,
    RunFailedError,
    RunnerStateError,
    TraitResolutionError,
)
from trellis.core.models import (
    FailureKind,
    GroupEndPayload,
    RunResult,
    TestEndPayload,
    TestStatus,
)
from trellis.core.runner import Runner
from trellis.tests.fakes import (
    FakeBindingRegistry,
    FakeEventChannel,
    FakeExecutionPort,
)

# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def executor() -> FakeExecutionPort:
    return FakeExecutionPort()


@pytest.fixture
def registry() -> FakeBindingRegistry:
    return FakeBindingRegistry()


@pytest.fixture
def runner(executor: FakeExecutionPort, registry: FakeBindingRegistry) -> Runner:
    """Create a runner with a no-op default reporter, as a test environment would."""
    return Runner(env={"REPORTER": lambda channel: None}, executor=executor, registry=registry)


# ============================================================================
# Global hooks
# ============================================================================


@pytest.mark.asyncio
async def test_runner_hooks_run_once(runner: Runner) -> None:
    called: list[str] = []
    runner.before(lambda: called.append("before"))
    runner.after(lambda: called.append("after"))

    result = await runner.run()

    assert called == ["before", "after"]
    assert isinstance(result, RunResult)
    assert result.ok


@pytest.mark.asyncio
async def test_after_hook_runs_when_test_fails(runner: Runner) -> None:
    called: list[str] = []
    runner.before(lambda: called.append("before"))
    runner.after(lambda: called.append("after"))

    def failing(ctx: Context) -> None:
        raise Exception("Ohh bad")

    runner.suite("sample").test("failing", failing)

    with pytest.raises(RunFailedError) as exc_info:
        await runner.run()

    error = exc_info.value
    assert len(error) == 1
    assert str(error[0].error) == "Ohh bad"
    assert error[0].title == "failing"
    assert error[0].kind == FailureKind.TEST
    assert called == ["before", "after"]


@pytest.mark.asyncio
async def test_global_before_hook_failure_is_fatal(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    called: list[str] = []
    channel = FakeEventChannel()
    runner.emitter(channel)

    def broken() -> None:
        raise RuntimeError("cannot boot")

    runner.before(broken)
    runner.after(lambda: called.append("after"))
    runner.suite("sample").test("never", lambda: called.append("test"))

    with pytest.raises(HookFailure, match="cannot boot"):
        await runner.run()

    assert called == ["after"]
    assert executor.executed == []
    assert channel.emitted == []


@pytest.mark.asyncio
async def test_global_after_hook_failures_are_collected(runner: Runner) -> None:
    called: list[str] = []

    def broken() -> None:
        raise RuntimeError("cleanup failed")

    runner.after(broken)
    runner.after(lambda: called.append("second after"))

    with pytest.raises(RunFailedError) as exc_info:
        await runner.run()

    assert called == ["second after"]
    assert len(exc_info.value) == 1
    record = exc_info.value[0]
    assert record.kind == FailureKind.HOOK
    assert record.suite is None
    assert isinstance(record.error, HookFailure)


# ============================================================================
# Traits
# ============================================================================


@pytest.mark.asyncio
async def test_suite_traits_run_before_tests(runner: Runner) -> None:
    suite = runner.suite("sample")
    called: list[str] = []

    suite.trait(lambda: called.append("trait 1"))
    suite.trait(lambda: called.append("trait 2"))
    suite.test("test", lambda: called.append("test"))

    await runner.run()

    assert called == ["trait 1", "trait 2", "test"]


@pytest.mark.asyncio
async def test_global_traits_run_before_suite_traits(runner: Runner) -> None:
    suite = runner.suite("sample")
    called: list[str] = []

    suite.trait(lambda: called.append("trait 2"))
    runner.trait(lambda: called.append("trait 1"))
    suite.test("test", lambda: called.append("test"))

    await runner.run()

    assert called == ["trait 1", "trait 2", "test"]


@pytest.mark.asyncio
async def test_global_traits_apply_to_every_suite(runner: Runner) -> None:
    seen: list[str] = []
    runner.trait(lambda binding: seen.append(binding.suite.title))
    runner.suite("first")
    runner.suite("second")

    await runner.run()

    assert seen == ["first", "second"]


@pytest.mark.asyncio
async def test_traits_can_attach_suite_hooks(runner: Runner) -> None:
    suite = runner.suite("sample")
    called: list[str] = []

    def first(binding: Any) -> None:
        binding.before(lambda: called.append("before"))
        called.append("trait 1")

    def second(binding: Any) -> None:
        binding.suite.after(lambda: called.append("after"))
        called.append("trait 2")

    suite.trait(first)
    suite.trait(second)

    await runner.run()

    assert called == ["trait 1", "trait 2", "before", "after"]


@pytest.mark.asyncio
async def test_traits_attach_values_to_context(runner: Runner) -> None:
    suite = runner.suite("sample")
    called: list[str] = []

    def compute() -> str:
        called.append("foo")
        return "bar"

    suite.trait(lambda binding: binding.context.getter("foo", compute))
    suite.test("test", lambda ctx: called.append(ctx.foo))

    await runner.run()

    assert called == ["foo", "bar"]


@pytest.mark.asyncio
async def test_singleton_context_values(runner: Runner) -> None:
    suite = runner.suite("sample")
    called: list[str] = []

    def compute() -> str:
        called.append("foo")
        return "bar"

    suite.trait(lambda binding: binding.context.getter("foo", compute, True))

    def body(ctx: Context) -> None:
        called.append(ctx.foo)
        called.append(ctx.foo)

    suite.test("test", body)

    await runner.run()

    assert called == ["foo", "bar", "bar"]


@pytest.mark.asyncio
async def test_singleton_cache_is_per_test(runner: Runner) -> None:
    suite = runner.suite("sample")
    computed: list[str] = []

    suite.trait(
        lambda binding: binding.context.getter("conn", lambda: computed.append("open") or "conn", True)
    )
    suite.test("one", lambda ctx: ctx.conn)
    suite.test("two", lambda ctx: ctx.conn)

    await runner.run()

    assert computed == ["open", "open"]


@pytest.mark.asyncio
async def test_context_is_isolated_per_suite(runner: Runner) -> None:
    suite = runner.suite("sample")
    suite1 = runner.suite("sample1")
    called: list[Any] = []

    def compute() -> str:
        called.append("foo")
        return "bar"

    suite.trait(lambda binding: binding.context.getter("foo", compute, True))
    suite.test("test", lambda ctx: called.append(ctx.foo))
    suite1.test("test", lambda ctx: called.append(ctx.foo))

    await runner.run()

    assert called == ["foo", "bar", None]


@pytest.mark.asyncio
async def test_named_trait_with_handle_method(
    runner: Runner, registry: FakeBindingRegistry
) -> None:
    called: list[str] = []

    class Foo:
        def handle(self, binding: Any) -> None:
            binding.context.getter("foo", lambda: "bar")

    registry.add("Foo", Foo())
    suite = runner.suite("sample")
    suite.trait("Foo")
    suite.test("test", lambda ctx: called.append(ctx.foo))

    await runner.run()

    assert called == ["bar"]


@pytest.mark.asyncio
async def test_named_trait_as_function(runner: Runner, registry: FakeBindingRegistry) -> None:
    called: list[str] = []

    def foo(binding: Any) -> None:
        binding.context.getter("foo", lambda: "bar")

    registry.add("Foo", foo)
    suite = runner.suite("sample")
    suite.trait("Foo")
    suite.test("test", lambda ctx: called.append(ctx.foo))

    await runner.run()

    assert called == ["bar"]


@pytest.mark.asyncio
async def test_unresolvable_trait_aborts_run(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    called: list[str] = []
    runner.after(lambda: called.append("after"))
    first = runner.suite("first")
    first.test("runs", lambda: called.append("first test"))
    second = runner.suite("second")
    second.trait("Missing")
    second.test("never", lambda: called.append("second test"))

    with pytest.raises(TraitResolutionError, match="Missing"):
        await runner.run()

    assert called == ["first test", "after"]
    assert executor.executed_titles == ["runs"]


@pytest.mark.asyncio
async def test_fatal_error_keeps_failures_recorded_before_it(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    def broken_cleanup() -> None:
        raise RuntimeError("cleanup failed")

    runner.after(broken_cleanup)
    runner.suite("one").test("divides", lambda: None)
    executor.fail("divides", ZeroDivisionError("division by zero"))
    runner.suite("two").trait("Missing")

    with pytest.raises(TraitResolutionError) as exc_info:
        await runner.run()

    error = exc_info.value
    assert [record.kind for record in error.failures] == [FailureKind.TEST, FailureKind.HOOK]
    assert isinstance(error.failures[0].error, ZeroDivisionError)
    assert "cleanup failed" in str(error.failures[1].error)
    assert error.result is not None
    assert error.result.failures == error.failures
    assert error.result.suites == 1


# ============================================================================
# Failures and bail
# ============================================================================


@pytest.mark.asyncio
async def test_failures_aggregate_in_order(runner: Runner, executor: FakeExecutionPort) -> None:
    suite = runner.suite("sample")
    for title in ["a", "b", "c", "d"]:
        suite.test(title, lambda: None)
    executor.fail("b", ValueError("b broke"))
    executor.time_out("d")

    with pytest.raises(RunFailedError) as exc_info:
        await runner.run()

    error = exc_info.value
    assert [record.title for record in error] == ["b", "d"]
    assert [record.kind for record in error] == [FailureKind.TEST, FailureKind.TIMEOUT]
    assert executor.executed_titles == ["a", "b", "c", "d"]
    assert error.result is not None
    assert error.result.passed == 2
    assert error.result.tests == 4
    assert error.result.bailed is False


@pytest.mark.asyncio
async def test_bail_stops_remaining_tests_and_suites(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    called: list[str] = []
    runner.bail(True)
    runner.after(lambda: called.append("global after"))

    first = runner.suite("first")
    first.after(lambda: called.append("suite after"))
    first.test("ok", lambda: called.append("ok"))
    first.test("broken", lambda: None)
    first.test("skipped", lambda: called.append("skipped"))
    second = runner.suite("second")
    second.trait(lambda: called.append("second trait"))
    second.test("never", lambda: called.append("never"))
    executor.fail("broken", RuntimeError("boom"))

    with pytest.raises(RunFailedError) as exc_info:
        await runner.run()

    assert called == ["ok", "suite after", "global after"]
    assert executor.executed_titles == ["ok", "broken"]
    assert len(exc_info.value) == 1
    assert exc_info.value.result.bailed is True
    assert exc_info.value.result.suites == 1


def test_bail_sets_config_flag(runner: Runner) -> None:
    assert runner.config.bail is False
    runner.bail(True)
    assert runner.config.bail is True


@pytest.mark.asyncio
async def test_suite_before_hook_failure_skips_suite_tests(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    called: list[str] = []

    def broken() -> None:
        raise RuntimeError("fixture missing")

    failing = runner.suite("failing")
    failing.before(broken)
    failing.after(lambda: called.append("failing after"))
    failing.test("skipped", lambda: called.append("skipped"))
    healthy = runner.suite("healthy")
    healthy.test("runs", lambda: called.append("runs"))

    with pytest.raises(RunFailedError) as exc_info:
        await runner.run()

    assert called == ["failing after", "runs"]
    assert executor.executed_titles == ["runs"]
    record = exc_info.value[0]
    assert record.kind == FailureKind.HOOK
    assert record.suite == "failing"


@pytest.mark.asyncio
async def test_suite_after_hooks_run_after_test_failure(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    called: list[str] = []

    def broken_after() -> None:
        raise RuntimeError("teardown")

    suite = runner.suite("sample")
    suite.after(broken_after)
    suite.after(lambda: called.append("after"))
    suite.test("fails", lambda: None)
    executor.fail("fails", RuntimeError("test"))

    with pytest.raises(RunFailedError) as exc_info:
        await runner.run()

    assert called == ["after"]
    assert [record.kind for record in exc_info.value] == [FailureKind.TEST, FailureKind.HOOK]


@pytest.mark.asyncio
async def test_suite_hooks_receive_suite(runner: Runner) -> None:
    seen: list[Any] = []
    suite = runner.suite("sample")
    suite.before(lambda s: seen.append(s))

    await runner.run()

    assert seen == [suite]


# ============================================================================
# Events and reporters
# ============================================================================


@pytest.mark.asyncio
async def test_custom_reporter_sees_events_in_order(runner: Runner) -> None:
    called: list[str] = []
    runner.suite("sample").test("test", lambda: called.append("run_test"))

    def reporter(emitter: Any) -> None:
        emitter.on("group:start", lambda payload: called.append("group_start"))
        emitter.on("group:end", lambda payload: called.append("group_end"))
        emitter.on("test:start", lambda payload: called.append("test_start"))
        emitter.on("test:end", lambda payload: called.append("test_end"))

    runner.reporter(reporter)
    await runner.run()

    assert called == ["group_start", "test_start", "run_test", "test_end", "group_end"]


@pytest.mark.asyncio
async def test_custom_emitter_receives_payloads(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    channel = FakeEventChannel()
    runner.emitter(channel)
    suite = runner.suite("sample")
    suite.test("passes", lambda: None)
    suite.test("fails", lambda: None)
    suite.test("todo")
    executor.fail("fails", RuntimeError("nope"))

    with pytest.raises(RunFailedError):
        await runner.run()

    assert channel.event_names == [
        "group:start",
        "test:start",
        "test:end",
        "test:start",
        "test:end",
        "test:start",
        "test:end",
        "group:end",
    ]
    ends: list[TestEndPayload] = channel.payloads_for("test:end")
    assert [end.status for end in ends] == [TestStatus.PASSED, TestStatus.FAILED, TestStatus.TODO]
    assert str(ends[1].error) == "nope"
    group_end: GroupEndPayload = channel.payloads_for("group:end")[0]
    assert group_end.failed is True


@pytest.mark.asyncio
async def test_env_reporter_used_when_none_registered(executor: FakeExecutionPort) -> None:
    channels: list[Any] = []
    runner = Runner(env={"REPORTER": channels.append}, executor=executor)

    await runner.run()

    assert len(channels) == 1


@pytest.mark.asyncio
async def test_registered_reporter_overrides_env(executor: FakeExecutionPort) -> None:
    used: list[str] = []
    runner = Runner(env={"REPORTER": lambda channel: used.append("env")}, executor=executor)
    runner.reporter(lambda channel: used.append("registered"))

    await runner.run()

    assert used == ["registered"]


@pytest.mark.asyncio
async def test_reporter_receives_custom_emitter(runner: Runner) -> None:
    channel = FakeEventChannel()
    received: list[Any] = []
    runner.emitter(channel).reporter(received.append)

    await runner.run()

    assert received == [channel]


@pytest.mark.asyncio
async def test_raising_reporter_is_fatal_but_after_hooks_run(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    called: list[str] = []

    def reporter(emitter: Any) -> None:
        raise RuntimeError("cannot subscribe")

    runner.reporter(reporter)
    runner.after(lambda: called.append("after"))
    runner.suite("sample").test("never", lambda: None)

    with pytest.raises(ReporterError, match="cannot subscribe") as exc_info:
        await runner.run()

    assert called == ["after"]
    assert executor.executed == []
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert exc_info.value.failures == ()


class ListenerEmitter:
    """Duck-typed emitter that lets listener errors escape emit()."""

    def __init__(self) -> None:
        self.listeners: dict[str, list[Any]] = {}
        self.emitted: list[str] = []

    def on(self, event: str, listener: Any) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def emit(self, event: str, payload: Any = None) -> None:
        self.emitted.append(event)
        for listener in self.listeners.get(event, []):
            listener(payload)


@pytest.mark.asyncio
async def test_raising_listener_on_custom_emitter_does_not_break_run(runner: Runner) -> None:
    called: list[str] = []
    emitter = ListenerEmitter()
    emitter.on("test:end", lambda payload: 1 / 0)
    runner.emitter(emitter)
    suite = runner.suite("sample")
    suite.after(lambda: called.append("suite after"))
    suite.test("first", lambda: called.append("first"))
    suite.test("second", lambda: called.append("second"))

    result = await runner.run()

    assert result.ok
    assert called == ["first", "second", "suite after"]
    assert emitter.emitted[-1] == "group:end"


def test_reporter_must_be_callable(runner: Runner) -> None:
    with pytest.raises(InvalidArgumentError):
        runner.reporter("Not a function")  # type: ignore[arg-type]


def test_env_reporter_must_be_callable() -> None:
    with pytest.raises(InvalidArgumentError):
        Runner(env={"REPORTER": "Not a function"})


def test_emitter_must_look_like_a_channel(runner: Runner) -> None:
    with pytest.raises(InvalidArgumentError):
        runner.emitter(object())


# ============================================================================
# Run lifecycle
# ============================================================================


@pytest.mark.asyncio
async def test_run_returns_summary(runner: Runner) -> None:
    suite = runner.suite("sample")
    suite.test("one", lambda: None)
    suite.test("two", lambda: None)
    suite.test("later")

    result = await runner.run()

    assert result.suites == 1
    assert result.tests == 3
    assert result.passed == 2
    assert result.todo == 1
    assert result.failures == ()
    assert result.duration_ms >= 0


@pytest.mark.asyncio
async def test_todo_tests_are_not_executed(runner: Runner, executor: FakeExecutionPort) -> None:
    runner.suite("sample").test("later")

    await runner.run()

    assert executor.executed == []


@pytest.mark.asyncio
async def test_each_test_gets_sealed_context_view(
    runner: Runner, executor: FakeExecutionPort
) -> None:
    suite = runner.suite("sample")
    suite.test("one", lambda: None)
    suite.test("two", lambda: None)

    await runner.run()

    first, second = executor.contexts
    assert first is not second
    assert first is not suite.context
    assert first.sealed and second.sealed


@pytest.mark.asyncio
async def test_run_only_once(runner: Runner) -> None:
    await runner.run()

    with pytest.raises(RunnerStateError):
        await runner.run()


@pytest.mark.asyncio
async def test_run_requires_executor() -> None:
    with pytest.raises(RunnerStateError, match="no executor"):
        await Runner().run()


def test_configuration_methods_chain(runner: Runner) -> None:
    result = (
        runner.timeout(100)
        .grep("foo")
        .bail(True)
        .before(lambda: None)
        .after(lambda: None)
        .trait(lambda: None)
    )

    assert result is runner
    assert runner.config.timeout_ms == 100
    assert runner.config.grep == "foo"
