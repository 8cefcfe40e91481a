"""Logging reporter.

A reporter factory that subscribes to all lifecycle events and writes
them to the standard logging system. Usable as ``REPORTER`` or with
``Runner.reporter()``.
"""

import logging
from typing import Any

from trellis.core.models import (
    GroupEndPayload,
    GroupPayload,
    RunEvent,
    TestEndPayload,
    TestPayload,
    TestStatus,
)

logger = logging.getLogger(__name__)


class LoggingReporter:
    """Writes one log line per lifecycle event and keeps running totals."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger
        self.passed = 0
        self.failed = 0
        self.todo = 0

    def attach(self, channel: Any) -> "LoggingReporter":
        """Subscribe to every lifecycle event on channel."""
        channel.on(RunEvent.GROUP_START.value, self.on_group_start)
        channel.on(RunEvent.TEST_START.value, self.on_test_start)
        channel.on(RunEvent.TEST_END.value, self.on_test_end)
        channel.on(RunEvent.GROUP_END.value, self.on_group_end)
        return self

    def on_group_start(self, payload: GroupPayload) -> None:
        self.log.info(f"Suite: {payload.title}")

    def on_test_start(self, payload: TestPayload) -> None:
        self.log.debug(f"  running '{payload.title}'")

    def on_test_end(self, payload: TestEndPayload) -> None:
        if payload.status == TestStatus.PASSED:
            self.passed += 1
            self.log.info(f"  ok    {payload.title} ({payload.duration_ms:.0f}ms)")
        elif payload.status == TestStatus.TODO:
            self.todo += 1
            self.log.info(f"  todo  {payload.title}")
        else:
            self.failed += 1
            self.log.error(f"  FAIL  {payload.title}: {payload.error}")

    def on_group_end(self, payload: GroupEndPayload) -> None:
        outcome = "failed" if payload.failed else "passed"
        self.log.info(
            f"Suite {payload.title} {outcome} "
            f"(total: {self.passed} passed, {self.failed} failed, {self.todo} todo)"
        )


def logging_reporter(channel: Any) -> LoggingReporter:
    """Reporter factory: attach a LoggingReporter to channel."""
    return LoggingReporter().attach(channel)
