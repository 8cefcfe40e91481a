"""Asyncio execution adapter.

Implements ExecutionPort on the running event loop. Handlers can
complete in three ways:

- return normally (sync handlers run inline and are not interrupted)
- return an awaitable, which is awaited within the test timeout
- declare a second parameter and call it (``done()`` / ``done(error)``)
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable
from typing import Any

from trellis.core.context import Context
from trellis.core.errors import TestFailure, TestTimeoutError
from trellis.core.invoke import positional_arity, wants_completion_signal
from trellis.core.ports import ExecutionPort
from trellis.core.suite import Test

logger = logging.getLogger(__name__)


class CompletionSignal:
    """The ``done`` callable handed to handlers that complete explicitly.

    Safe to call from other threads. Only the first call counts.
    """

    def __init__(self, title: str, loop: asyncio.AbstractEventLoop):
        self.title = title
        self._loop = loop
        self.future: asyncio.Future[None] = loop.create_future()

    def __call__(self, error: Any = None) -> None:
        self._loop.call_soon_threadsafe(self._settle, error)

    def _settle(self, error: Any) -> None:
        if self.future.cancelled():
            logger.warning(f"done() called after test '{self.title}' timed out")
            return
        if self.future.done():
            logger.warning(f"done() called more than once in test '{self.title}'")
            return
        if error is None:
            self.future.set_result(None)
        elif isinstance(error, BaseException):
            self.future.set_exception(error)
        else:
            self.future.set_exception(TestFailure(str(error)))


class AsyncioExecutor(ExecutionPort):
    """Runs test handlers on the current event loop, bounded by their timeout."""

    async def execute(self, test: Test, context: Context) -> None:
        """Run test.handler with context.

        A handler that takes ``done`` and also returns an awaitable
        finishes as soon as it calls ``done`` or its awaitable raises.

        Raises:
            TestTimeoutError: If the handler does not finish in test.timeout_ms.
            Exception: Whatever the handler raised or reported through done().
        """
        handler = test.handler
        if handler is None:
            return

        loop = asyncio.get_running_loop()
        deadline = loop.time() + test.timeout_ms / 1000

        if wants_completion_signal(handler):
            done = CompletionSignal(test.title, loop)
            result = handler(context, done)
            if inspect.isawaitable(result):
                body = asyncio.ensure_future(result)
                finished = await self._wait_first({body, done.future}, deadline, test)
                if done.future in finished:
                    await self._discard(body)
                    done.future.result()
                    return
                # The body finished first: raise its error or keep waiting on done
                body.result()
            await self._await_until(done.future, deadline, test)
            return

        if positional_arity(handler) == 0:
            result = handler()
        else:
            result = handler(context)
        if inspect.isawaitable(result):
            await self._await_until(result, deadline, test)

    async def _await_until(self, awaitable: Awaitable[Any], deadline: float, test: Test) -> Any:
        """Await awaitable, failing with TestTimeoutError once deadline passes.

        The handler's own exceptions (including its own TimeoutError) are
        re-raised unchanged.
        """
        future = asyncio.ensure_future(awaitable)
        await self._wait_first({future}, deadline, test)
        return future.result()

    async def _wait_first(
        self, futures: set[asyncio.Future[Any]], deadline: float, test: Test
    ) -> set[asyncio.Future[Any]]:
        """Wait until one of futures finishes or deadline passes.

        On expiry every future is cancelled and TestTimeoutError is raised.
        """
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        finished, pending = await asyncio.wait(
            futures, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
        )

        if not finished:
            for future in pending:
                await self._discard(future)
            raise TestTimeoutError(test.title, test.timeout_ms)

        return finished

    @staticmethod
    async def _discard(future: asyncio.Future[Any]) -> None:
        """Cancel future if still running and drop its outcome."""
        if not future.done():
            future.cancel()
        try:
            await future
        except (asyncio.CancelledError, Exception) as e:
            logger.debug(f"Discarded outcome of abandoned handler: {e!r}")
