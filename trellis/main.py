"""Composition root for the Trellis orchestration engine.

This module is the ONLY location that imports both core orchestration
logic and concrete adapter implementations. Test discovery and command
line parsing are left to callers, which build a runner here and then
register suites on it.

Module Structure:
- Logging configuration
- Adapter instantiation
- Runner wiring from Settings
"""

import logging
import sys
from typing import Any, TextIO

from trellis.adapters.executor.asyncio_executor import AsyncioExecutor
from trellis.adapters.registry.in_memory import InMemoryBindingRegistry
from trellis.config import Settings, load_settings
from trellis.core.ports import BindingRegistryPort, ExecutionPort
from trellis.core.runner import REPORTER_KEY, Runner

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "trellis"


def configure_logging(
    log_level: str,
    log_format: str,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the ``trellis`` logger hierarchy.

    The handler is installed on the package logger, leaving the root
    logger to the process that embeds the runner. Calling this again
    replaces the previous handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
        stream: Output stream. Defaults to stdout.

    Returns:
        The configured package logger.
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = (
            '{"time": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(format_str))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False
    return package_logger


def build_runner(
    settings: Settings | None = None,
    registry: BindingRegistryPort | None = None,
    executor: ExecutionPort | None = None,
) -> Runner:
    """Wire a Runner from settings.

    Steps:
    1. Load settings from the environment when none are given
    2. Instantiate the execution adapter and binding registry
    3. Apply timeout, grep, and bail to the runner

    Args:
        settings: Validated settings; loaded via load_settings() when None.
        registry: Binding registry for named traits. Defaults to an empty
            InMemoryBindingRegistry.
        executor: Execution adapter. Defaults to AsyncioExecutor.

    Returns:
        A Runner ready for suite registration.
    """
    if settings is None:
        settings = load_settings()

    env: dict[str, Any] = {}
    if settings.reporter is not None:
        env[REPORTER_KEY] = settings.reporter
        logger.debug(f"Default reporter: {getattr(settings.reporter, '__qualname__', settings.reporter)}")

    runner = Runner(
        env=env,
        executor=executor or AsyncioExecutor(),
        registry=registry if registry is not None else InMemoryBindingRegistry(),
    )

    if settings.default_timeout_ms is not None:
        runner.timeout(settings.default_timeout_ms)
    if settings.grep:
        runner.grep(settings.grep)
    runner.bail(settings.bail)

    logger.debug(f"Runner configured: {runner.config}")
    return runner


__all__ = ["build_runner", "configure_logging"]
