"""Reporter factories that subscribe to lifecycle events."""

from .logging_reporter import LoggingReporter, logging_reporter

__all__ = ["LoggingReporter", "logging_reporter"]
