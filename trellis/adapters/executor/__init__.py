"""Execution adapters running individual test handlers."""

from .asyncio_executor import AsyncioExecutor, CompletionSignal

__all__ = ["AsyncioExecutor", "CompletionSignal"]
