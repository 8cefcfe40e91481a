"""External adapters for the Trellis orchestration engine.

This package provides implementations of the core port interfaces.

Adapter Organization:

- executor/: Running individual test handlers (asyncio)
- registry/: Binding registries for named traits (in-memory)
- reporter/: Reporter factories subscribing to lifecycle events (logging)
"""
