"""Test suite for the Trellis orchestration engine.

Organized into three categories:

1. core/: Unit tests for core orchestration logic
   - No third-party dependencies beyond pytest
   - Uses in-memory fakes for ports

2. adapters/: Tests for adapter implementations
   - Asyncio executor timing and completion signals
   - Registry and reporter behavior

3. fakes/: Port implementations for testing
   - In-memory implementations of ExecutionPort, BindingRegistryPort,
     and EventChannelPort
"""
