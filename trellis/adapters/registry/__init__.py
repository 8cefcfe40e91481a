"""Binding registries used to resolve named traits."""

from .in_memory import BindingNotFoundError, InMemoryBindingRegistry

__all__ = ["BindingNotFoundError", "InMemoryBindingRegistry"]
