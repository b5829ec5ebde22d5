"""Adapters — bindings to external commands.

Public re-exports for convenient access.
"""

from reposetup.adapters.base import Adapter, ExecutionContext
from reposetup.adapters.mock import MockCommandAdapter
from reposetup.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockCommandAdapter",
    "default_registry",
]
