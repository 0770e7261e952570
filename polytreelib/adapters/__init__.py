"""Store adapters for various backends.

This module contains concrete NodeStore and EntityStore implementations.
"""

from .memory import (
    InMemoryNodeStore,
    InMemoryEntityStore,
)
from .caching import CachingNodeStore

__all__ = [
    'InMemoryNodeStore',
    'InMemoryEntityStore',
    'CachingNodeStore',
]
