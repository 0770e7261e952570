"""Core abstractions for polymorphic trees.

Node values, the store interfaces the core consumes, and the materializer
that turns generic node trees into typed payload trees.
"""

from .node import MaterializedNode, NodeRecord, NodeKey, node_key, read_field
from .store import Criteria, EntityStore, NodeStore
from .materializer import ResolvedBatch, TreeMaterializer

__all__ = [
    # Nodes
    'NodeRecord',
    'MaterializedNode',
    'NodeKey',
    'node_key',
    'read_field',
    # Stores
    'NodeStore',
    'EntityStore',
    'Criteria',
    # Materialization
    'TreeMaterializer',
    'ResolvedBatch',
]
