"""PolyTreeLib - One tree hierarchy across independently stored entity types.

PolyTreeLib overlays a single parent/child hierarchy on heterogeneous
records (folders, documents, comments...) that each live in their own
store. A node store keeps the generic (type, id, parent) adjacency; the
library links new entities into it and rebuilds typed trees from it with
one batched lookup per type.

Quick start:
━━━━━━━━━━━━━━━━━━━━━━━━━━
    registry = TypeRegistry()
    registry.register('Folder', entity_store=folders, node_store=nodes)
    registry.register('File', entity_store=files, node_store=nodes,
                      parent_property='folder', parent_type='Folder')
    tree = PolyTree(registry.freeze())
    await tree.repository('Folder').find_children({'id': 1})
━━━━━━━━━━━━━━━━━━━━━━━━━━
"""

__version__ = "0.1.0"

from .config import PolyTreeConfig, RootQuery, TreeDirection, TreeModelOptions
from .core import (
    EntityStore,
    MaterializedNode,
    NodeRecord,
    NodeStore,
    ResolvedBatch,
    TreeMaterializer,
)
from .error_policies import (
    BatchResult,
    CollectErrorsPolicy,
    ContinueOnErrorsPolicy,
    ErrorPolicy,
    FailFastPolicy,
    ItemError,
    ThresholdPolicy,
)
from .errors import (
    BatchAborted,
    DataIntegrityMismatch,
    EntityNotTracked,
    NodeLinkFailed,
    NotATreeType,
    ParentNotRegistered,
    PolyTreeError,
    RegistryError,
)
from .registry import EntityRef, TypeRegistration, TypeRegistry
from .repository import PolyTree, PolyTreeRepository
from .traversal import TreeTraversal
from .writer import TreeWriter

__all__ = [
    "__version__",
    # Configuration
    "PolyTreeConfig",
    "RootQuery",
    "TreeDirection",
    "TreeModelOptions",
    # Core
    "EntityStore",
    "NodeStore",
    "NodeRecord",
    "MaterializedNode",
    "TreeMaterializer",
    "ResolvedBatch",
    # Registry
    "TypeRegistry",
    "TypeRegistration",
    "EntityRef",
    # Operations
    "TreeWriter",
    "TreeTraversal",
    "PolyTree",
    "PolyTreeRepository",
    # Error policies
    "ErrorPolicy",
    "FailFastPolicy",
    "CollectErrorsPolicy",
    "ContinueOnErrorsPolicy",
    "ThresholdPolicy",
    "BatchResult",
    "ItemError",
    # Errors
    "PolyTreeError",
    "RegistryError",
    "NotATreeType",
    "ParentNotRegistered",
    "EntityNotTracked",
    "DataIntegrityMismatch",
    "NodeLinkFailed",
    "BatchAborted",
]
