"""Caller-facing repository API.

A PolyTreeRepository is bound to one type tag. For registered types it
routes saves through the tree writer and exposes the four query shapes;
for unregistered types saves pass straight through to the entity store and
tree queries raise NotATreeType.

Example:
    >>> tree = PolyTree(registry)
    >>> folders = tree.repository('Folder')
    >>> root = await folders.save({'name': 'docs'})
    >>> result = await folders.find_children({'id': root['id']})
    >>> [child.payload for child in result[0].children]
"""

import logging
from collections.abc import Iterator
from typing import Any, Dict, Iterable, List, Optional, Union

from .config import PolyTreeConfig, RootQuery
from .core.node import MaterializedNode
from .core.store import Criteria, EntityStore
from .error_policies import BatchResult, ErrorPolicy, run_batch
from .errors import NotATreeType
from .registry import TypeRegistration, TypeRegistry
from .traversal import TreeTraversal
from .writer import LinkFailureHook, TreeWriter

logger = logging.getLogger(__name__)


def _is_batch(value: Any) -> bool:
    # Models may define __iter__; only containers and iterators are batches
    return isinstance(value, (list, tuple, set, frozenset, Iterator))


class PolyTreeRepository:
    """Repository for one entity type taking part in a polymorphic tree."""

    def __init__(
        self,
        registry: TypeRegistry,
        type_tag: str,
        entity_store: Optional[EntityStore] = None,
        config: Optional[PolyTreeConfig] = None,
        on_link_failure: Optional[LinkFailureHook] = None
    ):
        """Initialize repository.

        Args:
            registry: Type registry
            type_tag: Type this repository serves
            entity_store: Store for an unregistered type (ignored when the
                type is registered; its registration names the store)
            config: Repository configuration
            on_link_failure: Compensating action for saved-but-unlinked entities

        Raises:
            ValueError: If the configuration is invalid
            NotATreeType: If the type is unregistered and no store is given
        """
        self.config = config or PolyTreeConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError(f"Invalid configuration: {', '.join(errors)}")

        self.registry = registry
        self.type_tag = type_tag
        self.registration: Optional[TypeRegistration] = None

        if registry.is_tree_type(type_tag):
            self.registration = registry.get_registration(type_tag)
            self.entity_store = self.registration.entity_store
        elif entity_store is not None:
            self.entity_store = entity_store
        else:
            raise NotATreeType(type_tag, "no entity store given for an unregistered type")

        self.writer = TreeWriter(registry, self.config, on_link_failure)
        self.traversal = TreeTraversal(registry, self.config)

    def is_tree(self) -> bool:
        """Check if this repository's type participates in the tree."""
        return self.registration is not None

    async def save(
        self,
        entity: Union[Any, Iterable[Any]],
        policy: Optional[ErrorPolicy] = None
    ) -> Union[Any, BatchResult]:
        """Save one entity or a list of entities.

        New entities of a registered type are linked into the tree. A list,
        tuple, set or iterator (e.g. a generator) is a batch: it is processed
        concurrently and returns a BatchResult.
        """
        if _is_batch(entity):
            entities = list(entity)
            if self.registration is None:
                return await run_batch(
                    entities, self.entity_store.save,
                    policy or self.config.new_policy(), 'save', self.config.max_concurrent,
                )
            return await self.writer.save_many(self.registration, entities, policy)

        if self.registration is None:
            return await self.entity_store.save(entity)
        return await self.writer.save(self.registration, entity)

    async def find_roots(self, query: Optional[RootQuery] = None) -> List[MaterializedNode]:
        """Get all roots of the tree, optionally with their children."""
        return await self.traversal.find_roots(self._require_tree(), query)

    async def find_parents(
        self,
        criteria: Criteria = None,
        policy: Optional[ErrorPolicy] = None
    ) -> BatchResult:
        """Get matching entities, each with its ancestor chain."""
        return await self.traversal.find_parents(self._require_tree(), criteria, policy)

    async def find_children(
        self,
        criteria: Criteria = None,
        depth: Optional[int] = None,
        policy: Optional[ErrorPolicy] = None
    ) -> BatchResult:
        """Get matching entities, each with its descendant subtree."""
        return await self.traversal.find_children(self._require_tree(), criteria, depth, policy)

    async def find_siblings(
        self,
        criteria: Criteria = None,
        policy: Optional[ErrorPolicy] = None
    ) -> BatchResult:
        """Get matching entities, each with its siblings (self excluded)."""
        return await self.traversal.find_siblings(self._require_tree(), criteria, policy)

    def _require_tree(self) -> TypeRegistration:
        if self.registration is None:
            raise NotATreeType(self.type_tag)
        return self.registration

    def __repr__(self) -> str:
        return f"PolyTreeRepository({self.type_tag!r}, tree={self.is_tree()})"


class PolyTree:
    """Entry point handing out one repository per type tag."""

    def __init__(
        self,
        registry: TypeRegistry,
        config: Optional[PolyTreeConfig] = None,
        on_link_failure: Optional[LinkFailureHook] = None
    ):
        self.registry = registry
        self.config = config or PolyTreeConfig()
        self.on_link_failure = on_link_failure
        self._repositories: Dict[str, PolyTreeRepository] = {}

    def repository(self, type_tag: str, entity_store: Optional[EntityStore] = None) -> PolyTreeRepository:
        if type_tag not in self._repositories:
            self._repositories[type_tag] = PolyTreeRepository(
                self.registry, type_tag, entity_store, self.config, self.on_link_failure,
            )
        return self._repositories[type_tag]
