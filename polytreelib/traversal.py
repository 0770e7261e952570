"""Traversal orchestration: the four query shapes over a polymorphic tree.

Every candidate query follows the same chain:

    filter -> candidate entities -> node record per candidate
           -> node store shape query -> materialization

Candidates are independent. Node lookups and shape queries run
concurrently per candidate; payloads for all candidates of one query are
then resolved in a single batch (one lookup per type) and each candidate's
tree is rebuilt on its own, so a failure stays with its candidate.
"""

import logging
from typing import Any, Awaitable, Callable, List, Optional

from .config import PolyTreeConfig, RootQuery, TreeDirection
from .core.materializer import TreeMaterializer
from .core.node import MaterializedNode, NodeRecord, node_key, node_relation
from .core.store import Criteria
from .error_policies import BatchCollector, BatchResult, ErrorPolicy, gather_settled
from .errors import DataIntegrityMismatch, EntityNotTracked
from .registry import TypeRegistration, TypeRegistry

logger = logging.getLogger(__name__)


ShapeQuery = Callable[[TypeRegistration, NodeRecord], Awaitable[Any]]


class TreeTraversal:
    """Runs roots, ancestors, descendants and siblings queries."""

    def __init__(self, registry: TypeRegistry, config: Optional[PolyTreeConfig] = None):
        self.registry = registry
        self.config = config or PolyTreeConfig()

    def materializer_for(self, registration: TypeRegistration) -> TreeMaterializer:
        return TreeMaterializer(self.registry, registration.options)

    async def find_roots(
        self,
        registration: TypeRegistration,
        query: Optional[RootQuery] = None
    ) -> List[MaterializedNode]:
        """Materialize every parentless node of the registration's node store.

        Roots carry no relation unless ``query`` asks for children.
        """
        query = query or RootQuery()
        forest = list(await registration.node_store.find_roots(query))
        direction = TreeDirection.CHILD if query.includes_children else None
        logger.debug("find_roots: %d roots (depth=%s)", len(forest), query.depth)
        return await self.materializer_for(registration).materialize(forest, direction)

    async def find_parents(
        self,
        registration: TypeRegistration,
        criteria: Criteria = None,
        policy: Optional[ErrorPolicy] = None
    ) -> BatchResult:
        """Each candidate with its ancestor chain up to the root."""
        return await self._run(
            registration, criteria, 'find_parents',
            self._ancestor_shape, TreeDirection.PARENT, policy,
        )

    async def find_children(
        self,
        registration: TypeRegistration,
        criteria: Criteria = None,
        depth: Optional[int] = None,
        policy: Optional[ErrorPolicy] = None
    ) -> BatchResult:
        """Each candidate with its descendant subtree.

        Args:
            depth: Levels of descendants to include (None for all)
        """
        async def descendant_shape(registration: TypeRegistration, record: NodeRecord) -> Any:
            return await registration.node_store.find_descendant_subtree(record, depth)

        return await self._run(
            registration, criteria, 'find_children',
            descendant_shape, TreeDirection.CHILD, policy,
        )

    async def find_siblings(
        self,
        registration: TypeRegistration,
        criteria: Criteria = None,
        policy: Optional[ErrorPolicy] = None
    ) -> BatchResult:
        """Each candidate with the other direct children of its parent.

        The candidate itself is excluded by (type, id); root candidates get
        an empty sibling list.
        """
        return await self._run(
            registration, criteria, 'find_siblings',
            self._sibling_shape, TreeDirection.SIBLINGS, policy,
        )

    # Shape queries

    async def _ancestor_shape(self, registration: TypeRegistration, record: NodeRecord) -> Any:
        return await registration.node_store.find_ancestor_chain(record)

    async def _sibling_shape(self, registration: TypeRegistration, record: NodeRecord) -> Any:
        options = registration.options
        shape = record.to_generic(options)
        if record.parent is None:
            shape[TreeDirection.SIBLINGS.value] = []
            return shape

        family = await registration.node_store.find_descendant_subtree(record.parent, depth=1)
        children = node_relation(family, TreeDirection.CHILD) or []
        shape[TreeDirection.SIBLINGS.value] = [
            child for child in children if node_key(child, options) != record.key
        ]
        return shape

    # Orchestration

    async def node_for(self, registration: TypeRegistration, entity: Any) -> NodeRecord:
        """Node record of a tracked entity.

        Raises:
            EntityNotTracked: If the entity has no node
        """
        entity_id = registration.identity_of(entity)
        record = await registration.node_store.find_node(registration.type_tag, entity_id)
        if record is None:
            raise EntityNotTracked(registration.type_tag, entity_id)
        return record

    async def _run(
        self,
        registration: TypeRegistration,
        criteria: Criteria,
        operation: str,
        shape: ShapeQuery,
        direction: TreeDirection,
        policy: Optional[ErrorPolicy]
    ) -> BatchResult:
        candidates = list(await registration.entity_store.find(criteria))
        collector = BatchCollector(policy or self.config.new_policy(), operation)

        async def shape_for(candidate: Any) -> Any:
            record = await self.node_for(registration, candidate)
            return await shape(registration, record)

        outcomes = await gather_settled(candidates, shape_for, self.config.max_concurrent)

        shaped = []
        for index, (candidate, outcome) in enumerate(zip(candidates, outcomes)):
            if isinstance(outcome, Exception):
                collector.fail(index, candidate, outcome)
            else:
                shaped.append((index, candidate, outcome))

        materializer = self.materializer_for(registration)
        batch = await materializer.resolve(
            materializer.collect([tree for _, _, tree in shaped], direction)
        )
        for index, candidate, tree in shaped:
            try:
                collector.succeed(index, materializer.rebuild(tree, batch, direction))
            except DataIntegrityMismatch as e:
                collector.fail(index, candidate, e)

        logger.debug("%s: %d candidates, %d shaped, %d types resolved",
                     operation, len(candidates), len(shaped), len(batch.lookups))
        return await collector.result()
