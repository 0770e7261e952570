"""Tree materialization: generic node trees to typed payload trees.

A node store only knows (type, id) pairs. Materializing a generic tree runs
in three steps:

1. collect  - one walk gathering, per type tag, every id the tree needs,
              deduplicated across the whole input
2. resolve  - exactly one batched ``find_by_ids`` per distinct type, with the
              lookups for different types running concurrently
3. rebuild  - a second walk producing MaterializedNode values with the same
              shape and order as the input

The number of entity store round-trips depends on how many types appear in
the input, never on how many nodes it has.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Union

from ..config import TreeDirection, TreeModelOptions
from ..errors import DataIntegrityMismatch
from .node import MaterializedNode, NodeKey, node_key, node_relation

logger = logging.getLogger(__name__)


GenericTree = Union[Any, Sequence[Any]]


def lookup_ids(ids: Iterable[Hashable]) -> List[Hashable]:
    """Ids to request from an entity store, deduplicated.

    Text ids holding an integer (a node store with a string id column) are
    requested in both forms, so integer-keyed entity stores still match.
    """
    wanted: Dict[Hashable, None] = OrderedDict()
    for entity_id in ids:
        wanted[entity_id] = None
        if isinstance(entity_id, str) and entity_id.isdecimal():
            wanted[int(entity_id)] = None
    return list(wanted)


class ResolvedBatch:
    """Payloads resolved for one materialization, keyed by (type, id).

    Node stores often keep ids in a text column while entity stores hand
    back integers (or the reverse), so every payload is also reachable by
    the string form of its id.
    """

    def __init__(self):
        self._payloads: Dict[NodeKey, Any] = {}
        self.lookups: Dict[str, int] = {}

    def add(self, type_tag: str, entity_id: Hashable, payload: Any) -> None:
        self._payloads[(type_tag, entity_id)] = payload
        if not isinstance(entity_id, str):
            self._payloads.setdefault((type_tag, str(entity_id)), payload)

    def get(self, type_tag: str, entity_id: Hashable) -> Any:
        """Payload for (type, id).

        Raises:
            DataIntegrityMismatch: If the store returned no such record
        """
        key = (type_tag, entity_id)
        if key in self._payloads:
            return self._payloads[key]
        fallback = (type_tag, str(entity_id))
        if fallback in self._payloads:
            return self._payloads[fallback]
        raise DataIntegrityMismatch(type_tag, entity_id)

    def __contains__(self, key: NodeKey) -> bool:
        return key in self._payloads or (key[0], str(key[1])) in self._payloads

    def __len__(self) -> int:
        return len(self._payloads)


class TreeMaterializer:
    """Turns generic node trees into MaterializedNode trees.

    Stateless apart from its configuration, so one instance can serve
    concurrent queries.
    """

    def __init__(self, registry: Any, options: Optional[TreeModelOptions] = None):
        """Initialize materializer.

        Args:
            registry: TypeRegistry resolving type tags to entity stores
            options: Column names of the generic nodes (registry default if None)
        """
        self.registry = registry
        self.options = options or registry.default_options

    async def materialize(
        self,
        tree: GenericTree,
        direction: Optional[TreeDirection] = None
    ) -> Union[MaterializedNode, List[MaterializedNode], None]:
        """Materialize a generic tree or a forest of them.

        Args:
            tree: A generic node, or a sequence of generic nodes
            direction: Relation to follow (None materializes the top level only)

        Returns:
            A MaterializedNode for a single node, a list for a sequence,
            None for None
        """
        if tree is None:
            return None
        batch = await self.resolve(self.collect(tree, direction))
        return self.rebuild(tree, batch, direction)

    # Step 1

    def collect(
        self,
        tree: GenericTree,
        direction: Optional[TreeDirection] = None
    ) -> Dict[str, List[Hashable]]:
        """Gather the ids each type tag needs.

        Returns:
            Ordered mapping of type tag to its deduplicated ids, both in
            first-seen order
        """
        ids_by_type: Dict[str, List[Hashable]] = OrderedDict()
        seen = set()

        def visit(node: Any, nested_allowed: bool) -> None:
            key = node_key(node, self.options)
            if key not in seen:
                seen.add(key)
                ids_by_type.setdefault(key[0], []).append(key[1])
            if direction is None or not nested_allowed:
                return
            for nested in self._nested(node, direction):
                # Siblings are leaves; what they carry is never read
                visit(nested, direction is not TreeDirection.SIBLINGS)

        for root in self._as_forest(tree):
            visit(root, True)
        return ids_by_type

    # Step 2

    async def resolve(self, ids_by_type: Mapping[str, Sequence[Hashable]]) -> ResolvedBatch:
        """Fetch every needed payload, one batched lookup per type.

        Raises:
            NotATreeType: If a tag has no registration
        """
        batch = ResolvedBatch()
        registrations = [
            (self.registry.get_registration(type_tag), ids)
            for type_tag, ids in ids_by_type.items()
            if ids
        ]

        results = await asyncio.gather(*(
            registration.entity_store.find_by_ids(lookup_ids(ids))
            for registration, ids in registrations
        ))

        for (registration, ids), records in zip(registrations, results):
            batch.lookups[registration.type_tag] = batch.lookups.get(registration.type_tag, 0) + 1
            for record in records:
                batch.add(registration.type_tag, registration.identity_of(record), record)

        logger.debug("Resolved %d ids across %d types",
                     sum(len(ids) for _, ids in registrations), len(registrations))
        return batch

    # Step 3

    def rebuild(
        self,
        tree: GenericTree,
        batch: ResolvedBatch,
        direction: Optional[TreeDirection] = None
    ) -> Union[MaterializedNode, List[MaterializedNode], None]:
        """Attach payloads to a generic tree without mutating it.

        Raises:
            DataIntegrityMismatch: If a node has no payload in ``batch``
        """
        if tree is None:
            return None
        if self._is_forest(tree):
            return [self._rebuild_node(node, batch, direction) for node in tree]
        return self._rebuild_node(tree, batch, direction)

    def _rebuild_node(
        self,
        node: Any,
        batch: ResolvedBatch,
        direction: Optional[TreeDirection]
    ) -> MaterializedNode:
        type_tag, entity_id = node_key(node, self.options)
        payload = batch.get(type_tag, entity_id)

        if direction is None:
            return MaterializedNode(type=type_tag, id=entity_id, payload=payload)

        relation = node_relation(node, direction)

        if direction is TreeDirection.PARENT:
            parent = None
            if relation is not None:
                parent = self._rebuild_node(relation, batch, direction)
            return MaterializedNode(type=type_tag, id=entity_id, payload=payload, parent=parent)

        if direction is TreeDirection.CHILD:
            children = None
            if relation is not None:
                children = tuple(self._rebuild_node(c, batch, direction) for c in relation)
            return MaterializedNode(type=type_tag, id=entity_id, payload=payload, children=children)

        siblings = None
        if relation is not None:
            # De-nested: a sibling entry never carries siblings of its own
            siblings = tuple(self._rebuild_node(s, batch, None) for s in relation)
        return MaterializedNode(type=type_tag, id=entity_id, payload=payload, siblings=siblings)

    # Helpers

    @staticmethod
    def _is_forest(tree: GenericTree) -> bool:
        return isinstance(tree, (list, tuple))

    def _as_forest(self, tree: GenericTree) -> Sequence[Any]:
        return tree if self._is_forest(tree) else [tree]

    @staticmethod
    def _nested(node: Any, direction: TreeDirection) -> Sequence[Any]:
        relation = node_relation(node, direction)
        if relation is None:
            return ()
        if direction is TreeDirection.PARENT:
            return (relation,)
        return relation
