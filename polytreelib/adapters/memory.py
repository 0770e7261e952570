"""In-memory node and entity stores.

Reference implementations of the store interfaces, used by the test suite
and handy for prototyping. The node store keeps an adjacency list; shape
queries build generic nodes (plain dicts) on demand.
"""

import asyncio
import copy
import itertools
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional

from ..config import RootQuery, TreeDirection, TreeModelOptions
from ..core.node import NodeKey, NodeRecord, read_field
from ..core.store import Criteria, EntityStore, NodeStore


class InMemoryNodeStore(NodeStore):
    """Node store backed by dictionaries.

    Insertion order is preserved for roots and for the children of every
    node, so shape queries are deterministic.
    """

    def __init__(self, options: Optional[TreeModelOptions] = None):
        self.options = options or TreeModelOptions()
        self._records: Dict[NodeKey, NodeRecord] = OrderedDict()
        self._children: Dict[NodeKey, List[NodeKey]] = {}
        self._roots: List[NodeKey] = []

    async def insert(self, record: NodeRecord) -> NodeRecord:
        await asyncio.sleep(0)
        if record.key in self._records:
            raise ValueError(f"Node {record.type}#{record.id!r} already exists")

        parent = None
        if record.parent is not None:
            parent = self._records.get(record.parent.key)
            if parent is None:
                raise ValueError(
                    f"Parent {record.parent.type}#{record.parent.id!r} of "
                    f"{record.type}#{record.id!r} does not exist"
                )

        stored = NodeRecord(id=record.id, type=record.type, parent=parent)
        self._records[stored.key] = stored
        self._children[stored.key] = []
        if parent is None:
            self._roots.append(stored.key)
        else:
            self._children[parent.key].append(stored.key)
        return stored

    async def find_node(self, type_tag: str, entity_id: Hashable) -> Optional[NodeRecord]:
        await asyncio.sleep(0)
        return self._records.get((type_tag, entity_id))

    async def find_roots(self, query: RootQuery) -> List[Any]:
        await asyncio.sleep(0)
        if not query.includes_children:
            return [self._generic(key) for key in self._roots]
        return [self._subtree(key, query.depth) for key in self._roots]

    async def find_ancestor_chain(self, record: NodeRecord) -> Any:
        await asyncio.sleep(0)
        stored = self._require(record)
        node = self._generic(stored.key)
        if stored.parent is not None:
            node[TreeDirection.PARENT.value] = await self.find_ancestor_chain(stored.parent)
        return node

    async def find_descendant_subtree(
        self,
        record: NodeRecord,
        depth: Optional[int] = None
    ) -> Any:
        await asyncio.sleep(0)
        return self._subtree(self._require(record).key, depth)

    def _subtree(self, key: NodeKey, depth: Optional[int]) -> Dict[str, Any]:
        node = self._generic(key)
        if depth is not None and depth <= 0:
            node[TreeDirection.CHILD.value] = []
            return node
        remaining = None if depth is None else depth - 1
        node[TreeDirection.CHILD.value] = [
            self._subtree(child, remaining) for child in self._children[key]
        ]
        return node

    def _generic(self, key: NodeKey) -> Dict[str, Any]:
        return self._records[key].to_generic(self.options)

    def _require(self, record: NodeRecord) -> NodeRecord:
        stored = self._records.get(record.key)
        if stored is None:
            raise KeyError(f"Node {record.type}#{record.id!r} does not exist")
        return stored

    def records(self) -> List[NodeRecord]:
        return list(self._records.values())

    def __contains__(self, key: NodeKey) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)


class InMemoryEntityStore(EntityStore):
    """Entity store for one type, keyed by identity.

    Records may be dicts or objects. New records (no identity yet) get the
    next id from ``id_factory`` (sequential integers by default). Dicts are
    copied on save; objects are stored as given.
    """

    def __init__(
        self,
        identity_property: str = "id",
        id_factory: Optional[Callable[[], Hashable]] = None
    ):
        self.identity_property = identity_property
        self._counter = itertools.count(1)
        self.id_factory = id_factory or (lambda: next(self._counter))
        self._records: Dict[Hashable, Any] = OrderedDict()

    async def save(self, record: Any) -> Any:
        await asyncio.sleep(0)
        if isinstance(record, Mapping):
            record = dict(record)
        entity_id = read_field(record, self.identity_property)
        if entity_id is None:
            entity_id = self.id_factory()
            if isinstance(record, dict):
                record[self.identity_property] = entity_id
            else:
                setattr(record, self.identity_property, entity_id)
        self._records[entity_id] = record
        return record

    async def find_by_ids(self, ids: Iterable[Hashable]) -> List[Any]:
        await asyncio.sleep(0)
        return [self._records[i] for i in dict.fromkeys(ids) if i in self._records]

    async def find(self, criteria: Criteria = None) -> List[Any]:
        await asyncio.sleep(0)
        return [record for record in self._records.values() if _matches(record, criteria)]

    async def delete(self, entity_id: Hashable) -> bool:
        await asyncio.sleep(0)
        return self._records.pop(entity_id, None) is not None

    def snapshot(self) -> List[Any]:
        """Deep copy of every record, in insertion order."""
        return copy.deepcopy(list(self._records.values()))

    def __contains__(self, entity_id: Hashable) -> bool:
        return entity_id in self._records

    def __len__(self) -> int:
        return len(self._records)


def _matches(record: Any, criteria: Criteria) -> bool:
    if criteria is None:
        return True
    if callable(criteria) and not isinstance(criteria, Mapping):
        return bool(criteria(record))
    return all(read_field(record, name) == value for name, value in criteria.items())
