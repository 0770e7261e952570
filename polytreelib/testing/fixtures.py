"""Test fixtures for PolyTreeLib consumers.

These wrappers record every call made to a store so test suites can check
how the tree core talks to storage, e.g. that a query issued exactly one
batched lookup per type no matter how many nodes it touched.

Example:
    log = StoreCallLog()
    files = RecordingEntityStore(InMemoryEntityStore(), 'File', log)
    ...
    await repo.find_roots(RootQuery.full_forest())
    assert log.count('find_by_ids', 'File') == 1
"""

from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, List, Optional, Tuple

from ..config import RootQuery
from ..core.node import NodeRecord
from ..core.store import Criteria, EntityStore, NodeStore


@dataclass
class StoreCall:
    """One recorded store call."""
    method: str
    store: str
    args: Tuple[Any, ...] = ()


@dataclass
class StoreCallLog:
    """Shared, ordered log of store calls."""
    calls: List[StoreCall] = field(default_factory=list)

    def record(self, method: str, store: str, *args: Any) -> None:
        self.calls.append(StoreCall(method, store, args))

    def count(self, method: str, store: Optional[str] = None) -> int:
        return len(self.filter(method, store))

    def filter(self, method: str, store: Optional[str] = None) -> List[StoreCall]:
        return [
            call for call in self.calls
            if call.method == method and (store is None or call.store == store)
        ]

    def clear(self) -> None:
        self.calls.clear()


class RecordingEntityStore(EntityStore):
    """Entity store wrapper that logs every call before delegating."""

    def __init__(self, base_store: EntityStore, name: str, log: Optional[StoreCallLog] = None):
        self.base_store = base_store
        self.name = name
        self.log = log if log is not None else StoreCallLog()

    async def find_by_ids(self, ids: Iterable[Hashable]) -> List[Any]:
        ids = list(ids)
        self.log.record('find_by_ids', self.name, tuple(ids))
        return await self.base_store.find_by_ids(ids)

    async def save(self, record: Any) -> Any:
        self.log.record('save', self.name, record)
        return await self.base_store.save(record)

    async def find(self, criteria: Criteria = None) -> List[Any]:
        self.log.record('find', self.name, criteria)
        return await self.base_store.find(criteria)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.base_store, name)


class RecordingNodeStore(NodeStore):
    """Node store wrapper that logs every call before delegating."""

    def __init__(self, base_store: NodeStore, name: str = 'nodes', log: Optional[StoreCallLog] = None):
        self.base_store = base_store
        self.name = name
        self.log = log if log is not None else StoreCallLog()

    async def insert(self, record: NodeRecord) -> NodeRecord:
        self.log.record('insert', self.name, record)
        return await self.base_store.insert(record)

    async def find_node(self, type_tag: str, entity_id: Hashable) -> Optional[NodeRecord]:
        self.log.record('find_node', self.name, type_tag, entity_id)
        return await self.base_store.find_node(type_tag, entity_id)

    async def find_roots(self, query: RootQuery) -> List[Any]:
        self.log.record('find_roots', self.name, query)
        return await self.base_store.find_roots(query)

    async def find_ancestor_chain(self, record: NodeRecord) -> Any:
        self.log.record('find_ancestor_chain', self.name, record)
        return await self.base_store.find_ancestor_chain(record)

    async def find_descendant_subtree(self, record: NodeRecord, depth: Optional[int] = None) -> Any:
        self.log.record('find_descendant_subtree', self.name, record, depth)
        return await self.base_store.find_descendant_subtree(record, depth)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.base_store, name)
