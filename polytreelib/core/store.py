"""Store abstractions consumed by the tree core.

The core never persists anything itself. It talks to two kinds of store:

- NodeStore: keeps (type, id, parent) adjacency records and answers the
  shape queries (roots, ancestor chain, descendant subtree).
- EntityStore: one per participating type, keeps the typed records.

Shape queries return generic nodes: mappings keyed by the configured type
and id columns plus one structural key (``parent``, ``child``).
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Hashable, Iterable, List, Mapping, Optional, Union

from ..config import RootQuery
from .node import NodeRecord


Criteria = Union[None, Mapping[str, Any], Callable[[Any], bool]]


class NodeStore(ABC):
    """Abstract base class for node stores.

    Implementations typically sit on a closure table or a materialized path
    column. All methods are coroutines; suspension and timeout behavior is
    whatever the backing engine provides.
    """

    @abstractmethod
    async def insert(self, record: NodeRecord) -> NodeRecord:
        """Persist a new node record.

        The record's parent, if any, must already be stored.

        Args:
            record: Node record to insert

        Returns:
            The stored record
        """
        pass

    @abstractmethod
    async def find_node(self, type_tag: str, entity_id: Hashable) -> Optional[NodeRecord]:
        """Look up the node record for (type, id).

        Returns:
            The record, or None if the entity is not tracked
        """
        pass

    @abstractmethod
    async def find_roots(self, query: RootQuery) -> List[Any]:
        """Get every parentless node as a generic node.

        When ``query.depth`` is not 0, each root carries a ``child`` list
        bounded by that depth.

        Returns:
            Forest of generic nodes, in insertion order
        """
        pass

    @abstractmethod
    async def find_ancestor_chain(self, record: NodeRecord) -> Any:
        """Get the generic node for ``record`` with nested ``parent`` keys up to the root."""
        pass

    @abstractmethod
    async def find_descendant_subtree(
        self,
        record: NodeRecord,
        depth: Optional[int] = None
    ) -> Any:
        """Get the generic node for ``record`` with nested ``child`` lists.

        Args:
            record: Subtree root
            depth: Levels below ``record`` to include (None for all)

        Returns:
            Generic node; children keep insertion order
        """
        pass

    async def close(self):
        """Clean up store resources.

        Override if the store holds connections.
        """
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class EntityStore(ABC):
    """Abstract base class for per-type entity stores."""

    @abstractmethod
    async def find_by_ids(self, ids: Iterable[Hashable]) -> List[Any]:
        """Batched lookup of records by identity.

        Missing ids are simply absent from the result.
        """
        pass

    @abstractmethod
    async def save(self, record: Any) -> Any:
        """Create or update a record.

        Returns:
            The record with its identity assigned
        """
        pass

    @abstractmethod
    async def find(self, criteria: Criteria = None) -> List[Any]:
        """Get records matching ``criteria``.

        Args:
            criteria: None for every record, a mapping of field equalities,
                or a predicate called with each record

        Returns:
            Matching records in store order
        """
        pass

    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
