"""
Caching node store for PolyTreeLib.

Node records never change once inserted (nodes are not moved), so the
record for a (type, id) pair can be cached safely. Parent resolution on
create and candidate lookups on every query both go through find_node,
which makes it the hot path against a remote node store.

Shape queries are passed through uncached: a subtree grows whenever a
child is linked.
"""

import asyncio
from typing import Any, Dict, Hashable, List, Optional

from cachetools import TTLCache

from ..config import RootQuery
from ..core.node import NodeKey, NodeRecord
from ..core.store import NodeStore


class CachingNodeStore(NodeStore):
    """
    Optional caching layer for any node store.

    Caches node records by (type, id) and uses Future-based coordination
    so concurrent lookups of the same key hit the base store once.

    Example:
        nodes = CachingNodeStore(SqlNodeStore(engine), max_size=50000)
        registry.register('Folder', entity_store=folders, node_store=nodes)
    """

    def __init__(
        self,
        base_store: NodeStore,
        max_size: int = 10000,
        ttl: float = 300.0  # 5 minutes
    ):
        """
        Initialize caching node store.

        Args:
            base_store: The underlying node store to wrap
            max_size: Maximum number of cached node records
            ttl: Time-to-live for cache entries in seconds
        """
        self.base_store = base_store
        self._cache = TTLCache(maxsize=max_size, ttl=ttl)
        self._lookups_in_progress: Dict[NodeKey, asyncio.Future] = {}

        # Statistics
        self.cache_hits = 0
        self.cache_misses = 0
        self.concurrent_waits = 0

    async def insert(self, record: NodeRecord) -> NodeRecord:
        stored = await self.base_store.insert(record)
        self._cache[stored.key] = stored
        return stored

    async def find_node(self, type_tag: str, entity_id: Hashable) -> Optional[NodeRecord]:
        """
        Get a node record, from cache when possible.

        Missing nodes are not cached: the entity may be linked later.
        """
        key = (type_tag, entity_id)

        pending = self._lookups_in_progress.get(key)
        if pending is not None:
            self.concurrent_waits += 1
            return await asyncio.shield(pending)

        cached = self._cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        self.cache_misses += 1
        future = asyncio.get_running_loop().create_future()
        self._lookups_in_progress[key] = future
        try:
            record = await self.base_store.find_node(type_tag, entity_id)
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved; waiters re-raise it themselves
            future.exception()
            raise
        else:
            if record is not None:
                self._cache[key] = record
            future.set_result(record)
            return record
        finally:
            if not future.done():
                future.cancel()
            del self._lookups_in_progress[key]

    async def find_roots(self, query: RootQuery) -> List[Any]:
        return await self.base_store.find_roots(query)

    async def find_ancestor_chain(self, record: NodeRecord) -> Any:
        return await self.base_store.find_ancestor_chain(record)

    async def find_descendant_subtree(self, record: NodeRecord, depth: Optional[int] = None) -> Any:
        return await self.base_store.find_descendant_subtree(record, depth)

    async def close(self) -> None:
        await self.base_store.close()

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total = self.cache_hits + self.cache_misses
        return {
            'hits': self.cache_hits,
            'misses': self.cache_misses,
            'hit_rate': self.cache_hits / total if total else 0.0,
            'concurrent_waits': self.concurrent_waits,
            'cached_records': len(self._cache),
        }
