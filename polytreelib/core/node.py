"""Node abstractions for polymorphic trees.

Two kinds of node live here:

- NodeRecord: the persisted (type, id, parent) adjacency entry a node store
  keeps for every tracked entity.
- MaterializedNode: the query-scoped value holding a resolved typed payload
  and the relation requested by the query.

Generic nodes returned by node stores are plain mappings (or objects) keyed
by configured column names; the accessors below read both forms.
"""

from dataclasses import dataclass
from typing import Any, Hashable, Mapping, Optional, Tuple

from ..config import TreeDirection, TreeModelOptions


NodeKey = Tuple[str, Hashable]

_MISSING = object()


def read_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping key or an attribute."""
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def has_field(obj: Any, name: str) -> bool:
    return read_field(obj, name, _MISSING) is not _MISSING


def node_key(node: Any, options: TreeModelOptions) -> NodeKey:
    """Composite identity of a generic node."""
    return (read_field(node, options.type_column), read_field(node, options.id_column))


def node_relation(node: Any, direction: TreeDirection) -> Any:
    """Structural value a generic node holds for ``direction`` (or None)."""
    return read_field(node, direction.value)


@dataclass(frozen=True)
class NodeRecord:
    """One entity's position in the tree.

    Created once when the entity is created; never mutated afterwards.
    """

    id: Hashable
    type: str
    parent: Optional['NodeRecord'] = None

    @property
    def key(self) -> NodeKey:
        return (self.type, self.id)

    @property
    def parent_key(self) -> Optional[NodeKey]:
        return self.parent.key if self.parent is not None else None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def to_generic(self, options: TreeModelOptions) -> dict:
        """Generic node view of this record, without relations."""
        return {options.type_column: self.type, options.id_column: self.id}

    def __repr__(self) -> str:
        parent = f"{self.parent.type}#{self.parent.id!r}" if self.parent else None
        return f"NodeRecord({self.type}#{self.id!r}, parent={parent})"


@dataclass(frozen=True)
class MaterializedNode:
    """A resolved tree node.

    Only the field matching the query direction is populated; the others
    stay None. ``children`` and ``siblings`` are tuples so whole trees compare
    by value.
    """

    type: str
    id: Hashable
    payload: Any
    parent: Optional['MaterializedNode'] = None
    children: Optional[Tuple['MaterializedNode', ...]] = None
    siblings: Optional[Tuple['MaterializedNode', ...]] = None

    @property
    def key(self) -> NodeKey:
        return (self.type, self.id)

    def walk(self):
        """Yield this node and every nested node, depth-first pre-order."""
        yield self
        if self.parent is not None:
            yield from self.parent.walk()
        for nested in (self.children or ()):
            yield from nested.walk()
        for nested in (self.siblings or ()):
            yield from nested.walk()

    def ancestors(self):
        """Yield the chain of ancestors, nearest first."""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def to_dict(self) -> dict:
        """Plain nested dict, handy for serialization and snapshots."""
        result = {'type': self.type, 'id': self.id, 'payload': self.payload}
        if self.parent is not None:
            result['parent'] = self.parent.to_dict()
        if self.children is not None:
            result['children'] = [c.to_dict() for c in self.children]
        if self.siblings is not None:
            result['siblings'] = [s.to_dict() for s in self.siblings]
        return result
