"""Configuration system for PolyTreeLib.

This module defines how users describe the generic node layout, which
direction a materialization walks, how root queries are bounded, and how
batch operations treat per-item failures.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .error_policies import ErrorPolicy


class TreeDirection(Enum):
    """Structural key a materialization follows.

    The value is the key used in generic nodes returned by a node store.
    """
    PARENT = "parent"       # Ancestor chain, one nested parent per level
    CHILD = "child"         # Descendant subtree, list of children per level
    SIBLINGS = "siblings"   # Flat sibling list, never nested


@dataclass(frozen=True)
class TreeModelOptions:
    """Column names a node store uses for the type tag and entity id."""

    type_column: str = "node_type"
    id_column: str = "node_id"

    def validate(self) -> List[str]:
        errors = []
        if not self.type_column:
            errors.append("type_column cannot be empty")
        if not self.id_column:
            errors.append("id_column cannot be empty")
        if self.type_column == self.id_column:
            errors.append("type_column and id_column must differ")
        return errors


@dataclass(frozen=True)
class RootQuery:
    """Options for a roots query.

    depth=0 returns bare roots. A positive depth attaches children down to
    that many levels; None attaches the full subtree of every root.
    """

    depth: Optional[int] = 0

    @property
    def includes_children(self) -> bool:
        return self.depth is None or self.depth > 0

    @classmethod
    def full_forest(cls) -> 'RootQuery':
        """Create a query returning every root with its complete subtree."""
        return cls(depth=None)


def _default_policy_factory() -> 'ErrorPolicy':
    from .error_policies import CollectErrorsPolicy
    return CollectErrorsPolicy()


@dataclass
class PolyTreeConfig:
    """Complete configuration for a repository.

    The error policy factory is called once per batch operation, so
    collecting policies never leak errors between calls.
    """

    # Concurrency
    max_concurrent: int = 100  # Concurrent per-item branches in one call

    # Error handling
    policy_factory: Callable[[], 'ErrorPolicy'] = field(default=_default_policy_factory)

    # Generic node layout
    model_options: TreeModelOptions = field(default_factory=TreeModelOptions)

    @classmethod
    def strict(cls, max_concurrent: int = 100) -> 'PolyTreeConfig':
        """Create config whose batches abort on the first item error."""
        from .error_policies import FailFastPolicy
        return cls(max_concurrent=max_concurrent, policy_factory=FailFastPolicy)

    def new_policy(self) -> 'ErrorPolicy':
        return self.policy_factory()

    def validate(self) -> List[str]:
        """Validate configuration for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.max_concurrent <= 0:
            errors.append("max_concurrent must be positive")

        if not callable(self.policy_factory):
            errors.append("policy_factory must be callable")

        errors.extend(self.model_options.validate())

        return errors
