"""Exception taxonomy for PolyTreeLib.

Every error raised by the core derives from PolyTreeError and carries the
(type, id) it concerns, so callers of batch operations can tell which item
failed without parsing messages.
"""

from typing import Any, Optional


class PolyTreeError(Exception):
    """Base class for all PolyTreeLib errors."""


class RegistryError(PolyTreeError):
    """Raised when the type registry is misconfigured."""


class NotATreeType(PolyTreeError):
    """A tree operation was invoked on a type that is not registered."""

    def __init__(self, type_tag: Any, detail: Optional[str] = None):
        self.type_tag = type_tag
        message = f"Type {type_tag!r} does not participate in the tree"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ParentNotRegistered(PolyTreeError):
    """The declared parent of a new entity has no node record."""

    def __init__(self, parent_type: str, parent_id: Any, child_type: Optional[str] = None):
        self.parent_type = parent_type
        self.parent_id = parent_id
        self.child_type = child_type
        super().__init__(
            f"Parent {parent_type}#{parent_id!r} is not registered in the tree"
            + (f" (while creating {child_type})" if child_type else "")
        )


class EntityNotTracked(PolyTreeError):
    """A query candidate has no node record."""

    def __init__(self, type_tag: str, entity_id: Any):
        self.type_tag = type_tag
        self.entity_id = entity_id
        super().__init__(f"Entity {type_tag}#{entity_id!r} has no node in the tree")


class DataIntegrityMismatch(PolyTreeError):
    """A node references a (type, id) absent from the resolved entity batch."""

    def __init__(self, type_tag: str, entity_id: Any):
        self.type_tag = type_tag
        self.entity_id = entity_id
        super().__init__(
            f"Node {type_tag}#{entity_id!r} has no matching entity in its store"
        )


class NodeLinkFailed(PolyTreeError):
    """The entity was saved but its node record could not be written.

    The entity is tracked by its store but unreachable through the tree.
    ``entity`` holds the saved record so callers can repair or remove it.
    """

    def __init__(self, type_tag: str, entity: Any, entity_id: Any, cause: BaseException):
        self.type_tag = type_tag
        self.entity = entity
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(
            f"Entity {type_tag}#{entity_id!r} was saved but not linked into the tree: {cause}"
        )


class BatchAborted(PolyTreeError):
    """A batch exceeded its error threshold."""

    def __init__(self, operation: str, error_count: int, max_errors: int):
        self.operation = operation
        self.error_count = error_count
        self.max_errors = max_errors
        super().__init__(
            f"Error threshold exceeded in {operation} ({error_count} > {max_errors} errors)"
        )
