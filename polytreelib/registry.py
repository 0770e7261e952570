"""Type registry for polymorphic trees.

Declares which types participate in the tree, where their records and nodes
live, and which property of a new entity names its parent. The registry is
populated once at startup and frozen before the first query:

    registry = TypeRegistry()
    registry.register('Folder', entity_store=folders, node_store=nodes)
    registry.register('File', entity_store=files, node_store=nodes,
                      parent_property='folder', parent_type='Folder')
    registry.freeze()
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Mapping, NamedTuple, Optional, Union

from .config import TreeModelOptions
from .core.node import has_field, read_field
from .core.store import EntityStore, NodeStore
from .errors import NotATreeType, RegistryError

logger = logging.getLogger(__name__)


class EntityRef(NamedTuple):
    """Explicit polymorphic reference to a tracked entity."""
    type: str
    id: Hashable


@dataclass(frozen=True)
class TypeRegistration:
    """Participation of one type in the tree.

    Attributes:
        type_tag: Tag stored in the node type column
        entity_store: Store owning records of this type
        node_store: Store owning this type's node records
        id_column: Generic-node column holding the entity id
        type_column: Generic-node column holding the type tag
        parent_property: Property of a new entity referencing its parent
        parent_type: Type tag assumed when the parent property holds a bare id
        entity_class: Class whose instances are records of this type
        identity_property: Property holding a record's identity
    """

    type_tag: str
    entity_store: EntityStore
    node_store: NodeStore
    id_column: str = "node_id"
    type_column: str = "node_type"
    parent_property: Optional[str] = None
    parent_type: Optional[str] = None
    entity_class: Optional[type] = None
    identity_property: str = "id"

    @property
    def options(self) -> TreeModelOptions:
        return TreeModelOptions(type_column=self.type_column, id_column=self.id_column)

    @property
    def declares_parent(self) -> bool:
        return self.parent_property is not None

    def identity_of(self, entity: Any) -> Any:
        """Identity of ``entity`` (None for a record not yet created)."""
        return read_field(entity, self.identity_property)

    def parent_value_of(self, entity: Any) -> Any:
        if not self.declares_parent:
            return None
        return read_field(entity, self.parent_property)


class TypeRegistry:
    """Registration table keyed by type tag.

    Registration is thread-safe; after freeze() the table is read-only and
    lookups need no locking.
    """

    def __init__(self, default_options: Optional[TreeModelOptions] = None):
        self.default_options = default_options or TreeModelOptions()
        self._registrations: Dict[str, TypeRegistration] = {}
        self._by_class: Dict[type, TypeRegistration] = {}
        self._lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self,
        type_tag: str,
        *,
        entity_store: EntityStore,
        node_store: NodeStore,
        parent_property: Optional[str] = None,
        parent_type: Optional[str] = None,
        entity_class: Optional[type] = None,
        identity_property: str = "id",
        options: Optional[TreeModelOptions] = None,
    ) -> TypeRegistration:
        """Register a participating type.

        Raises:
            RegistryError: If the tag is taken, the registry is frozen, or
                the column options are invalid
        """
        options = options or self.default_options
        errors = options.validate()
        if errors:
            raise RegistryError(f"Invalid options for {type_tag!r}: {', '.join(errors)}")
        if parent_type is not None and parent_property is None:
            raise RegistryError(f"{type_tag!r} declares parent_type without parent_property")

        registration = TypeRegistration(
            type_tag=type_tag,
            entity_store=entity_store,
            node_store=node_store,
            id_column=options.id_column,
            type_column=options.type_column,
            parent_property=parent_property,
            parent_type=parent_type,
            entity_class=entity_class,
            identity_property=identity_property,
        )
        return self.add(registration)

    def add(self, registration: TypeRegistration) -> TypeRegistration:
        with self._lock:
            if self._frozen:
                raise RegistryError(
                    f"Cannot register {registration.type_tag!r}: registry is frozen"
                )
            if registration.type_tag in self._registrations:
                raise RegistryError(f"Type {registration.type_tag!r} is already registered")
            self._registrations[registration.type_tag] = registration
            if registration.entity_class is not None:
                self._by_class[registration.entity_class] = registration
        logger.debug("Registered tree type %s (parent property: %s)",
                     registration.type_tag, registration.parent_property)
        return registration

    def freeze(self) -> 'TypeRegistry':
        with self._lock:
            self._frozen = True
        return self

    def is_tree_type(self, type_or_tag: Union[str, type]) -> bool:
        if isinstance(type_or_tag, type):
            return type_or_tag in self._by_class
        return type_or_tag in self._registrations

    def get_registration(self, type_or_tag: Union[str, type]) -> TypeRegistration:
        """Look up a registration by tag or entity class.

        Raises:
            NotATreeType: If the type is not registered
        """
        if isinstance(type_or_tag, type):
            registration = self._by_class.get(type_or_tag)
        else:
            registration = self._registrations.get(type_or_tag)
        if registration is None:
            name = type_or_tag.__name__ if isinstance(type_or_tag, type) else type_or_tag
            raise NotATreeType(name)
        return registration

    def registration_for(self, entity: Any) -> Optional[TypeRegistration]:
        """Registration whose entity_class ``entity`` is an instance of."""
        for cls in type(entity).__mro__:
            registration = self._by_class.get(cls)
            if registration is not None:
                return registration
        return None

    def parent_ref(self, registration: TypeRegistration, value: Any) -> Optional[EntityRef]:
        """Turn the value of a parent property into an EntityRef.

        Accepted forms, in order: None (root), an EntityRef, an instance of
        a registered entity class, or, when the registration declares
        ``parent_type``, a record or bare id of that type.

        Raises:
            NotATreeType: If the value cannot be tied to a registered type
        """
        if value is None:
            return None
        if isinstance(value, EntityRef):
            self.get_registration(value.type)
            return value

        owner = self.registration_for(value)
        if owner is not None:
            return EntityRef(owner.type_tag, owner.identity_of(value))

        if registration.parent_type is not None:
            parent_registration = self.get_registration(registration.parent_type)
            if isinstance(value, Mapping) or has_field(value, parent_registration.identity_property):
                return EntityRef(parent_registration.type_tag, parent_registration.identity_of(value))
            return EntityRef(parent_registration.type_tag, value)

        raise NotATreeType(
            type(value).__name__,
            f"parent of {registration.type_tag} is not a registered entity or EntityRef",
        )

    def __contains__(self, type_tag: str) -> bool:
        return type_tag in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"TypeRegistry({sorted(self._registrations)}, {state})"

