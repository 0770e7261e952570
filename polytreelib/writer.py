"""Tree writer: links newly created entities into the tree.

For a new entity of a registered type the writer resolves the declared
parent's node, saves the entity, then inserts its node record. Entities that
already carry an identity are updates: they go straight to their entity
store and the tree is left untouched.

The entity store and the node store are independent, so there is a window
between the two writes. A node write failing after the entity write raises
NodeLinkFailed; an optional compensating hook runs first, e.g. to delete
the orphaned entity.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from .config import PolyTreeConfig
from .core.node import NodeRecord
from .error_policies import BatchResult, ErrorPolicy, run_batch
from .errors import NodeLinkFailed, ParentNotRegistered, RegistryError
from .registry import TypeRegistration, TypeRegistry

logger = logging.getLogger(__name__)


LinkFailureHook = Callable[[TypeRegistration, Any, Exception], Awaitable[None]]


class TreeWriter:
    """Creates entities together with their node records."""

    def __init__(
        self,
        registry: TypeRegistry,
        config: Optional[PolyTreeConfig] = None,
        on_link_failure: Optional[LinkFailureHook] = None
    ):
        """Initialize writer.

        Args:
            registry: Type registry
            config: Concurrency and batch policy settings
            on_link_failure: Compensating action awaited when the node write
                fails after the entity was saved
        """
        self.registry = registry
        self.config = config or PolyTreeConfig()
        self.on_link_failure = on_link_failure

    async def save(self, registration: TypeRegistration, entity: Any) -> Any:
        """Save one entity, linking it into the tree if it is new.

        Returns:
            The saved entity

        Raises:
            NotATreeType: If the parent value cannot be tied to a registered type
            RegistryError: If the parent type uses a different node store
            ParentNotRegistered: If the declared parent has no node
            NodeLinkFailed: If the entity was saved but the node write failed
        """
        if registration.identity_of(entity) is not None:
            return await registration.entity_store.save(entity)

        parent = await self._resolve_parent(registration, entity)

        saved = await registration.entity_store.save(entity)
        entity_id = registration.identity_of(saved)
        record = NodeRecord(id=entity_id, type=registration.type_tag, parent=parent)

        try:
            await registration.node_store.insert(record)
        except Exception as e:
            await self._compensate(registration, saved, e)
            raise NodeLinkFailed(registration.type_tag, saved, entity_id, e) from e

        logger.debug("Linked %r", record)
        return saved

    async def save_many(
        self,
        registration: TypeRegistration,
        entities: Sequence[Any],
        policy: Optional[ErrorPolicy] = None
    ) -> BatchResult:
        """Save independent entities concurrently.

        One entity's failure never blocks the others; ``policy`` decides
        whether failures are returned alongside the successes or abort the
        call once every entity has settled.
        """
        policy = policy or self.config.new_policy()
        return await run_batch(
            list(entities),
            lambda entity: self.save(registration, entity),
            policy,
            'save',
            self.config.max_concurrent,
        )

    async def _resolve_parent(
        self,
        registration: TypeRegistration,
        entity: Any
    ) -> Optional[NodeRecord]:
        ref = self.registry.parent_ref(registration, registration.parent_value_of(entity))
        if ref is None:
            return None

        parent_registration = self.registry.get_registration(ref.type)
        if parent_registration.node_store is not registration.node_store:
            raise RegistryError(
                f"Parent type {ref.type!r} keeps its nodes in a different node store "
                f"than {registration.type_tag!r}"
            )
        parent = await parent_registration.node_store.find_node(ref.type, ref.id)
        if parent is None:
            raise ParentNotRegistered(ref.type, ref.id, registration.type_tag)
        return parent

    async def _compensate(self, registration: TypeRegistration, entity: Any, error: Exception) -> None:
        if self.on_link_failure is None:
            logger.error("Entity %s#%r saved without a node: %s",
                         registration.type_tag, registration.identity_of(entity), error)
            return
        try:
            await self.on_link_failure(registration, entity, error)
        except Exception as hook_error:
            logger.error("Compensating action failed for %s#%r: %s",
                         registration.type_tag, registration.identity_of(entity), hook_error)
