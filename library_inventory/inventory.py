import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from library_inventory.entities import Entity, EntityType
from library_inventory.errors import CatalogError, NotFoundError, RowBusyError
from library_inventory.session import EditSession
from library_inventory.store import EntityStore
from library_inventory.utils.validators import validate

logger = logging.getLogger(__name__)


class LibraryInventory:
    """Application state: one store and one edit session per entity type.

    All mutations go through here so that the store only changes after the
    gateway confirmed the matching remote call.
    """

    def __init__(self, gateway) -> None:
        self.gateway = gateway
        self._stores: Dict[EntityType, EntityStore] = {}
        self._sessions: Dict[EntityType, EditSession] = {}
        self._pending: Dict[EntityType, Set[int]] = {}
        for entity_type in EntityType:
            store = EntityStore(entity_type)
            self._stores[entity_type] = store
            self._sessions[entity_type] = EditSession(store, gateway)
            self._pending[entity_type] = set()

    def store(self, entity_type: EntityType) -> EntityStore:
        return self._stores[EntityType(entity_type)]

    def session(self, entity_type: EntityType) -> EditSession:
        return self._sessions[EntityType(entity_type)]

    def is_busy(self, entity_type: EntityType, identifier: int) -> bool:
        entity_type = EntityType(entity_type)
        session = self._sessions[entity_type]
        return identifier in self._pending[entity_type] or session.committing_id == identifier

    # ------------------------- Loading ------------------------- #
    async def load(self) -> Dict[EntityType, CatalogError]:
        """Fetch all four collections. Returns the failures keyed by type."""
        types = list(EntityType)
        results = await asyncio.gather(*(self.gateway.list(t) for t in types), return_exceptions=True)
        failures: Dict[EntityType, CatalogError] = {}
        for entity_type, result in zip(types, results):
            if isinstance(result, CatalogError):
                logger.error(f"Failed to fetch {entity_type.collection}: {result}")
                failures[entity_type] = result
                continue
            if isinstance(result, BaseException):
                raise result
            self._stores[entity_type].replace_all(result)
        return failures

    # ------------------------- Mutations ------------------------- #
    async def add(self, entity_type: EntityType, candidate: Mapping[str, Any]) -> Entity:
        """Validate, create remotely, then insert what the server returned."""
        entity_type = EntityType(entity_type)
        entity = validate(entity_type, {k: v for k, v in candidate.items() if k != "id"})
        created = await self.gateway.create(entity_type, entity)
        store = self._stores[entity_type]
        identifier = store.add(created)
        return store.get(identifier)

    async def delete(self, entity_type: EntityType, identifier: int) -> Optional[Entity]:
        entity_type = EntityType(entity_type)
        store = self._stores[entity_type]
        if identifier not in store:
            raise NotFoundError(entity_type, identifier)
        if self.is_busy(entity_type, identifier):
            raise RowBusyError(f"{entity_type.value.capitalize()} {identifier} is busy, try again")
        pending = self._pending[entity_type]
        pending.add(identifier)
        try:
            await self.gateway.delete(entity_type, identifier)
        finally:
            pending.discard(identifier)
        if identifier not in store:
            # removed while the call was outstanding
            return None
        return store.remove(identifier)

    async def commit(self, entity_type: EntityType) -> Entity:
        entity_type = EntityType(entity_type)
        session = self._sessions[entity_type]
        if session.entity_id is not None and session.entity_id in self._pending[entity_type]:
            raise RowBusyError(f"{entity_type.value.capitalize()} {session.entity_id} is being deleted")
        return await session.commit()

    # ------------------------- View helpers ------------------------- #
    def choices(self, entity_type: EntityType) -> List[Tuple[int, str]]:
        """(id, name) pairs for selection lists."""
        return [(e.id, e.display_name) for e in self.store(entity_type).list()]

    def lookups(self) -> Dict[EntityType, Dict[int, str]]:
        return {t: self._stores[t].names() for t in (EntityType.AUTHOR, EntityType.GENRE, EntityType.PUBLISHER)}

    def cancel_all(self) -> None:
        for session in self._sessions.values():
            session.cancel()

    def find(self, entity_type: EntityType, identifier: int) -> Optional[Entity]:
        return self.store(entity_type).find(identifier)
