import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from library_inventory.entities import Entity, EntityType
from library_inventory.errors import DuplicateIdentifierError, NotFoundError
from library_inventory.utils.validators import validate

logger = logging.getLogger(__name__)

Candidate = Union[Entity, Mapping[str, Any]]
RemovalListener = Callable[[int], None]


def _as_mapping(candidate: Candidate) -> Mapping[str, Any]:
    if isinstance(candidate, Entity):
        return candidate.to_dict()
    return candidate


class EntityStore:
    """Ordered in-memory collection for one entity type.

    The store never talks to the API; callers run the gateway call first and
    only mutate the store once it succeeded.
    """

    def __init__(self, entity_type: EntityType) -> None:
        self.entity_type = EntityType(entity_type)
        self._entities: List[Entity] = []
        self._retired: Set[int] = set()
        self._next_id = 1
        self._listeners: List[RemovalListener] = []

    # ------------------------- Core operations ------------------------- #
    def add(self, candidate: Candidate) -> int:
        """Validate and append. Returns the identifier of the new entry."""
        entity = validate(self.entity_type, _as_mapping(candidate))
        identifier = entity.id
        if identifier is None:
            identifier = self._allocate_id()
        elif identifier in self or identifier in self._retired:
            raise DuplicateIdentifierError(
                f"{self.entity_type.value.capitalize()} identifier {identifier} is already in use"
            )
        self._reserve(identifier)
        self._entities.append(replace(entity, id=identifier))
        logger.debug("Added %s %s", self.entity_type.value, identifier)
        return identifier

    def update(self, identifier: int, replacement: Candidate) -> Entity:
        """Replace an entry in place. The identifier of the entry is kept."""
        entity = validate(self.entity_type, _as_mapping(replacement))
        index = self._index_of(identifier)
        if index is None:
            raise NotFoundError(self.entity_type, identifier)
        entity = replace(entity, id=identifier)
        self._entities[index] = entity
        return entity

    def remove(self, identifier: int) -> Entity:
        index = self._index_of(identifier)
        if index is None:
            raise NotFoundError(self.entity_type, identifier)
        removed = self._entities.pop(index)
        self._retired.add(identifier)
        for listener in list(self._listeners):
            listener(identifier)
        logger.debug("Removed %s %s", self.entity_type.value, identifier)
        return removed

    def list(self) -> Tuple[Entity, ...]:
        return tuple(self._entities)

    # ------------------------- Lookups ------------------------- #
    def get(self, identifier: int) -> Entity:
        index = self._index_of(identifier)
        if index is None:
            raise NotFoundError(self.entity_type, identifier)
        return self._entities[index]

    def find(self, identifier: int) -> Optional[Entity]:
        index = self._index_of(identifier)
        return None if index is None else self._entities[index]

    def names(self) -> Dict[int, str]:
        return {e.id: e.display_name for e in self._entities}

    def __contains__(self, identifier: object) -> bool:
        return self._index_of(identifier) is not None

    def __len__(self) -> int:
        return len(self._entities)

    # ------------------------- Seeding & signals ------------------------- #
    def replace_all(self, entities: Iterable[Entity]) -> None:
        """Seed from the API listing. The server copy is taken as-is."""
        seeded: List[Entity] = []
        seen: Set[int] = set()
        for entity in entities:
            if entity.id is None or entity.id in seen:
                entity = replace(entity, id=self._allocate_id(exclude=seen))
            seen.add(entity.id)
            self._reserve(entity.id)
            seeded.append(entity)
        self._entities = seeded

    def subscribe(self, listener: RemovalListener) -> None:
        """Register a callback invoked with each removed identifier."""
        self._listeners.append(listener)

    # ------------------------- Internals ------------------------- #
    def _index_of(self, identifier: object) -> Optional[int]:
        for i, entity in enumerate(self._entities):
            if entity.id == identifier:
                return i
        return None

    def _allocate_id(self, exclude: Iterable[int] = ()) -> int:
        taken = set(exclude)
        while self._next_id in self or self._next_id in self._retired or self._next_id in taken:
            self._next_id += 1
        return self._next_id

    def _reserve(self, identifier: int) -> None:
        if identifier >= self._next_id:
            self._next_id = identifier + 1
