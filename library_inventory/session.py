"""Single-slot edit session for one entity type.

One row at a time holds a draft; the committed entry in the store is only
replaced after the draft validates and the API accepted the update.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from library_inventory.entities import Entity
from library_inventory.errors import CatalogError, SessionStateError, ValidationError
from library_inventory.store import EntityStore
from library_inventory.utils.validators import validate

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"


class EditSession:
    def __init__(self, store: EntityStore, gateway) -> None:
        self.store = store
        self.gateway = gateway
        self.entity_type = store.entity_type
        self.state = SessionState.IDLE
        self.entity_id: Optional[int] = None
        self.draft: Optional[Dict[str, Any]] = None
        self.last_error: Optional[CatalogError] = None
        self.committing_id: Optional[int] = None
        store.subscribe(self._on_removed)

    # ------------------------- Queries ------------------------- #
    @property
    def is_idle(self) -> bool:
        return self.state is SessionState.IDLE

    def is_editing(self, identifier: int) -> bool:
        return self.state is SessionState.EDITING and self.entity_id == identifier

    @property
    def committing(self) -> bool:
        return self.committing_id is not None

    # ------------------------- Transitions ------------------------- #
    def begin_edit(self, identifier: int) -> Dict[str, Any]:
        """Open a draft for ``identifier``, closing any other open draft."""
        entity = self.store.get(identifier)
        if self.state is SessionState.EDITING and self.entity_id != identifier:
            logger.info("Discarding unsaved %s %s to edit %s", self.entity_type.value, self.entity_id, identifier)
        self._open(entity)
        return dict(self.draft)

    def change_field(self, identifier: int, field: str, value: Any) -> None:
        if field == "id" or field not in self.entity_type.entity_class.field_names():
            raise ValidationError(field, f"Unknown {self.entity_type.value} field: {field}")
        if not self.is_editing(identifier):
            self.begin_edit(identifier)
        self.draft[field] = value

    async def commit(self) -> Entity:
        """Validate the draft, push it to the API, then replace the stored entry.

        Raises:
            SessionStateError: nothing is being edited.
            ValidationError: the draft is invalid; the session stays open.
            RemoteError: the API rejected or never answered; nothing changes.
        """
        if self.state is not SessionState.EDITING:
            raise SessionStateError("No row is being edited")
        if self.committing:
            raise SessionStateError("A save is already in progress")
        identifier = self.entity_id
        candidate = {**self.draft, "id": identifier}
        try:
            entity = validate(self.entity_type, candidate)
        except ValidationError as e:
            self.last_error = e
            raise

        self.committing_id = identifier
        try:
            await self.gateway.update(self.entity_type, identifier, entity)
        except CatalogError as e:
            self.last_error = e
            raise
        finally:
            self.committing_id = None

        if identifier not in self.store:
            logger.info("%s %s was removed during save, ignoring result", self.entity_type.value, identifier)
            return entity
        committed = self.store.update(identifier, entity)
        if self.is_editing(identifier):
            self._close()
        return committed

    def cancel(self) -> bool:
        """Drop the draft. Returns False when there was nothing to cancel."""
        if self.state is SessionState.IDLE:
            return False
        self._close()
        return True

    # ------------------------- Internals ------------------------- #
    def _on_removed(self, identifier: int) -> None:
        if self.is_editing(identifier):
            logger.debug("%s %s deleted while being edited", self.entity_type.value, identifier)
            self._close()

    def _open(self, entity: Entity) -> None:
        self.state = SessionState.EDITING
        self.entity_id = entity.id
        self.draft = {k: v for k, v in entity.to_dict().items() if k != "id"}
        self.last_error = None

    def _close(self) -> None:
        self.state = SessionState.IDLE
        self.entity_id = None
        self.draft = None
        self.last_error = None
