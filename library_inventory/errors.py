"""Exception hierarchy for the library inventory client."""

from typing import Optional


class CatalogError(Exception):
    """Base exception for all inventory errors."""


class ValidationError(CatalogError):
    """A candidate or draft failed a field rule. Blocks add and commit."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class NotFoundError(CatalogError):
    """Identifier is not present in the store."""

    def __init__(self, entity_type, identifier) -> None:
        name = getattr(entity_type, "value", entity_type)
        super().__init__(f"{str(name).capitalize()} {identifier} not found")
        self.entity_type = entity_type
        self.identifier = identifier


class DuplicateIdentifierError(CatalogError):
    """Identifier is already live or was retired by a delete."""


class SessionStateError(CatalogError):
    """Operation not allowed in the current edit-session state."""


class RowBusyError(CatalogError):
    """A gateway call on the same row is still outstanding."""


class RemoteError(CatalogError):
    """Non-success HTTP status or transport failure from the API."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GatewayTimeout(RemoteError):
    """The API did not answer within the configured timeout."""
