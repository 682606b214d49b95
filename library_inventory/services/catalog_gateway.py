import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Type

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError, field_validator

from library_inventory.entities import Author, Book, Entity, EntityType, Genre, Publisher, Sex
from library_inventory.errors import GatewayTimeout, RemoteError
from library_inventory.services.http_client import CatalogHTTPClient

logger = logging.getLogger(__name__)


# --- Wire models: field names as the API spells them ---
class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None


class AuthorWire(_Wire):
    name: str
    birth_year: int
    gender: str
    nationality: str

    @field_validator("gender")
    @classmethod
    def _known_gender(cls, value: str) -> str:
        if Sex.parse(value) is None:
            raise ValueError(f"unknown gender {value!r}")
        return value

    @classmethod
    def from_entity(cls, a: Author) -> "AuthorWire":
        return cls(id=a.id, name=a.name, birth_year=a.birth_year, gender=a.sex.value, nationality=a.nationality)

    def to_entity(self) -> Author:
        return Author(id=self.id, name=self.name, birth_year=self.birth_year,
                      sex=Sex.parse(self.gender), nationality=self.nationality)


class PublisherWire(_Wire):
    name: str
    country: str

    @classmethod
    def from_entity(cls, p: Publisher) -> "PublisherWire":
        return cls(id=p.id, name=p.name, country=p.country)

    def to_entity(self) -> Publisher:
        return Publisher(id=self.id, name=self.name, country=self.country)


class GenreWire(_Wire):
    name: str

    @classmethod
    def from_entity(cls, g: Genre) -> "GenreWire":
        return cls(id=g.id, name=g.name)

    def to_entity(self) -> Genre:
        return Genre(id=self.id, name=self.name)


class BookWire(_Wire):
    title: str
    author_id: int
    genre_id: int
    publisher_id: int
    release_year: int

    @classmethod
    def from_entity(cls, b: Book) -> "BookWire":
        return cls(id=b.id, title=b.title, author_id=b.author_id, genre_id=b.genre_id,
                   publisher_id=b.publisher_id, release_year=b.publication_year)

    def to_entity(self) -> Book:
        return Book(id=self.id, title=self.title, author_id=self.author_id, genre_id=self.genre_id,
                    publisher_id=self.publisher_id, publication_year=self.release_year)


WIRE_MODELS: Dict[EntityType, Type[_Wire]] = {
    EntityType.AUTHOR: AuthorWire,
    EntityType.PUBLISHER: PublisherWire,
    EntityType.GENRE: GenreWire,
    EntityType.BOOK: BookWire,
}


def encode(entity_type: EntityType, entity: Entity) -> Dict[str, Any]:
    """Request body for POST/PUT. The identifier travels in the URL, never the body."""
    return WIRE_MODELS[entity_type].from_entity(entity).model_dump(exclude={"id"})


def decode(entity_type: EntityType, payload: Dict[str, Any]) -> Entity:
    try:
        return WIRE_MODELS[entity_type].model_validate(payload).to_entity()
    except PydanticValidationError as e:
        raise RemoteError(f"Malformed {entity_type.value} in API response: {e.errors()[0]['msg']}") from e


def unwrap_collection(entity_type: EntityType, body: Any) -> List[Dict[str, Any]]:
    """Listings arrive as a bare list or under the plural or singular key."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in (entity_type.collection, entity_type.value):
            items = body.get(key)
            if isinstance(items, list):
                return items
            if isinstance(items, dict):
                return list(items.values())
    raise RemoteError(f"Unexpected {entity_type.collection} listing from API")


def unwrap_entity(entity_type: EntityType, body: Any) -> Dict[str, Any]:
    if isinstance(body, dict):
        inner = body.get(entity_type.value)
        if isinstance(inner, dict):
            return inner
        return body
    raise RemoteError(f"Unexpected {entity_type.value} payload from API")


class CatalogGateway:
    """CRUD calls against the catalog REST API.

    Every call is bounded by ``timeout`` seconds; expiry raises
    GatewayTimeout, other failures raise RemoteError. The gateway never
    touches local state.
    """

    def __init__(self, client: Optional[CatalogHTTPClient] = None, timeout: Optional[float] = None):
        self.client = client or CatalogHTTPClient(timeout=timeout)
        self.timeout = self.client.timeout if timeout is None else timeout
        self.last_message: Optional[str] = None

    async def _call(self, method: str, path: str, expected: int, **kwargs) -> Any:
        start_time = time.time()
        try:
            response = await asyncio.wait_for(self.client.request(method, path, **kwargs), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"{method} {path} timed out after {self.timeout}s")
            raise GatewayTimeout(f"The server did not respond within {self.timeout:g}s") from e
        except httpx.RequestError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise RemoteError(f"Could not reach the server: {e}") from e

        response_time_ms = int((time.time() - start_time) * 1000)
        if response.status_code != expected:
            message = _error_message(response)
            logger.error(f"{method} {path} returned {response.status_code}: {message}")
            raise RemoteError(message, status_code=response.status_code)

        logger.debug(f"{method} {path} -> {response.status_code} in {response_time_ms}ms")
        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            self.last_message = body["message"]
        return body

    # ------------------------- CRUD ------------------------- #
    async def list(self, entity_type: EntityType) -> List[Entity]:
        entity_type = EntityType(entity_type)
        body = await self._call("GET", f"/{entity_type.collection}", 200)
        return [decode(entity_type, item) for item in unwrap_collection(entity_type, body)]

    async def create(self, entity_type: EntityType, entity: Entity) -> Entity:
        """POST the entity; returns it as the server created it.

        When the server echoes no identifier, the returned entity has
        ``id=None`` and the store assigns one.
        """
        entity_type = EntityType(entity_type)
        self.last_message = None
        body = await self._call("POST", f"/{entity_type.collection}", 201, json=encode(entity_type, entity))
        if body is None:
            return entity
        payload = unwrap_entity(entity_type, body)
        try:
            created = WIRE_MODELS[entity_type].model_validate(payload).to_entity()
        except PydanticValidationError:
            # Some endpoints answer with only a message; keep what was sent.
            logger.debug(f"POST /{entity_type.collection} returned no entity, keeping local copy")
            created_id = payload.get("id") if isinstance(payload.get("id"), int) else None
            return type(entity).from_dict({**entity.to_dict(), "id": created_id})
        return created

    async def update(self, entity_type: EntityType, identifier: int, entity: Entity) -> None:
        entity_type = EntityType(entity_type)
        await self._call("PUT", f"/{entity_type.collection}/{identifier}", 200, json=encode(entity_type, entity))

    async def delete(self, entity_type: EntityType, identifier: int) -> None:
        entity_type = EntityType(entity_type)
        await self._call("DELETE", f"/{entity_type.collection}/{identifier}", 200)

    async def close(self):
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"Request failed with status {response.status_code}"
