import asyncio
from typing import Any, Dict, List, Optional

import httpx
import pytest
from fastapi import Body, FastAPI
from fastapi.responses import JSONResponse

from library_inventory.errors import RemoteError
from library_inventory.inventory import LibraryInventory
from library_inventory.services.catalog_gateway import CatalogGateway
from library_inventory.services.http_client import CatalogHTTPClient

BASE_URL = "http://testserver/api"

# The real server answers GET /genres under "genre"; keep that quirk here.
LIST_KEYS = {"authors": "authors", "books": "books", "genres": "genre", "publishers": "publishers"}


def create_fake_api() -> FastAPI:
    """In-memory stand-in for the catalog REST API."""
    app = FastAPI()
    app.state.rows = {name: {} for name in LIST_KEYS}
    app.state.next_id = 1
    app.state.calls = []

    def _rows(collection: str) -> Optional[Dict[int, Dict[str, Any]]]:
        return app.state.rows.get(collection)

    @app.get("/api/{collection}")
    async def list_rows(collection: str):
        app.state.calls.append(("GET", collection, None))
        rows = _rows(collection)
        if rows is None:
            return JSONResponse({"message": "Not found"}, status_code=404)
        return {LIST_KEYS[collection]: list(rows.values())}

    @app.post("/api/{collection}")
    async def create_row(collection: str, payload: Dict[str, Any] = Body(...)):
        app.state.calls.append(("POST", collection, None))
        rows = _rows(collection)
        if rows is None:
            return JSONResponse({"message": "Not found"}, status_code=404)
        identifier = app.state.next_id
        app.state.next_id += 1
        rows[identifier] = {"id": identifier, **payload}
        singular = collection[:-1]
        return JSONResponse(
            {singular: rows[identifier], "message": f"{singular.capitalize()} created successfully"},
            status_code=201,
        )

    @app.put("/api/{collection}/{identifier}")
    async def update_row(collection: str, identifier: int, payload: Dict[str, Any] = Body(...)):
        app.state.calls.append(("PUT", collection, identifier))
        rows = _rows(collection)
        if rows is None or identifier not in rows:
            return JSONResponse({"message": "Not found"}, status_code=404)
        rows[identifier] = {"id": identifier, **payload}
        return {"message": "Updated"}

    @app.delete("/api/{collection}/{identifier}")
    async def delete_row(collection: str, identifier: int):
        app.state.calls.append(("DELETE", collection, identifier))
        rows = _rows(collection)
        if rows is None or identifier not in rows:
            return JSONResponse({"message": "Not found"}, status_code=404)
        del rows[identifier]
        return {"message": "Deleted"}

    return app


def make_gateway(transport: httpx.AsyncBaseTransport, timeout: float = 2.0) -> CatalogGateway:
    client = CatalogHTTPClient(base_url=BASE_URL, timeout=timeout, transport=transport)
    return CatalogGateway(client)


@pytest.fixture
def fake_api():
    return create_fake_api()


@pytest.fixture
def gateway(fake_api):
    gw = make_gateway(httpx.ASGITransport(app=fake_api))
    yield gw
    asyncio.run(gw.close())


@pytest.fixture
def inventory(gateway):
    return LibraryInventory(gateway)


class RecordingGateway:
    """Gateway double: records calls and fails on demand."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.next_id = 100
        self.last_message = None

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def list(self, entity_type):
        self.calls.append(("list", entity_type))
        self._maybe_fail()
        return []

    async def create(self, entity_type, entity):
        self.calls.append(("create", entity_type, entity))
        self._maybe_fail()
        self.next_id += 1
        return type(entity).from_dict({**entity.to_dict(), "id": self.next_id})

    async def update(self, entity_type, identifier, entity):
        self.calls.append(("update", entity_type, identifier, entity))
        self._maybe_fail()

    async def delete(self, entity_type, identifier):
        self.calls.append(("delete", entity_type, identifier))
        self._maybe_fail()

    async def close(self):
        pass


@pytest.fixture
def recording_gateway():
    return RecordingGateway()


@pytest.fixture
def remote_failure():
    return RemoteError("Internal Server Error", status_code=500)
