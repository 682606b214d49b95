import logging
from typing import Optional

import httpx

from library_inventory.config import settings

logger = logging.getLogger(__name__)


def build_timeout(total: Optional[float] = None, connect: Optional[float] = None) -> httpx.Timeout:
    total = settings.gateway_timeout if total is None else total
    connect = settings.gateway_connect_timeout if connect is None else connect
    return httpx.Timeout(timeout=total, connect=min(connect, total))


class CatalogHTTPClient:
    """Pooled async HTTP client bound to the catalog API base URL."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        limits = httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
            keepalive_expiry=30.0
        )
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.gateway_timeout if timeout is None else timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            limits=limits,
            timeout=build_timeout(self.timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self._client.request(method, path, **kwargs)

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
