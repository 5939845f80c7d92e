"""Shared async HTTP client for the forecast provider adapters.

One pooled httpx.AsyncClient is opened by the app lifespan and handed to
every adapter, so TCP and TLS sessions to the forecast APIs are reused across
days and requests. The lifespan closes it on shutdown.
"""
import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "WeatherEnsemble/1.0"


class AsyncHTTPClient:
    """Lazily opened, pooled httpx.AsyncClient.

    ``timeout`` is only the fallback: each adapter passes its own per-request
    timeout. ``transport`` replaces the network layer (tests pass an
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        timeout: float = 15.0,
        max_connections: int = 20,
        max_keepalive_connections: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_connections = max_connections
        self.max_keepalive_connections = max_keepalive_connections
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._open_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._client is not None and not self._client.is_closed

    async def get_client(self) -> httpx.AsyncClient:
        """The shared client, opened on first use or after close()."""
        if self.is_open:
            return self._client
        async with self._open_lock:
            if not self.is_open:
                self._client = httpx.AsyncClient(
                    timeout=self.timeout,
                    limits=httpx.Limits(
                        max_connections=self.max_connections,
                        max_keepalive_connections=self.max_keepalive_connections,
                    ),
                    headers={"User-Agent": USER_AGENT},
                    follow_redirects=True,
                    transport=self._transport,
                )
                logger.info(
                    "HTTP client opened (max_connections=%d, default timeout=%ss)",
                    self.max_connections, self.timeout
                )
        return self._client

    async def close(self):
        """Close the shared client; adapters holding it must not be used afterwards."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("HTTP client closed")


# Singleton instance - managed by FastAPI lifespan
http_client = AsyncHTTPClient()
