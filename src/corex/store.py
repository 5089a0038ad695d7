"""Mapping store — corex_id -> original URL.

Two backends behind one interface:

- UpstashStore: Redis over the Upstash REST protocol, used when credentials
  are configured.
- InMemoryStore: a dict owned by the application instance, used otherwise.
  Lost on restart.

Mappings are write-once. Nothing here updates or deletes an entry.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from corex.config import CorexConfig
from corex.errors import StoreError

logger = logging.getLogger("corex.store")


class MappingStore(ABC):
    """Interface every backend implements."""

    async def put(self, corex_id: str, url: str) -> None:
        """Store a mapping.

        Empty arguments are logged and ignored rather than raised, so a
        malformed caller never takes the request down. Backend failures
        raise StoreError.
        """
        if not corex_id or not url:
            logger.warning(
                "Ignoring invalid store request (corex_id=%r, url=%r)", corex_id, url
            )
            return
        await self._put(corex_id, url)

    async def get(self, corex_id: str) -> str | None:
        """Return the original URL, or None if the identifier is unknown."""
        if not corex_id:
            return None
        return await self._get(corex_id)

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def _put(self, corex_id: str, url: str) -> None: ...

    @abstractmethod
    async def _get(self, corex_id: str) -> str | None: ...


class InMemoryStore(MappingStore):
    """Process-local store for development and tests."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def _put(self, corex_id: str, url: str) -> None:
        self._data[corex_id] = url

    async def _get(self, corex_id: str) -> str | None:
        return self._data.get(corex_id)

    def __len__(self) -> int:
        return len(self._data)


class UpstashStore(MappingStore):
    """Redis via the Upstash REST API.

    Each command is a JSON array POSTed to the database URL, e.g.
    ``["SET", "cx_...", "https://..."]``. The reply is ``{"result": ...}``
    on success and ``{"error": "..."}`` otherwise.
    """

    def __init__(
        self,
        rest_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.rest_url = rest_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def _command(self, *args: str):
        try:
            response = await self._client.post(
                self.rest_url, json=list(args), headers=self._headers
            )
        except httpx.HTTPError as exc:
            raise StoreError(f"{args[0]} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError(
                f"{args[0]} failed: non-JSON reply (HTTP {response.status_code})"
            ) from exc

        if not isinstance(payload, dict):
            raise StoreError(f"{args[0]} failed: unexpected reply {payload!r}")
        if response.status_code != 200 or "error" in payload:
            raise StoreError(
                f"{args[0]} failed: HTTP {response.status_code} {payload.get('error', '')}".rstrip()
            )
        return payload.get("result")

    async def _put(self, corex_id: str, url: str) -> None:
        await self._command("SET", corex_id, url)

    async def _get(self, corex_id: str) -> str | None:
        return await self._command("GET", corex_id)

    async def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()


def build_store(config: CorexConfig) -> MappingStore:
    """Pick the backend from configuration. Never fails on missing credentials."""
    if config.redis_rest_url and config.redis_rest_token:
        logger.info("Using Upstash Redis mapping store at %s", config.redis_rest_url)
        return UpstashStore(
            config.redis_rest_url,
            config.redis_rest_token,
            timeout=config.store_timeout,
        )
    logger.warning("Redis credentials not configured, using in-memory mapping store")
    return InMemoryStore()
