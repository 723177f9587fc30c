"""Probes against the hosted database/storage backend used by the health checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from signmon.config import BackendConfig
from signmon.exceptions import BackendError

logger = logging.getLogger("signmon.backend")


@dataclass(frozen=True, slots=True)
class BackendResponse:
    """Either ``data`` or an ``error`` message reported by the backend."""

    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Backend(Protocol):
    """What the health checks need from the backend.

    A returned ``error`` means the backend answered but refused the call;
    a raised exception means it could not be reached at all.
    """

    async def probe_database(self) -> BackendResponse: ...

    async def list_buckets(self) -> BackendResponse: ...


class UnconfiguredBackend:
    """Placeholder used when no backend URL/key is configured."""

    _MESSAGE = "backend not configured (set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)"

    async def probe_database(self) -> BackendResponse:
        return BackendResponse(error=self._MESSAGE)

    async def list_buckets(self) -> BackendResponse:
        return BackendResponse(error=self._MESSAGE)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error") or body.get("msg")
        if detail:
            return f"HTTP {response.status_code}: {detail}"
    return f"HTTP {response.status_code}"


class SupabaseBackend:
    """REST/storage probes for a hosted Postgres-as-a-service project."""

    def __init__(
        self,
        config: BackendConfig,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.url.rstrip("/"),
            headers={
                "apikey": config.api_key,
                "Authorization": f"Bearer {config.api_key}",
            },
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> SupabaseBackend:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        try:
            return await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise BackendError(f"{path}: {exc}") from exc

    async def probe_database(self) -> BackendResponse:
        """Cheapest possible read: one row count from the probe table."""
        response = await self._get(
            f"/rest/v1/{self._config.probe_table}",
            params={"select": "count", "limit": "1"},
        )
        if response.is_error:
            return BackendResponse(error=_error_message(response))
        return BackendResponse(data=response.json())

    async def list_buckets(self) -> BackendResponse:
        """Names of the storage buckets visible to the service key."""
        response = await self._get("/storage/v1/bucket")
        if response.is_error:
            return BackendResponse(error=_error_message(response))
        buckets = response.json() or []
        names = [b.get("name") or b.get("id") for b in buckets if isinstance(b, dict)]
        return BackendResponse(data=names)


def create_backend(config: BackendConfig) -> Backend:
    if not config.configured:
        logger.warning("No backend configured; database and storage checks will fail")
        return UnconfiguredBackend()
    return SupabaseBackend(config)
