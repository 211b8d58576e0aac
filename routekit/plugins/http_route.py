"""
RouteKit HTTP Route Base.

Base class for platforms reached over a REST API. Provides:
- httpx.AsyncClient lifecycle tied to connect() / disconnect()
- Health probe on connect (non-2xx raises, which drives retry/reconnect)
- Bearer auth from the CredentialStore route token
- Per-request timeout, since the resilience core enforces none itself

Subclasses set base_url / health_path and implement the messaging methods
with request().
"""
from __future__ import annotations
from typing import Any, Optional

import httpx

from routekit.plugins.base import AuthCapability, RoutePlugin
from routekit.security.credentials import CredentialStore


class HttpRoute(AuthCapability, RoutePlugin):
    """
    Route plugin backed by an HTTP API.

    Subclasses must set:
        platform: str   — platform identifier
        base_url: str   — API root URL
    """

    base_url: str = ""
    health_path: str = "/health"
    timeout: float = 30.0
    auth_header: str = "Authorization"
    auth_prefix: str = "Bearer"

    def __init__(
        self,
        route_id: str,
        credentials: CredentialStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        display_name: str | None = None,
    ):
        super().__init__(route_id, display_name=display_name)
        self.credentials = credentials
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # --- Auth ---

    async def get_auth_headers(self) -> dict[str, str]:
        if self.credentials is None:
            return {}
        token = await self.credentials.load_route_token(self.route_id)
        if not token:
            return {}
        return {self.auth_header: f"{self.auth_prefix} {token}"}

    async def is_authenticated(self) -> bool:
        return bool(await self.get_auth_headers())

    async def sign_out(self) -> None:
        if self.credentials is not None:
            await self.credentials.delete_route_token(self.route_id)

    # --- Connection ---

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=await self.get_auth_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        try:
            resp = await self._client.get(self.health_path)
            resp.raise_for_status()
        except Exception:
            await self._close_client()
            raise

    async def disconnect(self) -> None:
        await self._close_client()

    async def is_connected(self) -> bool:
        return self._client is not None and not self._client.is_closed

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    # --- Requests ---

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a request on the open client; raises on HTTP errors."""
        if self._client is None:
            raise RuntimeError(f"{self.platform} route {self.route_id} is not connected")
        resp = await self._client.request(
            method,
            path,
            params=params,
            json=json,
            content=content,
            headers=headers,
        )
        resp.raise_for_status()
        return resp
