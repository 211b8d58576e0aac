"""
RouteKit Credential Store — Opaque Per-Route Secrets.

Keyed get/set/delete of route-scoped values (auth tokens, session blobs)
persisted in the session_storage table:
- Values are stored as opaque bytes; encryption is the caller's concern
- Optional expiry; expired values read as missing and are deleted lazily
- All values of a route are dropped when the route is unregistered
"""
from __future__ import annotations
from datetime import timedelta
from typing import Optional

from routekit.database import StorageManager
from routekit.models.base import utcnow
from routekit.models.db_models import SessionRecord
from routekit.storage.repositories import SessionRepository

ROUTE_TOKEN_KEY = "route_token"


def storage_key(route_id: str, key: str) -> str:
    return f"{route_id}:{key}"


class CredentialStore:
    """Route-scoped secret storage."""

    def __init__(self, storage: StorageManager):
        self.storage = storage

    async def set(
        self,
        route_id: str,
        key: str,
        value: bytes,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        expires_at = utcnow() + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        async with self.storage.write() as session:
            await SessionRepository(session).upsert(
                SessionRecord(
                    key=storage_key(route_id, key),
                    route_id=route_id,
                    value=value,
                    expires_at=expires_at,
                    created_at=utcnow(),
                )
            )

    async def get(self, route_id: str, key: str) -> Optional[bytes]:
        """Return the value, or None if missing or expired."""
        async with self.storage.write() as session:
            repo = SessionRepository(session)
            record = await repo.get(storage_key(route_id, key))
            if record is None:
                return None
            if record.is_expired:
                await repo.delete(record.key)
                return None
            return record.value

    async def delete(self, route_id: str, key: str) -> bool:
        async with self.storage.write() as session:
            return await SessionRepository(session).delete(storage_key(route_id, key))

    async def exists(self, route_id: str, key: str) -> bool:
        return await self.get(route_id, key) is not None

    async def clear_route(self, route_id: str) -> int:
        async with self.storage.write() as session:
            return await SessionRepository(session).delete_for_route(route_id)

    # --- Route tokens ---

    async def save_route_token(
        self, route_id: str, token: str, ttl_seconds: Optional[float] = None
    ) -> None:
        await self.set(route_id, ROUTE_TOKEN_KEY, token.encode("utf-8"), ttl_seconds)

    async def load_route_token(self, route_id: str) -> Optional[str]:
        value = await self.get(route_id, ROUTE_TOKEN_KEY)
        return value.decode("utf-8") if value is not None else None

    async def delete_route_token(self, route_id: str) -> bool:
        return await self.delete(route_id, ROUTE_TOKEN_KEY)
