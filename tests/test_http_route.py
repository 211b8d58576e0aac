"""Test HTTP-backed routes and the credential store."""
import asyncio
import uuid

import httpx
import pytest

from helpers import make_config
from routekit import RouteKit, RouteState
from routekit.config import StorageConfig, sqlite_url
from routekit.database import StorageManager
from routekit.models.schemas import Message, MessageStatus
from routekit.plugins.http_route import HttpRoute
from routekit.security.credentials import CredentialStore


class EchoRoute(HttpRoute):
    platform = "echo"
    display_name = "Echo"
    base_url = "https://chat.example"

    async def send_message(self, conversation_id, text, reply_to_message_id=None):
        resp = await self.request(
            "POST",
            f"/conversations/{conversation_id}/messages",
            json={"text": text, "reply_to": reply_to_message_id},
        )
        data = resp.json()
        return Message(
            id=data["id"],
            conversation_id=conversation_id,
            sender_id="me",
            text=text,
            status=MessageStatus.SENT,
        )

    async def send_media(self, conversation_id, media, media_type, caption=None):
        raise self._unsupported("send_media")

    async def load_older_messages(self, conversation_id, before_message_id=None, limit=50):
        return []


def make_transport(health_statuses=None):
    """MockTransport answering /health with the given statuses, then 200."""
    statuses = list(health_statuses or [])
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/health":
            return httpx.Response(statuses.pop(0) if statuses else 200)
        if request.url.path.endswith("/messages"):
            return httpx.Response(201, json={"id": str(uuid.uuid4())})
        return httpx.Response(404)

    return httpx.MockTransport(handler), requests


async def open_credentials(tmp_path):
    storage = StorageManager(StorageConfig(database_url=sqlite_url(tmp_path / "creds.db")))
    await storage.init_db()
    return storage, CredentialStore(storage)


@pytest.mark.asyncio
async def test_credential_store_roundtrip(tmp_path):
    storage, creds = await open_credentials(tmp_path)
    try:
        assert await creds.load_route_token("r1") is None
        await creds.save_route_token("r1", "secret")
        assert await creds.load_route_token("r1") == "secret"
        assert await creds.exists("r1", "route_token")

        await creds.set("r1", "session", b"\x00\x01")
        assert await creds.clear_route("r1") == 2
        assert await creds.get("r1", "session") is None
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_credential_store_expiry(tmp_path):
    storage, creds = await open_credentials(tmp_path)
    try:
        await creds.save_route_token("r1", "short-lived", ttl_seconds=0.01)
        await asyncio.sleep(0.05)
        assert await creds.load_route_token("r1") is None
        assert not await creds.delete_route_token("r1")
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_http_route_connect_sends_auth(tmp_path):
    storage, creds = await open_credentials(tmp_path)
    transport, requests = make_transport()
    try:
        await creds.save_route_token("echo-1", "tok")
        route = EchoRoute("echo-1", credentials=creds, transport=transport)
        assert await route.is_authenticated()

        await route.connect()
        assert await route.is_connected()
        assert requests[0].headers["Authorization"] == "Bearer tok"

        message = await route.send_message("c1", "hello")
        assert message.text == "hello"

        await route.disconnect()
        assert not await route.is_connected()
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_http_route_unhealthy_connect_raises():
    transport, _ = make_transport(health_statuses=[503])
    route = EchoRoute("echo-1", transport=transport)
    with pytest.raises(httpx.HTTPStatusError):
        await route.connect()
    assert not await route.is_connected()
    with pytest.raises(RuntimeError):
        await route.request("GET", "/anything")


@pytest.mark.asyncio
async def test_http_route_sign_out(tmp_path):
    storage, creds = await open_credentials(tmp_path)
    try:
        await creds.save_route_token("echo-1", "tok")
        route = EchoRoute("echo-1", credentials=creds)
        await route.sign_out()
        assert not await route.is_authenticated()
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_http_route_retried_by_sdk(tmp_path):
    transport, requests = make_transport(health_statuses=[503, 502])
    async with RouteKit(config=make_config(tmp_path)) as sdk:
        route = EchoRoute("echo-1", credentials=sdk.credentials, transport=transport)
        await sdk.register_route(route)
        await sdk.connect_route("echo-1")

        assert await sdk.get_route_state("echo-1") == RouteState.CONNECTED
        assert len([r for r in requests if r.url.path == "/health"]) == 3

        message = await sdk.send_message("echo-1", "c1", "hi")
        assert message.status == MessageStatus.SENT
        await sdk.disconnect_route("echo-1")
