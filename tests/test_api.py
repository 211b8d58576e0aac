"""Test the FastAPI status surface."""
import httpx
import pytest

from helpers import FakeRoute, make_config
from routekit import RouteKit, __version__
from routekit.api import create_app
from routekit.resilience import ReconnectionConfig, RetryPolicy


def client_for(sdk: RouteKit) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=create_app(sdk)),
        base_url="http://test",
    )


@pytest.mark.asyncio
async def test_health(tmp_path):
    async with RouteKit(config=make_config(tmp_path)) as sdk:
        async with client_for(sdk) as client:
            resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "version": __version__}


@pytest.mark.asyncio
async def test_route_lifecycle_over_http(tmp_path):
    async with RouteKit(config=make_config(tmp_path)) as sdk:
        await sdk.register_route(FakeRoute("r1"))
        async with client_for(sdk) as client:
            resp = await client.get("/routes")
            assert resp.json()["total"] == 1
            assert resp.json()["data"][0]["state"] == "DISCONNECTED"

            resp = await client.post("/routes/r1/connect")
            assert resp.status_code == 200
            assert resp.json()["state"] == "CONNECTED"
            assert resp.json()["connected"] is True

            resp = await client.post(
                "/routes/r1/messages", json={"conversation_id": "c1", "text": "hi"}
            )
            assert resp.status_code == 200
            assert resp.json()["text"] == "hi"

            resp = await client.post("/routes/r1/disconnect")
            assert resp.json()["state"] == "DISCONNECTED"

            resp = await client.get("/routes/r1/queue")
            assert resp.json() == {"route_id": "r1", "queued": 0, "total_queued": 0}


@pytest.mark.asyncio
async def test_error_mapping(tmp_path):
    config = make_config(
        tmp_path,
        retry_policy=RetryPolicy(max_attempts=0),
        reconnection=ReconnectionConfig(enabled=False),
    )
    async with RouteKit(config=config) as sdk:
        await sdk.register_route(FakeRoute("down", fail_forever=True))
        await sdk.register_route(FakeRoute("idle"))
        async with client_for(sdk) as client:
            assert (await client.get("/routes/ghost/state")).status_code == 404
            assert (await client.post("/routes/ghost/connect")).status_code == 404

            resp = await client.post(
                "/routes/idle/messages", json={"conversation_id": "c1", "text": "hi"}
            )
            assert resp.status_code == 409

            resp = await client.post("/routes/idle/messages", json={"text": "hi"})
            assert resp.status_code == 422

            resp = await client.post("/routes/down/connect")
            assert resp.status_code == 502

            resp = await client.get("/routes/down/state")
            assert resp.json()["state"] == "ERROR"
            assert "unreachable" in resp.json()["error"]


@pytest.mark.asyncio
async def test_cleanup_endpoint(tmp_path):
    async with RouteKit(config=make_config(tmp_path)) as sdk:
        async with client_for(sdk) as client:
            resp = await client.post("/maintenance/cleanup")
    assert resp.json() == {"deleted_events": 0}
