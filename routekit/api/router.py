"""RouteKit status router — route state, connection control and queue depth.

Thin HTTP layer over the RouteKit facade for dashboards and local tooling:
- Route listing and per-route state
- Connect / disconnect
- Queue depth and maintenance
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from routekit.errors import RouteNotConnected, RouteNotFound
from routekit.models.schemas import (
    QueueSizeResponse,
    RouteStateResponse,
    SendMessageRequest,
)
from routekit.sdk import RouteKit

router = APIRouter()


def get_sdk(request: Request) -> RouteKit:
    """FastAPI dependency returning the app's RouteKit instance."""
    return request.app.state.sdk


def _require_route(sdk: RouteKit, route_id: str) -> None:
    if sdk.get_route(route_id) is None:
        raise HTTPException(status_code=404, detail=f"Route not found: {route_id}")


async def _state_response(sdk: RouteKit, route_id: str) -> RouteStateResponse:
    state = await sdk.get_route_state(route_id)
    return RouteStateResponse(
        route_id=route_id,
        state=state.value,
        error=await sdk.get_route_error(route_id),
        connected=await sdk.is_route_connected(route_id),
    )


# ============================================================================
# Routes
# ============================================================================

@router.get("/routes")
async def list_routes(sdk: RouteKit = Depends(get_sdk)):
    routes = []
    for plugin in sdk.get_all_routes():
        state = await sdk.get_route_state(plugin.route_id)
        routes.append({
            "route_id": plugin.route_id,
            "platform": plugin.platform,
            "display_name": plugin.display_name,
            "state": state.value,
        })
    return {"data": routes, "total": len(routes)}


@router.get("/routes/{route_id}/state", response_model=RouteStateResponse)
async def get_route_state(route_id: str, sdk: RouteKit = Depends(get_sdk)):
    _require_route(sdk, route_id)
    return await _state_response(sdk, route_id)


@router.post("/routes/{route_id}/connect", response_model=RouteStateResponse)
async def connect_route(route_id: str, sdk: RouteKit = Depends(get_sdk)):
    try:
        await sdk.connect_route(route_id)
    except RouteNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=502, detail=f"Connect failed: {exc}")
    return await _state_response(sdk, route_id)


@router.post("/routes/{route_id}/disconnect", response_model=RouteStateResponse)
async def disconnect_route(route_id: str, sdk: RouteKit = Depends(get_sdk)):
    try:
        await sdk.disconnect_route(route_id)
    except RouteNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=502, detail=f"Disconnect failed: {exc}")
    return await _state_response(sdk, route_id)


@router.post("/routes/{route_id}/messages")
async def send_message(
    route_id: str,
    body: SendMessageRequest,
    sdk: RouteKit = Depends(get_sdk),
):
    try:
        message = await sdk.send_message(
            route_id,
            body.conversation_id,
            body.text,
            reply_to_message_id=body.reply_to_message_id,
        )
    except RouteNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RouteNotConnected as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=502, detail=f"Send failed: {exc}")
    return message.model_dump(mode="json")


# ============================================================================
# Queue & maintenance
# ============================================================================

@router.get("/routes/{route_id}/queue", response_model=QueueSizeResponse)
async def get_queue_size(route_id: str, sdk: RouteKit = Depends(get_sdk)):
    return QueueSizeResponse(
        route_id=route_id,
        queued=await sdk.get_queue_size(route_id),
        total_queued=await sdk.get_total_queue_size(),
    )


@router.post("/maintenance/cleanup")
async def cleanup(sdk: RouteKit = Depends(get_sdk)):
    deleted = await sdk.cleanup()
    return {"deleted_events": deleted}
