"""
WebSocket endpoints for map sessions.

Provides:
- One view-sync controller per connected map
- Event ingestion (viewport, zoom, categories, pagination, selection)
- Settled view state pushed back after every event

Clients should debounce viewport events (~200 ms) before sending them.
"""

import json
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.api.websockets.map_session_handler import MapSessionHandler
from app.dependencies import get_websocket_query_service
from app.services.view_sync_controller import MapViewController

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/map")
async def websocket_map_session_endpoint(websocket: WebSocket):
    """Map session: client sends map events, server replies with view state snapshots."""
    service = get_websocket_query_service(websocket)
    if service is None:
        logger.error("Map session rejected: spatial query service not initialized")
        await websocket.close(code=1011, reason="Service unavailable")
        return

    await websocket.accept()
    session_id = uuid.uuid4().hex
    controller = MapViewController(service)
    handler = MapSessionHandler(controller, session_id=session_id)
    logger.info(f"Map session {session_id} connected")

    try:
        await websocket.send_json({
            "type": "connection_established",
            "session_id": session_id,
            "config": {
                "cluster_zoom_threshold": controller.config.cluster_zoom_threshold,
                "default_zoom": controller.config.default_zoom,
                "default_center": list(controller.config.default_center),
                "page_size": controller.config.page_size,
            },
        })
        await websocket.send_json(handler.view_state_message())

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received from map session {session_id}: {data[:200]}")
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            reply = await handler.handle_message(message)
            await websocket.send_json(reply)

    except WebSocketDisconnect:
        logger.info(f"Map session {session_id} disconnected")
    finally:
        await controller.close()
