"""Live activity WebSocket for operator dashboards."""

import json
import uuid

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from gcx.events.broadcaster import EventBroadcaster

logger = structlog.get_logger()

router = APIRouter()


@router.websocket("/ws/logs")
async def logs_websocket(websocket: WebSocket) -> None:
    """Stream log events to a dashboard.

    Protocol:
        Client -> Server:
            {"action": "history"}
            {"action": "ping"}

        Server -> Client:
            {"type": "connected", ...}            greeting, sent once
            {"type": "log", "event": {...}}       every new event
            {"type": "history", "events": [...]}  newest first, at most 100
            {"type": "pong"}
            {"type": "error", "message": "..."}
    """
    broadcaster: EventBroadcaster = websocket.app.state.broadcaster
    conn_id = str(uuid.uuid4())
    await broadcaster.connect(websocket, conn_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            action = msg.get("action") if isinstance(msg, dict) else None

            if action == "history":
                await websocket.send_json({"type": "history", "events": broadcaster.history()})
            elif action == "ping":
                await websocket.send_json({"type": "pong"})
            else:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Unknown action: {action}",
                })

    except WebSocketDisconnect:
        await broadcaster.disconnect(conn_id)
    except Exception:
        logger.exception("events_ws_error", conn_id=conn_id)
        await broadcaster.disconnect(conn_id)
