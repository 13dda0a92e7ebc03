"""Chat router providing the WebSocket endpoint and a presence endpoint.

This module provides:
    - WebSocket /ws/chat: Real-time presence and messaging
    - GET /presence: Current id -> display name mapping

Every frame, in both directions, is a JSON object whose ``type`` field names
the event. Outbound frames carry their payload under ``data``.

Protocol Flow:
    1. Client connects -> Server assigns a connection id
       -> Server sends: {type: "connected", data: {connectionId}}
       -> Server broadcasts: {type: "presence_update", data: {id: name, ...}}
    2. Client sends: {type: "set_name", name}   (alias: "register")
       -> Server broadcasts: presence_update
    3. Client sends: {type: "get_users"}        (alias: "request_presence")
       -> Server replies to the requester only: presence_update
    4. Client sends: {type: "chat_message", kind, text | fileRef, targetId?}
       -> Public: every connection receives {type: "chat_message", data: {...}}
       -> Private: only the target and the sender receive it
    5. On disconnect -> Server broadcasts: presence_update
"""
import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from .hub import ChatHub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.get("/presence")
async def get_presence() -> JSONResponse:
    """Return the current presence snapshot.

    Example:
        GET /presence -> {"users": {"<connection id>": "Alice"}}
    """
    hub = ChatHub.get_instance()
    return JSONResponse({"users": dict(hub.registry.snapshot())})


@router.websocket("/ws/chat")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for presence and chat.

    Reads run in this coroutine; writes go through the connection's outbound
    queue and are flushed by a separate writer task.

    Args:
        websocket: The WebSocket connection.
    """
    hub = ChatHub.get_instance()
    manager = hub.transport

    connection_id = await manager.connect(websocket)
    writer = asyncio.create_task(manager.pump(connection_id, websocket))
    hub.on_connect(connection_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                logger.warning(f"[WS] Binary frame from {connection_id} ignored")
                continue
            try:
                data = json.loads(raw)
            except ValueError:
                logger.warning(f"[WS] Undecodable frame from {connection_id} ignored")
                continue
            if not isinstance(data, dict):
                logger.warning(f"[WS] Non-object frame from {connection_id} ignored")
                continue

            logger.debug("[WS] %s received: type=%s", connection_id, data.get("type", "?"))
            hub.on_event(connection_id, data.get("type"), data)

    except WebSocketDisconnect:
        logger.info(f"[WS] Connection {connection_id} disconnected")
    finally:
        hub.on_disconnect(connection_id)
        manager.disconnect(connection_id)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
