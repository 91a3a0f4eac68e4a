"""
WebSocket API for collaborative editing sessions.

One connection = one participant. Messages are JSON text frames; see
collab.protocol for the message shapes.
"""

from fastapi import WebSocket, WebSocketDisconnect
import json
import logging

from collab import manager as collab_module  # Access collab_manager at runtime
from collab import protocol

logger = logging.getLogger(__name__)


async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint handler."""
    manager = collab_module.collab_manager
    if manager is None:
        logger.error("Collaboration manager not initialized!")
        await websocket.close(code=1011, reason="Server not ready")
        return

    connection = await manager.connect(websocket)
    client_id = connection.id

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))

            data = frame.get("text")
            if data is None:
                # Binary frames are not part of the protocol
                await manager.send_message(client_id, protocol.error("Invalid JSON format"))
                continue
            logger.debug(f"Raw message received from {client_id}: {data}")

            try:
                message_data = json.loads(data)
            except json.JSONDecodeError:
                await manager.send_message(client_id, protocol.error("Invalid JSON format"))
                continue

            # Handle the message; only rejections are answered
            response = await manager.handle_message(client_id, message_data)
            if response is not None:
                await manager.send_message(client_id, response)

    except WebSocketDisconnect:
        await manager.disconnect(client_id)
    except Exception:
        logger.exception(f"WebSocket error for client {client_id}")
        await manager.disconnect(client_id)
