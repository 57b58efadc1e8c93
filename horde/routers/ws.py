import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from horde.core.realtime import manager
from horde.core.security import user_id_from_token

router = APIRouter()
logger = logging.getLogger(__name__)


def _socket_token(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token")
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization.replace("Bearer ", "", 1)
    return None


@router.websocket("/notifications")
async def notifications_socket(websocket: WebSocket):
    token = _socket_token(websocket)
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
        return
    try:
        user_id = user_id_from_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid authentication token")
        return

    await manager.connect(user_id, websocket)
    await websocket.send_json({"event": "connection_success", "user_id": user_id})

    try:
        while True:
            message = await websocket.receive_json()
            kind = message.get("type") if isinstance(message, dict) else None
            if kind == "ping":
                await websocket.send_json({"event": "pong", "time": datetime.utcnow().isoformat()})
            elif kind == "echo":
                await websocket.send_json({
                    "event": "echo_response",
                    "message": message.get("message"),
                    "time": datetime.utcnow().isoformat(),
                })
    except WebSocketDisconnect:
        logger.info(f"Socket disconnected for user {user_id}")
    except ValueError:
        logger.warning(f"Closing socket of user {user_id} after a malformed message")
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
    finally:
        manager.disconnect(user_id, websocket)
