"""
Per-user real-time channel over WebSockets.

Every authenticated socket joins the channel of its user; `publish` fans an
event out to all of that user's open sockets.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self) -> None:
        self._channels: Dict[str, List[WebSocket]] = defaultdict(list)
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        self._channels[user_id].append(websocket)
        logger.info(f"Socket joined channel of user {user_id} ({len(self._channels[user_id])} open)")

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        sockets = self._channels.get(user_id, [])
        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            self._channels.pop(user_id, None)

    def connection_count(self, user_id: Optional[str] = None) -> int:
        if user_id is not None:
            return len(self._channels.get(user_id, []))
        return sum(len(sockets) for sockets in self._channels.values())

    async def send(self, user_id: str, message: Dict[str, Any]) -> int:
        delivered = 0
        for websocket in list(self._channels.get(user_id, [])):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping dead socket for user {user_id}: {str(e)}")
                self.disconnect(user_id, websocket)
        return delivered

    def publish(self, user_id: str, event: str, data: Any) -> None:
        """
        Push an event to a user's channel. Safe to call from synchronous
        route handlers, which run in a worker thread.
        """
        if not self._channels.get(user_id) or self._loop is None or self._loop.is_closed():
            return

        message = {"event": event, "data": data}
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            future = self._loop.create_task(self.send(user_id, message))
        else:
            future = asyncio.run_coroutine_threadsafe(self.send(user_id, message), self._loop)
        future.add_done_callback(lambda done: self._log_failure(user_id, event, done))

    @staticmethod
    def _log_failure(user_id: str, event: str, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Publishing {event} to user {user_id} failed: {error!r}")


manager = ConnectionManager()


def publish(user_id: str, event: str, data: Any) -> None:
    manager.publish(user_id, event, data)
