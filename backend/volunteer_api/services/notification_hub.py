"""
Volunteer API — Notification Hub
=================================

What:  Tracks open notification WebSockets per user and pushes newly created
       notifications to them.
How:   user_id → set of sockets, mutated only from the event loop. A push to a
       socket that has gone away drops that socket; the notification itself
       is already persisted, so the client sees it on its next GET.

Close codes used by the WebSocket endpoint:
    4401  missing or invalid token
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

CLOSE_UNAUTHORIZED = 4401


class NotificationHub:
    def __init__(self):
        self._sockets: Dict[int, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self._sockets[user_id].add(websocket)
        logger.info("Notification socket opened for user %d (%d open)", user_id, len(self._sockets[user_id]))

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        sockets = self._sockets.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._sockets[user_id]

    def connection_count(self, user_id: Optional[int] = None) -> int:
        if user_id is not None:
            return len(self._sockets.get(user_id, ()))
        return sum(len(sockets) for sockets in self._sockets.values())

    async def push(self, user_id: int, payload: Dict[str, Any]) -> int:
        """Sends `payload` to every socket of `user_id`; returns how many received it."""
        delivered = 0
        for websocket in list(self._sockets.get(user_id, ())):
            try:
                await websocket.send_json(payload)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.debug("Dropping closed notification socket for user %d: %s", user_id, exc)
                self.disconnect(user_id, websocket)
        return delivered


# Process-wide hub shared by the notification routes
hub = NotificationHub()
