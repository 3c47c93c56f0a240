# skillconnect/service/presence.py
"""Live connection bookkeeping for the real-time channel.

Presence and room membership are process-local and never persisted: a
restart loses them and clients re-populate them on reconnect.
"""
import logging
from typing import Dict, Iterable, Optional, Protocol, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class Presence(Protocol):
    def register(self, user_id: str, conn_id: str) -> None: ...

    def lookup(self, user_id: str) -> Optional[str]: ...

    def unregister(self, user_id: str, conn_id: Optional[str] = None) -> None: ...


class InMemoryPresence:
    def __init__(self):
        self._connections: Dict[str, str] = {}

    def register(self, user_id: str, conn_id: str) -> None:
        self._connections[user_id] = conn_id

    def lookup(self, user_id: str) -> Optional[str]:
        return self._connections.get(user_id)

    def unregister(self, user_id: str, conn_id: Optional[str] = None) -> None:
        # A newer connection for the same user must survive the old one closing.
        if conn_id is not None and self._connections.get(user_id) != conn_id:
            return
        self._connections.pop(user_id, None)


class ConnectionManager:
    """Owns the open sockets and their chat-room subscriptions."""

    def __init__(self):
        self._sockets: Dict[str, WebSocket] = {}
        self._owners: Dict[str, str] = {}
        self._rooms: Dict[str, Set[str]] = {}

    def add(self, conn_id: str, user_id: str, websocket: WebSocket) -> None:
        self._sockets[conn_id] = websocket
        self._owners[conn_id] = user_id

    def remove(self, conn_id: str) -> None:
        self._sockets.pop(conn_id, None)
        self._owners.pop(conn_id, None)
        for members in self._rooms.values():
            members.discard(conn_id)
        self._rooms = {room: members for room, members in self._rooms.items() if members}

    def join(self, room: str, conn_id: str) -> None:
        self._rooms.setdefault(room, set()).add(conn_id)

    def leave(self, room: str, conn_id: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(conn_id)
        if not members:
            self._rooms.pop(room, None)

    def in_room(self, room: str, conn_id: str) -> bool:
        return conn_id in self._rooms.get(room, set())

    async def send(self, conn_id: str, payload: dict) -> bool:
        websocket = self._sockets.get(conn_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(jsonable_encoder(payload))
            return True
        except Exception:
            logger.warning("Dropping payload for connection %s", conn_id, exc_info=True)
            return False

    async def broadcast(
        self,
        room: str,
        payload: dict,
        allowed_user_ids: Iterable[str],
        exclude_conn: Optional[str] = None,
    ) -> int:
        """Send to room members whose user is still allowed in the room."""
        allowed = set(allowed_user_ids)
        sent = 0
        for conn_id in list(self._rooms.get(room, set())):
            if conn_id == exclude_conn or self._owners.get(conn_id) not in allowed:
                continue
            if await self.send(conn_id, payload):
                sent += 1
        return sent


presence = InMemoryPresence()
connections = ConnectionManager()
