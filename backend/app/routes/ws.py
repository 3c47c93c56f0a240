# app/routes/ws.py
import json
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from app.middleware.rbac import authenticate
from skillconnect.core.config import settings
from skillconnect.core.exceptions import SkillConnectError, ValidationError
from skillconnect.db.database import get_db
from skillconnect.service import chat_service
from skillconnect.service.booking_service import participants, require_participant
from skillconnect.service.presence import connections, presence

logger = logging.getLogger(__name__)

ws_router = APIRouter()


def _token_from_socket(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token") or websocket.cookies.get(settings.COOKIE_NAME)
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return None


def _event(event: str, data: dict) -> dict:
    return {"event": event, "data": data}


def _booking_id(data: dict) -> str:
    booking_id = (data or {}).get("booking_id")
    if not booking_id:
        raise ValidationError("booking_id is required")
    return str(booking_id)


async def relay_message(db, user_id, booking_id: str, text: str) -> dict:
    """Persist a chat message and fan it out to whoever is connected."""
    booking = await require_participant(db, booking_id, user_id)
    other_id = str(booking["provider"] if str(booking["requester"]) == str(user_id) else booking["requester"])
    other_conn = presence.lookup(other_id)

    message = await chat_service.send_message(db, user_id, booking_id, text, delivered=other_conn is not None)

    room = str(booking["_id"])
    await connections.broadcast(room, _event("new-message", message), participants(booking))
    if other_conn is not None and not connections.in_room(room, other_conn):
        await connections.send(other_conn, _event("message-notification", {"booking_id": room, "message": message}))
    return message


# ------------------------
# Client events
# ------------------------
async def _join_chat(db, user_id: str, conn_id: str, data: dict):
    booking = await require_participant(db, _booking_id(data), user_id)
    room = str(booking["_id"])
    connections.join(room, conn_id)
    messages = await chat_service.history(db, user_id, room)
    await connections.send(conn_id, _event("chat-history", {"booking_id": room, "messages": messages}))


async def _leave_chat(db, user_id: str, conn_id: str, data: dict):
    connections.leave(_booking_id(data), conn_id)


async def _send_message(db, user_id: str, conn_id: str, data: dict):
    await relay_message(db, user_id, _booking_id(data), data.get("text", ""))


async def _typing(db, user_id: str, conn_id: str, data: dict, event: str):
    booking = await require_participant(db, _booking_id(data), user_id)
    room = str(booking["_id"])
    await connections.broadcast(
        room, _event(event, {"booking_id": room, "user_id": user_id}), participants(booking), exclude_conn=conn_id
    )


async def _start_typing(db, user_id: str, conn_id: str, data: dict):
    await _typing(db, user_id, conn_id, data, "user-typing")


async def _stop_typing(db, user_id: str, conn_id: str, data: dict):
    await _typing(db, user_id, conn_id, data, "user-stopped-typing")


async def _mark_seen(db, user_id: str, conn_id: str, data: dict):
    booking_id = _booking_id(data)
    updated = await chat_service.mark_seen(db, user_id, booking_id)
    booking = await require_participant(db, booking_id, user_id)
    room = str(booking["_id"])
    await connections.broadcast(
        room, _event("messages-seen", {"booking_id": room, "user_id": user_id, "count": updated}), participants(booking)
    )


EVENT_HANDLERS = {
    "join-chat": _join_chat,
    "leave-chat": _leave_chat,
    "send-message": _send_message,
    "typing": _start_typing,
    "stop-typing": _stop_typing,
    "mark-seen": _mark_seen,
}


@ws_router.websocket("/ws")
async def realtime(websocket: WebSocket):
    db = get_db()
    try:
        user = await authenticate(db, _token_from_socket(websocket))
    except (HTTPException, SkillConnectError) as exc:
        logger.info("Rejected socket connection: %s", getattr(exc, "detail", None) or getattr(exc, "message", exc))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = str(user["_id"])
    conn_id = uuid.uuid4().hex
    await websocket.accept()
    connections.add(conn_id, user_id, websocket)
    presence.register(user_id, conn_id)
    logger.info("User %s connected (%s)", user_id, conn_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                handler = EVENT_HANDLERS.get(message.get("event"))
                if handler is None:
                    raise ValidationError(f"Unknown event: {message.get('event')}")
                await handler(db, user_id, conn_id, message.get("data") or {})
            except (ValueError, AttributeError):
                await connections.send(conn_id, _event("error", {"message": "Malformed message"}))
            except SkillConnectError as exc:
                await connections.send(conn_id, _event("error", {"message": exc.message}))
    except WebSocketDisconnect:
        pass
    finally:
        connections.remove(conn_id)
        presence.unregister(user_id, conn_id)
        logger.info("User %s disconnected (%s)", user_id, conn_id)
