# skillconnect/service/notification_service.py
import logging
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from skillconnect.core.exceptions import NotFoundError
from skillconnect.db.database import NOTIFICATIONS
from skillconnect.models.notification import Notification
from skillconnect.serialize import serialize_doc, serialize_list, to_object_id
from skillconnect.service.presence import ConnectionManager, Presence, connections, presence

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Persists lifecycle notifications and pushes them to live connections.

    Both steps fail open: a notification never blocks the action that
    triggered it.
    """

    def __init__(self, presence: Presence, connections: ConnectionManager):
        self.presence = presence
        self.connections = connections

    async def notify(
        self,
        db,
        user_id,
        title: str,
        message: str,
        meta: Optional[Dict[str, Any]] = None,
    ) -> Optional[dict]:
        doc = Notification(
            user=to_object_id(user_id, "User"),
            title=title,
            message=message,
            meta={k: str(v) for k, v in (meta or {}).items()},
        ).to_mongo()
        try:
            result = await db[NOTIFICATIONS].insert_one(doc)
        except PyMongoError:
            logger.exception("Could not persist notification %r for user %s", title, user_id)
            return None
        doc["_id"] = result.inserted_id
        record = serialize_doc(doc)
        await self.push(str(user_id), "new-notification", record)
        return record

    async def push(self, user_id: str, event: str, data: dict) -> bool:
        conn_id = self.presence.lookup(user_id)
        if conn_id is None:
            return False
        return await self.connections.send(conn_id, {"event": event, "data": data})


dispatcher = NotificationDispatcher(presence, connections)


def get_dispatcher() -> NotificationDispatcher:
    return dispatcher


async def list_notifications(db, user_id, unread_only: bool = False, limit: int = 100) -> List[dict]:
    query: Dict[str, Any] = {"user": to_object_id(user_id, "User")}
    if unread_only:
        query["read"] = False
    docs = await db[NOTIFICATIONS].find(query).sort([("created_at", -1), ("_id", -1)]).to_list(limit)
    return serialize_list(docs)


async def mark_read(db, user_id, notification_id) -> dict:
    doc = await db[NOTIFICATIONS].find_one_and_update(
        {"_id": to_object_id(notification_id, "Notification"), "user": to_object_id(user_id, "User")},
        {"$set": {"read": True}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise NotFoundError("Notification not found")
    return serialize_doc(doc)


async def mark_all_read(db, user_id) -> int:
    result = await db[NOTIFICATIONS].update_many(
        {"user": to_object_id(user_id, "User"), "read": False},
        {"$set": {"read": True}},
    )
    return result.modified_count
