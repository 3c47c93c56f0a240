# skillconnect/service/chat_service.py
"""Per-booking message threads between the requester and the provider."""
from typing import List

from skillconnect.core.exceptions import ValidationError
from skillconnect.db.database import BOOKINGS, CHAT_MESSAGES, USERS
from skillconnect.models.common import utcnow
from skillconnect.models.chat import ChatMessage, MessageStatus
from skillconnect.models.user import full_name
from skillconnect.serialize import serialize_doc, serialize_list
from skillconnect.service.booking_service import counterparty, require_participant

MAX_MESSAGE_LENGTH = 2000


async def history(db, user_id, booking_id) -> List[dict]:
    booking = await require_participant(db, booking_id, user_id)
    cursor = db[CHAT_MESSAGES].find({"booking": booking["_id"]}).sort("_id", 1)
    return serialize_list(await cursor.to_list(length=None))


async def send_message(db, user_id, booking_id, text: str, delivered: bool = False) -> dict:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")

    booking = await require_participant(db, booking_id, user_id)
    doc = ChatMessage(
        booking=booking["_id"],
        sender=booking["requester"] if str(booking["requester"]) == str(user_id) else booking["provider"],
        text=text,
        status=MessageStatus.DELIVERED if delivered else MessageStatus.SENT,
    ).to_mongo()
    result = await db[CHAT_MESSAGES].insert_one(doc)
    doc["_id"] = result.inserted_id
    return serialize_doc(doc)


async def mark_seen(db, user_id, booking_id) -> int:
    """Mark the counterparty's messages as seen by `user_id`."""
    booking = await require_participant(db, booking_id, user_id)
    reader = booking["requester"] if str(booking["requester"]) == str(user_id) else booking["provider"]
    result = await db[CHAT_MESSAGES].update_many(
        {"booking": booking["_id"], "sender": {"$ne": reader}, "status": {"$ne": MessageStatus.SEEN.value}},
        {"$set": {"status": MessageStatus.SEEN.value}, "$push": {"seen_by": {"user": reader, "at": utcnow()}}},
    )
    return result.modified_count


async def chat_list(db, user: dict) -> List[dict]:
    uid = user["_id"]
    bookings = await db[BOOKINGS].find({"$or": [{"requester": uid}, {"provider": uid}]}).sort("updated_at", -1).to_list(length=None)

    out = []
    for booking in bookings:
        other_id = counterparty(booking, uid)
        other = await db[USERS].find_one({"_id": other_id}, {"first_name": 1, "last_name": 1, "username": 1, "profile_pic": 1})
        last = await db[CHAT_MESSAGES].find({"booking": booking["_id"]}).sort("_id", -1).limit(1).to_list(length=1)
        unread = await db[CHAT_MESSAGES].count_documents(
            {"booking": booking["_id"], "sender": other_id, "status": {"$ne": MessageStatus.SEEN.value}}
        )
        out.append(
            {
                "booking_id": str(booking["_id"]),
                "booking_status": booking["status"],
                "other_user": {
                    "id": str(other_id),
                    "name": full_name(other) if other else None,
                    "profile_pic": (other or {}).get("profile_pic", ""),
                },
                "last_message": serialize_doc(last[0]) if last else None,
                "unread_count": unread,
            }
        )
    return out
