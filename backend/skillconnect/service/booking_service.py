# skillconnect/service/booking_service.py
from typing import Any, Dict, List, Set

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from skillconnect.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from skillconnect.db.database import BOOKINGS, REVIEWS, USERS
from skillconnect.models.booking import PARTICIPANT_TRANSITIONS, BookingStatus, Review
from skillconnect.models.common import utcnow
from skillconnect.models.user import Role, full_name
from skillconnect.serialize import serialize_doc, serialize_list, to_object_id
from skillconnect.service.notification_service import NotificationDispatcher


def participants(booking: dict) -> Set[str]:
    return {str(booking.get("requester")), str(booking.get("provider"))}


def counterparty(booking: dict, user_id):
    return booking["provider"] if booking["requester"] == user_id else booking["requester"]


async def load_booking(db, booking_id) -> dict:
    booking = await db[BOOKINGS].find_one({"_id": to_object_id(booking_id, "Booking")})
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


async def require_participant(db, booking_id, user_id) -> dict:
    """Fresh participancy check; never cached between calls."""
    booking = await load_booking(db, booking_id)
    if str(user_id) not in participants(booking):
        raise AuthorizationError("Not authorized")
    return booking


async def list_bookings(db, user: dict) -> List[dict]:
    uid = user["_id"]
    cursor = db[BOOKINGS].find({"$or": [{"requester": uid}, {"provider": uid}]}).sort([("created_at", -1), ("_id", -1)])
    bookings = await cursor.to_list(length=None)

    people_ids = list({b["requester"] for b in bookings} | {b["provider"] for b in bookings})
    names = {}
    if people_ids:
        async for person in db[USERS].find({"_id": {"$in": people_ids}}, {"first_name": 1, "last_name": 1, "username": 1}):
            names[person["_id"]] = full_name(person)

    out = []
    for booking in bookings:
        item = serialize_doc(booking)
        item["requester_name"] = names.get(booking["requester"])
        item["provider_name"] = names.get(booking["provider"])
        out.append(item)
    return out


async def get_booking(db, user: dict, booking_id) -> dict:
    if user.get("role") == Role.ADMIN.value:
        return await load_booking(db, booking_id)
    return await require_participant(db, booking_id, user["_id"])


async def update_booking_status(
    db, user: dict, booking_id, status: str, dispatcher: NotificationDispatcher
) -> dict:
    allowed_from = PARTICIPANT_TRANSITIONS.get(status)
    if allowed_from is None:
        raise ValidationError(
            "Invalid status: bookings are completed or cancelled through their service request"
            if status in {s.value for s in BookingStatus}
            else f"Invalid status: {status}"
        )

    booking = await require_participant(db, booking_id, user["_id"])
    updated = await db[BOOKINGS].find_one_and_update(
        {"_id": booking["_id"], "status": {"$in": allowed_from}},
        {"$set": {"status": status, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        current = await load_booking(db, booking["_id"])
        raise ConflictError(f"Booking is {current['status']} and cannot move to {status}")

    await dispatcher.notify(
        db,
        counterparty(updated, user["_id"]),
        f"Booking {status}",
        f"Booking {updated['_id']} status changed to {status}",
        {"bookingId": updated["_id"]},
    )
    return updated


async def create_review(
    db, user: dict, booking_id, rating: int, comments: str, dispatcher: NotificationDispatcher
) -> dict:
    if not 1 <= int(rating) <= 5:
        raise ValidationError("Rating must be between 1 and 5")

    booking = await require_participant(db, booking_id, user["_id"])
    if booking["status"] != BookingStatus.COMPLETED.value:
        raise ConflictError("Booking not completed yet")

    review = Review(
        booking=booking["_id"],
        reviewer=user["_id"],
        reviewee=counterparty(booking, user["_id"]),
        rating=int(rating),
        comments=comments or "",
    ).to_mongo()
    try:
        result = await db[REVIEWS].insert_one(review)
    except DuplicateKeyError:
        raise ConflictError("You have already reviewed this booking")
    review["_id"] = result.inserted_id

    await dispatcher.notify(
        db,
        review["reviewee"],
        "New Review",
        f"You received a {review['rating']}-star review.",
        {"bookingId": booking["_id"], "reviewId": review["_id"]},
    )
    return review


async def reviews_for_user(db, user_id) -> Dict[str, Any]:
    uid = to_object_id(user_id, "User")
    reviews = await db[REVIEWS].find({"reviewee": uid}).sort([("created_at", -1), ("_id", -1)]).to_list(length=None)
    average = round(sum(r["rating"] for r in reviews) / len(reviews), 1) if reviews else 0
    return {"count": len(reviews), "average_rating": average, "reviews": serialize_list(reviews)}
