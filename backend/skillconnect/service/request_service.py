# skillconnect/service/request_service.py
"""Service-request lifecycle.

    Open --accept--> Assigned --complete--> Completed
    Open --accept--> Assigned --reject-->   Cancelled
    Open --cancel--> Cancelled

Every transition is a single conditional update on the current status so two
callers racing on the same request cannot both win.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from skillconnect.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from skillconnect.db.database import BOOKINGS, SERVICE_REQUESTS, USERS
from skillconnect.models.booking import Booking, BookingStatus
from skillconnect.models.common import utcnow
from skillconnect.models.service_request import RequestStatus, ServiceRequest
from skillconnect.models.user import Role, full_name
from skillconnect.serialize import serialize_doc, serialize_list, to_object_id
from skillconnect.service.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

REQUEST_UPDATED_EVENT = "service-request-updated"
EDITABLE_FIELDS = {"name", "phone", "address", "type_of_work", "time", "date", "budget", "notes", "location"}
PAST_TENSE = {"accept": "accepted", "complete": "completed", "reject": "rejected", "cancel": "cancelled"}


async def _load(db, request_id: ObjectId) -> dict:
    doc = await db[SERVICE_REQUESTS].find_one({"_id": request_id})
    if doc is None:
        raise NotFoundError("Service request not found")
    return doc


def _status_conflict(doc: dict, action: str) -> ConflictError:
    if action == "accept" and doc.get("service_provider") is not None:
        return ConflictError("Request already accepted")
    return ConflictError(f"Request is {doc.get('status')} and cannot be {PAST_TENSE.get(action, action)}")


async def _announce(db, dispatcher: NotificationDispatcher, request: dict, title: str, message: str, meta=None):
    requester_id = request["requester"]
    await dispatcher.notify(db, requester_id, title, message, {"requestId": request["_id"], **(meta or {})})
    await dispatcher.push(str(requester_id), REQUEST_UPDATED_EVENT, serialize_doc(request))


async def create_request(db, requester: dict, data: Dict[str, Any]) -> dict:
    if requester.get("role") == Role.ADMIN.value:
        raise AuthorizationError("Admins cannot post service requests")

    missing = [f for f in ("name", "address", "phone", "type_of_work", "time") if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))

    target_provider = None
    if data.get("target_provider"):
        target_provider = to_object_id(data["target_provider"], "Provider")
        provider = await db[USERS].find_one({"_id": target_provider})
        if provider is None or provider.get("role") != Role.SERVICE_PROVIDER.value:
            raise ValidationError("Invalid service provider")
        if target_provider == requester["_id"]:
            raise ValidationError("You cannot address a request to yourself")

    doc = ServiceRequest(
        requester=requester["_id"],
        name=data["name"].strip(),
        phone=str(data["phone"]).strip(),
        address=data["address"].strip(),
        type_of_work=data["type_of_work"].strip(),
        time=data["time"],
        date=data.get("date"),
        budget=data.get("budget") or 0,
        notes=data.get("notes") or "",
        location=data.get("location"),
        target_provider=target_provider,
    ).to_mongo()
    result = await db[SERVICE_REQUESTS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Service request %s posted by %s", doc["_id"], requester["_id"])
    return doc


async def update_request(db, requester: dict, request_id, changes: Dict[str, Any]) -> dict:
    rid = to_object_id(request_id, "Service request")
    updates = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
    if not updates:
        raise ValidationError("Nothing to update")
    updates["updated_at"] = utcnow()

    doc = await db[SERVICE_REQUESTS].find_one_and_update(
        {"_id": rid, "requester": requester["_id"], "status": RequestStatus.OPEN.value},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        current = await _load(db, rid)
        if current["requester"] != requester["_id"]:
            raise AuthorizationError("Not authorized")
        raise ConflictError("Only open requests can be edited")
    return doc


async def get_request(db, user: dict, request_id) -> dict:
    doc = await _load(db, to_object_id(request_id, "Service request"))
    allowed = {doc.get("requester"), doc.get("service_provider"), doc.get("target_provider")}
    if user["_id"] not in allowed and user.get("role") != Role.ADMIN.value:
        # Providers may look at any request they could accept.
        if not (
            user.get("role") == Role.SERVICE_PROVIDER.value
            and doc["status"] == RequestStatus.OPEN.value
            and doc.get("target_provider") is None
        ):
            raise AuthorizationError("Not authorized")
    return doc


async def list_requests_for_requester(db, requester: dict) -> List[dict]:
    cursor = db[SERVICE_REQUESTS].find({"requester": requester["_id"]}).sort([("created_at", -1), ("_id", -1)])
    return serialize_list(await cursor.to_list(length=None))


async def list_assigned_to_provider(db, provider: dict) -> List[dict]:
    cursor = db[SERVICE_REQUESTS].find({"service_provider": provider["_id"]}).sort([("updated_at", -1), ("_id", -1)])
    return serialize_list(await cursor.to_list(length=None))


async def accept_request(db, provider: dict, request_id, dispatcher: NotificationDispatcher) -> Tuple[dict, dict]:
    if provider.get("role") != Role.SERVICE_PROVIDER.value:
        raise AuthorizationError("Not a provider")
    if not provider.get("verified"):
        raise AuthorizationError("Provider not verified")

    rid = to_object_id(request_id, "Service request")
    pid = provider["_id"]
    now = utcnow()
    request = await db[SERVICE_REQUESTS].find_one_and_update(
        {
            "_id": rid,
            "status": RequestStatus.OPEN.value,
            "service_provider": None,
            "requester": {"$ne": pid},
            "$or": [{"target_provider": None}, {"target_provider": pid}],
        },
        {"$set": {"status": RequestStatus.ASSIGNED.value, "service_provider": pid, "updated_at": now}},
        return_document=ReturnDocument.AFTER,
    )
    if request is None:
        current = await _load(db, rid)
        if current["requester"] == pid:
            raise AuthorizationError("You cannot accept your own request")
        target = current.get("target_provider")
        if target is not None and target != pid and current["status"] == RequestStatus.OPEN.value:
            raise AuthorizationError("This request is addressed to another provider")
        raise _status_conflict(current, "accept")

    booking = Booking(
        requester=request["requester"],
        provider=pid,
        service_request=rid,
        date=request.get("date"),
        time=request.get("time"),
    ).to_mongo()
    try:
        result = await db[BOOKINGS].insert_one(booking)
    except PyMongoError:
        # Hand the request back so it never sits Assigned without a booking
        await db[SERVICE_REQUESTS].update_one(
            {"_id": rid, "service_provider": pid, "status": RequestStatus.ASSIGNED.value},
            {"$set": {"status": RequestStatus.OPEN.value, "service_provider": None, "updated_at": utcnow()}},
        )
        logger.exception("Booking for service request %s failed, reopened", rid)
        raise
    booking["_id"] = result.inserted_id
    logger.info("Service request %s accepted by %s (booking %s)", rid, pid, booking["_id"])

    await _announce(
        db,
        dispatcher,
        request,
        "Request Accepted",
        f'Your request "{request.get("name")}" has been accepted by {full_name(provider)}',
        {"bookingId": booking["_id"]},
    )
    return request, booking


async def _provider_transition(
    db,
    provider: dict,
    request_id,
    target: RequestStatus,
    booking_status: BookingStatus,
    action: str,
    extra: Optional[Dict[str, Any]] = None,
) -> dict:
    rid = to_object_id(request_id, "Service request")
    doc = await db[SERVICE_REQUESTS].find_one_and_update(
        {"_id": rid, "service_provider": provider["_id"], "status": RequestStatus.ASSIGNED.value},
        {"$set": {"status": target.value, "updated_at": utcnow(), **(extra or {})}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        current = await _load(db, rid)
        if provider["_id"] not in (current.get("service_provider"), current.get("declined_by")):
            raise AuthorizationError(f"Only the assigned provider can {action} this request")
        raise _status_conflict(current, action)

    await db[BOOKINGS].update_one(
        {
            "service_request": rid,
            "status": {"$nin": [BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value]},
        },
        {"$set": {"status": booking_status.value, "updated_at": utcnow()}},
    )
    return doc


async def complete_request(db, provider: dict, request_id, dispatcher: NotificationDispatcher) -> dict:
    doc = await _provider_transition(
        db, provider, request_id, RequestStatus.COMPLETED, BookingStatus.COMPLETED, "complete"
    )
    await _announce(
        db, dispatcher, doc, "Service Completed",
        f'{full_name(provider)} marked "{doc.get("name")}" as completed. You can now leave a review.',
    )
    return doc


async def reject_request(db, provider: dict, request_id, dispatcher: NotificationDispatcher) -> dict:
    doc = await _provider_transition(
        db, provider, request_id, RequestStatus.CANCELLED, BookingStatus.CANCELLED, "reject",
        # A declined request keeps no provider; the decliner is remembered separately.
        extra={"service_provider": None, "declined_by": provider["_id"]},
    )
    await _announce(
        db, dispatcher, doc, "Request Declined",
        f'{full_name(provider)} declined "{doc.get("name")}". Please post a new request.',
    )
    return doc


async def cancel_request(db, requester: dict, request_id, dispatcher: NotificationDispatcher) -> dict:
    rid = to_object_id(request_id, "Service request")
    doc = await db[SERVICE_REQUESTS].find_one_and_update(
        {
            "_id": rid,
            "requester": requester["_id"],
            "status": RequestStatus.OPEN.value,
            "service_provider": None,
        },
        {"$set": {"status": RequestStatus.CANCELLED.value, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        current = await _load(db, rid)
        if current["requester"] != requester["_id"]:
            raise AuthorizationError("Not authorized")
        raise ConflictError("Request cannot be cancelled")

    target = doc.get("target_provider")
    if target is not None:
        await dispatcher.notify(
            db, target, "Request Cancelled",
            f'"{doc.get("name")}" was cancelled by the requester.', {"requestId": rid},
        )
    return doc


async def search_requests(
    db,
    skill: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort: str = "newest",
) -> Dict[str, Any]:
    """Admin listing with optional skill/status filters and pagination."""
    query: Dict[str, Any] = {}
    if skill:
        pattern = {"$regex": re.escape(skill), "$options": "i"}
        query["$or"] = [{"type_of_work": pattern}, {"notes": pattern}]
    if status:
        normalized = status[:1].upper() + status[1:].lower()
        if normalized not in {s.value for s in RequestStatus}:
            raise ValidationError(f"Invalid status: {status}")
        query["status"] = normalized

    page = max(1, page)
    limit = max(1, min(100, limit))
    direction = 1 if sort == "oldest" else -1

    total = await db[SERVICE_REQUESTS].count_documents(query)
    cursor = (
        db[SERVICE_REQUESTS]
        .find(query)
        .sort([("created_at", direction), ("_id", direction)])
        .skip((page - 1) * limit)
        .limit(limit)
    )
    requests = await cursor.to_list(length=limit)
    return {
        "count": total,
        "page": page,
        "total_pages": (total + limit - 1) // limit,
        "requests": serialize_list(requests),
    }
