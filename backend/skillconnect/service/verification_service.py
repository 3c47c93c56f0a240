# skillconnect/service/verification_service.py
"""Provider verification appointments and the admin oversight actions."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from skillconnect.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from skillconnect.db.database import JOB_FAIRS, USERS, VERIFICATION_APPOINTMENTS
from skillconnect.models.common import utcnow
from skillconnect.models.user import Availability, Role
from skillconnect.models.verification import (
    TERMINAL_APPOINTMENT_STATUSES,
    AppointmentResult,
    AppointmentStatus,
    JobFair,
    VerificationAppointment,
    parse_appointment_status,
)
from skillconnect.serialize import serialize_list, to_object_id
from skillconnect.service.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

PUBLIC_PROVIDER_FIELDS = {
    "first_name": 1,
    "last_name": 1,
    "skills": 1,
    "service": 1,
    "service_rate": 1,
    "availability": 1,
    "profile_pic": 1,
    "is_online": 1,
    "created_at": 1,
}


async def _load_user(db, user_id) -> dict:
    user = await db[USERS].find_one({"_id": to_object_id(user_id, "User")})
    if user is None:
        raise NotFoundError("User not found")
    return user


async def mark_verified(db, user_id) -> Optional[dict]:
    """Flip `verified` false -> true; returns None when it was already true."""
    return await db[USERS].find_one_and_update(
        {"_id": to_object_id(user_id, "User"), "verified": False},
        {"$set": {"verified": True, "is_applying_provider": False, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


async def schedule_appointment(
    db,
    admin: dict,
    provider_id,
    appointment_date: datetime,
    location: str,
    dispatcher: NotificationDispatcher,
) -> dict:
    provider = await _load_user(db, provider_id)
    if provider.get("role") != Role.SERVICE_PROVIDER.value:
        raise ValidationError("User has not applied as a service provider")
    if provider.get("verified"):
        raise ConflictError("Provider is already verified")

    doc = VerificationAppointment(
        provider=provider["_id"],
        scheduled_by=admin["_id"],
        appointment_date=appointment_date,
        location=location or "",
    ).to_mongo()
    result = await db[VERIFICATION_APPOINTMENTS].insert_one(doc)
    doc["_id"] = result.inserted_id

    await dispatcher.notify(
        db,
        provider["_id"],
        "Verification Appointment Scheduled",
        f"Your verification appointment is scheduled on {appointment_date.isoformat()}",
        {"apptId": doc["_id"]},
    )
    return doc


async def update_appointment(
    db,
    appointment_id,
    dispatcher: NotificationDispatcher,
    status: Optional[str] = None,
    remarks: Optional[str] = None,
    result: Optional[str] = None,
) -> dict:
    updates: Dict[str, Any] = {"updated_at": utcnow()}
    try:
        if status:
            updates["status"] = parse_appointment_status(status).value
        if result:
            updates["result"] = AppointmentResult(result).value
    except ValueError as exc:
        raise ValidationError(str(exc))
    if remarks:
        updates["remarks"] = remarks

    appt_id = to_object_id(appointment_id, "Appointment")
    appt = await db[VERIFICATION_APPOINTMENTS].find_one_and_update(
        {"_id": appt_id, "status": {"$nin": list(TERMINAL_APPOINTMENT_STATUSES)}},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if appt is None:
        current = await db[VERIFICATION_APPOINTMENTS].find_one({"_id": appt_id})
        if current is None:
            raise NotFoundError("Appointment not found")
        raise ConflictError(f"Appointment is already {current['status']}")

    if appt["status"] == AppointmentStatus.COMPLETED.value and appt.get("result") == AppointmentResult.PASSED.value:
        provider = await mark_verified(db, appt["provider"])
        if provider is not None:
            logger.info("Provider %s verified through appointment %s", appt["provider"], appt["_id"])
            await dispatcher.notify(
                db,
                provider["_id"],
                "Verification Completed",
                "Your account is now verified as a Service Provider.",
                {"apptId": appt["_id"]},
            )
    return appt


async def list_appointments(db, provider_id=None) -> List[dict]:
    query = {}
    direction = 1
    if provider_id is not None:
        query["provider"] = to_object_id(provider_id, "Provider")
        direction = -1
    cursor = db[VERIFICATION_APPOINTMENTS].find(query).sort("appointment_date", direction)
    return serialize_list(await cursor.to_list(length=None))


async def delete_appointment(db, appointment_id) -> None:
    result = await db[VERIFICATION_APPOINTMENTS].delete_one({"_id": to_object_id(appointment_id, "Appointment")})
    if result.deleted_count == 0:
        raise NotFoundError("Appointment not found")


async def pending_applications(db) -> List[dict]:
    cursor = db[USERS].find(
        {"role": Role.SERVICE_PROVIDER.value, "verified": False, "is_applying_provider": True},
        {"password": 0},
    )
    return serialize_list(await cursor.to_list(length=None))


async def verify_user(db, user_id) -> dict:
    await _load_user(db, user_id)
    user = await mark_verified(db, user_id)
    if user is None:
        raise ConflictError("User is already verified")
    return user


async def ban_user(db, user_id) -> dict:
    user = await _load_user(db, user_id)
    if user.get("role") == Role.ADMIN.value:
        raise AuthorizationError("Cannot ban another admin")
    return await db[USERS].find_one_and_update(
        {"_id": user["_id"]},
        {
            "$set": {
                "banned": True,
                "verified": False,
                "availability": Availability.NOT_AVAILABLE.value,
                "updated_at": utcnow(),
            }
        },
        return_document=ReturnDocument.AFTER,
    )


async def list_users(db) -> List[dict]:
    cursor = db[USERS].find({}, {"password": 0}).sort([("created_at", -1), ("_id", -1)])
    return serialize_list(await cursor.to_list(length=None))


async def list_verified_providers(db) -> List[dict]:
    cursor = db[USERS].find(
        {"role": Role.SERVICE_PROVIDER.value, "verified": True, "banned": {"$ne": True}},
        PUBLIC_PROVIDER_FIELDS,
    )
    return serialize_list(await cursor.to_list(length=None))


async def create_job_fair(db, admin: dict, data: Dict[str, Any]) -> dict:
    missing = [f for f in ("title", "date", "location") if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))
    doc = JobFair(created_by=admin["_id"], **data).to_mongo()
    result = await db[JOB_FAIRS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def latest_job_fair(db) -> dict:
    fairs = await db[JOB_FAIRS].find().sort([("created_at", -1), ("_id", -1)]).limit(1).to_list(length=1)
    if not fairs:
        raise NotFoundError("No job fair found")
    return fairs[0]
