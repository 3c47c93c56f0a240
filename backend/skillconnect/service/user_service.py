# skillconnect/service/user_service.py
import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from skillconnect.core.exceptions import ConflictError, NotFoundError, ValidationError
from skillconnect.db.database import USERS
from skillconnect.models.common import utcnow
from skillconnect.models.user import Availability, Role, User, normalize_skills
from skillconnect.serialize import to_object_id
from skillconnect.service.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
REGISTRATION_FIELDS = (
    "username",
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "birthdate",
    "password",
    "confirm_password",
    "role",
)
PROFILE_FIELDS = {"username", "first_name", "last_name", "email", "phone", "address", "birthdate", "employed"}
SELF_REGISTER_ROLES = {Role.COMMUNITY_MEMBER.value, Role.SERVICE_PROVIDER.value}


def validate_passwords(password: str, confirm_password: str) -> None:
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def validate_registration(data: Dict[str, Any]) -> None:
    missing = [f for f in REGISTRATION_FIELDS if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))
    validate_passwords(data["password"], data["confirm_password"])


def resolve_role(requested: str, is_bootstrap_admin: bool) -> str:
    if is_bootstrap_admin:
        return Role.ADMIN.value
    if requested not in SELF_REGISTER_ROLES:
        raise ValidationError("Invalid role. Role must be either 'Community Member' or 'Service Provider'.")
    return requested


async def ensure_identity_available(db, username: str, email: str, phone: str) -> None:
    """Cheap pre-check; the unique indexes remain the authoritative guard."""
    by_username, by_phone, by_email = await asyncio.gather(
        db[USERS].find_one({"username": username}, {"_id": 1}),
        db[USERS].find_one({"phone": phone}, {"_id": 1}),
        db[USERS].find_one({"email": email}, {"_id": 1}),
    )
    if by_username:
        raise ConflictError("Username already exists")
    if by_phone:
        raise ConflictError("Phone number already exists")
    if by_email:
        raise ConflictError("Email already exists")


async def create_user(db, fields: Dict[str, Any]) -> dict:
    """Insert a user built from already validated fields and a hashed password."""
    fields = dict(fields)
    fields["skills"] = normalize_skills(fields.get("skills"))
    doc = User(**fields).to_mongo()
    try:
        result = await db[USERS].insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError("User already exists")
    doc["_id"] = result.inserted_id
    logger.info("Registered %s as %s", doc["username"], doc["role"])
    return doc


async def get_user(db, user_id) -> dict:
    user = await db[USERS].find_one({"_id": to_object_id(user_id, "User")})
    if user is None:
        raise NotFoundError("User not found")
    return user


async def find_by_email(db, email: str) -> Optional[dict]:
    return await db[USERS].find_one({"email": email.strip().lower()})


async def _ensure_unique_for(db, user_id, field: str, value: str, label: str) -> None:
    other = await db[USERS].find_one({field: value, "_id": {"$ne": user_id}}, {"_id": 1})
    if other:
        raise ConflictError(f"{label} already in use")


async def update_profile(
    db,
    user: dict,
    changes: Dict[str, Any],
    skills=None,
    assets: Optional[Dict[str, Any]] = None,
) -> dict:
    """Apply a partial profile edit; protected fields are silently ignored."""
    updates = {k: v for k, v in changes.items() if k in PROFILE_FIELDS and v not in (None, "")}
    if "email" in updates:
        updates["email"] = updates["email"].strip().lower()
        await _ensure_unique_for(db, user["_id"], "email", updates["email"], "Email")
    if "phone" in updates:
        await _ensure_unique_for(db, user["_id"], "phone", updates["phone"], "Phone number")
    if "username" in updates:
        await _ensure_unique_for(db, user["_id"], "username", updates["username"], "Username")
    if skills is not None:
        updates["skills"] = normalize_skills(skills)
    for key, value in (assets or {}).items():
        if value:
            updates[key] = value
    if not updates:
        return user

    updates["updated_at"] = utcnow()
    try:
        return await db[USERS].find_one_and_update(
            {"_id": user["_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        raise ConflictError("Email, phone or username already in use")


async def apply_provider(
    db,
    user: dict,
    skills,
    certificates: Iterable[str],
    dispatcher: NotificationDispatcher,
    valid_id: Optional[str] = None,
) -> dict:
    if user.get("role") == Role.ADMIN.value:
        raise ValidationError("Admins cannot apply as service providers")
    normalized = normalize_skills(skills)
    if not normalized:
        raise ValidationError("At least one skill is required")

    updates: Dict[str, Any] = {
        "role": Role.SERVICE_PROVIDER.value,
        "is_applying_provider": True,
        "skills": normalized,
        "updated_at": utcnow(),
    }
    if valid_id:
        updates["valid_id"] = valid_id
    push = {"certificates": {"$each": list(certificates)}}

    updated = await db[USERS].find_one_and_update(
        {
            "_id": user["_id"],
            "$or": [{"role": {"$ne": Role.SERVICE_PROVIDER.value}}, {"verified": {"$ne": True}}],
        },
        {"$set": updates, "$push": push},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise ConflictError("You are already a verified service provider")

    await dispatcher.notify(
        db,
        user["_id"],
        "Provider Application Received",
        "Your application is under review. An admin will schedule your verification appointment.",
    )
    return updated


def service_profile(user: dict) -> Dict[str, Any]:
    return {
        "service": user.get("service", ""),
        "service_rate": user.get("service_rate", 0),
        "service_description": user.get("service_description", ""),
        "is_online": user.get("is_online", True),
        "availability": user.get("availability", Availability.AVAILABLE.value),
    }


async def _set_fields(db, user: dict, fields: Dict[str, Any]) -> dict:
    fields["updated_at"] = utcnow()
    return await db[USERS].find_one_and_update(
        {"_id": user["_id"]}, {"$set": fields}, return_document=ReturnDocument.AFTER
    )


async def update_service_profile(
    db,
    user: dict,
    service: Optional[str] = None,
    service_rate: Optional[float] = None,
    service_description: Optional[str] = None,
) -> dict:
    fields: Dict[str, Any] = {}
    if service is not None:
        fields["service"] = service.strip()
    if service_rate is not None:
        if service_rate < 0:
            raise ValidationError("Service rate cannot be negative")
        fields["service_rate"] = float(service_rate)
    if service_description is not None:
        fields["service_description"] = service_description.strip()
    if not fields:
        raise ValidationError("Nothing to update")
    return await _set_fields(db, user, fields)


async def set_online(db, user: dict, is_online: bool) -> dict:
    return await _set_fields(db, user, {"is_online": bool(is_online)})


async def set_availability(db, user: dict, availability: str) -> dict:
    try:
        value = Availability(availability).value
    except ValueError:
        allowed = ", ".join(a.value for a in Availability)
        raise ValidationError(f"Availability must be one of: {allowed}")
    return await _set_fields(db, user, {"availability": value})
