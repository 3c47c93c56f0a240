# skillconnect/db/database.py
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from skillconnect.core.config import settings

logger = logging.getLogger(__name__)

USERS = "users"
SERVICE_REQUESTS = "service_requests"
BOOKINGS = "bookings"
REVIEWS = "reviews"
NOTIFICATIONS = "notifications"
CHAT_MESSAGES = "chat_messages"
VERIFICATION_APPOINTMENTS = "verification_appointments"
JOB_FAIRS = "job_fairs"

_client: Optional[AsyncIOMotorClient] = None
_database = None


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(settings.MONGO_URL)
    return _client


def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency returning the active database handle."""
    global _database
    if _database is None:
        _database = get_client()[settings.MONGO_DB_NAME]
    return _database


def use_database(database) -> None:
    """Install another database handle (e.g. an in-memory one in tests)."""
    global _database
    _database = database


async def ensure_indexes(db) -> None:
    users = db[USERS]
    await users.create_index("username", unique=True)
    await users.create_index("email", unique=True)
    await users.create_index("phone", unique=True)
    await users.create_index([("role", ASCENDING), ("verified", ASCENDING)])

    await db[SERVICE_REQUESTS].create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    await db[SERVICE_REQUESTS].create_index("requester")
    await db[SERVICE_REQUESTS].create_index("service_provider")

    await db[BOOKINGS].create_index([("requester", ASCENDING), ("provider", ASCENDING), ("status", ASCENDING)])
    await db[BOOKINGS].create_index("service_request", unique=True)

    await db[REVIEWS].create_index([("booking", ASCENDING), ("reviewer", ASCENDING)], unique=True)
    await db[REVIEWS].create_index("reviewee")

    await db[NOTIFICATIONS].create_index([("user", ASCENDING), ("created_at", DESCENDING)])
    await db[CHAT_MESSAGES].create_index([("booking", ASCENDING), ("_id", ASCENDING)])
    await db[VERIFICATION_APPOINTMENTS].create_index([("provider", ASCENDING), ("appointment_date", ASCENDING)])
    logger.info("MongoDB indexes ensured.")
