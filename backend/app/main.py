# app/main.py

import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Routers
from app.routes.admin import admin_router, job_fair_router
from app.routes.auth import auth_router
from app.routes.bookings import booking_router, review_router
from app.routes.chat import chat_router
from app.routes.notifications import notification_router
from app.routes.profile import profile_router
from app.routes.service_requests import service_request_router
from app.routes.ws import ws_router

from app.middleware.rate_limit import RateLimitMiddleware
from skillconnect.core.config import settings
from skillconnect.core.error_handlers import register_exception_handlers
from skillconnect.core.logging import setup_logging
from skillconnect.db.database import ensure_indexes, get_db

setup_logging()
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# ------------------------
# App init
# ------------------------
app = FastAPI(title="SkillConnect API", version="1.0.0")

# ------------------------
# CORS & rate limiting
# ------------------------
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------
# Routes
# ------------------------
app.include_router(auth_router, prefix=f"{API_PREFIX}/auth")
app.include_router(profile_router, prefix=API_PREFIX)
app.include_router(service_request_router, prefix=API_PREFIX)
app.include_router(booking_router, prefix=API_PREFIX)
app.include_router(review_router, prefix=API_PREFIX)
app.include_router(notification_router, prefix=API_PREFIX)
app.include_router(chat_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=API_PREFIX)
app.include_router(job_fair_router, prefix=API_PREFIX)
app.include_router(ws_router, prefix=API_PREFIX)

# ------------------------
# Exception handlers
# ------------------------
register_exception_handlers(app)


# ------------------------
# Health & root
# ------------------------
@app.get("/")
async def root():
    return {"message": "🚀 Welcome to SkillConnect API"}


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get(f"{API_PREFIX}/ping")
async def ping():
    return {"success": True, "message": "pong"}


# ------------------------
# DB connectivity check
# ------------------------
@app.on_event("startup")
async def startup_db_check():
    try:
        # Bounded so an unreachable database never blocks boot
        await asyncio.wait_for(ensure_indexes(get_db()), timeout=5)
        logger.info("✅ MongoDB connected successfully.")
    except Exception as e:
        logger.error("❌ MongoDB connection failed: %s", e)
