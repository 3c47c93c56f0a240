# app/routes/auth.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, Security, UploadFile

from app.middleware.rbac import get_current_user
from app.schemas.user import LoginSchema, RefreshSchema, TokenResponse
from app.utils.auth_utils import create_access_token, create_refresh_token, decode_token
from app.utils.b2_utils import B2AssetStore, get_asset_store
from app.utils.hash_utils import hash_password, verify_password
from skillconnect.core.config import settings
from skillconnect.core.error_messages import ErrorResponses
from skillconnect.core.exceptions import ValidationError
from skillconnect.db.database import get_db
from skillconnect.models.user import Role
from skillconnect.serialize import serialize_doc
from skillconnect.service import user_service

logger = logging.getLogger(__name__)

auth_router = APIRouter(tags=["Auth"])


def _session_response(response: Response, user: dict, message: str) -> dict:
    token = create_access_token(user)
    response.set_cookie(
        settings.COOKIE_NAME,
        token,
        max_age=settings.JWT_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="none" if settings.cookie_secure else "lax",
    )
    return {
        "success": True,
        "message": message,
        "token": token,
        "refresh_token": create_refresh_token(user),
        "user": serialize_doc(user),
    }


# ------------------------
# Register
# ------------------------
@auth_router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    response: Response,
    username: str = Form(""),
    first_name: str = Form(""),
    last_name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    address: str = Form(""),
    birthdate: str = Form(""),
    employed: Optional[str] = Form(None),
    password: str = Form(""),
    confirm_password: str = Form(""),
    role: str = Form(""),
    skills: Optional[str] = Form(None),
    valid_id: Optional[UploadFile] = File(None),
    profile_pic: Optional[UploadFile] = File(None),
    certificates: Optional[List[UploadFile]] = File(None),
    db=Depends(get_db),
    store: B2AssetStore = Depends(get_asset_store),
):
    data = {
        "username": username.strip(),
        "first_name": first_name.strip(),
        "last_name": last_name.strip(),
        "email": email.strip().lower(),
        "phone": phone.strip(),
        "address": address.strip(),
        "birthdate": birthdate.strip(),
        "password": password,
        "confirm_password": confirm_password,
        "role": role.strip(),
    }
    user_service.validate_registration(data)
    is_bootstrap_admin = bool(settings.ADMIN_EMAIL) and (
        data["email"] == settings.ADMIN_EMAIL.lower() and password == settings.ADMIN_PASSWORD
    )
    resolved_role = user_service.resolve_role(data["role"], is_bootstrap_admin)
    await user_service.ensure_identity_available(db, data["username"], data["email"], data["phone"])

    # Uploads go first so a failed upload leaves no half-registered user behind
    assets = {}
    if resolved_role == Role.SERVICE_PROVIDER.value:
        if not valid_id or not valid_id.filename:
            raise ValidationError("Valid ID is required for service providers")
        assets["valid_id"] = await store.upload(valid_id, "valid-ids", images_only=True)
    if profile_pic and profile_pic.filename:
        assets["profile_pic"] = await store.upload(profile_pic, "profile-pics", images_only=True)
    assets["certificates"] = await store.upload_many(certificates or [], "certificates")

    fields = {k: v for k, v in data.items() if k not in ("password", "confirm_password")}
    fields.update(assets)
    fields.update(
        {
            "password": hash_password(password),
            "role": resolved_role,
            "employed": employed,
            "skills": skills,
            "is_applying_provider": resolved_role == Role.SERVICE_PROVIDER.value,
        }
    )
    user = await user_service.create_user(db, fields)
    return _session_response(response, user, "✅ Registered successfully")


# ------------------------
# Login / Logout
# ------------------------
@auth_router.post("/login", response_model=TokenResponse)
async def login(data: LoginSchema, response: Response, db=Depends(get_db)):
    user = await user_service.find_by_email(db, data.email)
    if not user or not verify_password(data.password, user.get("password", "")):
        raise ErrorResponses.INVALID_CREDENTIALS
    if user.get("banned"):
        raise ErrorResponses.USER_BANNED
    logger.info("User %s logged in", user["_id"])
    return _session_response(response, user, "✅ Logged in successfully")


@auth_router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.COOKIE_NAME)
    return {"success": True, "message": "Logged out successfully"}


# ------------------------
# Refresh token
# ------------------------
@auth_router.post("/refresh", response_model=TokenResponse)
async def refresh_token(data: RefreshSchema, response: Response, db=Depends(get_db)):
    payload = decode_token(data.refresh_token, expected_type="refresh")
    user = await user_service.get_user(db, payload["sub"])
    if user.get("banned"):
        raise ErrorResponses.USER_BANNED
    return _session_response(response, user, "Token refreshed")


# ------------------------
# Get current user info
# ------------------------
@auth_router.get("/me")
async def get_current_user_info(current_user: dict = Security(get_current_user)):
    return {"success": True, "user": serialize_doc(current_user)}
