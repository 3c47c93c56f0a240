# app/middleware/rbac.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from app.utils.auth_utils import decode_token
from skillconnect.core.config import settings
from skillconnect.core.error_messages import ErrorResponses
from skillconnect.core.exceptions import NotFoundError
from skillconnect.db.database import USERS, get_db
from skillconnect.models.user import Role
from skillconnect.serialize import to_object_id

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def token_from_request(request: Request, bearer: Optional[str]) -> Optional[str]:
    return request.cookies.get(settings.COOKIE_NAME) or bearer


async def authenticate(db, token: Optional[str]) -> dict:
    """Resolve a session token to a fresh user document."""
    if not token:
        raise ErrorResponses.NOT_AUTHENTICATED
    payload = decode_token(token)
    try:
        user_id = to_object_id(payload["sub"], "User")
    except NotFoundError:
        raise ErrorResponses.INVALID_TOKEN

    user = await db[USERS].find_one({"_id": user_id})
    if not user:
        raise ErrorResponses.USER_NOT_FOUND
    if user.get("banned"):
        raise ErrorResponses.USER_BANNED
    return user


async def get_current_user(request: Request, token: Optional[str] = Depends(oauth2_scheme), db=Depends(get_db)):
    return await authenticate(db, token_from_request(request, token))


async def get_current_provider(user: dict = Depends(get_current_user)):
    if user["role"] != Role.SERVICE_PROVIDER.value:
        raise ErrorResponses.PROVIDER_ONLY
    return user


async def get_current_admin(user: dict = Depends(get_current_user)):
    if user["role"] != Role.ADMIN.value:
        raise ErrorResponses.ADMIN_ONLY
    return user
