# app/utils/auth_utils.py
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from skillconnect.core.config import settings
from skillconnect.core.exceptions import AuthenticationError


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type,
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Session token carrying the user id and role."""
    return _encode(
        {"sub": str(user["_id"]), "role": user.get("role")},
        "access",
        expires_delta or timedelta(days=settings.JWT_EXPIRE_DAYS),
    )


def create_refresh_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _encode(
        {"sub": str(user["_id"]), "role": user.get("role")},
        "refresh",
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str, expected_type: str = "access") -> dict:
    try:
        decoded = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    if decoded.get("type") != expected_type:
        raise AuthenticationError(f"Invalid token type: expected {expected_type}")
    if not decoded.get("sub"):
        raise AuthenticationError("Invalid token")
    return decoded
