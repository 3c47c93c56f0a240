# skillconnect/core/error_messages.py
from fastapi import HTTPException, status


class ErrorResponses:
    INVALID_CREDENTIALS = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email or password!"
    )
    INVALID_TOKEN = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
    )
    NOT_AUTHENTICATED = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized. Please log in first."
    )
    USER_NOT_FOUND = HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
    )
    USER_BANNED = HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail="This account has been banned"
    )
    ADMIN_ONLY = HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail="Admin access only"
    )
    PROVIDER_ONLY = HTTPException(
        status_code=status.HTTP_403_FORBIDDEN, detail="Service provider access only"
    )
    TOO_MANY_REQUESTS = HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests, please try again later.",
    )
