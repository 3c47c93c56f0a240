# skillconnect/core/error_handlers.py
import logging

import jwt
from bson.errors import InvalidId
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from skillconnect.core.config import settings
from skillconnect.core.exceptions import SkillConnectError

logger = logging.getLogger(__name__)

# Messages returned in production instead of internal error detail.
SAFE_MESSAGES = {
    "token_invalid": "Authentication failed.",
    "token_expired": "Authentication expired.",
    "duplicate_key": "Duplicate value entered.",
    "cast_error": "Resource not found.",
    "upstream": "A dependent service is unavailable. Please try again.",
    "internal": "Internal Server Error",
}


def _envelope(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


async def skillconnect_exception_handler(request: Request, exc: SkillConnectError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _envelope(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in errors]
    message = "Invalid or missing fields: " + ", ".join(f for f in fields if f) if fields else "Invalid request"
    if settings.is_production:
        return _envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, message)
    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        message,
        errors=[{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors],
    )


async def duplicate_key_exception_handler(request: Request, exc: DuplicateKeyError):
    return _envelope(status.HTTP_409_CONFLICT, SAFE_MESSAGES["duplicate_key"])


async def invalid_id_exception_handler(request: Request, exc: InvalidId):
    return _envelope(status.HTTP_404_NOT_FOUND, SAFE_MESSAGES["cast_error"])


async def jwt_exception_handler(request: Request, exc: jwt.PyJWTError):
    if isinstance(exc, jwt.ExpiredSignatureError):
        return _envelope(status.HTTP_401_UNAUTHORIZED, SAFE_MESSAGES["token_expired"])
    return _envelope(status.HTTP_401_UNAUTHORIZED, SAFE_MESSAGES["token_invalid"])


async def database_exception_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    message = SAFE_MESSAGES["upstream"] if settings.is_production else str(exc)
    return _envelope(status.HTTP_502_BAD_GATEWAY, message)


async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = SAFE_MESSAGES["internal"] if settings.is_production else (str(exc) or SAFE_MESSAGES["internal"])
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


def register_exception_handlers(app) -> None:
    app.add_exception_handler(SkillConnectError, skillconnect_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_exception_handler)
    app.add_exception_handler(InvalidId, invalid_id_exception_handler)
    app.add_exception_handler(jwt.PyJWTError, jwt_exception_handler)
    app.add_exception_handler(PyMongoError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
