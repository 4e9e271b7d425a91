"""
API error taxonomy and response envelopes.

Every response body is one of two shapes:
  success: {"success": true, "message": ..., "data": ..., "timestamp": ...}
  error:   {"error": true, "message": ..., "code": ..., "timestamp": ...}
"""
import logging
import traceback
from datetime import datetime
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.core.config import settings

logger = logging.getLogger(__name__)

STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "INSUFFICIENT_PERMISSIONS",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "DUPLICATE_RESOURCE",
    413: "PAYLOAD_TOO_LARGE",
}


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


def format_success(data: Any, message: Optional[str] = None) -> dict:
    return {
        "success": True,
        "message": message or "Operation completed successfully",
        "data": data,
        "timestamp": _timestamp(),
    }


def format_error(message: str, code: Optional[str] = None) -> dict:
    return {
        "error": True,
        "message": message,
        "code": code or "UNKNOWN_ERROR",
        "timestamp": _timestamp(),
    }


class ApiError(HTTPException):
    """HTTP error carrying a machine readable code"""

    def __init__(self, status_code: int, message: str, code: str, headers: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.code = code


class AuthenticationError(ApiError):
    def __init__(self, message: str = "Authentication required", code: str = "UNAUTHENTICATED"):
        super().__init__(
            status.HTTP_401_UNAUTHORIZED, message, code, headers={"WWW-Authenticate": "Bearer"}
        )


class AuthorizationError(ApiError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(status.HTTP_403_FORBIDDEN, message, "INSUFFICIENT_PERMISSIONS")


class NotFoundError(ApiError):
    def __init__(self, message: str, code: str):
        super().__init__(status.HTTP_404_NOT_FOUND, message, code)


class ConflictError(ApiError):
    def __init__(self, message: str, code: str):
        super().__init__(status.HTTP_409_CONFLICT, message, code)


class BadRequestError(ApiError):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, code)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation failed"
    first = errors[0]
    message = str(first.get("msg", "Validation failed"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    if location and first.get("type") in ("missing", "string_too_long", "string_too_short"):
        return f"{location[-1]}: {message}"
    return message


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error(exc.message, exc.code),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Endpoint not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error(message, STATUS_CODES.get(exc.status_code, "HTTP_ERROR")),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error(_validation_message(exc), "VALIDATION_ERROR"),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=format_error("Resource already exists", "DUPLICATE_RESOURCE"),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = "Internal server error" if settings.is_production else str(exc)
    body = format_error(message, "INTERNAL_ERROR")
    if not settings.is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
