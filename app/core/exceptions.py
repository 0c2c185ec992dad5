# app/core/exceptions.py

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded


class AppError(Exception):
    """
    Base class for every error the service reports to its callers.

    Each subclass fixes the machine readable `code` and the HTTP status.
    Handlers render it as {"error": code, "message": message[, "details"]}.
    """

    code: str = "APP_ERROR"
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        details: Any | None = None,
    ):
        if message is not None:
            self.message = message
        if details is not None:
            self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


# ------------------------------------------------------------
# Client errors
# ------------------------------------------------------------
class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    message = "Validation failed"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    code = "UNAUTHENTICATED"
    message = "Missing caller identity"
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(AppError):
    code = "FORBIDDEN"
    message = "Access denied"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class IllegalStateTransitionError(AppError):
    code = "ILLEGAL_STATE_TRANSITION"
    message = "Submission already finalized"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current_status, attempted: str, message: str | None = None):
        current = getattr(current_status, "value", current_status)
        super().__init__(
            message or f"Cannot {attempted} a submission in status {current}",
            details={"current_status": current, "attempted": attempted},
        )
        self.current_status = current_status


class ConcurrentModificationError(AppError):
    code = "CONCURRENT_MODIFICATION"
    message = "Submission was modified by another request, reload and retry"
    status_code = status.HTTP_409_CONFLICT


# ------------------------------------------------------------
# Downstream errors
# ------------------------------------------------------------
class DownstreamError(AppError):
    code = "DOWNSTREAM_ERROR"
    message = "A downstream service call failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class StorageError(DownstreamError):
    code = "STORAGE_ERROR"
    message = "Object storage is unavailable"


class PublicationServiceError(DownstreamError):
    code = "PUBLICATION_SERVICE_ERROR"
    message = "Publication could not be created"


# ------------------------------------------------------------
# Handler registration
# ------------------------------------------------------------
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def field_errors(errors) -> list[dict[str, str]]:
    """pydantic error list -> [{field, message}]"""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        details.append({"field": ".".join(loc) or "request", "message": err.get("msg", "invalid value")})
    return details


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit hit on {request.method} {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "RATE_LIMITED", "message": f"Too many requests: {exc.detail}"},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await app_error_handler(request, ValidationError(details=field_errors(exc.errors())))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
