"""Error taxonomy and the FastAPI handlers that render it as JSON."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    """Base error with an HTTP status and a client-safe message."""

    status_code = 500
    message = "Server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_body(self) -> dict:
        return {"error": self.message}


class NotAuthenticatedError(TrackerError):
    """No session, bad signature, expired token or unknown user. All look the same."""

    status_code = 401
    message = "User not authenticated"


class ValidationFailedError(TrackerError):
    status_code = 400
    message = "Invalid request"

    def __init__(self, message: str | None = None, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []

    def to_body(self) -> dict:
        return {"error": self.message, "fields": self.fields}


class ApplicationNotFoundError(TrackerError):
    """Raised for both missing rows and rows owned by someone else."""

    status_code = 404
    message = "Application not found"


class UpstreamFailureError(TrackerError):
    status_code = 500
    message = "Server error"


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            # loc holds a character offset, not a field name
            if "body" not in fields:
                fields.append("body")
            continue
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if loc and loc[-1] not in fields:
            fields.append(loc[-1])
    error = ValidationFailedError("Invalid request body", fields=fields)
    return JSONResponse(status_code=error.status_code, content=error.to_body())


async def upstream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Upstream failure on %s %s", request.method, request.url.path, exc_info=exc)
    error = UpstreamFailureError()
    return JSONResponse(status_code=error.status_code, content=error.to_body())


def register_exception_handlers(app: FastAPI) -> None:
    from app.services.google_oauth import IdentityProviderError

    app.add_exception_handler(TrackerError, tracker_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, upstream_error_handler)
    app.add_exception_handler(RedisError, upstream_error_handler)
    app.add_exception_handler(IdentityProviderError, upstream_error_handler)
