from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors that map onto a client-facing HTTP status."""

    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request."


class UnauthorizedError(ServiceError):
    status_code = 401
    default_message = "Not authorized, token missing or invalid."


class ForbiddenError(ServiceError):
    status_code = 403
    default_message = "Not allowed to access this resource."


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Resource not found."


class ConflictError(ServiceError):
    status_code = 409
    default_message = "Resource already exists."


class InternalError(ServiceError):
    pass


def _error_body(message: str, **extra) -> dict:
    body = {"message": message}
    body.update(extra)
    return body


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_error_body("Invalid request payload.", details=details),
    )


def _internal_response(error: InternalError, cause: Exception) -> JSONResponse:
    # Only the exception class goes out; driver messages may echo SQL and bound values.
    return JSONResponse(
        status_code=error.status_code,
        content=_error_body(error.message, error=type(cause).__name__),
    )


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return _internal_response(InternalError("Server error while accessing the data store."), exc)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _internal_response(InternalError(), exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
