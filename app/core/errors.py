"""
Domain errors and their HTTP mapping.

Services raise these; the handlers registered in app.main turn them into
JSON responses of the form {"error": "..."}.

    Unauthorized    -> 401  missing credentials or role not allowed
    Forbidden       -> 403  authenticated but not permitted (executive routes, ownership)
    NotFound        -> 404
    ValidationError -> 400  malformed input, bad ObjectId, illegal transition
    InternalError   -> 500  database failure, generic message only

UpstreamDegraded is raised inside the AI client and always caught by the
verification advisor; it never reaches a handler.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"


class UpstreamDegraded(Exception):
    """
    The AI service could not produce a usable answer.

    `cause` is the red flag reported in the manual-review assessment.
    """

    SERVICE_UNAVAILABLE = "service unavailable"
    RESPONSE_UNPARSEABLE = "response unparseable"
    RATE_LIMITED = "rate limited"

    def __init__(self, cause: str, detail: str = None, raw_response: str = None):
        self.cause = cause
        self.detail = detail or cause
        self.raw_response = raw_response
        super().__init__(self.detail)


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": InternalError.default_message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": InternalError.default_message})


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
