"""
PrintDesk - Error Handling

Every rejection leaves the API as the same JSON envelope:

    {"error": "not_found", "message": "Order 42 not found",
     "status_code": 404, "request_id": "ab12cd34"}

Services raise the PrintDeskError subclasses below; FastAPI/Starlette errors
and anything unexpected are folded into the same shape by the handlers
registered in setup_error_handlers().
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .middleware import get_request_id

logger = logging.getLogger(__name__)


class ErrorDetail(BaseModel):
    field: str | None = None
    message: str
    code: str | None = None


class ErrorResponse(BaseModel):
    """Wire shape of every non-2xx body."""

    error: str
    message: str
    status_code: int
    request_id: str | None = None
    details: list[ErrorDetail] | None = None


# Machine-readable codes carried in ErrorResponse.error
ERROR_VALIDATION = "validation_error"
ERROR_NOT_FOUND = "not_found"
ERROR_UNAUTHORIZED = "unauthorized"
ERROR_FORBIDDEN = "forbidden"
ERROR_BAD_REQUEST = "bad_request"
ERROR_CONFLICT = "conflict"
ERROR_INTERNAL = "internal_error"
ERROR_UPSTREAM = "upstream_error"
ERROR_CONFIGURATION = "configuration_error"

_CODE_FOR_STATUS = {
    400: ERROR_BAD_REQUEST,
    401: ERROR_UNAUTHORIZED,
    403: ERROR_FORBIDDEN,
    404: ERROR_NOT_FOUND,
    409: ERROR_CONFLICT,
    502: ERROR_UPSTREAM,
    503: ERROR_CONFIGURATION,
}


class PrintDeskError(Exception):
    """
    Base class for errors raised by PrintDesk services.

    Subclasses pin ``error_code`` and ``status_code``; callers only pass the
    message (and, for validation failures, optional field details).
    """

    error_code = ERROR_INTERNAL
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None, details: list[ErrorDetail] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ConfigurationError(PrintDeskError):
    """Object store, document store or order source is not set up. Not retryable."""

    error_code = ERROR_CONFIGURATION
    status_code = 503
    default_message = "Required capability is not configured"


class AuthenticationError(PrintDeskError):
    error_code = ERROR_UNAUTHORIZED
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(PrintDeskError):
    error_code = ERROR_FORBIDDEN
    status_code = 403
    default_message = "Forbidden"


class ValidationError(PrintDeskError):
    """Bad input: unknown stage, illegal transition, missing key or filename."""

    error_code = ERROR_VALIDATION
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(PrintDeskError):
    error_code = ERROR_NOT_FOUND
    status_code = 404
    default_message = "Resource not found"


class UpstreamError(PrintDeskError):
    """S3, Supabase or WooCommerce failed. The message is safe to show clients."""

    error_code = ERROR_UPSTREAM
    status_code = 502
    default_message = "Upstream service failed"


def create_error_response(
    status_code: int,
    error: str,
    message: str,
    details: list[ErrorDetail] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        status_code=status_code,
        request_id=get_request_id() or None,
        details=details,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


async def printdesk_exception_handler(request: Request, exc: PrintDeskError) -> JSONResponse:
    # Client mistakes are routine; only server-side failures are errors.
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "%s %s rejected with %s: %s",
        request.method,
        request.url.path,
        exc.error_code,
        exc.message,
        extra={"request_id": get_request_id(), "status_code": exc.status_code},
    )

    challenge = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return create_error_response(
        exc.status_code, exc.error_code, exc.message, details=exc.details, headers=challenge
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Re-wrap plain HTTPException (404 routes, 405 methods, ...) in the envelope."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed with HTTP %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
            extra={"request_id": get_request_id(), "status_code": exc.status_code},
        )

    detail = exc.detail
    message = detail.get("message", str(detail)) if isinstance(detail, dict) else str(detail)
    return create_error_response(
        exc.status_code,
        _CODE_FOR_STATUS.get(exc.status_code, ERROR_INTERNAL),
        message,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body/query schema failures become 400 with one detail per offending field."""
    details = [
        ErrorDetail(
            field=".".join(map(str, problem.get("loc", ()))) or None,
            message=problem.get("msg", "Invalid value"),
            code=problem.get("type"),
        )
        for problem in exc.errors()
    ]
    logger.warning(
        "%s %s failed validation (%d problems)",
        request.method,
        request.url.path,
        len(details),
        extra={"request_id": get_request_id()},
    )
    return create_error_response(
        status.HTTP_400_BAD_REQUEST, ERROR_VALIDATION, "Request validation failed", details=details
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, tell the client nothing specific."""
    logger.error(
        "Unhandled %s on %s %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        extra={"request_id": get_request_id()},
        exc_info=exc,
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ERROR_INTERNAL,
        "An unexpected error occurred. Please try again later.",
    )


def setup_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PrintDeskError, printdesk_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
