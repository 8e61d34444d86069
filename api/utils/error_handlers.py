"""
Global Exception Handlers

Maps every exception that escapes a route to a JSON ``{error, details?}``
body with the right status code, and logs it with request context.

Design Considerations:
- Service errors carry their own status code
- Request validation failures answer 400 with per-field details
- Unexpected errors answer 500 with a generic message; the traceback is logged
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models.errors import ErrorResponse, ValidationErrorItem
from ideabox.errors import IdeaboxError

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: str,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Build a JSON error response, omitting ``details`` when absent."""
    body = ErrorResponse(error=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def add_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(IdeaboxError, service_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")


async def service_exception_handler(request: Request, exc: IdeaboxError) -> JSONResponse:
    """
    Handle service errors using the status code each error class declares.

    Args:
        request: Request that caused exception
        exc: Service error

    Returns:
        Error response with the error's message; detail is only returned
        below 500 and is logged otherwise
    """
    server_error = exc.status_code >= 500
    log_exception(request, exc, exc.status_code, include_traceback=server_error)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    details = None if server_error else exc.detail
    return error_response(exc.status_code, exc.message, details, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions raised by routes or the framework."""
    log_exception(request, exc, exc.status_code)

    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors with field-level details.

    Args:
        request: Request that caused exception
        exc: Validation exception

    Returns:
        400 response listing each invalid field
    """
    log_exception(request, exc, status.HTTP_400_BAD_REQUEST)

    validation_errors = [
        ValidationErrorItem(
            loc=[str(loc_item) for loc_item in error["loc"]],
            msg=error["msg"],
            type=error["type"],
        ).model_dump()
        for error in exc.errors()
    ]

    message = "Invalid request body" if any(e["loc"] and e["loc"][0] == "body" for e in validation_errors) \
        else "Invalid request"
    return error_response(status.HTTP_400_BAD_REQUEST, message, validation_errors)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions with a sanitized response."""
    log_exception(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, include_traceback=True)

    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def log_exception(
    request: Request,
    exc: Exception,
    status_code: int,
    include_traceback: bool = False
) -> None:
    """
    Log exception with request context and appropriate severity.

    Args:
        request: Request that caused exception
        exc: Exception instance
        status_code: HTTP status code
        include_traceback: Whether to include full traceback
    """
    if status_code >= 500:
        log_level = logging.ERROR
    elif status_code >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    error_details = {
        "status_code": status_code,
        "error_type": exc.__class__.__name__,
        "error_message": str(exc),
        "client_host": request.client.host if request.client else "unknown"
    }
    detail = getattr(exc, "detail", None)
    if detail:
        error_details["detail"] = str(detail)

    if include_traceback:
        error_details["traceback"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )

    logger.log(
        log_level,
        f"Exception during request to {request.method} {request.url.path}: {exc.__class__.__name__}",
        extra={"error_details": error_details}
    )
