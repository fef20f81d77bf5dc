"""
Error Handling
==============

ApiError and the exception handlers that turn every failure into the
{"error": {"message", "status"}} envelope.
"""

from typing import Any, Dict, Optional
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from html2img.config.logging import get_logger
from html2img.config.settings import get_settings
from html2img.core.rendering.browser import BrowserLaunchError
from html2img.core.rendering.capture import RenderError, RenderTimeoutError
from html2img.models.schemas import ErrorDetail, ErrorResponse

logger = get_logger(__name__)

TIMEOUT_MESSAGE = "Operation timed out. Check selectors or simplify content."


class ApiError(Exception):
    """Error carrying the HTTP status it should be reported with."""

    def __init__(self, message: str, status: int = 500, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details


def error_response(
    message: str,
    status: int,
    details: Optional[Dict[str, Any]] = None,
    exc: Optional[BaseException] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build the JSON error envelope."""
    stack = None
    if exc is not None and get_settings().include_stack_traces:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    body = ErrorResponse(
        error=ErrorDetail(message=message, status=status, details=details, stack=stack)
    )
    return JSONResponse(
        status_code=status,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def validation_message(exc: RequestValidationError) -> str:
    """Reduce a validation failure to the message of its first violation."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    location = tuple(part for part in first.get("loc", ()) if part != "body")

    if first.get("type") == "json_invalid":
        return "Request body is not valid JSON"
    if first.get("type") == "missing" and not location:
        # No body at all: the first thing missing is the HTML
        return "HTML content is required"

    message = str(first.get("msg", "Invalid request"))
    if first.get("type") == "value_error":
        return message.removeprefix("Value error, ")

    field = ".".join(str(part) for part in location)
    return f"{field}: {message}" if field else message


def _log_error(request: Request, status: int, message: str, **extra: Any) -> None:
    log = logger.error if status >= 500 else logger.warning
    log(
        "Request failed",
        status=status,
        message=message,
        path=request.url.path,
        method=request.method,
        **extra,
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    _log_error(request, exc.status, exc.message, details=exc.details)
    headers = None
    if exc.status == 429 and exc.details and "retryAfter" in exc.details:
        headers = {"Retry-After": str(exc.details["retryAfter"])}
    return error_response(exc.message, exc.status, exc.details, exc=exc, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = validation_message(exc)
    _log_error(request, 400, message)
    return error_response(message, 400)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Not found: {request.url.path}"
    else:
        message = str(exc.detail)
    _log_error(request, exc.status_code, message)
    return error_response(message, exc.status_code, headers=getattr(exc, "headers", None))


async def render_timeout_handler(request: Request, exc: RenderTimeoutError) -> JSONResponse:
    _log_error(request, 408, str(exc))
    return error_response(TIMEOUT_MESSAGE, 408, exc=exc)


async def render_error_handler(request: Request, exc: Exception) -> JSONResponse:
    _log_error(request, 500, str(exc))
    return error_response(str(exc), 500, exc=exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exception=str(exc),
        path=request.url.path,
        exc_info=exc,
    )
    return error_response("Internal server error", 500, exc=exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error envelope handlers to an application."""
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RenderTimeoutError, render_timeout_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RenderError, render_error_handler)
    app.add_exception_handler(BrowserLaunchError, render_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
