"""API error types and their JSON rendering.

Every error returned to a client has the shape ``{"message": "..."}``.
Internal details stay in the server logs.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from core.logger import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
    """Error with an HTTP status and a client-safe message."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class WebhookError(ApiError):
    """Raised by the webhook route for any non-200 outcome."""


class NotAuthenticatedError(ApiError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class NotFoundError(ApiError):
    status_code = 404


async def api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, ApiError):
        return await global_exception_handler(request, exc)

    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        exc_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=500,
        content={"message": "An unexpected error occurred. Please try again."},
    )
