"""ASGI middleware and request-scoped log context.

Each HTTP request gets a "wide event": a dict that route handlers and
services enrich as they go (``set_wide_event_fields``) and that is emitted
as one canonical ``request.completed`` log line when the response finishes.
"""

from __future__ import annotations

import time
import uuid
from contextvars import ContextVar
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger

logger = get_logger(__name__)

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Returns empty dict outside a request."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_fields(**kwargs: Any) -> None:
    """Add fields to the current request's log line.

    No-op outside request context (tests, startup).
    """
    event = get_wide_event()
    if event:
        event.update(kwargs)


class RequestLoggingMiddleware:
    """Emits one ``request.completed`` log line per HTTP request.

    Adds ``x-request-id`` and ``x-request-duration-ms`` response headers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        request_id = str(uuid.uuid4())
        client = scope.get("client")

        event = init_wide_event()
        event["request_id"] = request_id
        event["http_method"] = scope.get("method", "UNKNOWN")
        event["http_path"] = scope.get("path", "")
        event["http_client_ip"] = client[0] if client else "unknown"

        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message["type"] == "http.response.start":
                response_status = int(message.get("status", 0))
                duration_ms = (time.perf_counter() - start_time) * 1000
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                headers.append(
                    (b"x-request-duration-ms", f"{duration_ms:.2f}".encode())
                )
                message["headers"] = headers

            elif message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                event["http_status_code"] = response_status
                event["duration_ms"] = round(
                    (time.perf_counter() - start_time) * 1000, 2
                )
                event["outcome"] = (
                    "success" if response_status and response_status < 400 else "error"
                )
                logger.info("request.completed", **event)

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            event["duration_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
            event["outcome"] = "exception"
            event["exception_type"] = type(exc).__name__
            logger.info("request.completed", **event)
            raise
