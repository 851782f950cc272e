"""Clerk webhook endpoints."""

import json

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from svix.webhooks import Webhook, WebhookVerificationError

from core import get_logger, set_wide_event_fields
from core.config import get_settings
from core.database import (
    ConnectionCache,
    DatabaseConfigError,
    DatabaseUnavailableError,
    get_connection_cache,
)
from core.errors import WebhookError
from schemas import MessageResponse
from services.clerk_events import PayloadValidationError, parse_clerk_event
from services.webhooks_service import UnhandledEventError, handle_clerk_event

logger = get_logger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


@router.post(
    "/clerk",
    response_model=MessageResponse,
    summary="Handle Clerk webhooks",
    description=(
        "Receives Clerk webhook events for user synchronization. "
        "Validates the Svix signature and handles user.created, user.updated, "
        "and user.deleted events."
    ),
    responses={
        400: {
            "model": MessageResponse,
            "description": "Missing headers, invalid body or signature, "
            "invalid payload, or unhandled event type",
        },
        500: {
            "model": MessageResponse,
            "description": "Missing configuration or database failure",
        },
    },
)
async def clerk_webhook(
    request: Request,
    cache: ConnectionCache = Depends(get_connection_cache),
) -> MessageResponse:
    settings = get_settings()
    if not settings.clerk_webhook_signing_secret:
        logger.error("webhook.secret_not_configured")
        raise WebhookError("Webhook secret not configured", status_code=500)

    headers = {name: request.headers.get(name) or "" for name in SVIX_HEADERS}
    if not all(headers.values()):
        raise WebhookError("Missing webhook headers", status_code=400)

    svix_id = headers["svix-id"]
    set_wide_event_fields(webhook_svix_id=svix_id)

    body = await request.body()
    try:
        payload = json.loads(body)
    except (ValueError, RecursionError) as e:
        logger.warning("webhook.invalid_body", svix_id=svix_id, error=str(e))
        raise WebhookError("Invalid request body", status_code=400)
    if not isinstance(payload, dict):
        raise WebhookError("Invalid request body", status_code=400)

    try:
        wh = Webhook(settings.clerk_webhook_signing_secret)
        wh.verify(body, headers)
    except WebhookVerificationError as e:
        set_wide_event_fields(
            webhook_error="verification_failed",
            webhook_error_type=type(e).__name__,
        )
        logger.warning("webhook.verification_failed", svix_id=svix_id)
        raise WebhookError("Webhook verification failed", status_code=400)

    try:
        event = parse_clerk_event(payload)
    except PayloadValidationError as e:
        logger.warning("webhook.invalid_payload", svix_id=svix_id, error=str(e))
        raise WebhookError(str(e), status_code=400)

    set_wide_event_fields(webhook_event_type=event.type)

    try:
        await handle_clerk_event(cache, event)
    except UnhandledEventError as e:
        raise WebhookError(str(e), status_code=400)
    except DatabaseConfigError:
        logger.exception("webhook.database_not_configured")
        raise WebhookError("Database not configured", status_code=500)
    except (DatabaseUnavailableError, SQLAlchemyError):
        logger.exception("webhook.database_operation_failed", event_type=event.type)
        raise WebhookError(
            "Internal server error during database operation", status_code=500
        )

    return MessageResponse(message="Event received")
