"""Webhook handler service for Clerk user sync events.

Redelivered and out-of-order events are expected. Each handler tolerates
the state a previous or missing delivery left behind:

- user.created for an existing ID is a no-op
- user.updated for an unknown ID creates the user
- user.deleted for an unknown ID is a no-op
"""

from enum import StrEnum

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger, set_wide_event_fields
from core.database import ConnectionCache
from repositories.user_repository import UserRepository
from schemas import UserRecord
from services.clerk_events import (
    ClerkEvent,
    UnrecognizedEvent,
    UserCreatedEvent,
    UserDeletedEvent,
    UserUpdatedEvent,
)

logger = get_logger(__name__)


class SyncOutcome(StrEnum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    UPDATED = "updated"
    CREATED_FROM_UPDATE = "created_from_update"
    DELETED = "deleted"
    ALREADY_DELETED = "already_deleted"


class UnhandledEventError(Exception):
    """The event type is not one of the user lifecycle events."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Unhandled event type: {event_type}")


async def handle_user_created(db: AsyncSession, record: UserRecord) -> SyncOutcome:
    """Handle user.created webhook event."""
    user_repo = UserRepository(db)
    if await user_repo.insert(record):
        logger.info("webhook.user.created", user_id=record.id)
        return SyncOutcome.CREATED

    logger.info("webhook.user.already_exists", user_id=record.id)
    return SyncOutcome.ALREADY_EXISTS


async def handle_user_updated(db: AsyncSession, record: UserRecord) -> SyncOutcome:
    """Handle user.updated webhook event.

    Falls back to an insert when the user was never created here. If a
    concurrent delivery inserts first, the replace is retried once.
    """
    user_repo = UserRepository(db)
    if await user_repo.replace(record):
        logger.info("webhook.user.updated", user_id=record.id)
        return SyncOutcome.UPDATED

    if await user_repo.insert(record):
        logger.info("webhook.user.created_from_update", user_id=record.id)
        return SyncOutcome.CREATED_FROM_UPDATE

    await user_repo.replace(record)
    logger.info("webhook.user.updated", user_id=record.id, retried=True)
    return SyncOutcome.UPDATED


async def handle_user_deleted(db: AsyncSession, user_id: str) -> SyncOutcome:
    """Handle user.deleted webhook event."""
    user_repo = UserRepository(db)
    if await user_repo.delete(user_id):
        logger.info("webhook.user.deleted", user_id=user_id)
        return SyncOutcome.DELETED

    logger.info("webhook.user.already_deleted", user_id=user_id)
    return SyncOutcome.ALREADY_DELETED


async def handle_clerk_event(cache: ConnectionCache, event: ClerkEvent) -> SyncOutcome:
    """Apply a verified Clerk event to the users table.

    Raises:
        UnhandledEventError: For any event type other than user.created,
            user.updated and user.deleted. The database is not touched.
        DatabaseConfigError: DATABASE_URL is not configured.
        DatabaseUnavailableError: No connection could be established.
        SQLAlchemyError: Any database failure not tolerated above.
    """
    if isinstance(event, UnrecognizedEvent):
        logger.warning("webhook.unhandled_event", event_type=event.type)
        raise UnhandledEventError(event.type)

    async with cache.session() as db:
        if isinstance(event, UserCreatedEvent):
            outcome = await handle_user_created(db, event.record)
        elif isinstance(event, UserUpdatedEvent):
            outcome = await handle_user_updated(db, event.record)
        elif isinstance(event, UserDeletedEvent):
            outcome = await handle_user_deleted(db, event.user_id)
        else:
            raise UnhandledEventError(event.type)

    set_wide_event_fields(webhook_outcome=outcome.value)
    return outcome
