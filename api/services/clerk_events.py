"""Typed Clerk webhook events.

A verified webhook body is parsed into exactly one of the event classes
below, or rejected with a PayloadValidationError. Handlers never see a
partially valid payload.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from schemas import ClerkUserPayload, UserRecord

USER_CREATED = "user.created"
USER_UPDATED = "user.updated"
USER_DELETED = "user.deleted"


class PayloadValidationError(ValueError):
    """The verified envelope is missing a required field."""


@dataclass(frozen=True)
class UserCreatedEvent:
    record: UserRecord
    type: str = USER_CREATED


@dataclass(frozen=True)
class UserUpdatedEvent:
    record: UserRecord
    type: str = USER_UPDATED


@dataclass(frozen=True)
class UserDeletedEvent:
    user_id: str
    type: str = USER_DELETED


@dataclass(frozen=True)
class UnrecognizedEvent:
    type: str
    user_id: str


ClerkEvent = UserCreatedEvent | UserUpdatedEvent | UserDeletedEvent | UnrecognizedEvent


def extract_primary_email(data: ClerkUserPayload) -> str:
    """Primary email address, else the first one listed, else empty string."""
    addresses = data.email_addresses
    primary = next(
        (
            address.email_address
            for address in addresses
            if data.primary_email_address_id is not None
            and address.id == data.primary_email_address_id
        ),
        None,
    )
    if primary:
        return primary
    if addresses and addresses[0].email_address:
        return addresses[0].email_address
    return ""


def build_display_name(first_name: str | None, last_name: str | None) -> str:
    return f"{first_name or ''} {last_name or ''}".strip()


def build_user_record(data: ClerkUserPayload) -> UserRecord:
    if not data.id:
        raise PayloadValidationError("Missing user id")

    return UserRecord(
        id=data.id,
        email=extract_primary_email(data),
        name=build_display_name(data.first_name, data.last_name),
        image=data.image_url or "",
    )


def parse_clerk_event(payload: dict[str, Any]) -> ClerkEvent:
    """Parse a verified Clerk webhook body.

    Raises:
        PayloadValidationError: ``data.id`` is missing or empty, ``data`` is
            malformed, or a ``user.created`` event has no email address.
    """
    event_type = payload.get("type")
    if not isinstance(event_type, str) or not event_type:
        event_type = "unknown"

    raw_data = payload.get("data")
    if not isinstance(raw_data, dict):
        raise PayloadValidationError("Missing user id")

    try:
        data = ClerkUserPayload.model_validate(raw_data)
    except ValidationError as e:
        raise PayloadValidationError("Invalid event data") from e

    if not data.id:
        raise PayloadValidationError("Missing user id")

    if event_type == USER_CREATED:
        record = build_user_record(data)
        if not record.email:
            raise PayloadValidationError("Missing email address")
        return UserCreatedEvent(record=record)

    if event_type == USER_UPDATED:
        return UserUpdatedEvent(record=build_user_record(data))

    if event_type == USER_DELETED:
        return UserDeletedEvent(user_id=data.id)

    return UnrecognizedEvent(type=event_type, user_id=data.id)
