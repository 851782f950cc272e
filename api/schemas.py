"""Pydantic schemas for API request/response validation."""

from pydantic import BaseModel, ConfigDict, Field


class ClerkEmailAddress(BaseModel):
    """One entry of a Clerk user's ``email_addresses`` list."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    email_address: str | None = None


class ClerkUserPayload(BaseModel):
    """Clerk webhook ``data`` for user events (only the fields we use)."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    email_addresses: list[ClerkEmailAddress] = Field(default_factory=list)
    primary_email_address_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None


class UserRecord(BaseModel):
    """Fields of the ``users`` row derived from a Clerk user payload."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    name: str
    image: str


class MessageResponse(BaseModel):
    """Body of every webhook response and of every error response."""

    message: str


class UserResponse(BaseModel):
    """A synced user record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    image: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
