"""SQLAlchemy models for synced Clerk users."""

from typing import Any

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class User(Base):
    """User model - synced from Clerk via webhooks.

    ``id`` is the Clerk user ID. It is never generated locally.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    name: Mapped[str] = mapped_column(String(511), nullable=False, default="")
    image: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def to_document(self) -> dict[str, Any]:
        """Document form of the record, keyed by ``_id``."""
        return {
            "_id": self.id,
            "email": self.email,
            "name": self.name,
            "image": self.image,
        }

    def __repr__(self) -> str:
        return f"<User id={self.id!r} email={self.email!r}>"
