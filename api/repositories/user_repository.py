"""User repository for database operations."""

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models import User
from schemas import UserRecord


class UserRepository:
    """Repository for User database operations.

    Each write is a single statement; the caller's session controls the
    transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by their ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def insert(self, record: UserRecord) -> bool:
        """Insert a new user.

        Returns:
            True if the row was inserted.
            False if a user with this ID already exists.

        Notes:
            Rolls back on IntegrityError to restore the session to a valid
            state, so nothing else should be pending in the session.
        """
        self.db.add(
            User(
                id=record.id,
                email=record.email,
                name=record.name,
                image=record.image,
            )
        )
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            return False
        return True

    async def replace(self, record: UserRecord) -> bool:
        """Overwrite email, name and image of an existing user.

        Returns:
            False if no user with this ID exists.
        """
        result = await self.db.execute(
            update(User)
            .where(User.id == record.id)
            .values(email=record.email, name=record.name, image=record.image)
        )
        return (result.rowcount or 0) > 0

    async def delete(self, user_id: str) -> bool:
        """Delete a user.

        Returns:
            False if no user with this ID exists.
        """
        result = await self.db.execute(delete(User).where(User.id == user_id))
        return (result.rowcount or 0) > 0
