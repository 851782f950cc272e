"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping services free of SQL.
The caller owns the session and therefore the transaction.
"""

from repositories.user_repository import UserRepository

__all__ = [
    "UserRepository",
]
