"""User endpoints."""

from fastapi import APIRouter, Depends

from core.auth import OptionalUserContext
from core.database import ConnectionCache, get_connection_cache
from core.errors import NotAuthenticatedError, NotFoundError
from repositories.user_repository import UserRepository
from schemas import MessageResponse, UserResponse

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    responses={
        401: {"model": MessageResponse, "description": "Not signed in"},
        404: {"model": MessageResponse, "description": "User not synced yet"},
    },
)
async def get_current_user(
    user: OptionalUserContext,
    cache: ConnectionCache = Depends(get_connection_cache),
) -> UserResponse:
    """Return the synced record for the signed-in user."""
    if user is None:
        raise NotAuthenticatedError()

    async with cache.session() as db:
        record = await UserRepository(db).get_by_id(user.user_id)

    if record is None:
        raise NotFoundError("User not found")

    return UserResponse.model_validate(record)
