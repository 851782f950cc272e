"""Health check endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from core.database import ConnectionCache, get_connection_cache
from core.logger import SERVICE_NAME
from schemas import HealthResponse, MessageResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check. Does not touch the database."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": MessageResponse, "description": "Database unavailable"}},
)
async def ready(
    cache: ConnectionCache = Depends(get_connection_cache),
) -> HealthResponse | JSONResponse:
    """Readiness check. Connects to the database on first call."""
    if not await cache.check_connection():
        return JSONResponse(
            status_code=503, content={"message": "Database unavailable"}
        )
    return HealthResponse(status="ready", service=SERVICE_NAME)
