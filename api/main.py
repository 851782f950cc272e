"""FastAPI application for the Clerk user sync API."""

from contextlib import asynccontextmanager

import fastapi
from fastapi.middleware.cors import CORSMiddleware

# Registers the tables on Base.metadata before the first connection
import models  # noqa: F401
from core.auth import close_clerk_client, init_clerk_client
from core.config import get_settings
from core.database import ConnectionCache
from core.errors import ApiError, api_error_handler, global_exception_handler
from core.logger import configure_logging, get_logger
from core.middleware import RequestLoggingMiddleware
from routes import health_router, users_router, webhooks_router

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Create the connection cache at startup, dispose it on shutdown.

    The database itself is not contacted here; the first request that
    needs it opens the connection.
    """
    app.state.connection_cache = ConnectionCache()
    init_clerk_client()
    logger.info("init.complete")

    try:
        yield
    finally:
        await app.state.connection_cache.dispose()
        close_clerk_client()


_settings = get_settings()

app = fastapi.FastAPI(
    title="Clerk User Sync API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.enable_docs or _settings.debug else None,
    redoc_url="/redoc" if _settings.enable_docs or _settings.debug else None,
    openapi_url=("/openapi.json" if _settings.enable_docs or _settings.debug else None),
)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

if _settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["X-Request-Duration-Ms", "X-Request-Id"],
        max_age=600,
    )

# Outermost, so the canonical log line covers every request
app.add_middleware(RequestLoggingMiddleware)

app.include_router(health_router)
app.include_router(users_router)
app.include_router(webhooks_router)
