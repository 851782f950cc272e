"""Clerk authentication and the current-user context.

Provides:
- Clerk SDK client lifecycle management
- Session token verification with circuit breaker protection
- ``get_user_context``: the authenticated user for a request, or None

A missing user context is a normal result, not an error. Routes that need a
user check for None and respond accordingly.

Circuit Breaker:
- Opens after 5 consecutive JWKS infrastructure failures
- Fails fast for 60 seconds when open (returns None)
- Protects against Clerk outages blocking worker threads
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any

from circuitbreaker import CircuitBreakerError, circuit
from fastapi import Depends, Request

from core.config import get_settings
from core.logger import get_logger
from core.middleware import set_wide_event_fields

if TYPE_CHECKING:
    from clerk_backend_api import Clerk
    from clerk_backend_api.security.types import RequestState

logger = get_logger(__name__)

# Module-level singleton for the Clerk SDK client
_clerk_client: Clerk | None = None
_clerk_initialized: bool = False

_CIRCUIT_NAME = "clerk_auth"
_CIRCUIT_FAILURE_THRESHOLD = 5
_CIRCUIT_RECOVERY_TIMEOUT = 60

_JWKS_FAILURE_REASONS: frozenset | None = None


@dataclass(frozen=True)
class UserContext:
    """The signed-in Clerk user for the current request."""

    user_id: str
    session_id: str | None = None
    claims: dict[str, Any] = field(default_factory=dict)


class ClerkAuthUnavailable(Exception):
    """Raised when Clerk authentication infrastructure is unavailable.

    Triggers the circuit breaker when JWKS fetching fails, indicating Clerk
    infrastructure issues rather than user authentication errors.
    """

    def __init__(self, reason: object):
        self.reason = reason
        super().__init__(f"Clerk auth unavailable: {reason}")


def _get_jwks_failure_reasons() -> frozenset:
    from clerk_backend_api.security.types import TokenVerificationErrorReason

    return frozenset(
        {
            TokenVerificationErrorReason.JWK_FAILED_TO_LOAD,
            TokenVerificationErrorReason.JWK_REMOTE_INVALID,
            TokenVerificationErrorReason.JWK_FAILED_TO_RESOLVE,
            TokenVerificationErrorReason.JWK_KID_MISMATCH,
        }
    )


def get_clerk_client() -> Clerk | None:
    return _clerk_client


def init_clerk_client() -> None:
    """Initialize Clerk SDK. Auth disabled if CLERK_SECRET_KEY not set."""
    global _clerk_client, _clerk_initialized, _JWKS_FAILURE_REASONS
    _clerk_initialized = True

    settings = get_settings()
    if not settings.clerk_secret_key:
        logger.warning(
            "clerk.auth.disabled",
            reason="CLERK_SECRET_KEY not configured; user context is always empty",
        )
        return

    from clerk_backend_api import Clerk as _Clerk

    _clerk_client = _Clerk(bearer_auth=settings.clerk_secret_key)
    _JWKS_FAILURE_REASONS = _get_jwks_failure_reasons()
    logger.info("clerk.client.initialized")


def close_clerk_client() -> None:
    """Clear Clerk client reference. SDK manages its own httpx lifecycle."""
    global _clerk_client, _clerk_initialized
    _clerk_client = None
    _clerk_initialized = False


@circuit(
    failure_threshold=_CIRCUIT_FAILURE_THRESHOLD,
    recovery_timeout=_CIRCUIT_RECOVERY_TIMEOUT,
    expected_exception=(ClerkAuthUnavailable,),
    name=_CIRCUIT_NAME,
)
def _authenticate_request_with_circuit_breaker(
    clerk: Clerk, req: Request, authorized_parties: list[str]
) -> RequestState:
    """Raises ClerkAuthUnavailable on JWKS failure (triggers circuit breaker)."""
    from clerk_backend_api.security.types import AuthenticateRequestOptions

    request_state = clerk.authenticate_request(
        req,
        AuthenticateRequestOptions(authorized_parties=authorized_parties),
    )

    if not request_state.is_signed_in:
        reason = getattr(request_state, "reason", None)
        if _JWKS_FAILURE_REASONS and reason in _JWKS_FAILURE_REASONS:
            raise ClerkAuthUnavailable(reason)

    return request_state


def get_user_context(request: Request) -> UserContext | None:
    """Return the signed-in user for this request, or None.

    Note: Intentionally synchronous - JWT validation is CPU-bound (cached JWKS).
    """
    if not _clerk_initialized:
        set_wide_event_fields(auth_error="clerk_not_initialized")
        return None

    clerk = get_clerk_client()
    if clerk is None:
        # Auth disabled; logged once at startup
        return None

    try:
        request_state = _authenticate_request_with_circuit_breaker(
            clerk, request, get_settings().allowed_origins
        )
    except CircuitBreakerError:
        logger.warning("clerk.auth.circuit_open", circuit=_CIRCUIT_NAME)
        return None
    except ClerkAuthUnavailable as e:
        set_wide_event_fields(
            auth_error="clerk_infrastructure_issue",
            auth_error_reason=str(e.reason),
        )
        return None

    # Not signed in is the normal result for anonymous requests
    if not request_state.is_signed_in or request_state.payload is None:
        return None

    claims = dict(request_state.payload)
    user_id = claims.get("sub")
    if not user_id:
        return None

    set_wide_event_fields(user_id=user_id)
    return UserContext(user_id=user_id, session_id=claims.get("sid"), claims=claims)


OptionalUserContext = Annotated[UserContext | None, Depends(get_user_context)]
