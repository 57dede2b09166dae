"""FastAPI dependencies for authentication, authorization, database access
and the external service clients."""

import logging
from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from eventcraft.core.errors import AuthenticationError, ForbiddenError
from eventcraft.core.security import decode_access_token, extract_bearer_token
from eventcraft.db.enums import UserType
from eventcraft.db.session import SessionLocal
from eventcraft.schemas.auth import Principal

logger = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_bearer_claims(request: Request) -> dict:
    """
    Verify the bearer token and return its claims.

    Raises:
        AuthenticationError: Missing or invalid token
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        raise AuthenticationError("Access token required")

    try:
        claims = decode_access_token(token)
    except jwt.PyJWTError as e:
        logger.info(f"Rejected access token: {e}")
        raise AuthenticationError("Invalid or expired token")

    if not claims.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    _parse_uuid(claims["sub"])
    return claims


def get_current_principal(
    claims: dict = Depends(get_bearer_claims),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the authenticated caller to ``{id, email, type}``.

    The account type comes from the profile row, so a token whose user has
    no profile yet is rejected.

    Raises:
        AuthenticationError: Token invalid or no profile row
    """
    # Import here to avoid circular imports
    from eventcraft.db.models import User

    user = db.get(User, _parse_uuid(claims["sub"]))
    if not user:
        raise AuthenticationError("User profile not found")

    if not UserType.has_value(user.type):
        raise ForbiddenError(f"Unknown account type '{user.type}'")

    return Principal(id=user.id, email=user.email, type=UserType(user.type))


def require_user_type(*allowed: UserType):
    """
    Dependency factory restricting a route to the given account types.

    Usage:
        @router.post("/x", dependencies=[Depends(require_user_type(UserType.PROVIDER))])
    """
    def dependency(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.type not in allowed:
            raise ForbiddenError(
                f"Account type '{principal.type.value}' not permitted for this action"
            )
        return principal
    return dependency


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise AuthenticationError("Invalid or expired token")


# =============================================================================
# External service clients (overridden in tests)
# =============================================================================

def get_ai_provider():
    """Text-generation provider configured by AI_PROVIDER."""
    from eventcraft.services.ai_provider import get_configured_provider

    return get_configured_provider()


def get_billing_gateway():
    """Stripe gateway; raises ServiceUnavailableError when not configured."""
    from eventcraft.services.billing_service import get_stripe_gateway

    return get_stripe_gateway()


def get_auth_client():
    """Identity-service (Supabase Auth) REST client."""
    from eventcraft.services.auth_service import SupabaseAuthClient

    return SupabaseAuthClient()


def get_storage():
    """Object storage for uploads."""
    from eventcraft.services.storage_service import get_object_storage

    return get_object_storage()
