"""Identity-service (Supabase Auth) client and profile bootstrap."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from eventcraft.core.config import settings
from eventcraft.core.errors import (
    AuthenticationError,
    ConflictError,
    ServiceUnavailableError,
    UpstreamServiceError,
    ValidationFailedError,
)
from eventcraft.core.structured_logging import build_log_context
from eventcraft.db.enums import UserType
from eventcraft.db.models import User

logger = logging.getLogger(__name__)


class SupabaseAuthClient:
    """
    Thin client for the GoTrue REST API behind Supabase Auth.

    Each call returns the decoded JSON body. Rejections by the identity
    service surface as validation/authentication errors carrying its message;
    transport failures and 5xx responses are upstream errors.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.supabase_auth_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.SUPABASE_ANON_KEY
        self.timeout = timeout or settings.SUPABASE_TIMEOUT_SECONDS

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {access_token or self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(
        self,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
        access_token: str | None = None,
        rejection: type = ValidationFailedError,
    ) -> dict[str, Any]:
        if not settings.SUPABASE_URL or not self.api_key:
            raise ServiceUnavailableError("Authentication service is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}{path}",
                    json=json,
                    params=params,
                    headers=self._headers(access_token),
                )
        except httpx.HTTPError as e:
            logger.warning(f"Identity service request to {path} failed: {e}")
            raise UpstreamServiceError("Authentication service unavailable")

        if response.status_code >= 500:
            logger.warning(
                f"Identity service {path} returned {response.status_code}"
            )
            raise UpstreamServiceError("Authentication service unavailable")
        if response.status_code >= 400:
            raise rejection(_error_message(response))

        if not response.content:
            return {}
        return response.json()

    async def sign_up(self, email: str, password: str, name: str) -> dict[str, Any]:
        return await self._post(
            "/signup",
            json={"email": email, "password": password, "data": {"name": name}},
        )

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        return await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            rejection=AuthenticationError,
        )

    async def sign_out(self, access_token: str) -> None:
        await self._post(
            "/logout", access_token=access_token, rejection=AuthenticationError
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Authentication request rejected"
    for key in ("msg", "error_description", "message", "error"):
        if isinstance(body.get(key), str) and body[key]:
            return body[key]
    return "Authentication request rejected"


def split_auth_response(data: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any] | None]:
    """
    Return ``(user, session)`` from a sign-up or token response.

    Sign-up returns the bare user when email confirmation is pending, and a
    session object embedding the user otherwise.
    """
    if "access_token" in data:
        user = data.get("user") or {}
        return user, data
    return data.get("user") or data, None


def ensure_profile(
    db: Session,
    user_id: UUID,
    email: str,
    name: str | None = None,
    user_type: UserType = UserType.USER,
) -> User:
    """
    Return the profile for an identity-service account, creating it if needed.

    Idempotent: an existing row is returned unchanged apart from filling a
    missing name. The account type is only applied on creation. Provider
    business profiles are created separately during onboarding.

    Raises:
        ConflictError: The email is already used by a different account
    """
    user = db.get(User, user_id)
    if user:
        if name and not user.name:
            user.name = name
            db.commit()
        return user

    user = User(
        id=user_id,
        email=email.strip().lower(),
        name=name or email.split("@")[0],
        type=UserType(user_type).value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise ConflictError("Email already registered to another account")

    logger.info("Profile created", extra=build_log_context(user_id=user_id))
    return user


def record_sign_in(db: Session, user: User) -> User:
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return user


def parse_identity_user_id(identity_user: dict[str, Any]) -> UUID:
    try:
        return UUID(str(identity_user.get("id")))
    except ValueError:
        logger.warning("Identity service returned a user without a valid id")
        raise UpstreamServiceError("Authentication service returned an invalid user")


def get_profile(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise AuthenticationError("User profile not found")
    return user
