"""Authentication-related Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from eventcraft.db.enums import UserType
from eventcraft.schemas.provider import ProviderRead


class Principal(BaseModel):
    """
    Authenticated caller, resolved from the bearer token.

    ``type`` comes from the profile row, not from the token.
    """
    id: UUID
    email: str
    type: UserType


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    type: UserType = UserType.USER


class SigninRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class SessionRequest(BaseModel):
    """Profile fields supplied when establishing a session after OAuth."""
    name: str | None = Field(None, max_length=255)
    type: UserType = UserType.USER


class UserRead(BaseModel):
    id: UUID
    name: str
    email: str
    type: UserType
    avatar_url: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Profile plus the identity-service session (tokens) as returned by it."""
    user: UserRead
    session: dict[str, Any] | None = None
    message: str


class MeResponse(BaseModel):
    user: UserRead
    provider: ProviderRead | None = None
