"""Authentication endpoints backed by Supabase Auth."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from eventcraft.core.deps import (
    get_auth_client,
    get_bearer_claims,
    get_current_principal,
    get_db,
)
from eventcraft.core.errors import AuthenticationError
from eventcraft.core.rate_limit import limiter
from eventcraft.core.security import extract_bearer_token
from eventcraft.db.enums import UserType
from eventcraft.schemas.auth import (
    AuthResponse,
    MeResponse,
    Principal,
    SessionRequest,
    SigninRequest,
    SignupRequest,
    UserRead,
)
from eventcraft.schemas.provider import ProviderRead
from eventcraft.services import auth_service, provider_service
from eventcraft.services.auth_service import SupabaseAuthClient

router = APIRouter()

AUTH_RATE_LIMIT = "10/minute"


@router.post("/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(AUTH_RATE_LIMIT)
async def signup(
    request: Request,
    body: SignupRequest,
    db: Session = Depends(get_db),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
):
    """
    Create an identity-service account and its profile row.

    Providers complete their business profile afterwards via ``POST /providers``.
    """
    data = await auth_client.sign_up(body.email, body.password, body.name)
    identity_user, session = auth_service.split_auth_response(data)
    user_id = auth_service.parse_identity_user_id(identity_user)

    user = auth_service.ensure_profile(
        db, user_id, email=body.email, name=body.name, user_type=body.type
    )
    return AuthResponse(
        user=UserRead.model_validate(user),
        session=session,
        message="User created successfully",
    )


@router.post("/signin", response_model=AuthResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def signin(
    request: Request,
    body: SigninRequest,
    db: Session = Depends(get_db),
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
):
    data = await auth_client.sign_in_with_password(body.email, body.password)
    identity_user, session = auth_service.split_auth_response(data)
    user_id = auth_service.parse_identity_user_id(identity_user)

    metadata = identity_user.get("user_metadata") or {}
    user = auth_service.ensure_profile(
        db, user_id, email=identity_user.get("email") or body.email,
        name=metadata.get("name"),
    )
    auth_service.record_sign_in(db, user)
    return AuthResponse(
        user=UserRead.model_validate(user),
        session=session,
        message="Sign in successful",
    )


@router.post("/signout")
async def signout(
    request: Request,
    auth_client: SupabaseAuthClient = Depends(get_auth_client),
):
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token:
        raise AuthenticationError("Access token required")
    await auth_client.sign_out(token)
    return {"message": "Sign out successful"}


@router.post("/session", response_model=AuthResponse)
def establish_session(
    body: SessionRequest,
    claims: dict = Depends(get_bearer_claims),
    db: Session = Depends(get_db),
):
    """
    Ensure a profile exists for the token's account and return it.

    Called once after any sign-in, including OAuth redirects. Safe to repeat.
    """
    email = claims.get("email")
    if not email:
        raise AuthenticationError("Token carries no email")

    metadata = claims.get("user_metadata") or {}
    user = auth_service.ensure_profile(
        db,
        UUID(claims["sub"]),
        email=email,
        name=body.name or metadata.get("name") or metadata.get("full_name"),
        user_type=body.type,
    )
    auth_service.record_sign_in(db, user)
    return AuthResponse(
        user=UserRead.model_validate(user), session=None, message="Session established"
    )


@router.get("/me", response_model=MeResponse)
def me(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = auth_service.get_profile(db, principal.id)
    provider = None
    if principal.type == UserType.PROVIDER:
        found = provider_service.get_provider_for_user(db, principal.id)
        provider = ProviderRead.model_validate(found) if found else None
    return MeResponse(user=UserRead.model_validate(user), provider=provider)
