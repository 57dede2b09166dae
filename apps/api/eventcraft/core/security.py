"""Verification of identity-service (Supabase Auth) access tokens."""

from functools import lru_cache

import jwt

from eventcraft.core.config import settings


# Supabase projects sign with the legacy shared secret (HS256) or with
# asymmetric keys published at the JWKS endpoint.
ASYMMETRIC_ALGORITHMS = ["RS256", "ES256"]


@lru_cache(maxsize=1)
def _jwks_client() -> jwt.PyJWKClient:
    return jwt.PyJWKClient(settings.supabase_jwks_url, cache_keys=True)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a bearer access token.

    Checks signature, expiry and audience. Returns the claims; ``sub`` is the
    identity-service user id and ``email`` the account email.

    Raises:
        jwt.InvalidTokenError: If the token is not valid
    """
    if settings.SUPABASE_JWT_SECRET:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )

    signing_key = _jwks_client().get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=ASYMMETRIC_ALGORITHMS,
        audience=settings.SUPABASE_JWT_AUDIENCE,
    )


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
