"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, created fresh for each test
- Profile/provider factories and bearer tokens signed like the identity service's
- HTTPX AsyncClients for anonymous, user and provider callers
"""
import os
import time
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

# Must be set before the app (and its settings) are imported
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["ENV"] = "test"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-at-least-32-bytes"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_PRICE_ID"] = "price_test_default"
os.environ["SENTRY_DSN"] = ""

import jwt
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from eventcraft.core.config import settings
from eventcraft.core.deps import get_db
from eventcraft.core.rate_limit import limiter
from eventcraft.db.base import Base
from eventcraft.db.enums import SubscriptionStatus, UserType
from eventcraft.db.models import Provider, User
from eventcraft.db.session import SessionLocal, engine
from eventcraft.main import app


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates all tables on the shared in-memory connection and drops them
    afterwards, so app code can commit freely.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    def _make(user_type: UserType = UserType.USER, **fields) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            id=uuid.uuid4(),
            email=fields.pop("email", f"{user_type.value}-{suffix}@test.com"),
            name=fields.pop("name", f"Test {user_type.value.title()}"),
            type=user_type.value,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture(scope="function")
def make_provider(db: Session, make_user) -> Callable[..., Provider]:
    """Factory for visible (active, subscribed) providers unless told otherwise."""
    def _make(**fields) -> Provider:
        owner = fields.pop("user", None) or make_user(UserType.PROVIDER)
        provider = Provider(
            id=uuid.uuid4(),
            user_id=owner.id,
            business_name=fields.pop("business_name", "Test Business"),
            provider_type=fields.pop("provider_type", "catering"),
            location_city=fields.pop("location_city", "Toronto"),
            location_province=fields.pop("location_province", "ON"),
            description=fields.pop("description", ""),
            tags=fields.pop("tags", []),
            is_active=fields.pop("is_active", True),
            subscription_status=fields.pop(
                "subscription_status", SubscriptionStatus.ACTIVE.value
            ),
            **fields,
        )
        db.add(provider)
        db.commit()
        return provider

    return _make


@pytest.fixture(scope="function")
def test_user(make_user) -> User:
    """A planner account."""
    return make_user(UserType.USER, name="Pat Planner")


@pytest.fixture(scope="function")
def provider_user(make_user) -> User:
    """A provider account with a listing (see ``test_provider``)."""
    return make_user(UserType.PROVIDER, name="Casey Caterer")


@pytest.fixture(scope="function")
def test_provider(make_provider, provider_user: User) -> Provider:
    return make_provider(
        user=provider_user,
        business_name="Golden Fork Catering",
        provider_type="catering",
        description="Full service wedding catering and banquets",
        tags=["wedding", "buffet"],
    )


# =============================================================================
# Auth Fixtures
# =============================================================================

def make_token(user_id, email: str, expires_in: int = 3600, **claims) -> str:
    """Access token shaped like the identity service's."""
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": settings.SUPABASE_JWT_AUDIENCE,
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
        **claims,
    }
    return jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.id, user.email)}"}


@pytest.fixture(scope="function")
def mint_token() -> Callable[..., str]:
    return make_token


@pytest.fixture(scope="function")
def bearer() -> Callable[[User], dict[str, str]]:
    """Headers for calling as an arbitrary user."""
    return auth_headers


@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="function")
def test_auth(test_user: User) -> TestAuth:
    return TestAuth(user=test_user, token=make_token(test_user.id, test_user.email))


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient authenticated as ``test_user``.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=test_auth.headers,
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def provider_client(
    db: Session,
    test_provider: Provider,
    provider_user: User,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient authenticated as the owner of ``test_provider``.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=auth_headers(provider_user),
    ) as c:
        yield c

    app.dependency_overrides.clear()
