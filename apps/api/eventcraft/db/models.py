"""SQLAlchemy ORM models for profiles, providers, plans and leads."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Float, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, Uuid, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventcraft.db.base import Base
from eventcraft.db.enums import (
    DEFAULT_LEAD_STATUS, DEFAULT_SUBSCRIPTION_STATUS, UserType,
)
from eventcraft.db.types import JSONType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Profiles
# =============================================================================

class User(Base):
    """
    Profile row for an identity-service account.

    The id is the identity service's user id; the row is created by
    ``auth_service.ensure_profile``. ``type`` is set once at sign-up.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("type IN ('user', 'provider')", name="ck_users_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserType.USER.value
    )
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    provider: Mapped["Provider | None"] = relationship(
        back_populates="user", uselist=False
    )


class Provider(Base):
    """
    A business offering an event service.

    Never hard-deleted: ``is_active=False`` hides it. ``subscription_status``
    is written only by the billing flows.
    """
    __tablename__ = "providers"
    __table_args__ = (
        CheckConstraint(
            "subscription_status IN ('active', 'inactive', 'past_due', 'cancelled')",
            name="ck_providers_subscription_status",
        ),
        Index("idx_providers_visible", "is_active", "subscription_status"),
        Index("idx_providers_type", "provider_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    provider_type: Mapped[str] = mapped_column(String(50), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    location_city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location_province: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    sample_images: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    subscription_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_SUBSCRIPTION_STATUS.value
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="provider")


# =============================================================================
# Plans
# =============================================================================

class Event(Base):
    """One AI checklist generation request. Owned by the creating user."""
    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    checklist_json: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    tasks: Mapped[list["Task"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Task.order_number",
    )


class Task(Base):
    """A single step of an event checklist."""
    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint("event_id", "order_number", name="uq_tasks_event_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    step_title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    refinement_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    matching_provider_ids: Mapped[list] = mapped_column(
        JSONType, nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    event: Mapped["Event"] = relationship(back_populates="tasks")


# =============================================================================
# Leads & analytics
# =============================================================================

class Lead(Base):
    """
    Contact request from a user to a provider for one event.

    At most one lead per (user, provider, event); the unique constraint is
    what settles concurrent creates.
    """
    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "provider_id", "event_id",
            name="uq_leads_user_provider_event",
        ),
        CheckConstraint(
            "status IN ('new', 'contacted', 'booked')", name="ck_leads_status"
        ),
        Index("idx_leads_provider_created", "provider_id", "created_at"),
        Index("idx_leads_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    step_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DEFAULT_LEAD_STATUS.value
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    provider: Mapped["Provider"] = relationship()
    event: Mapped["Event"] = relationship()
    step: Mapped["Task | None"] = relationship()
    user: Mapped["User"] = relationship()


class ProviderView(Base):
    """Anonymous-friendly profile view counter for provider analytics."""
    __tablename__ = "provider_views"
    __table_args__ = (
        Index("idx_provider_views_provider_created", "provider_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
