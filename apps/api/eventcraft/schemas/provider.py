"""Pydantic schemas for providers."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from eventcraft.db.enums import ProviderType, SubscriptionStatus


def _normalize_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class ProviderCreate(BaseModel):
    """Onboarding request for a provider business profile."""
    business_name: str = Field(..., min_length=1, max_length=255)
    provider_type: ProviderType
    phone: str | None = Field(None, max_length=50)
    location_city: str | None = Field(None, max_length=255)
    location_province: str | None = Field(None, max_length=255)
    location_lat: float | None = Field(None, ge=-90, le=90)
    location_lng: float | None = Field(None, ge=-180, le=180)
    description: str = Field("", max_length=5000)
    tags: list[str] = Field(default_factory=list, max_length=50)
    logo_url: str | None = None
    sample_images: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value)


class ProviderUpdate(BaseModel):
    """Partial update; only fields that are sent are changed."""
    business_name: str | None = Field(None, min_length=1, max_length=255)
    provider_type: ProviderType | None = None
    phone: str | None = Field(None, max_length=50)
    location_city: str | None = Field(None, max_length=255)
    location_province: str | None = Field(None, max_length=255)
    location_lat: float | None = Field(None, ge=-90, le=90)
    location_lng: float | None = Field(None, ge=-180, le=180)
    description: str | None = Field(None, max_length=5000)
    tags: list[str] | None = Field(None, max_length=50)
    logo_url: str | None = None
    sample_images: list[str] | None = Field(None, max_length=20)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value)


class ProviderOwner(BaseModel):
    id: UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class ProviderRead(BaseModel):
    """Full provider response."""
    id: UUID
    user_id: UUID
    business_name: str
    provider_type: str
    phone: str | None
    location_city: str | None
    location_province: str | None
    location_lat: float | None
    location_lng: float | None
    description: str
    tags: list[str]
    logo_url: str | None
    sample_images: list[str]
    is_active: bool
    subscription_status: SubscriptionStatus
    created_at: datetime
    updated_at: datetime
    user: ProviderOwner | None = None

    model_config = {"from_attributes": True}


class ProviderListItem(ProviderRead):
    """Directory entry; ``distance`` is set only for proximity searches (km)."""
    distance: float | None = None
    relevance_score: int | None = None


class ProviderListResponse(BaseModel):
    providers: list[ProviderListItem]
    total: int
    limit: int
    offset: int


class ProviderResponse(BaseModel):
    provider: ProviderRead
    message: str | None = None


class ScoredProviderRead(BaseModel):
    """Provider summary attached to checklist steps."""
    id: UUID
    business_name: str
    provider_type: str
    location_city: str | None
    location_province: str | None
    description: str
    tags: list[str]
    logo_url: str | None
    relevance_score: int
    user: ProviderOwner | None = None

    model_config = {"from_attributes": True}
