"""Pydantic schemas for leads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from eventcraft.db.enums import LeadStatus


class LeadCreate(BaseModel):
    provider_id: UUID
    event_id: UUID
    step_id: UUID | None = None
    message: str | None = Field(None, max_length=5000)


class LeadUpdate(BaseModel):
    """Status is a closed set; anything else is rejected before the service runs."""
    status: LeadStatus | None = None
    message: str | None = Field(None, max_length=5000)


class LeadProviderSummary(BaseModel):
    id: UUID
    business_name: str
    provider_type: str

    model_config = {"from_attributes": True}


class LeadEventSummary(BaseModel):
    id: UUID
    event_type: str

    model_config = {"from_attributes": True}


class LeadStepSummary(BaseModel):
    id: UUID
    step_title: str

    model_config = {"from_attributes": True}


class LeadUserSummary(BaseModel):
    id: UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class LeadRead(BaseModel):
    id: UUID
    provider_id: UUID
    event_id: UUID
    user_id: UUID
    step_id: UUID | None
    message: str | None
    status: LeadStatus
    created_at: datetime
    updated_at: datetime
    provider: LeadProviderSummary | None = None
    event: LeadEventSummary | None = None
    step: LeadStepSummary | None = None
    user: LeadUserSummary | None = None

    model_config = {"from_attributes": True}


class LeadResponse(BaseModel):
    lead: LeadRead
    message: str | None = None


class LeadListResponse(BaseModel):
    leads: list[LeadRead]
    total: int
    limit: int
    offset: int


class LeadStatsResponse(BaseModel):
    total: int
    new: int
    contacted: int
    booked: int
