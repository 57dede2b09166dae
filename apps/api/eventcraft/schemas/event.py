"""Pydantic schemas for AI checklist generation and step refinement."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from eventcraft.schemas.provider import ScoredProviderRead


class GeneratePlanRequest(BaseModel):
    event_type: str = Field(..., min_length=1, max_length=100)
    prompt: str = Field(..., min_length=1, max_length=4000)


class EventRead(BaseModel):
    id: UUID
    user_id: UUID
    event_type: str
    prompt: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskRead(BaseModel):
    id: UUID
    event_id: UUID
    step_title: str
    description: str
    order_number: int
    tags: list[str]
    refinement_prompt: str | None
    matching_provider_ids: list[str]
    updated_at: datetime

    model_config = {"from_attributes": True}


class ChecklistStep(BaseModel):
    """One generated step with its ranked providers."""
    task_id: UUID
    order_number: int
    step_title: str
    description: str
    tags: list[str]
    matching_providers: list[ScoredProviderRead]


class GeneratePlanResponse(BaseModel):
    event: EventRead
    checklist: list[ChecklistStep]


class RefineStepRequest(BaseModel):
    event_id: UUID
    step_id: UUID
    refinement_prompt: str = Field(..., min_length=1, max_length=2000)


class RefineStepResponse(BaseModel):
    updated_step: TaskRead
    matching_providers: list[ScoredProviderRead]
