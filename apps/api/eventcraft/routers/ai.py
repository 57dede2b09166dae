"""AI planning endpoints: checklist generation and step refinement."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from eventcraft.core.deps import get_ai_provider, get_current_principal, get_db
from eventcraft.core.rate_limit import limiter
from eventcraft.schemas.auth import Principal
from eventcraft.schemas.event import (
    ChecklistStep,
    EventRead,
    GeneratePlanRequest,
    GeneratePlanResponse,
    RefineStepRequest,
    RefineStepResponse,
    TaskRead,
)
from eventcraft.services import planning_service
from eventcraft.services.ai_provider import AIProvider
from eventcraft.services.matching_service import to_scored_read

router = APIRouter()

# Generation is the expensive path; tighter than the global limit
AI_RATE_LIMIT = "20/minute"


@router.post("/generate-plan", response_model=GeneratePlanResponse)
@limiter.limit(AI_RATE_LIMIT)
async def generate_plan(
    request: Request,
    body: GeneratePlanRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    provider: AIProvider = Depends(get_ai_provider),
) -> GeneratePlanResponse:
    """Generate a checklist for an event and attach matching providers per step."""
    result = await planning_service.generate_plan(
        db,
        provider,
        user_id=principal.id,
        event_type=body.event_type,
        prompt=body.prompt,
    )
    return GeneratePlanResponse(
        event=EventRead.model_validate(result.event),
        checklist=[
            ChecklistStep(
                task_id=step.task.id,
                order_number=step.task.order_number,
                step_title=step.task.step_title,
                description=step.task.description,
                tags=list(step.task.tags or []),
                matching_providers=[to_scored_read(m) for m in step.matches],
            )
            for step in result.steps
        ],
    )


@router.post("/refine-step", response_model=RefineStepResponse)
@limiter.limit(AI_RATE_LIMIT)
async def refine_step(
    request: Request,
    body: RefineStepRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    provider: AIProvider = Depends(get_ai_provider),
) -> RefineStepResponse:
    """Refine one checklist step and re-rank its providers."""
    result = await planning_service.refine_step(
        db,
        provider,
        user_id=principal.id,
        event_id=body.event_id,
        step_id=body.step_id,
        refinement_prompt=body.refinement_prompt,
    )
    return RefineStepResponse(
        updated_step=TaskRead.model_validate(result.task),
        matching_providers=[to_scored_read(m) for m in result.matches],
    )
