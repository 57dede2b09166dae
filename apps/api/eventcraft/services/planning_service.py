"""Checklist generation and step refinement.

Both flows call the text-generation service first and only touch the
database once its reply has been parsed and validated, so a failed or
malformed reply leaves no trace.
"""

import logging
import uuid
from dataclasses import dataclass
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from eventcraft.core.errors import NotFoundError, UpstreamServiceError
from eventcraft.core.structured_logging import build_log_context
from eventcraft.db.models import Event, Task
from eventcraft.services.ai_prompt_registry import get_prompt
from eventcraft.services.ai_prompt_schemas import (
    ChecklistStepOutput,
    StepRefinementOutput,
)
from eventcraft.services.ai_provider import AIProvider, ChatMessage, ChatResponse
from eventcraft.services.ai_response_validation import (
    parse_json_array,
    parse_json_object,
    validate_model,
    validate_model_list,
)
from eventcraft.services.matching_service import (
    CHECKLIST_MATCH_LIMIT,
    ScoredProvider,
    find_matching_providers,
)

logger = logging.getLogger(__name__)

# The prompt asks for 5-8 steps; longer replies are cut here
MAX_CHECKLIST_STEPS = 8


@dataclass
class PlannedStep:
    task: Task
    matches: list[ScoredProvider]


@dataclass
class PlanResult:
    event: Event
    steps: list[PlannedStep]


@dataclass
class RefinementResult:
    task: Task
    matches: list[ScoredProvider]


async def _complete(
    provider: AIProvider,
    prompt_key: str,
    failure_message: str,
    log_context: dict,
    **fields,
) -> str:
    """Run one prompt and return the reply text; any failure is upstream."""
    template = get_prompt(prompt_key)
    messages = [
        ChatMessage(role="system", content=template.system),
        ChatMessage(role="user", content=template.render_user(**fields)),
    ]

    try:
        response: ChatResponse = await provider.chat(messages, temperature=0.7)
    except httpx.TimeoutException:
        logger.warning(f"{prompt_key} timed out", extra=log_context)
        raise UpstreamServiceError(failure_message)
    except httpx.HTTPError as e:
        logger.warning(f"{prompt_key} request failed: {e}", extra=log_context)
        raise UpstreamServiceError(failure_message)

    logger.info(
        f"{prompt_key} completed",
        extra={
            **log_context,
            "model": response.model,
            "prompt_tokens": response.prompt_tokens,
            "completion_tokens": response.completion_tokens,
            "estimated_cost_usd": str(response.estimated_cost_usd),
        },
    )

    if not response.content or not response.content.strip():
        logger.warning(f"{prompt_key} returned empty content", extra=log_context)
        raise UpstreamServiceError(failure_message)
    return response.content


async def generate_plan(
    db: Session,
    provider: AIProvider,
    user_id: UUID,
    event_type: str,
    prompt: str,
) -> PlanResult:
    """
    Generate a checklist, persist the event and its tasks, attach providers.

    The event, its tasks and each task's matching provider ids are written
    in one commit.

    Raises:
        UpstreamServiceError: Generation failed or the reply was unusable
    """
    log_context = build_log_context(user_id=user_id)
    content = await _complete(
        provider,
        "generate_plan",
        "Plan generation failed, please try again",
        log_context,
        event_type=event_type,
        prompt=prompt,
    )

    steps = validate_model_list(ChecklistStepOutput, parse_json_array(content))
    if not steps:
        logger.warning("generate_plan reply had no usable steps", extra=log_context)
        raise UpstreamServiceError("Plan generation failed, please try again")
    if len(steps) > MAX_CHECKLIST_STEPS:
        logger.info(
            f"generate_plan returned {len(steps)} steps, keeping {MAX_CHECKLIST_STEPS}",
            extra=log_context,
        )
        steps = steps[:MAX_CHECKLIST_STEPS]

    event = Event(
        id=uuid.uuid4(),
        user_id=user_id,
        event_type=event_type,
        prompt=prompt,
        checklist_json=[step.model_dump() for step in steps],
    )
    db.add(event)

    planned: list[PlannedStep] = []
    try:
        for index, step in enumerate(steps, start=1):
            matches = find_matching_providers(
                db, step.tags, prompt, limit=CHECKLIST_MATCH_LIMIT
            )
            task = Task(
                id=uuid.uuid4(),
                event_id=event.id,
                step_title=step.step_title,
                description=step.description,
                order_number=index,
                tags=step.tags,
                matching_provider_ids=[str(m.provider.id) for m in matches],
            )
            db.add(task)
            planned.append(PlannedStep(task=task, matches=matches))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to persist generated plan", extra=log_context)
        raise

    db.refresh(event)
    logger.info(
        "Plan generated",
        extra={**log_context, "event_id": str(event.id), "steps": len(planned)},
    )
    return PlanResult(event=event, steps=planned)


def get_owned_event(db: Session, event_id: UUID, user_id: UUID) -> Event:
    event = db.execute(
        select(Event).where(Event.id == event_id, Event.user_id == user_id)
    ).scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")
    return event


def get_event_task(db: Session, event_id: UUID, task_id: UUID) -> Task:
    task = db.execute(
        select(Task).where(Task.id == task_id, Task.event_id == event_id)
    ).scalar_one_or_none()
    if not task:
        raise NotFoundError("Step not found")
    return task


async def refine_step(
    db: Session,
    provider: AIProvider,
    user_id: UUID,
    event_id: UUID,
    step_id: UUID,
    refinement_prompt: str,
) -> RefinementResult:
    """
    Rewrite one step from the caller's refinement request and re-rank providers.

    An event or step the caller does not own is reported as not found.

    Raises:
        NotFoundError: Event not owned by caller or step not in event
        UpstreamServiceError: Generation failed or the reply was unusable
    """
    event = get_owned_event(db, event_id, user_id)
    task = get_event_task(db, event.id, step_id)
    log_context = build_log_context(user_id=user_id, event_id=event.id)

    content = await _complete(
        provider,
        "refine_step",
        "Step refinement failed, please try again",
        log_context,
        event_prompt=event.prompt,
        step_title=task.step_title,
        step_description=task.description,
        refinement_prompt=refinement_prompt,
    )

    refinement = validate_model(StepRefinementOutput, parse_json_object(content))
    if refinement is None:
        logger.warning("refine_step reply was not usable", extra=log_context)
        raise UpstreamServiceError("Step refinement failed, please try again")

    description = (refinement.updated_description or "").strip() or task.description
    tags = refinement.provider_tags or list(task.tags or [])
    context = f"{event.prompt} {refinement_prompt}"

    try:
        matches = find_matching_providers(
            db,
            tags,
            context,
            criteria=refinement.search_criteria,
            limit=CHECKLIST_MATCH_LIMIT,
        )
        task.description = description
        task.refinement_prompt = refinement_prompt
        task.tags = tags
        task.matching_provider_ids = [str(m.provider.id) for m in matches]
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to persist step refinement", extra=log_context)
        raise

    db.refresh(task)
    logger.info("Step refined", extra={**log_context, "task_id": str(task.id)})
    return RefinementResult(task=task, matches=matches)
