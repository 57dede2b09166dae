"""Lead service: contact requests from users to providers."""

import logging
import uuid
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from eventcraft.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from eventcraft.core.structured_logging import build_log_context
from eventcraft.db.enums import LeadStatus, SubscriptionStatus, UserType
from eventcraft.db.models import Event, Lead, Provider, Task
from eventcraft.schemas.auth import Principal
from eventcraft.schemas.lead import LeadCreate, LeadUpdate

logger = logging.getLogger(__name__)

DUPLICATE_LEAD_MESSAGE = "Lead already exists for this provider and event"


def _lead_query():
    return select(Lead).options(
        selectinload(Lead.provider),
        selectinload(Lead.event),
        selectinload(Lead.step),
        selectinload(Lead.user),
    )


def get_lead(db: Session, lead_id: UUID) -> Lead:
    lead = db.execute(_lead_query().where(Lead.id == lead_id)).scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


def _find_existing_lead(
    db: Session, user_id: UUID, provider_id: UUID, event_id: UUID
) -> Lead | None:
    return db.execute(
        select(Lead).where(
            Lead.user_id == user_id,
            Lead.provider_id == provider_id,
            Lead.event_id == event_id,
        )
    ).scalar_one_or_none()


def _provider_for_owner(db: Session, user_id: UUID) -> Provider:
    provider = db.execute(
        select(Provider).where(Provider.user_id == user_id)
    ).scalar_one_or_none()
    if not provider:
        raise NotFoundError("Provider profile not found")
    return provider


def create_lead(db: Session, principal: Principal, data: LeadCreate) -> Lead:
    """
    Create a lead for (caller, provider, event).

    Each precondition maps to its own error. The existence check gives the
    common duplicate a clean answer; the unique constraint settles the race
    where two requests pass the check together.

    Raises:
        ForbiddenError: Caller is not a user account
        NotFoundError: Event, step or provider not found
        ValidationFailedError: Provider inactive or not subscribed
        ConflictError: A lead for the triple already exists
    """
    if principal.type != UserType.USER:
        raise ForbiddenError("Only users can create leads")

    event = db.execute(
        select(Event).where(Event.id == data.event_id, Event.user_id == principal.id)
    ).scalar_one_or_none()
    if not event:
        raise NotFoundError("Event not found")

    if data.step_id is not None:
        step = db.execute(
            select(Task).where(Task.id == data.step_id, Task.event_id == event.id)
        ).scalar_one_or_none()
        if not step:
            raise NotFoundError("Step not found or not part of this event")

    provider = db.get(Provider, data.provider_id)
    if not provider:
        raise NotFoundError("Provider not found")
    if (
        not provider.is_active
        or provider.subscription_status != SubscriptionStatus.ACTIVE.value
    ):
        raise ValidationFailedError("Provider is not available")

    if _find_existing_lead(db, principal.id, provider.id, event.id):
        raise ConflictError(DUPLICATE_LEAD_MESSAGE)

    lead = Lead(
        id=uuid.uuid4(),
        provider_id=provider.id,
        event_id=event.id,
        user_id=principal.id,
        step_id=data.step_id,
        message=data.message,
        status=LeadStatus.NEW.value,
    )
    db.add(lead)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            "Concurrent duplicate lead rejected",
            extra=build_log_context(
                user_id=principal.id, provider_id=provider.id, event_id=event.id
            ),
        )
        raise ConflictError(DUPLICATE_LEAD_MESSAGE)

    logger.info(
        "Lead created",
        extra=build_log_context(
            user_id=principal.id, provider_id=provider.id, event_id=event.id
        ),
    )
    return get_lead(db, lead.id)


def _scoped_filter(db: Session, principal: Principal):
    if principal.type == UserType.PROVIDER:
        provider = _provider_for_owner(db, principal.id)
        return Lead.provider_id == provider.id
    return Lead.user_id == principal.id


def list_leads(
    db: Session,
    principal: Principal,
    status: LeadStatus | None = None,
    event_id: UUID | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Lead], int]:
    """
    Leads visible to the caller, newest first.

    Users see leads they created; providers see leads addressed to their
    profile. ``event_id`` only filters for users.

    Returns:
        (leads, total) where total counts the whole filtered set
    """
    conditions = [_scoped_filter(db, principal)]
    if status is not None:
        conditions.append(Lead.status == LeadStatus(status).value)
    if event_id is not None and principal.type == UserType.USER:
        conditions.append(Lead.event_id == event_id)

    total = db.execute(
        select(func.count()).select_from(Lead).where(*conditions)
    ).scalar_one()
    leads = db.execute(
        _lead_query()
        .where(*conditions)
        .order_by(Lead.created_at.desc(), Lead.id)
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return list(leads), total


def get_lead_stats(db: Session, principal: Principal) -> dict[str, int]:
    rows = db.execute(
        select(Lead.status, func.count())
        .where(_scoped_filter(db, principal))
        .group_by(Lead.status)
    ).all()
    counts = {status.value: 0 for status in LeadStatus}
    for status, count in rows:
        counts[status] = count
    return {"total": sum(counts.values()), **counts}


def update_lead(
    db: Session, principal: Principal, lead_id: UUID, data: LeadUpdate
) -> Lead:
    """
    Update status and/or message.

    Allowed for the user who created the lead and for the owner of the
    provider it was sent to.

    Raises:
        NotFoundError: Lead not found
        ForbiddenError: Caller is neither party
        ValidationFailedError: Nothing to update or unknown status
    """
    lead = get_lead(db, lead_id)

    is_creator = principal.type == UserType.USER and lead.user_id == principal.id
    is_provider_owner = (
        principal.type == UserType.PROVIDER
        and lead.provider is not None
        and lead.provider.user_id == principal.id
    )
    if not (is_creator or is_provider_owner):
        raise ForbiddenError("Not authorized to update this lead")

    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationFailedError("No valid fields to update")

    if "status" in updates:
        status = updates["status"]
        value = status.value if isinstance(status, LeadStatus) else status
        if not LeadStatus.has_value(value):
            raise ValidationFailedError("Invalid status value")
        lead.status = value
    if "message" in updates:
        lead.message = updates["message"]

    db.commit()
    logger.info(
        "Lead updated",
        extra=build_log_context(user_id=principal.id, provider_id=lead.provider_id),
    )
    return get_lead(db, lead.id)


def delete_lead(db: Session, principal: Principal, lead_id: UUID) -> None:
    """Only the creating user may delete a lead, whatever its status."""
    lead = db.get(Lead, lead_id)
    if not lead:
        raise NotFoundError("Lead not found")
    if principal.type != UserType.USER or lead.user_id != principal.id:
        raise ForbiddenError("Not authorized to delete this lead")

    db.delete(lead)
    db.commit()
    logger.info(
        "Lead deleted",
        extra=build_log_context(user_id=principal.id, provider_id=lead.provider_id),
    )
