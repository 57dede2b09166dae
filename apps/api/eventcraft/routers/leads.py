"""Leads router: contact requests between users and providers."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from eventcraft.core.deps import get_current_principal, get_db
from eventcraft.db.enums import LeadStatus
from eventcraft.schemas.auth import Principal
from eventcraft.schemas.lead import (
    LeadCreate,
    LeadListResponse,
    LeadRead,
    LeadResponse,
    LeadStatsResponse,
    LeadUpdate,
)
from eventcraft.services import lead_service
from eventcraft.utils.pagination import LimitOffset, get_limit_offset

router = APIRouter()


@router.post("", response_model=LeadResponse, status_code=201)
def create_lead(
    data: LeadCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    lead = lead_service.create_lead(db, principal, data)
    return LeadResponse(lead=LeadRead.model_validate(lead), message="Lead created successfully")


@router.get("", response_model=LeadListResponse)
def list_leads(
    status: LeadStatus | None = None,
    event_id: UUID | None = None,
    page: LimitOffset = Depends(get_limit_offset),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    List leads visible to the caller.

    Users see their own leads; providers see leads sent to their profile.
    """
    leads, total = lead_service.list_leads(
        db,
        principal,
        status=status,
        event_id=event_id,
        limit=page.limit,
        offset=page.offset,
    )
    return LeadListResponse(
        leads=[LeadRead.model_validate(lead) for lead in leads],
        total=total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/stats", response_model=LeadStatsResponse)
def get_lead_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return LeadStatsResponse(**lead_service.get_lead_stats(db, principal))


@router.put("/{lead_id}", response_model=LeadResponse)
def update_lead(
    lead_id: UUID,
    data: LeadUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    lead = lead_service.update_lead(db, principal, lead_id, data)
    return LeadResponse(lead=LeadRead.model_validate(lead), message="Lead updated successfully")


@router.delete("/{lead_id}")
def delete_lead(
    lead_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    lead_service.delete_lead(db, principal, lead_id)
    return {"message": "Lead deleted successfully"}
