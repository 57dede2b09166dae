"""Analytics router: provider dashboards and profile view tracking."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from eventcraft.core.deps import get_current_principal, get_db
from eventcraft.schemas.analytics import (
    ProviderAnalyticsResponse,
    TimeRange,
    ViewRecordedResponse,
)
from eventcraft.schemas.auth import Principal
from eventcraft.services import analytics_service

router = APIRouter()


class RecordViewRequest(BaseModel):
    user_id: UUID | None = None


@router.get("/provider/{provider_id}", response_model=ProviderAnalyticsResponse)
def get_provider_analytics(
    provider_id: UUID,
    time_range: TimeRange = "30d",
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return analytics_service.get_provider_analytics(
        db, principal, provider_id, time_range=time_range
    )


@router.post("/view/{provider_id}", response_model=ViewRecordedResponse)
def record_provider_view(
    provider_id: UUID,
    request: Request,
    body: RecordViewRequest | None = Body(None),
    db: Session = Depends(get_db),
):
    """Record a profile view. Public; the viewer's user id is optional."""
    analytics_service.record_view(
        db,
        provider_id,
        user_id=body.user_id if body else None,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return ViewRecordedResponse(success=True)
