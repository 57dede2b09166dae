"""Providers router: public directory and business-profile management."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from eventcraft.core.deps import get_current_principal, get_db, require_user_type
from eventcraft.db.enums import ProviderType, UserType
from eventcraft.schemas.auth import Principal
from eventcraft.schemas.provider import (
    ProviderCreate,
    ProviderListItem,
    ProviderListResponse,
    ProviderRead,
    ProviderResponse,
    ProviderUpdate,
)
from eventcraft.services import provider_service
from eventcraft.utils.pagination import LimitOffset, get_limit_offset

router = APIRouter()


@router.get("", response_model=ProviderListResponse)
def list_providers(
    db: Session = Depends(get_db),
    page: LimitOffset = Depends(get_limit_offset),
    type: ProviderType | None = None,
    city: str | None = Query(None, max_length=255),
    province: str | None = Query(None, max_length=255),
    tags: list[str] | None = Query(None),
    search: str | None = Query(None, max_length=255),
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    radius: float = Query(provider_service.DEFAULT_RADIUS_KM, gt=0, le=20000),
):
    """
    Browse active, subscribed providers.

    With ``lat``/``lng`` results are limited to ``radius`` km and sorted
    nearest first, each carrying ``distance``; providers without a location
    come last. With ``search`` alone results are ranked by relevance.
    """
    hits, total = provider_service.search_providers(
        db,
        provider_service.ProviderSearch(
            type=type.value if type else None,
            city=city,
            province=province,
            tags=tags or [],
            search=search,
            lat=lat,
            lng=lng,
            radius=radius,
            limit=page.limit,
            offset=page.offset,
        ),
    )
    items = [
        ProviderListItem.model_validate(hit.provider).model_copy(
            update={"distance": hit.distance, "relevance_score": hit.relevance_score}
        )
        for hit in hits
    ]
    return ProviderListResponse(
        providers=items, total=total, limit=page.limit, offset=page.offset
    )


@router.get("/{provider_id}", response_model=ProviderResponse)
def get_provider(provider_id: UUID, db: Session = Depends(get_db)):
    provider = provider_service.get_visible_provider(db, provider_id)
    return ProviderResponse(provider=ProviderRead.model_validate(provider))


@router.post("", response_model=ProviderResponse, status_code=201)
def create_provider(
    data: ProviderCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_type(UserType.PROVIDER)),
):
    """Onboard the caller's business profile (one per account)."""
    provider = provider_service.create_provider(db, principal, data)
    return ProviderResponse(
        provider=ProviderRead.model_validate(provider),
        message="Provider profile created successfully",
    )


@router.put("/{provider_id}", response_model=ProviderResponse)
def update_provider(
    provider_id: UUID,
    data: ProviderUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    provider = provider_service.update_provider(db, principal, provider_id, data)
    return ProviderResponse(
        provider=ProviderRead.model_validate(provider),
        message="Provider updated successfully",
    )


@router.delete("/{provider_id}")
def delete_provider(
    provider_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Deactivate the caller's provider profile."""
    provider_service.deactivate_provider(db, principal, provider_id)
    return {"message": "Provider deactivated successfully"}
