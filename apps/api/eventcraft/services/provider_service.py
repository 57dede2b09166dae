"""Provider service: directory search and business-profile management."""

import logging
import uuid
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from eventcraft.core.errors import ConflictError, ForbiddenError, NotFoundError
from eventcraft.core.structured_logging import build_log_context
from eventcraft.db.enums import SubscriptionStatus, UserType
from eventcraft.db.models import Provider
from eventcraft.schemas.auth import Principal
from eventcraft.schemas.provider import ProviderCreate, ProviderUpdate
from eventcraft.services import geo, matching_service

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 50.0
DEFAULT_LIMIT = 20

# Columns that cannot be cleared with an explicit null
_REQUIRED_FIELDS = {"business_name", "provider_type", "description", "tags", "sample_images"}


@dataclass
class ProviderSearch:
    type: str | None = None
    city: str | None = None
    province: str | None = None
    tags: list[str] = field(default_factory=list)
    search: str | None = None
    lat: float | None = None
    lng: float | None = None
    radius: float = DEFAULT_RADIUS_KM
    limit: int = DEFAULT_LIMIT
    offset: int = 0


@dataclass
class ProviderHit:
    provider: Provider
    distance: float | None = None
    relevance_score: int | None = None


def search_providers(db: Session, params: ProviderSearch) -> tuple[list[ProviderHit], int]:
    """
    Public directory listing of visible providers.

    With ``lat`` and ``lng`` the radius filter applies and hits are ordered by
    distance (unknown locations last). With ``search`` and no coordinates,
    hits are ranked by relevance and capped at the search match limit.

    Returns:
        (page of hits, total hits before paging)
    """
    query = matching_service.visible_providers_query()
    if params.type:
        query = query.where(Provider.provider_type == params.type)
    if params.city:
        query = query.where(Provider.location_city.ilike(f"%{params.city}%"))
    if params.province:
        query = query.where(Provider.location_province.ilike(f"%{params.province}%"))
    if params.search:
        pattern = f"%{params.search}%"
        query = query.where(
            or_(Provider.business_name.ilike(pattern), Provider.description.ilike(pattern))
        )

    providers = list(db.execute(query).scalars().all())

    wanted_tags = {t.strip().lower() for t in params.tags if t and t.strip()}
    if wanted_tags:
        providers = [
            p for p in providers
            if wanted_tags.intersection(t.lower() for t in p.tags or [])
        ]

    if params.lat is not None and params.lng is not None:
        pairs = geo.filter_and_sort_by_distance(
            providers,
            params.lat,
            params.lng,
            params.radius,
            key=lambda p: (p.location_lat, p.location_lng),
        )
        hits = [ProviderHit(provider=p, distance=d) for p, d in pairs]
    elif params.search:
        ranked = matching_service.rank_providers(
            providers,
            [params.type] if params.type else [],
            params.search,
            limit=matching_service.SEARCH_MATCH_LIMIT,
        )
        hits = [ProviderHit(provider=s.provider, relevance_score=s.score) for s in ranked]
    else:
        hits = [ProviderHit(provider=p) for p in providers]

    total = len(hits)
    return hits[params.offset:params.offset + params.limit], total


def get_visible_provider(db: Session, provider_id: UUID) -> Provider:
    """A single provider; inactive ones are reported as not found."""
    provider = db.execute(
        select(Provider)
        .options(selectinload(Provider.user))
        .where(Provider.id == provider_id)
    ).scalar_one_or_none()
    if not provider or not provider.is_active:
        raise NotFoundError("Provider not found")
    return provider


def get_provider_for_user(db: Session, user_id: UUID) -> Provider | None:
    return db.execute(
        select(Provider)
        .options(selectinload(Provider.user))
        .where(Provider.user_id == user_id)
    ).scalar_one_or_none()


def _owned_provider(db: Session, principal: Principal, provider_id: UUID) -> Provider:
    provider = db.get(Provider, provider_id)
    if not provider:
        raise NotFoundError("Provider not found")
    if provider.user_id != principal.id:
        raise ForbiddenError("Not authorized to modify this provider")
    return provider


def create_provider(db: Session, principal: Principal, data: ProviderCreate) -> Provider:
    """
    Onboard the caller's business profile.

    New profiles are active but unsubscribed, so they stay hidden until
    billing activates them.

    Raises:
        ForbiddenError: Caller is not a provider account
        ConflictError: Caller already has a profile
    """
    if principal.type != UserType.PROVIDER:
        raise ForbiddenError("Only providers can create provider profiles")
    if get_provider_for_user(db, principal.id):
        raise ConflictError("Provider profile already exists")

    values = data.model_dump()
    values["provider_type"] = data.provider_type.value
    provider = Provider(
        id=uuid.uuid4(),
        user_id=principal.id,
        is_active=True,
        subscription_status=SubscriptionStatus.INACTIVE.value,
        **values,
    )
    db.add(provider)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Provider profile already exists")

    logger.info(
        "Provider profile created",
        extra=build_log_context(user_id=principal.id, provider_id=provider.id),
    )
    return get_provider_for_user(db, principal.id)


def update_provider(
    db: Session, principal: Principal, provider_id: UUID, data: ProviderUpdate
) -> Provider:
    """Owner-only partial update. Billing status is not writable here."""
    provider = _owned_provider(db, principal, provider_id)

    updates = data.model_dump(exclude_unset=True)
    for name, value in updates.items():
        if value is None and name in _REQUIRED_FIELDS:
            continue
        if name == "provider_type":
            value = value.value if hasattr(value, "value") else value
        setattr(provider, name, value)

    db.commit()
    logger.info(
        "Provider profile updated",
        extra=build_log_context(user_id=principal.id, provider_id=provider.id),
    )
    return get_provider_for_user(db, principal.id)


def deactivate_provider(db: Session, principal: Principal, provider_id: UUID) -> None:
    """Soft delete: the row stays, hidden from the directory and matching."""
    provider = _owned_provider(db, principal, provider_id)
    provider.is_active = False
    db.commit()
    logger.info(
        "Provider profile deactivated",
        extra=build_log_context(user_id=principal.id, provider_id=provider.id),
    )
