"""Provider dashboard analytics: profile views, leads and booking value."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from eventcraft.core.errors import ForbiddenError, NotFoundError
from eventcraft.db.enums import LeadStatus
from eventcraft.db.models import Lead, Provider, ProviderView, User
from eventcraft.schemas.auth import Principal

logger = logging.getLogger(__name__)

TIME_RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_TIME_RANGE = "30d"
MONTH_DAYS = 30
ESTIMATED_BOOKING_VALUE = 3000
RECENT_ACTIVITY_LIMIT = 10


def _count(db: Session, model, *conditions) -> int:
    return db.execute(
        select(func.count()).select_from(model).where(*conditions)
    ).scalar_one()


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def get_provider_analytics(
    db: Session,
    principal: Principal,
    provider_id: UUID,
    time_range: str = DEFAULT_TIME_RANGE,
    now: datetime | None = None,
) -> dict:
    """
    Dashboard figures for one provider, owner only.

    Everything is limited to the selected window; "this month" is the last
    30 days and "last month" the 30 days before that.
    """
    provider = db.get(Provider, provider_id)
    if not provider:
        raise NotFoundError("Provider not found")
    if provider.user_id != principal.id:
        raise ForbiddenError("Not authorized to view analytics for this provider")

    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=TIME_RANGE_DAYS.get(time_range, MONTH_DAYS))
    month_ago = now - timedelta(days=MONTH_DAYS)
    two_months_ago = now - timedelta(days=2 * MONTH_DAYS)

    in_window_views = (
        ProviderView.provider_id == provider.id,
        ProviderView.created_at >= start,
    )
    in_window_leads = (Lead.provider_id == provider.id, Lead.created_at >= start)

    views_total = _count(db, ProviderView, *in_window_views)
    views_this_month = _count(
        db, ProviderView, *in_window_views, ProviderView.created_at >= month_ago
    )
    views_last_month = _count(
        db,
        ProviderView,
        *in_window_views,
        ProviderView.created_at >= two_months_ago,
        ProviderView.created_at < month_ago,
    )

    status_rows = db.execute(
        select(Lead.status, func.count())
        .where(*in_window_leads)
        .group_by(Lead.status)
    ).all()
    by_status = {status.value: 0 for status in LeadStatus}
    for status, count in status_rows:
        by_status[status] = count
    leads_total = sum(by_status.values())
    leads_this_month = _count(db, Lead, *in_window_leads, Lead.created_at >= month_ago)
    booked_this_month = _count(
        db,
        Lead,
        *in_window_leads,
        Lead.created_at >= month_ago,
        Lead.status == LeadStatus.BOOKED.value,
    )
    booked = by_status[LeadStatus.BOOKED.value]

    return {
        "time_range": time_range,
        "profile_views": {
            "total": views_total,
            "this_month": views_this_month,
            "last_month": views_last_month,
        },
        "leads": {
            "total": leads_total,
            "this_month": leads_this_month,
            "conversion_rate": _rate(leads_total, views_total),
            "by_status": by_status,
        },
        "revenue": {
            "total_bookings": booked,
            "estimated_value": booked * ESTIMATED_BOOKING_VALUE,
            "this_month": booked_this_month * ESTIMATED_BOOKING_VALUE,
        },
        "performance": {"completion_rate": _rate(booked, leads_total)},
        "recent_activity": _recent_activity(db, in_window_views, in_window_leads),
    }


def _recent_activity(db: Session, view_filter, lead_filter) -> list[dict]:
    views = db.execute(
        select(ProviderView)
        .where(*view_filter)
        .order_by(ProviderView.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    ).scalars().all()
    leads = db.execute(
        select(Lead)
        .options(selectinload(Lead.event))
        .where(*lead_filter)
        .order_by(Lead.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    ).scalars().all()

    items = [
        {
            "type": "view",
            "description": "Profile viewed by potential customer",
            "timestamp": view.created_at,
        }
        for view in views
    ]
    for lead in leads:
        event_type = lead.event.event_type if lead.event else "an event"
        if lead.status == LeadStatus.BOOKED.value:
            description = f"Booking confirmed for {event_type}"
        else:
            description = f"New lead for {event_type}"
        items.append({"type": "lead", "description": description, "timestamp": lead.created_at})

    items.sort(key=lambda item: item["timestamp"], reverse=True)
    return items[:RECENT_ACTIVITY_LIMIT]


def record_view(
    db: Session,
    provider_id: UUID,
    user_id: UUID | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> ProviderView:
    """Record an anonymous-friendly profile view."""
    provider = db.get(Provider, provider_id)
    if not provider:
        raise NotFoundError("Provider not found")

    if user_id is not None and db.get(User, user_id) is None:
        user_id = None

    view = ProviderView(
        id=uuid.uuid4(),
        provider_id=provider.id,
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent[:1000] if user_agent else None,
    )
    db.add(view)
    db.commit()
    return view
