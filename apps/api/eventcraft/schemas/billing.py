"""Pydantic schemas for subscription billing endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from eventcraft.db.enums import SubscriptionStatus


class CheckoutSessionRequest(BaseModel):
    price_id: str | None = Field(None, max_length=255)
    success_url: str | None = None
    cancel_url: str | None = None


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: str | None


class CreateSubscriptionRequest(BaseModel):
    price_id: str | None = Field(None, max_length=255)


class CreateSubscriptionResponse(BaseModel):
    subscription_id: str
    status: str
    client_secret: str | None = None


class CancelSubscriptionRequest(BaseModel):
    subscription_id: str = Field(..., min_length=1, max_length=255)


class CancelSubscriptionResponse(BaseModel):
    subscription_id: str
    status: str
    cancel_at_period_end: bool


class CustomerPortalRequest(BaseModel):
    return_url: str | None = None


class CustomerPortalResponse(BaseModel):
    url: str


class SubscriptionSummary(BaseModel):
    id: str
    status: str
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False


class SubscriptionStatusResponse(BaseModel):
    status: SubscriptionStatus
    subscription: SubscriptionSummary | None = None


class WebhookAck(BaseModel):
    received: bool = True
