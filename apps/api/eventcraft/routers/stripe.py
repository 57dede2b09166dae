"""Stripe router: provider subscriptions and the billing webhook."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from eventcraft.core.deps import get_billing_gateway, get_db, require_user_type
from eventcraft.db.enums import UserType
from eventcraft.schemas.auth import Principal
from eventcraft.schemas.billing import (
    CancelSubscriptionRequest,
    CancelSubscriptionResponse,
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    CustomerPortalRequest,
    CustomerPortalResponse,
    SubscriptionStatusResponse,
    WebhookAck,
)
from eventcraft.services import billing_service
from eventcraft.services.billing_service import StripeGateway

logger = logging.getLogger(__name__)

router = APIRouter()

require_provider = require_user_type(UserType.PROVIDER)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Receive Stripe events. Authenticated by signature, not bearer token.

    Verified events always get ``{"received": true}``, including types that
    are not handled and customers that are not known.
    """
    payload = await request.body()
    event = billing_service.verify_webhook(payload, request.headers.get("stripe-signature"))
    logger.info(f"Received Stripe event {event.get('type')}")
    billing_service.handle_webhook_event(db, event)
    return WebhookAck(received=True)


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    body: CheckoutSessionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_provider),
    gateway: StripeGateway = Depends(get_billing_gateway),
):
    result = await billing_service.create_checkout_session(
        db,
        gateway,
        principal,
        price_id=body.price_id,
        success_url=body.success_url,
        cancel_url=body.cancel_url,
    )
    return CheckoutSessionResponse(**result)


@router.post("/create-subscription", response_model=CreateSubscriptionResponse)
async def create_subscription(
    body: CreateSubscriptionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_provider),
    gateway: StripeGateway = Depends(get_billing_gateway),
):
    result = await billing_service.create_subscription(
        db, gateway, principal, price_id=body.price_id
    )
    return CreateSubscriptionResponse(**result)


@router.post("/cancel-subscription", response_model=CancelSubscriptionResponse)
async def cancel_subscription(
    body: CancelSubscriptionRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_provider),
    gateway: StripeGateway = Depends(get_billing_gateway),
):
    result = await billing_service.cancel_subscription(
        db, gateway, principal, body.subscription_id
    )
    return CancelSubscriptionResponse(**result)


@router.post("/customer-portal", response_model=CustomerPortalResponse)
async def customer_portal(
    body: CustomerPortalRequest | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_provider),
    gateway: StripeGateway = Depends(get_billing_gateway),
):
    result = await billing_service.create_customer_portal(
        db, gateway, principal, return_url=body.return_url if body else None
    )
    return CustomerPortalResponse(**result)


@router.get("/subscription-status", response_model=SubscriptionStatusResponse)
async def subscription_status(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_provider),
    gateway: StripeGateway = Depends(get_billing_gateway),
):
    result = await billing_service.get_subscription_status(db, gateway, principal)
    return SubscriptionStatusResponse(**result)
