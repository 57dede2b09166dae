"""Stripe billing: provider subscriptions and webhook status sync.

Stripe's SDK is blocking, so every call goes through the threadpool.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import stripe
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from eventcraft.core.config import settings
from eventcraft.core.errors import (
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationFailedError,
)
from eventcraft.core.structured_logging import build_log_context
from eventcraft.db.enums import SubscriptionStatus
from eventcraft.db.models import Provider, User
from eventcraft.schemas.auth import Principal

logger = logging.getLogger(__name__)


class StripeGateway:
    """Stripe API calls used by the subscription flows."""

    def __init__(self, api_key: str, timeout: float = 20.0):
        self._client = stripe.StripeClient(
            api_key, http_client=stripe.RequestsClient(timeout=timeout)
        )

    def create_customer(self, email: str, user_id: str) -> Any:
        return self._client.customers.create(
            params={"email": email, "metadata": {"user_id": user_id}}
        )

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        user_id: str,
    ) -> Any:
        return self._client.checkout.sessions.create(
            params={
                "customer": customer_id,
                "mode": "subscription",
                "line_items": [{"price": price_id, "quantity": 1}],
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": {"user_id": user_id},
            }
        )

    def create_subscription(self, customer_id: str, price_id: str) -> Any:
        return self._client.subscriptions.create(
            params={
                "customer": customer_id,
                "items": [{"price": price_id}],
                "payment_behavior": "default_incomplete",
                "expand": ["latest_invoice.payment_intent"],
            }
        )

    def retrieve_subscription(self, subscription_id: str) -> Any:
        return self._client.subscriptions.retrieve(subscription_id)

    def cancel_at_period_end(self, subscription_id: str) -> Any:
        return self._client.subscriptions.update(
            subscription_id, params={"cancel_at_period_end": True}
        )

    def create_portal_session(self, customer_id: str, return_url: str) -> Any:
        return self._client.billing_portal.sessions.create(
            params={"customer": customer_id, "return_url": return_url}
        )

    def find_active_subscription(self, customer_id: str) -> Any | None:
        result = self._client.subscriptions.list(
            params={"customer": customer_id, "status": "active", "limit": 1}
        )
        return result.data[0] if result.data else None


def get_stripe_gateway() -> StripeGateway:
    if not settings.stripe_enabled:
        raise ServiceUnavailableError("Payment processing is not configured")
    return StripeGateway(settings.STRIPE_SECRET_KEY, timeout=settings.STRIPE_TIMEOUT_SECONDS)


async def _call(fn, *args, **kwargs):
    """Run a gateway call off the event loop; Stripe rejections become 400s."""
    try:
        return await run_in_threadpool(fn, *args, **kwargs)
    except stripe.StripeError as e:
        logger.warning(f"Stripe request failed: {e}")
        raise ValidationFailedError(e.user_message or str(e) or "Payment request failed")


# =============================================================================
# Status mapping
# =============================================================================

def map_subscription_status(stripe_status: str | None) -> SubscriptionStatus:
    """Collapse Stripe's subscription states onto the provider status set."""
    if stripe_status == "active":
        return SubscriptionStatus.ACTIVE
    if stripe_status == "past_due":
        return SubscriptionStatus.PAST_DUE
    if stripe_status in ("canceled", "unpaid"):
        return SubscriptionStatus.CANCELLED
    return SubscriptionStatus.INACTIVE


def _status_for_event(event_type: str, obj: dict) -> SubscriptionStatus | None:
    if event_type == "customer.subscription.created":
        return SubscriptionStatus.ACTIVE
    if event_type == "customer.subscription.updated":
        return map_subscription_status(obj.get("status"))
    if event_type == "customer.subscription.deleted":
        return SubscriptionStatus.CANCELLED
    if event_type in ("invoice.payment_succeeded", "invoice.paid"):
        return SubscriptionStatus.ACTIVE
    if event_type == "invoice.payment_failed":
        return SubscriptionStatus.PAST_DUE
    return None


def _customer_id(obj: dict) -> str | None:
    customer = obj.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")
    return customer if isinstance(customer, str) and customer else None


# =============================================================================
# Webhook
# =============================================================================

def verify_webhook(payload: bytes, sig_header: str | None) -> dict:
    """
    Verify a webhook delivery and return the decoded event.

    Raises:
        ServiceUnavailableError: No webhook secret configured
        AuthenticationError: Missing or invalid signature
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not set")
        raise ServiceUnavailableError("Webhook secret not configured")
    if not sig_header:
        logger.warning("Stripe webhook missing signature header")
        raise AuthenticationError("Missing Stripe-Signature header")

    try:
        stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe webhook signature verification failed: {e}")
        raise AuthenticationError("Webhook signature verification failed")
    except ValueError as e:
        logger.warning(f"Stripe webhook payload invalid: {e}")
        raise ValidationFailedError("Invalid webhook payload")

    event = json.loads(payload)
    if not isinstance(event, dict):
        raise ValidationFailedError("Invalid webhook payload")
    return event


def set_status_for_customer(
    db: Session, customer_id: str, status: SubscriptionStatus
) -> Provider | None:
    """Last-write-wins assignment of the customer's provider status."""
    user = db.execute(
        select(User).where(User.stripe_customer_id == customer_id)
    ).scalar_one_or_none()
    if not user:
        logger.warning(f"No user found for Stripe customer {customer_id}")
        return None

    provider = db.execute(
        select(Provider).where(Provider.user_id == user.id)
    ).scalar_one_or_none()
    if not provider:
        logger.warning(
            "Stripe customer has no provider profile",
            extra=build_log_context(user_id=user.id),
        )
        return None

    provider.subscription_status = status.value
    db.commit()
    logger.info(
        f"Provider subscription status set to {status.value}",
        extra=build_log_context(user_id=user.id, provider_id=provider.id),
    )
    return provider


def handle_webhook_event(db: Session, event: dict) -> SubscriptionStatus | None:
    """
    Apply a verified event. Unhandled types and unknown customers are
    acknowledged without changes.

    Returns:
        The status written, or None when nothing changed
    """
    event_type = event.get("type") or ""
    obj = (event.get("data") or {}).get("object") or {}

    status = _status_for_event(event_type, obj)
    if status is None:
        logger.info(f"Unhandled Stripe event type: {event_type}")
        return None

    customer_id = _customer_id(obj)
    if not customer_id:
        logger.warning(f"Stripe event {event_type} carries no customer")
        return None

    provider = set_status_for_customer(db, customer_id, status)
    return status if provider else None


# =============================================================================
# Provider-facing flows
# =============================================================================

def _require_user(db: Session, principal: Principal) -> User:
    user = db.get(User, principal.id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _require_provider(db: Session, principal: Principal) -> Provider:
    provider = db.execute(
        select(Provider).where(Provider.user_id == principal.id)
    ).scalar_one_or_none()
    if not provider:
        raise NotFoundError("Provider profile not found")
    return provider


async def ensure_customer(db: Session, gateway: StripeGateway, principal: Principal) -> str:
    """The caller's Stripe customer id, created and stored on first use."""
    user = _require_user(db, principal)
    if user.stripe_customer_id:
        return user.stripe_customer_id

    customer = await _call(gateway.create_customer, user.email, str(user.id))
    user.stripe_customer_id = customer.id
    db.commit()
    logger.info("Stripe customer created", extra=build_log_context(user_id=user.id))
    return customer.id


def _price_id(price_id: str | None) -> str:
    resolved = price_id or settings.STRIPE_PRICE_ID
    if not resolved:
        raise ValidationFailedError("No subscription price configured")
    return resolved


def _dashboard_url(query: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/provider-dashboard?tab=subscription{query}"


async def create_checkout_session(
    db: Session,
    gateway: StripeGateway,
    principal: Principal,
    price_id: str | None = None,
    success_url: str | None = None,
    cancel_url: str | None = None,
) -> dict[str, Any]:
    customer_id = await ensure_customer(db, gateway, principal)
    session = await _call(
        gateway.create_checkout_session,
        customer_id,
        _price_id(price_id),
        success_url or _dashboard_url("&success=true"),
        cancel_url or _dashboard_url("&cancelled=true"),
        str(principal.id),
    )
    return {"session_id": session.id, "url": getattr(session, "url", None)}


async def create_subscription(
    db: Session,
    gateway: StripeGateway,
    principal: Principal,
    price_id: str | None = None,
) -> dict[str, Any]:
    """Start a subscription and mirror its status onto the provider."""
    provider = _require_provider(db, principal)
    customer_id = await ensure_customer(db, gateway, principal)
    subscription = await _call(
        gateway.create_subscription, customer_id, _price_id(price_id)
    )

    status = map_subscription_status(subscription.status)
    provider.subscription_status = status.value
    db.commit()
    logger.info(
        f"Subscription created with status {subscription.status}",
        extra=build_log_context(user_id=principal.id, provider_id=provider.id),
    )

    client_secret = None
    invoice = getattr(subscription, "latest_invoice", None)
    payment_intent = getattr(invoice, "payment_intent", None) if invoice else None
    if payment_intent is not None:
        client_secret = getattr(payment_intent, "client_secret", None)

    return {
        "subscription_id": subscription.id,
        "status": subscription.status,
        "client_secret": client_secret,
    }


async def cancel_subscription(
    db: Session, gateway: StripeGateway, principal: Principal, subscription_id: str
) -> dict[str, Any]:
    """Cancel at period end, after checking the subscription is the caller's."""
    user = _require_user(db, principal)
    if not user.stripe_customer_id:
        raise NotFoundError("Customer not found")

    subscription = await _call(gateway.retrieve_subscription, subscription_id)
    owner = subscription.customer
    owner_id = owner if isinstance(owner, str) else getattr(owner, "id", None)
    if owner_id != user.stripe_customer_id:
        raise ForbiddenError("Not authorized to cancel this subscription")

    cancelled = await _call(gateway.cancel_at_period_end, subscription_id)
    logger.info(
        "Subscription set to cancel at period end",
        extra=build_log_context(user_id=principal.id),
    )
    return {
        "subscription_id": cancelled.id,
        "status": cancelled.status,
        "cancel_at_period_end": bool(getattr(cancelled, "cancel_at_period_end", True)),
    }


async def create_customer_portal(
    db: Session, gateway: StripeGateway, principal: Principal, return_url: str | None = None
) -> dict[str, str]:
    user = _require_user(db, principal)
    if not user.stripe_customer_id:
        raise NotFoundError("Customer not found")

    session = await _call(
        gateway.create_portal_session,
        user.stripe_customer_id,
        return_url or _dashboard_url(""),
    )
    return {"url": session.url}


async def get_subscription_status(
    db: Session, gateway: StripeGateway, principal: Principal
) -> dict[str, Any]:
    """Stored provider status plus the live active subscription, if any."""
    provider = _require_provider(db, principal)
    user = _require_user(db, principal)

    summary = None
    if user.stripe_customer_id:
        subscription = await _call(gateway.find_active_subscription, user.stripe_customer_id)
        if subscription is not None:
            period_end = getattr(subscription, "current_period_end", None)
            summary = {
                "id": subscription.id,
                "status": subscription.status,
                "current_period_end": (
                    datetime.fromtimestamp(period_end, tz=timezone.utc)
                    if period_end else None
                ),
                "cancel_at_period_end": bool(
                    getattr(subscription, "cancel_at_period_end", False)
                ),
            }

    return {
        "status": SubscriptionStatus(provider.subscription_status),
        "subscription": summary,
    }
