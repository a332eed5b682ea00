# =============================================================================
# app/routers/billing.py - Billing Endpoints
# =============================================================================
# Plans, the user's subscription, usage limits, Stripe Checkout / Billing
# Portal sessions and the Stripe webhook.
#
# GET /plans and POST /webhook are public; the webhook is authenticated by
# its Stripe signature instead of a bearer token.
# =============================================================================

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request

from app.auth import get_current_user, AuthUser
from app.config import settings
from app.exceptions import ConfigurationError, WebhookError
from app.rate_limit import limit_api
from core.models.billing import PLANS, CheckoutRequest
from core.services.billing_service import BillingService
from lib.analytics import AnalyticsEvent, track_server_event

logger = logging.getLogger(__name__)

router = APIRouter()

# Stripe events that change a user's plan
WEBHOOK_ANALYTICS_EVENTS = {
    "checkout.session.completed": AnalyticsEvent.SUBSCRIPTION_UPGRADED,
    "customer.subscription.deleted": AnalyticsEvent.SUBSCRIPTION_CANCELLED,
}


@router.get("/plans")
async def list_plans():
    """
    List the available plans with display prices.
    """
    return {"plans": [plan.to_public_dict() for plan in PLANS.values()]}


@router.get("/subscription")
async def get_subscription(
    user: AuthUser = Depends(get_current_user),
):
    """
    Get the user's effective plan.

    Users without an active subscription are reported on the free plan.
    """
    subscription = BillingService.get_subscription(user.id)
    return {
        "subscription": {
            "plan": subscription["plan"].to_public_dict(),
            "status": subscription["status"],
            "current_period_end": subscription["current_period_end"],
        }
    }


@router.get("/limits")
async def get_limits(
    user: AuthUser = Depends(get_current_user),
):
    """
    Usage against each plan limit.
    """
    limits = BillingService.check_all_limits(user.id)
    return {"limits": {name: status.model_dump() for name, status in limits.items()}}


@router.post("/checkout")
async def create_checkout(
    request: CheckoutRequest,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(limit_api),
):
    """
    Start a Stripe Checkout session for a subscription.

    Returns the hosted checkout URL to redirect the user to.
    """
    url = BillingService.create_checkout_session(user.id, user.email, request.price_id)

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.CHECKOUT_STARTED,
        {"price_id": request.price_id},
        str(user.id),
    )

    return {"url": url}


@router.post("/portal")
async def create_portal(
    user: AuthUser = Depends(limit_api),
):
    """
    Open the Stripe Billing Portal.

    Raises:
        400: NO_BILLING_ACCOUNT if the user never checked out
    """
    return {"url": BillingService.create_portal_session(user.id)}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    stripe_signature: str | None = Header(default=None, alias="stripe-signature"),
):
    """
    Receive Stripe events.

    The raw body is verified against STRIPE_WEBHOOK_SECRET before any
    event is applied.

    Raises:
        500: If the webhook secret is not configured
        400: If the signature is missing or invalid, or the event fails
    """
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Stripe webhook secret not configured")
        raise ConfigurationError("Webhook not configured", "STRIPE_WEBHOOK_SECRET")

    if not stripe_signature:
        raise WebhookError("Missing signature")

    payload = await request.body()

    try:
        BillingService.construct_event(payload, stripe_signature)
        event = json.loads(payload)
        user_id = BillingService.handle_webhook_event(event)
    except Exception as e:
        logger.error(f"Webhook error: {e}")
        raise WebhookError(str(e))

    analytics_event = WEBHOOK_ANALYTICS_EVENTS.get(event.get("type"))
    if analytics_event and user_id:
        background_tasks.add_task(
            track_server_event,
            analytics_event,
            {"stripe_event_id": event.get("id")},
            user_id,
        )

    return {"received": True}
