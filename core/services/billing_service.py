# =============================================================================
# core/services/billing_service.py - Subscriptions, Limits and Stripe
# =============================================================================
# Handles everything plan related:
# - Resolving a user's effective plan from the subscriptions table
# - Counting usage against plan limits (repos, monthly snapshots and tasks)
# - Stripe Checkout and Billing Portal sessions
# - Applying Stripe webhook events to the subscriptions table
#
# Only rows with status "active" grant a paid plan. Users without a row are
# on the free plan.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

import stripe

from app.config import settings
from app.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    LimitExceededError,
    NoBillingAccountError,
)
from core.models.billing import (
    UNLIMITED,
    LimitStatus,
    LimitType,
    Plan,
    PlanId,
    SubscriptionStatus,
    get_plan,
)
from lib.supabase_client import SupabaseClient
from lib.utils import from_unix_timestamp, normalize_uuid, start_of_month

logger = logging.getLogger(__name__)


def _field(obj: Any, key: str) -> Any:
    """Read a key from a Stripe object or dict, None when absent."""
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError):
        return None


class BillingService:
    """
    Service for plans, usage limits and Stripe billing.

    Stripe is used through the module-level API; the secret key is applied
    right before each call so settings changes (and test patches) are
    picked up.
    """

    # -------------------------------------------------------------------------
    # Subscription & Plan
    # -------------------------------------------------------------------------

    @staticmethod
    def get_subscription(user_id: str | UUID) -> dict[str, Any]:
        """
        Get the user's effective plan.

        Args:
            user_id: The user UUID

        Returns:
            {"plan": Plan, "status": str, "current_period_end": str | None}
        """
        row = SupabaseClient.fetch_subscription(user_id)

        if not row or row.get("status") != SubscriptionStatus.ACTIVE.value:
            return {
                "plan": get_plan(PlanId.FREE.value),
                "status": SubscriptionStatus.FREE.value,
                "current_period_end": None,
            }

        return {
            "plan": get_plan(row.get("plan_id")),
            "status": row["status"],
            "current_period_end": row.get("current_period_end"),
        }

    @staticmethod
    def get_plan_for_user(user_id: str | UUID) -> Plan:
        return BillingService.get_subscription(user_id)["plan"]

    # -------------------------------------------------------------------------
    # Usage Limits
    # -------------------------------------------------------------------------

    @staticmethod
    def _user_project_ids(user_id: str) -> list[str]:
        client = SupabaseClient.get_client()
        response = (
            client.table("projects")
            .select("id")
            .eq("user_id", user_id)
            .execute()
        )
        return [row["id"] for row in response.data or []]

    @staticmethod
    def count_usage(user_id: str | UUID, limit_type: LimitType) -> int:
        """
        Count how much of a limit the user has consumed.

        Repos count all projects. Snapshots and tasks count rows created
        since the first day of the current UTC month.
        """
        client = SupabaseClient.get_client()
        user_id_str = normalize_uuid(user_id)

        if limit_type == LimitType.REPOS:
            response = (
                client.table("projects")
                .select("id", count="exact")
                .eq("user_id", user_id_str)
                .execute()
            )
            return response.count or 0

        project_ids = BillingService._user_project_ids(user_id_str)
        if not project_ids:
            return 0

        table = "snapshots" if limit_type == LimitType.SNAPSHOTS else "tasks"
        response = (
            client.table(table)
            .select("id", count="exact")
            .in_("project_id", project_ids)
            .gte("created_at", start_of_month().isoformat())
            .execute()
        )
        return response.count or 0

    @staticmethod
    def check_limit(user_id: str | UUID, limit_type: LimitType) -> LimitStatus:
        """
        Check one plan limit.

        Unlimited plans short-circuit to {allowed: True, current: 0, limit: -1}
        without counting.
        """
        plan = BillingService.get_plan_for_user(user_id)
        limit = plan.limits.for_type(limit_type)

        if limit == UNLIMITED:
            return LimitStatus(allowed=True, current=0, limit=UNLIMITED)

        current = BillingService.count_usage(user_id, limit_type)
        return LimitStatus(allowed=current < limit, current=current, limit=limit)

    @staticmethod
    def check_all_limits(user_id: str | UUID) -> dict[str, LimitStatus]:
        return {
            limit_type.value: BillingService.check_limit(user_id, limit_type)
            for limit_type in LimitType
        }

    @staticmethod
    def enforce_limit(user_id: str | UUID, limit_type: LimitType) -> LimitStatus:
        """
        Raise if the user has used up a limit.

        Raises:
            LimitExceededError: If the plan allows no more of this resource
        """
        status = BillingService.check_limit(user_id, limit_type)
        if not status.allowed:
            logger.info(
                f"User {user_id} hit {limit_type.value} limit ({status.current}/{status.limit})"
            )
            raise LimitExceededError(limit_type.value, status.current, status.limit)
        return status

    # -------------------------------------------------------------------------
    # Stripe Sessions
    # -------------------------------------------------------------------------

    @staticmethod
    def _configure_stripe() -> None:
        if not settings.STRIPE_SECRET_KEY:
            raise ConfigurationError("Stripe is not configured", "STRIPE_SECRET_KEY")
        stripe.api_key = settings.STRIPE_SECRET_KEY

    @staticmethod
    def get_or_create_customer(user_id: str | UUID, email: str | None) -> str:
        """
        Return the user's Stripe customer ID, creating a customer if needed.

        New customers carry the user ID in their metadata.
        """
        user_id_str = normalize_uuid(user_id)
        row = SupabaseClient.fetch_subscription(user_id_str)
        if row and row.get("stripe_customer_id"):
            return row["stripe_customer_id"]

        BillingService._configure_stripe()
        try:
            customer = stripe.Customer.create(email=email, metadata={"user_id": user_id_str})
        except stripe.StripeError as e:
            logger.error(f"Failed to create Stripe customer for {user_id_str}: {e}")
            raise ExternalServiceError("Stripe", str(e))

        logger.info(f"Created Stripe customer {customer['id']} for user {user_id_str}")
        return customer["id"]

    @staticmethod
    def create_checkout_session(user_id: str | UUID, email: str | None, price_id: str) -> str:
        """
        Create a subscription-mode Checkout Session.

        Returns:
            Hosted checkout URL
        """
        user_id_str = normalize_uuid(user_id)
        customer_id = BillingService.get_or_create_customer(user_id_str, email)

        BillingService._configure_stripe()
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=f"{settings.app_url}/billing?success=true",
                cancel_url=f"{settings.app_url}/billing?canceled=true",
                metadata={"user_id": user_id_str},
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session for {user_id_str}: {e}")
            raise ExternalServiceError("Stripe", str(e))

        return _field(session, "url") or ""

    @staticmethod
    def create_portal_session(user_id: str | UUID) -> str:
        """
        Create a Billing Portal session for managing the subscription.

        Raises:
            NoBillingAccountError: If the user never checked out
        """
        user_id_str = normalize_uuid(user_id)
        row = SupabaseClient.fetch_subscription(user_id_str)
        if not row or not row.get("stripe_customer_id"):
            raise NoBillingAccountError(user_id_str)

        BillingService._configure_stripe()
        try:
            session = stripe.billing_portal.Session.create(
                customer=row["stripe_customer_id"],
                return_url=f"{settings.app_url}/billing",
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create portal session for {user_id_str}: {e}")
            raise ExternalServiceError("Stripe", str(e))

        return session["url"]

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    @staticmethod
    def plan_id_for_price(price_id: str | None) -> str:
        """Map a Stripe price to a plan. Unknown prices are treated as Pro."""
        if price_id and price_id == settings.STRIPE_TEAM_PRICE_ID:
            return PlanId.TEAM.value
        return PlanId.PRO.value

    @staticmethod
    def _period_bounds(subscription: Any) -> tuple[str | None, str | None]:
        """
        Current period start/end as ISO strings.

        Newer Stripe API versions report the period on subscription items
        instead of the subscription itself.
        """
        start = _field(subscription, "current_period_start")
        end = _field(subscription, "current_period_end")
        if start is None or end is None:
            item = BillingService._first_item(subscription)
            start = start if start is not None else _field(item, "current_period_start")
            end = end if end is not None else _field(item, "current_period_end")
        return from_unix_timestamp(start), from_unix_timestamp(end)

    @staticmethod
    def _first_item(subscription: Any) -> Any:
        items = _field(_field(subscription, "items"), "data") or []
        return items[0] if items else None

    @staticmethod
    def _price_id(subscription: Any) -> str | None:
        return _field(_field(BillingService._first_item(subscription), "price"), "id")

    @staticmethod
    def handle_webhook_event(event: dict[str, Any]) -> str | None:
        """
        Apply a verified Stripe event to the subscriptions table.

        Args:
            event: Stripe event payload

        Returns:
            The user ID affected by a plan change, when known (for analytics)
        """
        event_type = event.get("type")
        obj = event.get("data", {}).get("object", {})
        logger.info(f"Handling Stripe event {event_type}")

        if event_type == "checkout.session.completed":
            return BillingService._handle_checkout_completed(obj)
        if event_type == "customer.subscription.deleted":
            BillingService._handle_subscription_deleted(obj)
            return BillingService.user_for_subscription(obj.get("id"))

        if event_type == "customer.subscription.updated":
            BillingService._handle_subscription_updated(obj)
        elif event_type == "invoice.payment_failed":
            BillingService._handle_payment_failed(obj)
        else:
            logger.debug(f"Ignoring Stripe event {event_type}")
        return None

    @staticmethod
    def _handle_checkout_completed(session: dict[str, Any]) -> str | None:
        user_id = (session.get("metadata") or {}).get("user_id")
        if not user_id:
            logger.warning("checkout.session.completed without metadata.user_id, ignoring")
            return None

        subscription_id = session.get("subscription")
        BillingService._configure_stripe()
        subscription = stripe.Subscription.retrieve(subscription_id)

        plan_id = BillingService.plan_id_for_price(BillingService._price_id(subscription))
        period_start, period_end = BillingService._period_bounds(subscription)

        client = SupabaseClient.get_client()
        client.table("subscriptions").upsert(
            {
                "user_id": user_id,
                "stripe_customer_id": session.get("customer"),
                "stripe_subscription_id": subscription_id,
                "plan_id": plan_id,
                "status": SubscriptionStatus.ACTIVE.value,
                "current_period_start": period_start,
                "current_period_end": period_end,
            },
            on_conflict="user_id",
        ).execute()

        logger.info(f"Activated {plan_id} subscription {subscription_id} for user {user_id}")
        return user_id

    @staticmethod
    def _handle_subscription_updated(subscription: dict[str, Any]) -> None:
        plan_id = BillingService.plan_id_for_price(BillingService._price_id(subscription))
        period_start, period_end = BillingService._period_bounds(subscription)
        status = (
            SubscriptionStatus.ACTIVE.value
            if subscription.get("status") == "active"
            else SubscriptionStatus.INACTIVE.value
        )

        client = SupabaseClient.get_client()
        client.table("subscriptions").update({
            "plan_id": plan_id,
            "status": status,
            "current_period_start": period_start,
            "current_period_end": period_end,
        }).eq("stripe_subscription_id", subscription["id"]).execute()

    @staticmethod
    def _handle_subscription_deleted(subscription: dict[str, Any]) -> None:
        client = SupabaseClient.get_client()
        client.table("subscriptions").update({
            "status": SubscriptionStatus.CANCELED.value,
            "plan_id": PlanId.FREE.value,
        }).eq("stripe_subscription_id", subscription["id"]).execute()

    @staticmethod
    def _handle_payment_failed(invoice: dict[str, Any]) -> None:
        subscription_id = invoice.get("subscription")
        if not subscription_id:
            return

        client = SupabaseClient.get_client()
        client.table("subscriptions").update({
            "status": SubscriptionStatus.PAST_DUE.value,
        }).eq("stripe_subscription_id", subscription_id).execute()

    @staticmethod
    def user_for_subscription(subscription_id: str | None) -> str | None:
        """Look up which user a Stripe subscription belongs to."""
        if not subscription_id:
            return None
        client = SupabaseClient.get_client()
        response = (
            client.table("subscriptions")
            .select("user_id")
            .eq("stripe_subscription_id", subscription_id)
            .limit(1)
            .execute()
        )
        return response.data[0]["user_id"] if response.data else None

    @staticmethod
    def construct_event(payload: bytes, signature: str) -> None:
        """
        Verify a webhook signature.

        Raises:
            stripe.SignatureVerificationError: If the signature doesn't match
            ValueError: If the payload isn't valid JSON
        """
        stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
