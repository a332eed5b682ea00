# =============================================================================
# tests/test_billing.py - Plans, Limits and Stripe Tests
# =============================================================================
# Stripe is replaced by a MagicMock on the billing_service module; the
# subscriptions table lives in the in-memory Supabase double.
#
# Run with: pytest tests/test_billing.py -v
# =============================================================================

import json
from unittest.mock import MagicMock

import pytest
import stripe

from app.config import settings
from app.exceptions import LimitExceededError
from app.routers import billing as billing_router
from core.models import LimitType, PlanId
from core.services import billing_service
from core.services.billing_service import BillingService
from tests.conftest import OTHER_USER_ID, USER_ID

LAST_YEAR = "2000-01-15T12:00:00.000000+00:00"


@pytest.fixture
def mock_stripe(monkeypatch):
    mocked = MagicMock()
    mocked.StripeError = stripe.StripeError
    monkeypatch.setattr(billing_service, "stripe", mocked)
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test")
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    monkeypatch.setattr(settings, "STRIPE_PRO_PRICE_ID", "price_pro")
    monkeypatch.setattr(settings, "STRIPE_TEAM_PRICE_ID", "price_team")
    monkeypatch.setattr(settings, "APP_URL", "https://app.example.com")
    return mocked


@pytest.fixture
def tracked(monkeypatch):
    events = []
    monkeypatch.setattr(
        billing_router,
        "track_server_event",
        lambda event, properties=None, user_id=None: events.append((event, properties, user_id)),
    )
    return events


# =============================================================================
# Plan Resolution
# =============================================================================

class TestSubscription:

    def test_no_row_is_free(self):
        subscription = BillingService.get_subscription(USER_ID)

        assert subscription["plan"].id == PlanId.FREE
        assert subscription["status"] == "free"
        assert subscription["current_period_end"] is None

    def test_active_row_grants_plan(self, make_subscription):
        make_subscription(plan_id="team", current_period_end="2030-01-01T00:00:00+00:00")

        subscription = BillingService.get_subscription(USER_ID)

        assert subscription["plan"].id == PlanId.TEAM
        assert subscription["status"] == "active"
        assert subscription["current_period_end"] == "2030-01-01T00:00:00+00:00"

    @pytest.mark.parametrize("status", ["canceled", "past_due", "inactive"])
    def test_inactive_rows_are_free(self, make_subscription, status):
        make_subscription(status=status)
        assert BillingService.get_plan_for_user(USER_ID).id == PlanId.FREE


# =============================================================================
# Usage Limits
# =============================================================================

class TestLimits:

    def test_counts_only_this_months_snapshots(self, make_project, make_snapshot):
        project = make_project()
        make_snapshot(project["id"])
        make_snapshot(project["id"])
        make_snapshot(project["id"], created_at=LAST_YEAR)
        other = make_project(user_id=OTHER_USER_ID)
        make_snapshot(other["id"])

        assert BillingService.count_usage(USER_ID, LimitType.SNAPSHOTS) == 2

    def test_no_projects_means_no_usage(self):
        assert BillingService.count_usage(USER_ID, LimitType.TASKS) == 0

    def test_free_limit_reached(self, make_project, make_snapshot):
        project = make_project()
        for _ in range(3):
            make_snapshot(project["id"])

        status = BillingService.check_limit(USER_ID, LimitType.SNAPSHOTS)
        assert (status.allowed, status.current, status.limit) == (False, 3, 3)

        with pytest.raises(LimitExceededError) as exc_info:
            BillingService.enforce_limit(USER_ID, LimitType.SNAPSHOTS)
        assert exc_info.value.message == "snapshots limit reached. You've used 3 of 3."

    def test_unlimited_skips_counting(self, make_project, make_snapshot, make_subscription):
        make_subscription(plan_id="pro")
        project = make_project()
        for _ in range(5):
            make_snapshot(project["id"])

        status = BillingService.check_limit(USER_ID, LimitType.SNAPSHOTS)

        assert (status.allowed, status.current, status.limit) == (True, 0, -1)

    def test_pro_repo_limit(self, make_project, make_subscription):
        make_subscription(plan_id="pro")
        for i in range(5):
            make_project(repo_name=f"octocat/repo-{i}")

        assert not BillingService.check_limit(USER_ID, LimitType.REPOS).allowed


# =============================================================================
# Billing Endpoints
# =============================================================================

class TestBillingEndpoints:

    def test_plans_are_public(self, anon_client):
        response = anon_client.get("/api/v1/billing/plans")

        assert response.status_code == 200
        plans = response.json()["plans"]
        assert [p["id"] for p in plans] == ["free", "pro", "team"]
        assert plans[1]["price_display"] == "€19/mo"

    def test_subscription_requires_auth(self, anon_client):
        assert anon_client.get("/api/v1/billing/subscription").status_code == 401

    def test_subscription(self, client, make_subscription):
        make_subscription(plan_id="pro")

        body = client.get("/api/v1/billing/subscription").json()["subscription"]

        assert body["plan"]["id"] == "pro"
        assert body["status"] == "active"

    def test_limits(self, client, make_project):
        make_project()

        limits = client.get("/api/v1/billing/limits").json()["limits"]

        assert limits["repos"] == {"allowed": False, "current": 1, "limit": 1}
        assert limits["snapshots"] == {"allowed": True, "current": 0, "limit": 3}
        assert limits["tasks"] == {"allowed": True, "current": 0, "limit": 10}


class TestCheckout:

    def test_creates_customer_and_session(self, client, mock_stripe, tracked):
        mock_stripe.Customer.create.return_value = {"id": "cus_new"}
        mock_stripe.checkout.Session.create.return_value = {"url": "https://checkout.stripe.com/c/1"}

        response = client.post("/api/v1/billing/checkout", json={"price_id": "price_pro"})

        assert response.status_code == 200
        assert response.json() == {"url": "https://checkout.stripe.com/c/1"}
        mock_stripe.Customer.create.assert_called_once_with(
            email="dev@example.com", metadata={"user_id": str(USER_ID)}
        )
        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs["customer"] == "cus_new"
        assert kwargs["mode"] == "subscription"
        assert kwargs["line_items"] == [{"price": "price_pro", "quantity": 1}]
        assert kwargs["success_url"] == "https://app.example.com/billing?success=true"
        assert kwargs["cancel_url"] == "https://app.example.com/billing?canceled=true"
        assert kwargs["metadata"] == {"user_id": str(USER_ID)}
        assert tracked[0][0] == "checkout_started"

    def test_reuses_existing_customer(self, client, mock_stripe, make_subscription, tracked):
        make_subscription(status="canceled", stripe_customer_id="cus_old")
        mock_stripe.checkout.Session.create.return_value = {"url": "https://checkout.stripe.com/c/2"}

        client.post("/api/v1/billing/checkout", json={"price_id": "price_team"})

        mock_stripe.Customer.create.assert_not_called()
        assert mock_stripe.checkout.Session.create.call_args.kwargs["customer"] == "cus_old"

    def test_stripe_failure(self, client, mock_stripe, make_subscription):
        make_subscription()
        mock_stripe.checkout.Session.create.side_effect = stripe.StripeError("No such price")

        response = client.post("/api/v1/billing/checkout", json={"price_id": "price_x"})

        assert response.status_code == 502
        assert response.json()["code"] == "EXTERNAL_SERVICE_ERROR"

    def test_not_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "")

        response = client.post("/api/v1/billing/checkout", json={"price_id": "price_pro"})

        assert response.status_code == 500
        assert response.json()["details"] == {"setting": "STRIPE_SECRET_KEY"}

    def test_requires_price(self, client):
        assert client.post("/api/v1/billing/checkout", json={}).status_code == 400


class TestPortal:

    def test_without_customer(self, client, mock_stripe):
        response = client.post("/api/v1/billing/portal")

        assert response.status_code == 400
        assert response.json()["code"] == "NO_BILLING_ACCOUNT"

    def test_portal_session(self, client, mock_stripe, make_subscription):
        make_subscription(stripe_customer_id="cus_123")
        mock_stripe.billing_portal.Session.create.return_value = {"url": "https://billing.stripe.com/p/1"}

        response = client.post("/api/v1/billing/portal")

        assert response.json() == {"url": "https://billing.stripe.com/p/1"}
        mock_stripe.billing_portal.Session.create.assert_called_once_with(
            customer="cus_123", return_url="https://app.example.com/billing"
        )


# =============================================================================
# Webhook
# =============================================================================

STRIPE_SUBSCRIPTION = {
    "id": "sub_1",
    "status": "active",
    "items": {"data": [{
        "price": {"id": "price_team"},
        "current_period_start": 1700000000,
        "current_period_end": 1702592000,
    }]},
}


def post_event(client, event, signature="t=1,v1=abc"):
    headers = {"stripe-signature": signature} if signature else {}
    return client.post("/api/v1/billing/webhook", content=json.dumps(event), headers=headers)


class TestWebhook:

    def test_not_configured(self, anon_client, monkeypatch):
        monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "")

        response = post_event(anon_client, {"type": "ping"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Webhook not configured"

    def test_missing_signature(self, anon_client, mock_stripe):
        response = post_event(anon_client, {"type": "ping"}, signature=None)

        assert response.status_code == 400
        assert response.json()["detail"] == "Webhook Error: Missing signature"

    def test_invalid_signature(self, anon_client, mock_stripe, fake_db):
        mock_stripe.Webhook.construct_event.side_effect = ValueError("No signatures found")

        response = post_event(anon_client, {
            "type": "invoice.payment_failed",
            "data": {"object": {"subscription": "sub_1"}},
        })

        assert response.status_code == 400
        assert response.json()["detail"] == "Webhook Error: No signatures found"
        assert fake_db.rows("subscriptions") == []

    def test_checkout_completed_activates_plan(self, anon_client, mock_stripe, fake_db, tracked):
        mock_stripe.Subscription.retrieve.return_value = STRIPE_SUBSCRIPTION

        response = post_event(anon_client, {
            "id": "evt_1",
            "type": "checkout.session.completed",
            "data": {"object": {
                "customer": "cus_1",
                "subscription": "sub_1",
                "metadata": {"user_id": str(USER_ID)},
            }},
        })

        assert response.json() == {"received": True}
        mock_stripe.Webhook.construct_event.assert_called_once()
        row = fake_db.rows("subscriptions")[0]
        assert row["plan_id"] == "team"
        assert row["status"] == "active"
        assert row["stripe_customer_id"] == "cus_1"
        assert row["current_period_start"].startswith("2023-11-14")
        assert tracked == [("subscription_upgraded", {"stripe_event_id": "evt_1"}, str(USER_ID))]

    def test_checkout_completed_updates_existing_row(self, anon_client, mock_stripe, fake_db, make_subscription, tracked):
        make_subscription(status="canceled", plan_id="free")
        mock_stripe.Subscription.retrieve.return_value = {**STRIPE_SUBSCRIPTION, "items": {"data": [{"price": {"id": "price_pro"}}]}}

        post_event(anon_client, {
            "type": "checkout.session.completed",
            "data": {"object": {"customer": "cus_1", "subscription": "sub_2", "metadata": {"user_id": str(USER_ID)}}},
        })

        rows = fake_db.rows("subscriptions")
        assert len(rows) == 1
        assert (rows[0]["plan_id"], rows[0]["status"]) == ("pro", "active")

    def test_subscription_updated(self, anon_client, mock_stripe, fake_db, make_subscription):
        make_subscription(stripe_subscription_id="sub_1", plan_id="pro")

        post_event(anon_client, {
            "type": "customer.subscription.updated",
            "data": {"object": {**STRIPE_SUBSCRIPTION, "status": "past_due"}},
        })

        row = fake_db.rows("subscriptions")[0]
        assert (row["plan_id"], row["status"]) == ("team", "inactive")

    def test_subscription_deleted(self, anon_client, mock_stripe, fake_db, make_subscription, tracked):
        make_subscription(stripe_subscription_id="sub_1", plan_id="pro")

        post_event(anon_client, {
            "id": "evt_2",
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_1"}},
        })

        row = fake_db.rows("subscriptions")[0]
        assert (row["plan_id"], row["status"]) == ("free", "canceled")
        assert tracked == [("subscription_cancelled", {"stripe_event_id": "evt_2"}, str(USER_ID))]
        assert BillingService.get_plan_for_user(USER_ID).id == PlanId.FREE

    def test_payment_failed(self, anon_client, mock_stripe, fake_db, make_subscription):
        make_subscription(stripe_subscription_id="sub_1")

        post_event(anon_client, {
            "type": "invoice.payment_failed",
            "data": {"object": {"subscription": "sub_1"}},
        })

        assert fake_db.rows("subscriptions")[0]["status"] == "past_due"

    def test_unhandled_event(self, anon_client, mock_stripe, tracked):
        response = post_event(anon_client, {"type": "customer.created", "data": {"object": {}}})

        assert response.json() == {"received": True}
        assert tracked == []

    def test_plan_for_unknown_price_is_pro(self, mock_stripe):
        assert BillingService.plan_id_for_price("price_unknown") == "pro"
        assert BillingService.plan_id_for_price("price_team") == "team"
