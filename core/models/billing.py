# =============================================================================
# core/models/billing.py - Plans and Subscription Schemas
# =============================================================================
# The plan catalogue is static: three monthly plans priced in EUR cents.
# A limit of -1 means unlimited.
#
# Stripe price IDs are not part of the catalogue; they come from settings
# (STRIPE_PRO_PRICE_ID / STRIPE_TEAM_PRICE_ID) so each environment can use
# its own Stripe products.
# =============================================================================

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

UNLIMITED = -1


class PlanId(str, Enum):
    FREE = "free"
    PRO = "pro"
    TEAM = "team"


class LimitType(str, Enum):
    """Resources counted against a plan."""
    REPOS = "repos"
    SNAPSHOTS = "snapshots"
    TASKS = "tasks"


class SubscriptionStatus(str, Enum):
    """
    Values stored in subscriptions.status.

    Only ACTIVE grants a paid plan; everything else is treated as free.
    """
    FREE = "free"
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class PlanLimits(BaseModel):
    repos: int = Field(..., description="Connected repositories (-1 = unlimited)")
    snapshots_per_month: int = Field(..., description="Snapshots per calendar month")
    tasks_per_month: int = Field(..., description="Task generations per calendar month")

    def for_type(self, limit_type: LimitType) -> int:
        if limit_type == LimitType.REPOS:
            return self.repos
        if limit_type == LimitType.SNAPSHOTS:
            return self.snapshots_per_month
        return self.tasks_per_month


class Plan(BaseModel):
    """A subscription plan."""

    id: PlanId
    name: str
    price: int = Field(..., description="Monthly price in cents")
    currency: str = "eur"
    interval: str = "month"
    features: list[str]
    limits: PlanLimits

    @property
    def price_display(self) -> str:
        """Human readable price, e.g. "Free" or "€19/mo"."""
        if self.price == 0:
            return "Free"
        amount = self.price / 100
        amount_text = f"{amount:.0f}" if amount == int(amount) else f"{amount:.2f}"
        return f"€{amount_text}/mo"

    def to_public_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["price_display"] = self.price_display
        return data


class LimitStatus(BaseModel):
    """Usage against one plan limit."""

    allowed: bool
    current: int
    limit: int


class CheckoutRequest(BaseModel):
    """Body for POST /billing/checkout."""

    price_id: str = Field(..., min_length=1, description="Stripe price ID to subscribe to")


PRO_FEATURES = [
    "Up to 5 GitHub repositories",
    "Unlimited architecture snapshots",
    "Unlimited task generations",
    "Priority support",
    "Export to PDF",
]

PLANS: dict[PlanId, Plan] = {
    PlanId.FREE: Plan(
        id=PlanId.FREE,
        name="Free",
        price=0,
        features=[
            "1 GitHub repository",
            "3 architecture snapshots/month",
            "10 task generations/month",
            "Community support",
        ],
        limits=PlanLimits(repos=1, snapshots_per_month=3, tasks_per_month=10),
    ),
    PlanId.PRO: Plan(
        id=PlanId.PRO,
        name="Pro",
        price=1900,
        features=PRO_FEATURES,
        limits=PlanLimits(repos=5, snapshots_per_month=UNLIMITED, tasks_per_month=UNLIMITED),
    ),
    PlanId.TEAM: Plan(
        id=PlanId.TEAM,
        name="Team",
        price=4900,
        features=[
            *PRO_FEATURES,
            "Unlimited GitHub repositories",
            "Team collaboration (coming soon)",
        ],
        limits=PlanLimits(repos=UNLIMITED, snapshots_per_month=UNLIMITED, tasks_per_month=UNLIMITED),
    ),
}


def get_plan(plan_id: str | None) -> Plan:
    """Look up a plan, falling back to Free for unknown IDs."""
    try:
        return PLANS[PlanId(plan_id)]
    except (ValueError, KeyError):
        return PLANS[PlanId.FREE]
