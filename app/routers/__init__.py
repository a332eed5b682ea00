# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - projects.py: Connected repositories, snapshot generation, drift
# - snapshots.py: Architecture snapshots and PDF export
# - tasks.py: Generated implementation tasks
# - billing.py: Plans, subscriptions, limits and the Stripe webhook
#
# Each router is mounted in main.py with a URL prefix.
# Auth and GitHub OAuth routes live in app/auth/routes.py.
# =============================================================================

from . import health
from . import projects
from . import snapshots
from . import tasks
from . import billing

__all__ = [
    "health",
    "projects",
    "snapshots",
    "tasks",
    "billing",
]
