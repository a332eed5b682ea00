# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - repo.py: GitHub repository tree and metadata schemas
# - project.py: Project request schemas and response sanitizing
# - task.py: Task request schema and title extraction
# - drift.py: Drift detection status and file change schemas
# - billing.py: Plan catalogue, limits and checkout schemas
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Repository Models - GitHub data
# -----------------------------------------------------------------------------
from .repo import (
    BranchInfo,
    GitHubRepository,
    GitHubUser,
    RepoFile,
    RepoInfo,
)

# -----------------------------------------------------------------------------
# Project Models
# -----------------------------------------------------------------------------
from .project import (
    BranchesRequest,
    ConnectRepoRequest,
    sanitize_project,
)

# -----------------------------------------------------------------------------
# Task Models
# -----------------------------------------------------------------------------
from .task import (
    GeneratedTask,
    TaskCreateRequest,
    extract_task_title,
)

# -----------------------------------------------------------------------------
# Drift Models
# -----------------------------------------------------------------------------
from .drift import (
    DriftStatus,
    FileChanges,
)

# -----------------------------------------------------------------------------
# Billing Models
# -----------------------------------------------------------------------------
from .billing import (
    PLANS,
    UNLIMITED,
    CheckoutRequest,
    LimitStatus,
    LimitType,
    Plan,
    PlanId,
    PlanLimits,
    SubscriptionStatus,
    get_plan,
)

__all__ = [
    # Repository
    "BranchInfo",
    "GitHubRepository",
    "GitHubUser",
    "RepoFile",
    "RepoInfo",
    # Project
    "BranchesRequest",
    "ConnectRepoRequest",
    "sanitize_project",
    # Task
    "GeneratedTask",
    "TaskCreateRequest",
    "extract_task_title",
    # Drift
    "DriftStatus",
    "FileChanges",
    # Billing
    "PLANS",
    "UNLIMITED",
    "CheckoutRequest",
    "LimitStatus",
    "LimitType",
    "Plan",
    "PlanId",
    "PlanLimits",
    "SubscriptionStatus",
    "get_plan",
]
