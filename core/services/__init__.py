# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .project_service import ProjectService
from .snapshot_service import SnapshotService
from .task_service import TaskService
from .billing_service import BillingService
from .drift_service import DriftService
from .github_service import GitHubService
from .llm_service import LLMService

__all__ = [
    "ProjectService",
    "SnapshotService",
    "TaskService",
    "BillingService",
    "DriftService",
    "GitHubService",
    "LLMService",
]
