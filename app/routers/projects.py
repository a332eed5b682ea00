# =============================================================================
# app/routers/projects.py - Project Endpoints
# =============================================================================
# Connected repositories and everything generated from them:
# - Listing, fetching and deleting projects
# - Listing branches of a repository
# - Generating architecture snapshots (LLM)
# - Drift detection against the latest snapshot (LLM)
#
# All endpoints require authentication. github_token is never returned.
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Path

from app.auth import get_current_user, AuthUser
from app.exceptions import GitHubTokenMissingError, NoBaselineSnapshotError
from app.rate_limit import limit_llm
from core.models.billing import LimitType
from core.models.project import BranchesRequest, sanitize_project
from core.services.billing_service import BillingService
from core.services.drift_service import DriftService
from core.services.github_service import GitHubService
from core.services.llm_service import LLMService
from core.services.project_service import ProjectService
from core.services.snapshot_service import SnapshotService
from lib.analytics import AnalyticsEvent, track_server_event

logger = logging.getLogger(__name__)

router = APIRouter()

ProjectId = Annotated[UUID, Path(description="Project UUID")]


# =============================================================================
# Endpoints
# =============================================================================

@router.get("")
async def list_projects(
    user: AuthUser = Depends(get_current_user),
):
    """
    List the user's projects, newest first.
    """
    projects = ProjectService.list_projects(user.id)
    return {"projects": [sanitize_project(p) for p in projects]}


@router.post("/branches")
async def list_branches(
    request: BranchesRequest,
    user: AuthUser = Depends(get_current_user),
):
    """
    List a repository's branches, flagging the default one.

    Used before connecting a repository, so it takes the token directly.
    """
    with GitHubService() as github:
        branches = github.fetch_branches(request.repo_name, request.github_token)

    return {"branches": [b.model_dump() for b in branches]}


@router.get("/{project_id}")
async def get_project(
    project_id: ProjectId,
    user: AuthUser = Depends(get_current_user),
):
    """
    Get a project. User must own it.
    """
    project = ProjectService.get_project(str(project_id), user_id=user.id)
    return {"project": sanitize_project(project)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: ProjectId,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
):
    """
    Delete a project together with its snapshots.
    """
    project = ProjectService.delete_project(str(project_id), user_id=user.id)

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.PROJECT_DELETED,
        {"project_id": str(project_id), "repo_name": project.get("repo_name")},
        str(user.id),
    )

    return {"success": True, "message": "Project deleted successfully"}


@router.post("/{project_id}/generate")
async def generate_snapshot(
    project_id: ProjectId,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(limit_llm),
):
    """
    Generate an architecture snapshot from the repository's current tree.

    Fetches the tree for the project's branch, asks the LLM for an
    architecture document, and stores both as a new snapshot.

    Raises:
        400: If the project has no GitHub token
        403: If the monthly snapshot limit is reached
    """
    project = ProjectService.get_project(str(project_id), user_id=user.id)

    if not project.get("github_token"):
        raise GitHubTokenMissingError(str(project_id))

    BillingService.enforce_limit(user.id, LimitType.SNAPSHOTS)

    with GitHubService() as github:
        tree = github.fetch_repo_tree(
            project["repo_name"],
            project["github_token"],
            project.get("branch"),
        )
    repo_structure = GitHubService.normalize_repo_structure(tree)

    markdown = LLMService().generate_architecture_markdown(
        project["repo_name"],
        repo_structure.to_json(),
    )

    snapshot = SnapshotService.create_snapshot(project["id"], markdown, repo_structure)

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.SNAPSHOT_GENERATED,
        {"project_id": project["id"], "snapshot_id": snapshot["id"], "repo_name": project["repo_name"]},
        str(user.id),
    )

    return {
        "success": True,
        "snapshot": snapshot,
        "message": "Architecture documentation generated successfully",
    }


@router.post("/{project_id}/drift")
async def detect_drift(
    project_id: ProjectId,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(limit_llm),
):
    """
    Detect drift between the repository and its latest snapshot.

    Rebuilds the current tree and architecture document, then compares
    both against the snapshot.

    Raises:
        400: If the project has no GitHub token or no snapshot yet
    """
    project = ProjectService.get_project(str(project_id), user_id=user.id)

    if not project.get("github_token"):
        raise GitHubTokenMissingError(str(project_id))

    latest = SnapshotService.get_latest_snapshot(project["id"])
    if not latest:
        raise NoBaselineSnapshotError(str(project_id))

    with GitHubService() as github:
        tree = github.fetch_repo_tree(
            project["repo_name"],
            project["github_token"],
            project.get("branch"),
        )
    current_structure = GitHubService.normalize_repo_structure(tree)

    current_markdown = LLMService().generate_architecture_markdown(
        project["repo_name"],
        current_structure.to_json(),
    )

    drift = DriftService.detect_drift(
        project_id=project["id"],
        current_structure=current_structure,
        snapshot_id=latest["id"],
        previous_structure=latest.get("repo_structure"),
        current_markdown=current_markdown,
        previous_markdown=latest.get("markdown") or "",
    )

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.DRIFT_DETECTED,
        {"project_id": project["id"], "drift_score": drift.get("drift_score")},
        str(user.id),
    )

    return {
        "success": True,
        "drift": drift,
        "message": "Drift detection completed successfully",
    }


@router.get("/{project_id}/drift")
async def list_drift_results(
    project_id: ProjectId,
    user: AuthUser = Depends(get_current_user),
):
    """
    Completed drift results for a project, newest first.
    """
    ProjectService.get_project(str(project_id), user_id=user.id)
    return {"success": True, "drift_results": DriftService.list_drift_results(str(project_id))}
