# =============================================================================
# app/routers/tasks.py - Task Endpoints
# =============================================================================
# Generate implementation tasks from a snapshot and manage them.
# All endpoints require authentication; task creation is LLM rate limited.
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Path

from app.auth import get_current_user, AuthUser
from app.rate_limit import limit_llm
from core.models.billing import LimitType
from core.models.task import TaskCreateRequest
from core.services.billing_service import BillingService
from core.services.llm_service import LLMService
from core.services.project_service import ProjectService
from core.services.snapshot_service import SnapshotService
from core.services.task_service import TaskService
from lib.analytics import AnalyticsEvent, track_server_event

logger = logging.getLogger(__name__)

router = APIRouter()

TaskId = Annotated[UUID, Path(description="Task UUID")]


@router.post("")
async def create_task(
    request: TaskCreateRequest,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(limit_llm),
):
    """
    Generate an implementation task from a snapshot.

    The feature description is combined with the snapshot's architecture
    document; the LLM writes the plan and its "# Task:" heading becomes
    the title.

    Raises:
        404: If the snapshot or its project doesn't exist
        403: If another user owns the snapshot or the task limit is reached
    """
    snapshot, project = SnapshotService.get_snapshot(str(request.snapshot_id), user.id)

    BillingService.enforce_limit(user.id, LimitType.TASKS)

    generated = LLMService().generate_task(
        architecture_markdown=snapshot["markdown"],
        feature_description=request.description,
        repo_name=project["repo_name"],
    )

    task = TaskService.create_task(
        project_id=project["id"],
        snapshot_id=snapshot["id"],
        title=generated.title,
        description=request.description,
        markdown=generated.markdown,
    )

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.TASK_GENERATED,
        {"task_id": task["id"], "project_id": project["id"], "snapshot_id": snapshot["id"]},
        str(user.id),
    )

    return {"success": True, "task": task, "message": "Task generated successfully"}


@router.get("")
async def list_tasks(
    user: AuthUser = Depends(get_current_user),
):
    """
    List all tasks across the user's projects, newest first.
    """
    return {"tasks": TaskService.list_tasks_for_user(user.id)}


@router.get("/project/{project_id}")
async def list_project_tasks(
    project_id: Annotated[UUID, Path(description="Project UUID")],
    user: AuthUser = Depends(get_current_user),
):
    """List a project's tasks, newest first."""
    ProjectService.get_project(str(project_id), user_id=user.id)
    return {"tasks": TaskService.list_tasks_for_project(str(project_id))}


@router.get("/snapshot/{snapshot_id}")
async def list_snapshot_tasks(
    snapshot_id: Annotated[UUID, Path(description="Snapshot UUID")],
    user: AuthUser = Depends(get_current_user),
):
    """List tasks generated from a snapshot, newest first."""
    SnapshotService.get_snapshot(str(snapshot_id), user.id)
    return {"tasks": TaskService.list_tasks_for_snapshot(str(snapshot_id))}


@router.get("/{task_id}")
async def get_task(
    task_id: TaskId,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
):
    """Get a task."""
    task = TaskService.get_task(str(task_id), user.id)

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.TASK_VIEWED,
        {"task_id": task["id"]},
        str(user.id),
    )

    return {"task": task}


@router.delete("/{task_id}")
async def delete_task(
    task_id: TaskId,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
):
    """Delete a task."""
    TaskService.delete_task(str(task_id), user.id)

    background_tasks.add_task(
        track_server_event,
        AnalyticsEvent.TASK_DELETED,
        {"task_id": str(task_id)},
        str(user.id),
    )

    return {"success": True, "message": "Task deleted successfully"}
