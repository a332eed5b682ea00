# =============================================================================
# core/services/task_service.py - Task Business Logic
# =============================================================================
# Stores and retrieves generated implementation tasks. Generation itself is
# done by LLMService; this module only persists and queries.
#
# Ownership is checked through the task's project.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid
from app.exceptions import TaskNotFoundError
from core.services.project_service import ProjectService

logger = logging.getLogger(__name__)

UNKNOWN_PROJECT_NAME = "Unknown"


class TaskService:
    """Service for generated tasks."""

    @staticmethod
    def create_task(
        project_id: str | UUID,
        snapshot_id: str | UUID,
        title: str,
        description: str,
        markdown: str,
    ) -> dict[str, Any]:
        """
        Store a generated task.

        Returns:
            Created task row
        """
        client = SupabaseClient.get_client()

        data = {
            "project_id": normalize_uuid(project_id),
            "snapshot_id": normalize_uuid(snapshot_id),
            "title": title,
            "description": description,
            "markdown": markdown,
        }

        try:
            response = client.table("tasks").insert(data).execute()
            if response.data:
                task = response.data[0]
                logger.info(f"Created task: {task['id']} for snapshot: {snapshot_id}")
                return task

            raise Exception("Insert returned no data")

        except Exception as e:
            logger.error(f"Failed to create task: {e}")
            raise

    @staticmethod
    def get_task(task_id: str | UUID, user_id: UUID | str) -> dict[str, Any]:
        """
        Get a task, checking ownership through its project.

        Raises:
            TaskNotFoundError: If the task doesn't exist
            ProjectNotFoundError / AccessDeniedError: From the project check
        """
        task = SupabaseClient.fetch_task(task_id)
        if not task:
            raise TaskNotFoundError(str(task_id))

        ProjectService.get_project(task["project_id"], user_id=user_id)
        return task

    @staticmethod
    def _list_by(column: str, value: str | list[str]) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = client.table("tasks").select("*")
        if isinstance(value, list):
            query = query.in_(column, value)
        else:
            query = query.eq(column, value)
        response = query.order("created_at", desc=True).execute()
        return response.data or []

    @staticmethod
    def list_tasks_for_user(user_id: UUID | str) -> list[dict[str, Any]]:
        """
        All tasks across a user's projects, newest first.

        Each task gets a project_name (the repository name).
        """
        projects = ProjectService.list_projects(user_id)
        if not projects:
            return []

        names = {str(p["id"]): p.get("repo_name") for p in projects}
        tasks = TaskService._list_by("project_id", list(names))

        return [
            {**task, "project_name": names.get(str(task["project_id"])) or UNKNOWN_PROJECT_NAME}
            for task in tasks
        ]

    @staticmethod
    def list_tasks_for_project(project_id: str | UUID) -> list[dict[str, Any]]:
        return TaskService._list_by("project_id", normalize_uuid(project_id))

    @staticmethod
    def list_tasks_for_snapshot(snapshot_id: str | UUID) -> list[dict[str, Any]]:
        return TaskService._list_by("snapshot_id", normalize_uuid(snapshot_id))

    @staticmethod
    def delete_task(task_id: str | UUID, user_id: UUID | str) -> None:
        """Delete a task after checking ownership."""
        TaskService.get_task(task_id, user_id)
        client = SupabaseClient.get_client()
        task_id_str = normalize_uuid(task_id)
        client.table("tasks").delete().eq("id", task_id_str).execute()
        logger.info(f"Deleted task: {task_id_str}")
