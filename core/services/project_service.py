# =============================================================================
# core/services/project_service.py - Project Business Logic
# =============================================================================
# Handles project CRUD operations and ownership checks.
# Separates HTTP concerns from database/business logic.
#
# Rows returned here still contain github_token; routers pass them through
# sanitize_project() before responding.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid
from app.exceptions import AccessDeniedError, ProjectNotFoundError

logger = logging.getLogger(__name__)


class ProjectService:
    """
    Service for project management operations.

    Provides a clean interface between API routes and database.
    """

    @staticmethod
    def create_project(
        user_id: UUID | str,
        repo_name: str,
        installation_id: str,
        github_token: str,
        branch: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a project for a connected repository.

        Args:
            user_id: Owner of the project
            repo_name: Repository full name (owner/repo)
            installation_id: GitHub repository ID, as a string
            github_token: OAuth token used for later tree fetches
            branch: Branch to analyze (None = repository default)

        Returns:
            Created project row

        Raises:
            Exception: If creation fails
        """
        client = SupabaseClient.get_client()

        data = {
            "user_id": normalize_uuid(user_id),
            "repo_name": repo_name,
            "installation_id": installation_id,
            "github_token": github_token,
            "branch": branch,
        }

        try:
            response = (
                client.table("projects")
                .insert(data)
                .execute()
            )

            if response.data:
                project = response.data[0]
                logger.info(f"Created project: {project['id']} ({repo_name}) for user: {user_id}")
                return project

            raise Exception("Insert returned no data")

        except Exception as e:
            logger.error(f"Failed to create project: {e}")
            raise

    @staticmethod
    def get_project(
        project_id: str | UUID,
        user_id: UUID | str | None = None,
    ) -> dict[str, Any]:
        """
        Get a project by ID.

        Args:
            project_id: The project UUID
            user_id: If provided, verify the project belongs to this user

        Returns:
            Project dict (including github_token)

        Raises:
            ProjectNotFoundError: If project doesn't exist
            AccessDeniedError: If another user owns the project
        """
        project = SupabaseClient.fetch_project(project_id)

        if not project:
            raise ProjectNotFoundError(str(project_id))

        if user_id and str(project.get("user_id")) != str(user_id):
            raise AccessDeniedError("project", str(project_id))

        return project

    @staticmethod
    def list_projects(user_id: UUID | str) -> list[dict[str, Any]]:
        """
        List a user's projects, newest first.

        Args:
            user_id: The owner

        Returns:
            Project rows
        """
        client = SupabaseClient.get_client()

        response = (
            client.table("projects")
            .select("*")
            .eq("user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
            .execute()
        )

        return response.data or []

    @staticmethod
    def delete_project(
        project_id: str | UUID,
        user_id: UUID | str,
    ) -> dict[str, Any]:
        """
        Delete a project and its snapshots.

        Snapshots are removed first so no orphans survive if the project
        delete fails.

        Returns:
            The deleted project row

        Raises:
            ProjectNotFoundError: If project doesn't exist
            AccessDeniedError: If another user owns the project
        """
        project = ProjectService.get_project(project_id, user_id=user_id)
        client = SupabaseClient.get_client()
        project_id_str = normalize_uuid(project_id)

        try:
            client.table("snapshots").delete().eq("project_id", project_id_str).execute()
            client.table("projects").delete().eq("id", project_id_str).execute()
            logger.info(f"Deleted project: {project_id_str}")
            return project

        except Exception as e:
            logger.error(f"Failed to delete project {project_id_str}: {e}")
            raise
