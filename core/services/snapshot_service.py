# =============================================================================
# core/services/snapshot_service.py - Snapshot Business Logic
# =============================================================================
# A snapshot is one generated architecture document for a project, plus the
# normalized repository tree it was generated from (the drift baseline).
#
# Ownership is checked through the snapshot's project.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient, is_no_rows_error
from lib.utils import normalize_uuid
from app.exceptions import SnapshotNotFoundError
from core.models.repo import RepoFile
from core.services.project_service import ProjectService

logger = logging.getLogger(__name__)


class SnapshotService:
    """Service for architecture snapshots."""

    @staticmethod
    def create_snapshot(
        project_id: str | UUID,
        markdown: str,
        repo_structure: RepoFile | None = None,
    ) -> dict[str, Any]:
        """
        Store a generated architecture document.

        Args:
            project_id: Owning project
            markdown: Architecture document
            repo_structure: Tree the document was generated from

        Returns:
            Created snapshot row
        """
        client = SupabaseClient.get_client()

        data: dict[str, Any] = {
            "project_id": normalize_uuid(project_id),
            "markdown": markdown,
        }
        if repo_structure is not None:
            data["repo_structure"] = repo_structure.to_json()

        try:
            response = client.table("snapshots").insert(data).execute()
            if response.data:
                snapshot = response.data[0]
                logger.info(f"Created snapshot: {snapshot['id']} for project: {project_id}")
                return snapshot

            raise Exception("Insert returned no data")

        except Exception as e:
            logger.error(f"Failed to create snapshot: {e}")
            raise

    @staticmethod
    def get_snapshot(
        snapshot_id: str | UUID,
        user_id: UUID | str,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """
        Get a snapshot and its project, checking ownership.

        Returns:
            (snapshot, project)

        Raises:
            SnapshotNotFoundError: If the snapshot doesn't exist
            ProjectNotFoundError: If its project is gone
            AccessDeniedError: If another user owns the project
        """
        snapshot = SupabaseClient.fetch_snapshot(snapshot_id)
        if not snapshot:
            raise SnapshotNotFoundError(str(snapshot_id))

        project = ProjectService.get_project(snapshot["project_id"], user_id=user_id)
        return snapshot, project

    @staticmethod
    def list_snapshots(project_id: str | UUID) -> list[dict[str, Any]]:
        """Snapshots for a project, newest first."""
        client = SupabaseClient.get_client()
        response = (
            client.table("snapshots")
            .select("*")
            .eq("project_id", normalize_uuid(project_id))
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    @staticmethod
    def get_latest_snapshot(project_id: str | UUID) -> dict[str, Any] | None:
        """Most recent snapshot for a project, or None."""
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("snapshots")
                .select("*")
                .eq("project_id", normalize_uuid(project_id))
                .order("created_at", desc=True)
                .limit(1)
                .single()
                .execute()
            )
            return response.data

        except Exception as e:
            if is_no_rows_error(e):
                return None
            logger.error(f"Failed to fetch latest snapshot for {project_id}: {e}")
            raise

    @staticmethod
    def delete_snapshot(snapshot_id: str | UUID, user_id: UUID | str) -> None:
        """
        Delete a snapshot after checking ownership.

        Raises:
            SnapshotNotFoundError / AccessDeniedError: See get_snapshot()
        """
        SnapshotService.get_snapshot(snapshot_id, user_id)
        client = SupabaseClient.get_client()
        snapshot_id_str = normalize_uuid(snapshot_id)
        client.table("snapshots").delete().eq("id", snapshot_id_str).execute()
        logger.info(f"Deleted snapshot: {snapshot_id_str}")
