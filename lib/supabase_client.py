# =============================================================================
# lib/supabase_client.py - Supabase Client Wrapper
# =============================================================================
# This module provides a typed wrapper for Supabase database operations.
# It implements the singleton pattern to reuse a single client connection
# and provides single-row lookups for the entities every handler needs
# before it can check ownership:
# - Projects
# - Snapshots
# - Tasks
# - Subscriptions
#
# List queries, inserts and deletes live in core/services, which call
# get_client() directly.
#
# Usage:
#   from lib.supabase_client import SupabaseClient
#   project = SupabaseClient.fetch_project(project_id)
# =============================================================================

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from supabase import create_client, Client

from app.config import settings

# Set up logging for this module
logger = logging.getLogger(__name__)

# PostgREST error code returned by .single() when no row matches
NO_ROWS_CODE = "PGRST116"


class SupabaseClientError(Exception):
    """
    Error during Supabase operations.

    Carries a code and an actionable suggestion, mirroring the API's
    error responses.
    """

    def __init__(
        self,
        message: str,
        code: str = "SUPABASE_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert error to API response dict."""
        result: dict[str, Any] = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result


def is_no_rows_error(error: Exception) -> bool:
    """Check whether a Supabase error means "no row matched"."""
    return NO_ROWS_CODE in str(error)


class SupabaseClient:
    """
    Typed wrapper for Supabase database operations.

    Implements singleton pattern - one client instance is shared across
    the application. All methods are class methods for easy access without
    instantiation.

    Example:
        project = SupabaseClient.fetch_project("550e8400-...")
        if project and project["user_id"] == str(user.id):
            ...
    """

    _instance: Client | None = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the singleton Supabase client.

        Uses service_role key which bypasses Row Level Security (RLS).
        Ownership is therefore checked by the service layer.

        Returns:
            Client: Supabase client instance

        Raises:
            SupabaseClientError: If client creation fails
        """
        if cls._instance is None:
            try:
                cls._instance = create_client(
                    settings.SUPABASE_URL,
                    settings.SUPABASE_SERVICE_KEY
                )
                logger.info("Supabase client initialized successfully")
            except Exception as e:
                raise SupabaseClientError(
                    message=f"Failed to create Supabase client: {e}",
                    code="CLIENT_INIT_FAILED",
                    suggestion="Check SUPABASE_URL and SUPABASE_SERVICE_KEY in your .env file"
                )
        return cls._instance

    @classmethod
    def set_client(cls, client: Client | None) -> None:
        """Replace the singleton (used by tests and scripts)."""
        cls._instance = client

    @classmethod
    def _normalize_uuid(cls, uuid_value: str | UUID) -> str:
        """Convert UUID to string for queries."""
        return str(uuid_value) if isinstance(uuid_value, UUID) else uuid_value

    @classmethod
    def _fetch_single(
        cls,
        table: str,
        column: str,
        value: str | UUID,
        error_code: str,
    ) -> dict[str, Any] | None:
        """
        Fetch one row where `column` equals `value`.

        Returns None when no row matches instead of raising.
        """
        client = cls.get_client()
        value_str = cls._normalize_uuid(value)

        try:
            response = (
                client.table(table)
                .select("*")
                .eq(column, value_str)
                .single()
                .execute()
            )
            return response.data

        except Exception as e:
            if is_no_rows_error(e):
                return None
            raise SupabaseClientError(
                message=f"Failed to fetch {table} row: {e}",
                code=error_code,
                suggestion=f"Check that the {table} table exists and migrations have been applied",
                details={column: value_str}
            )

    # -------------------------------------------------------------------------
    # Entity Lookups
    # -------------------------------------------------------------------------

    @classmethod
    def fetch_project(cls, project_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch a project by ID.

        The returned dict includes github_token; callers must not send it
        to clients.

        Args:
            project_id: The project UUID

        Returns:
            Project dict with all fields, or None if not found

        Raises:
            SupabaseClientError: If query fails
        """
        return cls._fetch_single("projects", "id", project_id, "FETCH_PROJECT_FAILED")

    @classmethod
    def fetch_snapshot(cls, snapshot_id: str | UUID) -> dict[str, Any] | None:
        """Fetch a snapshot by ID, or None if not found."""
        return cls._fetch_single("snapshots", "id", snapshot_id, "FETCH_SNAPSHOT_FAILED")

    @classmethod
    def fetch_task(cls, task_id: str | UUID) -> dict[str, Any] | None:
        """Fetch a task by ID, or None if not found."""
        return cls._fetch_single("tasks", "id", task_id, "FETCH_TASK_FAILED")

    @classmethod
    def fetch_subscription(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """
        Fetch the subscription row for a user.

        There is at most one row per user (unique constraint on user_id).
        Users who never checked out have no row.
        """
        return cls._fetch_single("subscriptions", "user_id", user_id, "FETCH_SUBSCRIPTION_FAILED")

    @classmethod
    def fetch_user_profile(cls, user_id: str | UUID) -> dict[str, Any] | None:
        """Fetch the public.users profile row, or None if not created yet."""
        return cls._fetch_single("users", "id", user_id, "FETCH_USER_FAILED")
