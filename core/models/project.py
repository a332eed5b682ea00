# =============================================================================
# core/models/project.py - Project Schemas
# =============================================================================
# A project is one GitHub repository connected by one user. Snapshots,
# tasks and drift results all hang off a project.
#
# The projects table stores the user's GitHub token so snapshots can be
# regenerated later. The token must never leave the server, so every
# project sent to a client goes through sanitize_project().
# =============================================================================

from typing import Any

from pydantic import BaseModel, Field, field_validator

# owner/repo, as GitHub names them
REPO_NAME_PATTERN = r"^[\w\-\.]+/[\w\-\.]+$"

# Columns never returned to clients
PRIVATE_PROJECT_FIELDS = frozenset({"github_token"})


def sanitize_project(project: dict[str, Any]) -> dict[str, Any]:
    """
    Strip server-only fields from a project row.

    Example:
        sanitize_project({"id": "...", "github_token": "gho_..."})
        # -> {"id": "..."}
    """
    return {k: v for k, v in project.items() if k not in PRIVATE_PROJECT_FIELDS}


class ConnectRepoRequest(BaseModel):
    """
    Body for POST /auth/github/connect.

    Example:
        {
            "repo_name": "octocat/hello-world",
            "github_token": "gho_...",
            "branch": "main"
        }
    """

    repo_name: str = Field(
        ...,
        pattern=REPO_NAME_PATTERN,
        description="Repository full name (owner/repo)"
    )
    github_token: str = Field(
        ...,
        min_length=1,
        description="GitHub OAuth access token"
    )
    branch: str | None = Field(
        default=None,
        description="Branch to analyze (defaults to the repository's default branch)"
    )

    @field_validator("branch")
    @classmethod
    def empty_branch_is_default(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class BranchesRequest(BaseModel):
    """Body for POST /projects/branches."""

    repo_name: str = Field(..., pattern=REPO_NAME_PATTERN)
    github_token: str = Field(..., min_length=1)
